"""Push token registration: one owner per token, rebinding on device hand-over."""

import pytest

from conftest import ALICE, BOB
from naksh.exceptions import APIError, ErrorKind
from naksh.services.device_token_service import device_token_service


class TestDeviceTokens:

    @pytest.mark.asyncio
    async def test_register_new_token(self, db_session, users):
        token, created = await device_token_service.register(db_session, ALICE, "  tok-123  ", "IOS")
        assert created is True
        assert token.token == "tok-123"
        assert token.platform == "ios"

    @pytest.mark.asyncio
    async def test_same_user_registering_twice_conflicts(self, db_session, users):
        token, _ = await device_token_service.register(db_session, ALICE, "tok-123", "ios")
        with pytest.raises(APIError) as exc_info:
            await device_token_service.register(db_session, ALICE, "tok-123", "ios")
        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.details == {"tokenId": str(token.id)}

    @pytest.mark.asyncio
    async def test_token_moves_to_new_owner(self, db_session, users):
        original, _ = await device_token_service.register(db_session, ALICE, "tok-123", "ios")
        rebound, created = await device_token_service.register(db_session, BOB, "tok-123", "android")

        assert created is False
        assert rebound.id == original.id
        assert rebound.user_id == BOB
        assert rebound.platform == "android"
        assert rebound.updated_at is not None
        assert await device_token_service.list_for_user(db_session, ALICE) == []

    @pytest.mark.asyncio
    async def test_unknown_platform(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await device_token_service.register(db_session, ALICE, "tok-123", "windows")
        assert exc_info.value.message == "Invalid platform. Allowed values: ios, android"

    @pytest.mark.asyncio
    async def test_unregister_only_own_token(self, db_session, users):
        await device_token_service.register(db_session, ALICE, "tok-123", "ios")

        with pytest.raises(APIError) as exc_info:
            await device_token_service.unregister(db_session, BOB, "tok-123")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

        await device_token_service.unregister(db_session, ALICE, "tok-123")
        assert await device_token_service.list_for_user(db_session, ALICE) == []
