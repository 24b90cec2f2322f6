"""
Naksh Backend — Identity Provider
===================================

What:  Resolves the authenticated user id of a request.
How:   `IdentityProvider` is the interface; `GatewayIdentityProvider` trusts
       a header set by the edge after the Clerk session was verified there.
Who:   dependencies.get_current_user_id() via `request.app.state.identity`;
       tests swap in their own provider.

Contract:
    authenticate(request) → user id, or None for an anonymous request.
    A present-but-malformed credential raises IdentityProviderError(status=401),
    which the transformer maps to AUTHENTICATION.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

from starlette.requests import Request

from naksh.config import settings
from naksh.exceptions import IdentityProviderError

# Clerk ids look like "user_2abc..."; keep the accepted alphabet narrow
USER_ID_RE = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


class IdentityProvider(ABC):

    @abstractmethod
    async def authenticate(self, request: Request) -> Optional[str]:
        """Return the verified user id, or None when the request carries none."""
        ...


class GatewayIdentityProvider(IdentityProvider):
    """Reads the user id from `settings.identity_user_header` (default X-User-Id)."""

    def __init__(self, header_name: Optional[str] = None):
        self.header_name = header_name or settings.identity_user_header

    async def authenticate(self, request: Request) -> Optional[str]:
        value = request.headers.get(self.header_name)
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not USER_ID_RE.match(value):
            raise IdentityProviderError("Invalid session", status=401)
        return value
