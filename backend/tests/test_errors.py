"""
Naksh Backend — Error Layer Unit Tests
========================================

What:  Tests for the error taxonomy, the transformer and the async boundary.
How:   Feeds raw failures (storage errors, provider errors, validation
       errors, arbitrary values) through classify() and checks the kind,
       status and message of the result.

What we test:
    ✅ Every kind carries its fixed status and code
    ✅ Storage unique / foreign key / missing-record errors
    ✅ Identity provider and media host errors
    ✅ Pydantic validation errors → per-field details
    ✅ Storage range / schema / pool errors → DATABASE
    ✅ Unknown values → non-operational INTERNAL; classify never raises
    ✅ classify never mutates its input
    ✅ async_boundary re-raises APIError chained to the original
"""

import copy
import sqlite3

import pytest
from pydantic import BaseModel, ValidationError
from sqlalchemy import exc as sa_exc
from starlette.exceptions import HTTPException as StarletteHTTPException

from naksh.errors.boundary import async_boundary
from naksh.errors.transformer import classify
from naksh.exceptions import (
    APIError,
    ErrorKind,
    GENERIC_ERROR_MESSAGE,
    IdentityProviderError,
    MediaHostError,
    conflict,
    not_found,
    rate_limited,
)


class _PgError(Exception):
    """Stand-in for an asyncpg error: carries sqlstate and detail attributes."""

    def __init__(self, message, sqlstate, detail=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.detail = detail


class _SchemaError(Exception):
    """Validation failure from another library: exposes a list of issues as `errors`."""

    def __init__(self, errors):
        super().__init__("schema validation failed")
        self.errors = errors


class TestErrorKinds:

    @pytest.mark.parametrize(
        "kind,status,code",
        [
            (ErrorKind.VALIDATION, 400, "VALIDATION_ERROR"),
            (ErrorKind.AUTHENTICATION, 401, "AUTHENTICATION_ERROR"),
            (ErrorKind.AUTHORIZATION, 403, "AUTHORIZATION_ERROR"),
            (ErrorKind.NOT_FOUND, 404, "NOT_FOUND_ERROR"),
            (ErrorKind.CONFLICT, 409, "CONFLICT_ERROR"),
            (ErrorKind.GONE, 410, "GONE_ERROR"),
            (ErrorKind.RATE_LIMITED, 429, "RATE_LIMIT_ERROR"),
            (ErrorKind.DATABASE, 500, "DATABASE_ERROR"),
            (ErrorKind.EXTERNAL_SERVICE, 502, "EXTERNAL_SERVICE_ERROR"),
            (ErrorKind.INTERNAL, 500, "INTERNAL_ERROR"),
        ],
    )
    def test_status_and_code(self, kind, status, code):
        error = APIError(kind, "boom")
        assert error.status_code == status
        assert error.code == code
        assert error.is_operational is True

    def test_not_found_message(self):
        assert not_found("Post").message == "Post not found"

    def test_to_dict_omits_empty_details(self):
        assert "details" not in conflict("Already following this user").to_dict()

    def test_rate_limited_carries_retry_after(self):
        error = rate_limited(retry_after=30)
        assert error.retry_after == 30
        assert error.details == {"retryAfter": 30}


class TestClassifyStorage:

    def test_api_error_passes_through_unchanged(self):
        error = not_found("Chat")
        assert classify(error) is error

    def test_sqlite_unique_violation_names_the_column(self):
        raw = sa_exc.IntegrityError(
            "INSERT INTO users ...", {}, sqlite3.IntegrityError("UNIQUE constraint failed: users.email")
        )
        error = classify(raw)
        assert error.kind is ErrorKind.CONFLICT
        assert error.message == "email already exists"
        assert error.details == {"field": "email", "constraint": "unique"}

    def test_postgres_unique_violation_reads_key_detail(self):
        orig = _PgError(
            "duplicate key value violates unique constraint",
            "23505",
            detail="Key (username)=(bob) already exists.",
        )
        error = classify(sa_exc.IntegrityError("INSERT", {}, orig))
        assert error.kind is ErrorKind.CONFLICT
        assert error.message == "username already exists"

    def test_foreign_key_violation_is_validation(self):
        raw = sa_exc.IntegrityError(
            "INSERT INTO follows ...", {}, sqlite3.IntegrityError("FOREIGN KEY constraint failed")
        )
        error = classify(raw)
        assert error.kind is ErrorKind.VALIDATION
        assert error.message == "Invalid reference to related record"

    def test_invalid_text_representation_is_invalid_id(self):
        orig = _PgError("invalid input syntax for type uuid", "22P02")
        error = classify(sa_exc.DataError("SELECT", {}, orig))
        assert error.kind is ErrorKind.VALIDATION
        assert error.message == "Invalid ID provided"

    def test_no_result_found_is_not_found(self):
        error = classify(sa_exc.NoResultFound("No row was found"))
        assert error.kind is ErrorKind.NOT_FOUND
        assert error.message == "Record not found"

    def test_missing_table_is_database_error(self):
        raw = sa_exc.OperationalError("SELECT", {}, sqlite3.OperationalError("no such table: posts"))
        error = classify(raw)
        assert error.kind is ErrorKind.DATABASE
        assert error.message == "Table does not exist"
        assert error.original is raw

    @pytest.mark.parametrize(
        "raw,message",
        [
            (sa_exc.DataError("UPDATE", {}, _PgError("value out of range for type integer", "22003")), "Value out of range"),
            (sa_exc.ProgrammingError("SELECT", {}, _PgError("relation \"posts\" does not exist", "42P01")), "Table does not exist"),
            (sa_exc.ProgrammingError("SELECT", {}, _PgError("column \"mood\" does not exist", "42703")), "Column does not exist"),
            (sa_exc.TimeoutError("QueuePool limit of size 5 overflow 10 reached"), "Connection pool timeout"),
        ],
    )
    def test_range_schema_and_pool_errors_are_database_errors(self, raw, message):
        error = classify(raw)
        assert error.kind is ErrorKind.DATABASE
        assert error.status_code == 500
        assert error.message == message
        assert error.original is raw


class TestClassifyProviders:

    @pytest.mark.parametrize(
        "status,kind",
        [(401, ErrorKind.AUTHENTICATION), (403, ErrorKind.AUTHORIZATION), (None, ErrorKind.EXTERNAL_SERVICE)],
    )
    def test_identity_provider(self, status, kind):
        error = classify(IdentityProviderError("Session expired", status=status))
        assert error.kind is kind

    def test_media_host_bad_request_is_validation(self):
        error = classify(MediaHostError("Invalid image file", http_code=400))
        assert error.kind is ErrorKind.VALIDATION
        assert error.message == "File upload failed: Invalid image file"

    def test_media_host_payload_too_large(self):
        error = classify(MediaHostError("too big", http_code=413))
        assert error.message == "File size too large"

    def test_media_host_rejected_credentials(self):
        error = classify(MediaHostError("Invalid Signature", http_code=401))
        assert error.kind is ErrorKind.EXTERNAL_SERVICE
        assert error.message == "Cloudinary: Authentication failed"
        assert error.details == {"service": "Cloudinary"}

    def test_media_host_outage_is_external(self):
        error = classify(MediaHostError("Service unavailable", http_code=503))
        assert error.kind is ErrorKind.EXTERNAL_SERVICE
        assert error.status_code == 502
        assert error.details == {"service": "Cloudinary"}

    def test_http_exception_keeps_its_status(self):
        error = classify(StarletteHTTPException(status_code=405, detail="Method Not Allowed"))
        assert error.status_code == 405
        assert error.kind is ErrorKind.VALIDATION


class TestClassifyValidationAndFallback:

    def test_pydantic_errors_become_field_details(self):
        class Body(BaseModel):
            hours: int

        with pytest.raises(ValidationError) as exc_info:
            Body(hours="many")

        error = classify(exc_info.value)
        assert error.kind is ErrorKind.VALIDATION
        assert error.details[0]["field"] == "hours"

    @pytest.mark.parametrize("raw", [None, "just a string", 42, {"unexpected": True}, RuntimeError("boom")])
    def test_anything_else_is_internal(self, raw):
        error = classify(raw)
        assert error.kind is ErrorKind.INTERNAL
        assert error.is_operational is False
        assert error.message == GENERIC_ERROR_MESSAGE

    def test_hostile_value_does_not_escape(self):
        class Hostile(Exception):
            def __getattr__(self, name):
                raise RuntimeError("no attributes for you")

        assert classify(Hostile()).kind is ErrorKind.INTERNAL

    @pytest.mark.parametrize(
        "issues,fields",
        [
            ([{"path": ["body", "caption"], "message": "Too long"}], ["caption"]),
            ([{"loc": ("query", "page"), "msg": "Not a number"}, {"field": "limit"}], ["page", "limit"]),
        ],
    )
    def test_issue_list_is_not_mutated(self, issues, fields):
        raw = _SchemaError(issues)
        before = copy.deepcopy(raw.errors)

        error = classify(raw)

        assert raw.errors == before
        assert error.kind is ErrorKind.VALIDATION
        assert [issue["field"] for issue in error.details] == fields

    def test_plain_payload_is_not_mutated(self):
        raw = {"unexpected": True, "nested": {"items": [1, 2]}}
        before = copy.deepcopy(raw)
        classify(raw)
        assert raw == before


class TestAsyncBoundary:

    @pytest.mark.asyncio
    async def test_success_passes_through(self):
        @async_boundary
        async def handler(value):
            return value * 2

        assert await handler(21) == 42

    @pytest.mark.asyncio
    async def test_raw_failure_is_classified_and_chained(self):
        original = sa_exc.NoResultFound("gone")

        @async_boundary
        async def handler():
            raise original

        with pytest.raises(APIError) as exc_info:
            await handler()
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.__cause__ is original

    @pytest.mark.asyncio
    async def test_api_error_is_reraised_as_is(self):
        error = conflict("Already following this user")

        @async_boundary
        async def handler():
            raise error

        with pytest.raises(APIError) as exc_info:
            await handler()
        assert exc_info.value is error
