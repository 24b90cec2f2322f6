"""
Naksh Backend — Validation Utility Tests
==========================================

What:  Tests for the small synchronous checks in naksh.validation.
Why:   Every service leans on them; their messages reach the client verbatim.
"""

import uuid

import pytest

from naksh.exceptions import APIError, ErrorKind
from naksh.validation import (
    require_array,
    require_coordinates,
    require_email,
    require_enum,
    require_fields,
    require_pagination,
    require_password_strength,
    require_string_length,
    require_username,
    require_uuid,
    sanitize_html,
)


def _message(exc_info) -> str:
    assert exc_info.value.kind is ErrorKind.VALIDATION
    return exc_info.value.message


class TestRequireFields:

    def test_reports_every_missing_field_in_order(self):
        with pytest.raises(APIError) as exc_info:
            require_fields({"username": "", "bio": "hi"}, ["username", "email", "bio"])
        assert _message(exc_info) == "Missing required fields: username, email"
        assert exc_info.value.details == {"missingFields": ["username", "email"]}

    def test_zero_and_false_are_present(self):
        require_fields({"count": 0, "flag": False}, ["count", "flag"])


class TestFormats:

    @pytest.mark.parametrize("email", ["a@b.co", "first.last@example.org"])
    def test_valid_email(self, email):
        assert require_email(email) == email

    @pytest.mark.parametrize("email", ["plainaddress", "a@b", "two words@example.com", None])
    def test_invalid_email(self, email):
        with pytest.raises(APIError) as exc_info:
            require_email(email)
        assert _message(exc_info) == "Invalid email format"

    @pytest.mark.parametrize("username", ["ab", "has space", "x" * 31, "dash-name"])
    def test_invalid_username(self, username):
        with pytest.raises(APIError):
            require_username(username)

    def test_valid_username(self):
        assert require_username("night_owl_7") == "night_owl_7"

    @pytest.mark.parametrize(
        "password,message",
        [
            ("Ab1", "Password must be at least 8 characters long"),
            ("ABCDEFG1", "Password must contain at least one lowercase letter"),
            ("abcdefg1", "Password must contain at least one uppercase letter"),
            ("Abcdefgh", "Password must contain at least one number"),
            (None, "Password is required"),
            (12345678, "Password is required"),
        ],
    )
    def test_password_rules_report_first_failure(self, password, message):
        with pytest.raises(APIError) as exc_info:
            require_password_strength(password)
        assert _message(exc_info) == message


class TestPagination:

    def test_numeric_strings_are_accepted(self):
        assert require_pagination("2", "20") == (2, 20)

    @pytest.mark.parametrize("page", ["0", "-1", "abc", 1.5])
    def test_bad_page(self, page):
        with pytest.raises(APIError) as exc_info:
            require_pagination(page, 10)
        assert _message(exc_info) == "Page must be a positive integer"

    @pytest.mark.parametrize("limit", ["0", "101", "lots"])
    def test_bad_limit(self, limit):
        with pytest.raises(APIError) as exc_info:
            require_pagination(1, limit)
        assert _message(exc_info) == "Limit must be between 1 and 100"


class TestEnumsAndLengths:

    def test_enum_lists_allowed_values(self):
        with pytest.raises(APIError) as exc_info:
            require_enum("MEH", ["LIKE", "LOL"], "reaction type")
        assert _message(exc_info) == "Invalid reaction type. Allowed values: LIKE, LOL"

    def test_optional_string_may_be_missing(self):
        assert require_string_length(None, "Bio", 1, 500) is None

    def test_required_string(self):
        with pytest.raises(APIError) as exc_info:
            require_string_length("", "Message body", 1, 1000, required=True)
        assert _message(exc_info) == "Message body is required"

    def test_too_long(self):
        with pytest.raises(APIError) as exc_info:
            require_string_length("x" * 1001, "Comment body", 1, 1000)
        assert _message(exc_info) == "Comment body must be at most 1000 characters long"

    def test_array_bounds(self):
        with pytest.raises(APIError) as exc_info:
            require_array(list(range(11)), "Media", max_length=10)
        assert _message(exc_info) == "Media must have at most 10 items"


class TestCoordinatesAndIds:

    def test_valid_coordinates_are_floats(self):
        assert require_coordinates("12.5", -45) == (12.5, -45.0)

    @pytest.mark.parametrize("latitude", [91, -90.5, "north", None])
    def test_bad_latitude(self, latitude):
        with pytest.raises(APIError):
            require_coordinates(latitude, 0)

    def test_longitude_upper_bound_is_exclusive(self):
        with pytest.raises(APIError):
            require_coordinates(0, 180)

    def test_uuid(self):
        value = uuid.uuid4()
        assert require_uuid(str(value)) == value
        with pytest.raises(APIError) as exc_info:
            require_uuid("not-a-uuid", "postId")
        assert exc_info.value.details == {"field": "postId"}


class TestSanitize:

    def test_strips_scripts_and_handlers(self):
        dirty = 'hi <script>alert(1)</script><a href="javascript:x" onclick="y">link</a>'
        clean = sanitize_html(dirty)
        assert "<script" not in clean
        assert "javascript:" not in clean
        assert "onclick=" not in clean
        assert clean.startswith("hi ")
