"""
Validation helpers, pagination/time-window utilities and error mapping.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, OperationalError

from backend.app.utils.error_handlers import (
    ERROR_MESSAGES,
    create_error_response,
    get_error_message,
    handle_database_error,
)
from backend.app.utils.timeutils import as_utc, to_iso
from backend.app.utils.validation import (
    like_contains,
    like_json_item,
    page_params,
    pagination_meta,
    sanitize_filename,
    validate_choice,
    validate_email,
    validate_password,
    validate_string_field,
    validate_string_list,
    window_start,
)


class TestEmailValidation:
    def test_valid_email(self):
        assert validate_email("test@example.com") == "test@example.com"
        assert validate_email("  USER@EXAMPLE.COM  ") == "user@example.com"

    @pytest.mark.parametrize("email", ["invalid", "testexample.com", "a@b", ""])
    def test_invalid_email(self, email):
        with pytest.raises(HTTPException) as exc:
            validate_email(email)
        assert exc.value.status_code == 400

    def test_email_too_long(self):
        with pytest.raises(HTTPException) as exc:
            validate_email("a" * 250 + "@example.com")
        assert "too long" in exc.value.detail


class TestPasswordValidation:
    def test_valid_password(self):
        validate_password("secret")

    def test_too_short(self):
        with pytest.raises(HTTPException) as exc:
            validate_password("12345")
        assert "at least 6" in exc.value.detail

    def test_too_long(self):
        with pytest.raises(HTTPException):
            validate_password("x" * 129)


class TestFieldValidation:
    def test_string_field_trims_and_bounds(self):
        assert validate_string_field("  Hello  ", "Title") == "Hello"
        assert validate_string_field(None, "Bio", required=False) is None
        with pytest.raises(HTTPException) as exc:
            validate_string_field("   ", "Title")
        assert exc.value.detail == "Title is required"
        with pytest.raises(HTTPException) as exc:
            validate_string_field("x" * 11, "Title", max_length=10)
        assert exc.value.detail == "Title must not exceed 10 characters"

    def test_choice_normalizes_and_defaults(self):
        assert validate_choice(" Remote ", "workMode", ("remote", "onsite")) == "remote"
        assert validate_choice("", "workMode", ("remote", "onsite"), default="onsite") == "onsite"
        with pytest.raises(HTTPException) as exc:
            validate_choice("moon", "workMode", ("remote", "onsite"))
        assert exc.value.detail == "Invalid workMode. Must be one of: remote, onsite"
        with pytest.raises(HTTPException):
            validate_choice(None, "status", ("pending",))

    def test_string_list(self):
        assert validate_string_list("python, , go", "skills") == ["python", "go"]
        assert validate_string_list(None, "skills") == []
        with pytest.raises(HTTPException):
            validate_string_list({"a": 1}, "skills")
        with pytest.raises(HTTPException):
            validate_string_list(["x"] * 3, "skills", max_items=2)

    def test_sanitize_filename(self):
        assert sanitize_filename("../../etc/passwd") == "____etc_passwd"
        assert sanitize_filename("cv.pdf") == "cv.pdf"
        with pytest.raises(HTTPException):
            sanitize_filename("")


class TestPaginationAndWindows:
    def test_page_params_clamp(self):
        assert page_params(None, None) == (1, 10)
        assert page_params(0, -5, default_limit=20) == (1, 20)
        assert page_params(3, 500) == (3, 100)

    def test_pagination_meta(self):
        assert pagination_meta(2, 10, 25) == {"page": 2, "limit": 10, "total": 25, "pages": 3}
        assert pagination_meta(1, 10, 0)["pages"] == 0

    def test_window_start(self):
        now = datetime(2025, 1, 31, 12, tzinfo=timezone.utc)
        assert window_start("1h", now) == now - timedelta(hours=1)
        assert window_start("24H", now) == now - timedelta(days=1)
        assert window_start("week", now) == now - timedelta(days=7)
        assert window_start("month", now) == now - timedelta(days=30)
        assert window_start("year", now) is None
        assert window_start(None, now) is None

    def test_like_patterns_escape_wildcards(self):
        assert like_json_item("python") == '%"python"%'
        assert like_json_item("c_%") == '%"c\\_\\%"%'
        assert like_contains("50%") == "%50\\%%"


class TestTimeutils:
    def test_naive_datetimes_are_utc(self):
        assert as_utc(datetime(2025, 1, 1)) == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert to_iso(datetime(2025, 1, 1)) == "2025-01-01T00:00:00+00:00"
        assert to_iso(None) is None


class TestErrorHandling:
    def test_get_error_message(self):
        assert get_error_message("already_applied") == "Already applied to this job"
        assert get_error_message("nope") == ERROR_MESSAGES["server_error"]
        assert get_error_message("nope", "Custom") == "Custom"

    def test_unique_violation_maps_to_400(self):
        err = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: payments.transaction_hash"))
        exc = handle_database_error(err, "insert payment")
        assert exc.status_code == 400
        assert "already exists" in exc.detail

    def test_foreign_key_violation_maps_to_400(self):
        err = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
        assert handle_database_error(err).status_code == 400

    def test_other_errors_hide_driver_message(self):
        err = OperationalError("SELECT", {}, Exception("database is locked at /secret/path"))
        exc = handle_database_error(err, "read")
        assert exc.status_code == 500
        assert exc.detail == "Server error"

    def test_error_envelope(self):
        response = create_error_response(404, "Job not found")
        assert response.status_code == 404
        assert response.body == b'{"success":false,"error":"Job not found"}'
