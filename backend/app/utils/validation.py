"""
Validation utilities for input validation and error handling.
"""
import math
import re
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from fastapi import HTTPException

from .timeutils import utcnow


def validate_email(email: str) -> str:
    """Validate email format."""
    if not email or not isinstance(email, str):
        raise HTTPException(status_code=400, detail="Email is required")

    email = email.strip().lower()
    if len(email) > 255:
        raise HTTPException(status_code=400, detail="Email too long (max 255 characters)")

    # Basic email regex
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    if not re.match(pattern, email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    return email


def validate_password(password: str) -> None:
    """Validate password strength."""
    if not password or not isinstance(password, str):
        raise HTTPException(status_code=400, detail="Password is required")

    if len(password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    if len(password) > 128:
        raise HTTPException(status_code=400, detail="Password too long (max 128 characters)")


def validate_string_field(
    value: Any,
    field_name: str,
    min_length: int = 1,
    max_length: int = 1000,
    required: bool = True,
) -> str | None:
    """Validate a string field with common rules."""
    if value is None:
        if required:
            raise HTTPException(status_code=400, detail=f"{field_name} is required")
        return None

    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{field_name} must be a string")

    value = value.strip()

    if required and not value:
        raise HTTPException(status_code=400, detail=f"{field_name} is required")

    if required and len(value) < min_length:
        raise HTTPException(
            status_code=400,
            detail=f"{field_name} must be at least {min_length} characters"
        )

    if len(value) > max_length:
        raise HTTPException(
            status_code=400,
            detail=f"{field_name} must not exceed {max_length} characters"
        )

    return value


def validate_choice(value: str | None, field_name: str, choices: Iterable[str], default: str | None = None) -> str:
    """Validate an enumerated string field; empty values take `default` when one is given."""
    choices = tuple(choices)
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return default
        raise HTTPException(status_code=400, detail=f"{field_name} is required")

    normalized = str(value).strip().lower()
    if normalized not in choices:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {field_name}. Must be one of: {', '.join(choices)}"
        )
    return normalized


def validate_string_list(value: Any, field_name: str, max_items: int = 100) -> list[str]:
    """Accept a list of strings (or a comma-separated string); trims and drops blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise HTTPException(status_code=400, detail=f"{field_name} must be a list")
    items = [str(v).strip() for v in value if v is not None and str(v).strip()]
    if len(items) > max_items:
        raise HTTPException(status_code=400, detail=f"{field_name} must not exceed {max_items} items")
    return items


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    filename = filename.replace("/", "_").replace("\\", "_")
    filename = filename.replace("\x00", "")
    filename = filename.replace("..", "_")
    filename = filename.lstrip(".")

    if len(filename) > 255:
        raise HTTPException(status_code=400, detail="Filename too long")

    if not filename or filename == "_":
        raise HTTPException(status_code=400, detail="Invalid filename")

    return filename


# -------------------- Pagination / time windows --------------------

def page_params(page: int | None, limit: int | None, *, default_limit: int = 10, max_limit: int = 100) -> tuple[int, int]:
    """Clamp page (>=1) and limit (1..max_limit); returns (page, limit)."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    return page, min(limit, max_limit)


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


TIME_WINDOWS = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


def window_start(token: str | None, now: datetime | None = None) -> datetime | None:
    """Start of a look-back window (`1h`, `24h`, `week`, `month`); unknown tokens mean no filter."""
    delta = TIME_WINDOWS.get((token or "").strip().lower())
    if delta is None:
        return None
    return (now or utcnow()) - delta


def like_json_item(value: str) -> str:
    """
    ILIKE pattern matching one element of a JSON string list stored as text,
    e.g. `["Python", "React"]` matches like_json_item("python").
    """
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f'%"{escaped}"%'


def like_contains(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
