from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_email(value: Optional[str], field_name: str = "Email") -> str:
    value = require_non_empty(value, field_name)
    local, sep, domain = value.partition("@")
    if not sep or not local or not domain:
        raise ValidationError(f"{field_name} is not a valid email address")
    return value


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None
