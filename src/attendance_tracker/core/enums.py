from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    USER = "USER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"


class AuthProvider(str, Enum):
    """Where the account's credentials live."""

    LOCAL = "LOCAL"
    GOOGLE = "GOOGLE"
    GITHUB = "GITHUB"

    @classmethod
    def from_registration_id(cls, registration_id: str) -> "AuthProvider":
        return {
            "google": cls.GOOGLE,
            "github": cls.GITHUB,
        }.get((registration_id or "").strip().lower(), cls.GOOGLE)


class LeaveType(str, Enum):
    ANNUAL = "ANNUAL"
    SICK = "SICK"
    PERSONAL = "PERSONAL"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    UNPAID = "UNPAID"
    OTHER = "OTHER"


class LeaveStatus(str, Enum):
    """Leave workflow states. Everything except PENDING is terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING

    @property
    def blocks_overlap(self) -> bool:
        return self in {LeaveStatus.PENDING, LeaveStatus.APPROVED}
