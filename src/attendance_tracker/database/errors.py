from __future__ import annotations

from typing import Optional


class PersistenceError(Exception):
    """Base class for storage failures the services know how to interpret."""


class DuplicateKeyError(PersistenceError):
    """A unique constraint rejected the write.

    ``constraint`` is the bare index name (e.g. ``uq_users_email``) so callers
    can tell which key collided.
    """

    def __init__(self, constraint: Optional[str], detail: str = ""):
        super().__init__(detail or f"Duplicate entry for key {constraint!r}")
        self.constraint = constraint


class OverlapConflictError(PersistenceError):
    """A leave insert found an overlapping active leave while holding the user lock."""
