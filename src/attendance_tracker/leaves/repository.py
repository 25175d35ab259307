from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus, LeaveType
from .model import Leave


class LeaveRepository(Protocol):
    """Leave storage. List reads are newest ``created_at`` first."""

    def get_by_id(self, leave_id: int) -> Optional[Leave]:
        raise NotImplementedError

    def has_active_overlap(self, user_id: int, start: date, end: date) -> bool:
        """True when a PENDING/APPROVED leave of the user intersects [start, end]."""

        raise NotImplementedError

    def create_pending(
        self,
        *,
        user_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        days: int,
        reason: Optional[str] = None,
    ) -> int:
        """Insert a PENDING leave while holding the user's row lock.

        Raises ``OverlapConflictError`` if the overlap re-check inside the lock fails.
        """

        raise NotImplementedError

    def transition_from_pending(
        self,
        leave_id: int,
        *,
        status: LeaveStatus,
        approver_id: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> bool:
        """Move a PENDING leave to ``status``. Returns False if it was no longer PENDING."""

        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Leave]:
        raise NotImplementedError

    def page_for_user(self, user_id: int, *, offset: int, limit: int) -> Sequence[Leave]:
        raise NotImplementedError

    def count_for_user(self, user_id: int) -> int:
        raise NotImplementedError

    def page_all(self, *, offset: int, limit: int, status: Optional[LeaveStatus] = None) -> Sequence[Leave]:
        raise NotImplementedError

    def count_all(self, *, status: Optional[LeaveStatus] = None) -> int:
        raise NotImplementedError
