from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.paging import PagedResponse
from ..common.validators import blank_to_none
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import (
    Forbidden,
    InvalidRange,
    InvalidTransition,
    OverlappingLeave,
    ResourceNotFound,
    ValidationError,
)
from ..database.errors import OverlapConflictError
from ..stats.aggregator import LeaveStats, leave_stats
from ..users.repository import UserRepository
from .model import Leave, inclusive_days
from .repository import LeaveRepository

logger = logging.getLogger(__name__)

_OVERLAP_MESSAGE = "You already have a leave request for these dates"


def parse_leave_type(value) -> LeaveType:
    if isinstance(value, LeaveType):
        return value
    try:
        return LeaveType(str(value or "").strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown leave type: {value}") from exc


class LeaveWorkflow:
    """Leave requests: PENDING, then APPROVED, REJECTED or CANCELLED (all terminal)."""

    def __init__(
        self,
        leaves: LeaveRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._users = users
        self._clock = clock

    @staticmethod
    def leave_types() -> list[str]:
        return [t.value for t in LeaveType]

    def _require(self, leave_id: int) -> Leave:
        leave = self._leaves.get_by_id(int(leave_id))
        if not leave:
            raise ResourceNotFound("Leave", "id", leave_id)
        return leave

    def request_leave(
        self,
        user_id: int,
        leave_type,
        start: date,
        end: date,
        reason: Optional[str] = None,
    ) -> Leave:
        if start is None or end is None:
            raise ValidationError("Start date and end date are required")
        if end < start:
            raise InvalidRange("End date must be on or after start date")
        leave_type = parse_leave_type(leave_type)

        if not self._users.get_by_id(int(user_id)):
            raise ResourceNotFound("User", "id", user_id)

        if self._leaves.has_active_overlap(user_id, start, end):
            logger.warning("Overlapping leave request by user %s for %s..%s", user_id, start, end)
            raise OverlappingLeave(_OVERLAP_MESSAGE)

        try:
            leave_id = self._leaves.create_pending(
                user_id=user_id,
                leave_type=leave_type,
                start_date=start,
                end_date=end,
                days=inclusive_days(start, end),
                reason=blank_to_none(reason),
            )
        except OverlapConflictError as exc:
            logger.warning("Overlapping leave request by user %s lost the race for %s..%s", user_id, start, end)
            raise OverlappingLeave(_OVERLAP_MESSAGE) from exc

        logger.info("Leave requested by user %s from %s to %s (%s)", user_id, start, end, leave_type.value)
        return self._require(leave_id)

    def cancel_leave(self, leave_id: int, acting_user_id: int) -> Leave:
        leave = self._require(leave_id)
        if leave.user_id != int(acting_user_id):
            raise Forbidden("You can only cancel your own leave requests")
        return self._transition(leave, LeaveStatus.CANCELLED, verb="cancelled", actor=acting_user_id)

    def approve_leave(self, leave_id: int, approver_id: int, comment: Optional[str] = None) -> Leave:
        leave = self._require(leave_id)
        return self._transition(
            leave, LeaveStatus.APPROVED, verb="approved", actor=approver_id, approver_id=approver_id, comment=comment
        )

    def reject_leave(self, leave_id: int, approver_id: int, comment: Optional[str] = None) -> Leave:
        leave = self._require(leave_id)
        return self._transition(
            leave, LeaveStatus.REJECTED, verb="rejected", actor=approver_id, approver_id=approver_id, comment=comment
        )

    def _transition(
        self,
        leave: Leave,
        status: LeaveStatus,
        *,
        verb: str,
        actor: int,
        approver_id: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Leave:
        if leave.status.is_terminal:
            raise InvalidTransition(f"Only pending leaves can be {verb}")

        moved = self._leaves.transition_from_pending(
            leave.leave_id,
            status=status,
            approver_id=int(approver_id) if approver_id is not None else None,
            comment=blank_to_none(comment),
        )
        if not moved:
            logger.warning("Leave %s changed state before it could be %s", leave.leave_id, verb)
            raise InvalidTransition(f"Only pending leaves can be {verb}")

        logger.info("Leave %s %s by user %s", leave.leave_id, verb, actor)
        return self._require(leave.leave_id)

    # -------- Reads --------
    def get_leave(self, leave_id: int) -> Leave:
        return self._require(leave_id)

    def get_user_leaves_paginated(self, user_id: int, page: int, size: int) -> PagedResponse[Leave]:
        total = self._leaves.count_for_user(user_id)
        rows = self._leaves.page_for_user(user_id, offset=page * size, limit=size)
        return PagedResponse.of(rows, page, size, total)

    def get_all_paginated(self, page: int, size: int) -> PagedResponse[Leave]:
        total = self._leaves.count_all()
        rows = self._leaves.page_all(offset=page * size, limit=size)
        return PagedResponse.of(rows, page, size, total)

    def get_pending_paginated(self, page: int, size: int) -> PagedResponse[Leave]:
        total = self._leaves.count_all(status=LeaveStatus.PENDING)
        rows = self._leaves.page_all(offset=page * size, limit=size, status=LeaveStatus.PENDING)
        return PagedResponse.of(rows, page, size, total)

    def get_pending_count(self) -> int:
        return self._leaves.count_all(status=LeaveStatus.PENDING)

    def get_leave_stats(self, user_id: int, year: Optional[int] = None) -> LeaveStats:
        year = int(year) if year is not None else self._clock().year
        return leave_stats(self._leaves.list_for_user(user_id), year=year)
