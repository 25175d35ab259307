from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import month_bounds, now_local
from ..common.paging import PagedResponse, paginate_list
from ..core.exceptions import AlreadyCheckedOut, AlreadyMarked, InvalidRange, ResourceNotFound, ValidationError
from ..database.errors import DuplicateKeyError
from ..stats.aggregator import AttendanceStats, attendance_stats
from ..users.repository import UserRepository
from .model import Attendance
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise InvalidRange("End date must be on or after start date")


class AttendanceLedger:
    """One attendance record per user per day, with check-in/check-out."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        *,
        stamp_absent_check_in: bool = False,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._users = users
        self._stamp_absent_check_in = bool(stamp_absent_check_in)
        self._clock = clock

    def _require_user(self, user_id: int) -> None:
        if not self._users.get_by_id(int(user_id)):
            raise ResourceNotFound("User", "id", user_id)

    def _require(self, attendance_id: int) -> Attendance:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise ResourceNotFound("Attendance", "id", attendance_id)
        return record

    # -------- Writes --------
    def mark_attendance(
        self,
        user_id: int,
        work_date: date,
        present: bool = True,
        notes: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Attendance:
        now = now or self._clock()
        self._require_user(user_id)

        if self._attendance.get_for_user_and_date(user_id, work_date):
            logger.warning("Attendance already marked for user %s on %s", user_id, work_date)
            raise AlreadyMarked("Attendance already marked for this date")

        check_in = now if (present or self._stamp_absent_check_in) else None
        try:
            attendance_id = self._attendance.create(
                user_id=user_id,
                work_date=work_date,
                present=bool(present),
                check_in_time=check_in,
                notes=notes,
            )
        except DuplicateKeyError as exc:
            logger.warning("Concurrent attendance mark for user %s on %s", user_id, work_date)
            raise AlreadyMarked("Attendance already marked for this date") from exc

        logger.info("Attendance marked for user %s on %s (present=%s)", user_id, work_date, bool(present))
        return self._require(attendance_id)

    def mark_today(
        self, user_id: int, present: bool = True, notes: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> Attendance:
        now = now or self._clock()
        return self.mark_attendance(user_id, now.date(), present, notes, now=now)

    def check_out(self, user_id: int, *, now: Optional[datetime] = None) -> Attendance:
        now = now or self._clock()
        today = now.date()

        record = self._attendance.get_for_user_and_date(user_id, today)
        if not record:
            raise ResourceNotFound("Attendance", "date", today.isoformat())
        if record.checked_out:
            raise AlreadyCheckedOut("Already checked out for today")
        if record.check_in_time and now < record.check_in_time:
            raise ValidationError("Check-out time cannot be before check-in time")

        if not self._attendance.set_check_out(record.attendance_id, check_out_time=now):
            raise AlreadyCheckedOut("Already checked out for today")

        logger.info("User %s checked out at %s", user_id, now.strftime("%H:%M:%S"))
        return self._require(record.attendance_id)

    def delete_attendance(self, attendance_id: int) -> None:
        record = self._require(attendance_id)
        if not self._attendance.delete_by_id(record.attendance_id):
            raise ResourceNotFound("Attendance", "id", attendance_id)
        logger.info("Attendance %s (user %s, %s) deleted", record.attendance_id, record.user_id, record.work_date)

    # -------- Reads --------
    def get_attendance(self, user_id: int) -> Sequence[Attendance]:
        self._require_user(user_id)
        return self._attendance.list_for_user(user_id)

    def get_attendance_by_range(self, user_id: int, start: date, end: date) -> Sequence[Attendance]:
        _check_range(start, end)
        self._require_user(user_id)
        return self._attendance.list_for_user_between(user_id, start, end)

    def get_user_attendance_paginated(
        self,
        user_id: int,
        page: int,
        size: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> PagedResponse[Attendance]:
        if start and end:
            _check_range(start, end)
        self._require_user(user_id)
        total = self._attendance.count_for_user(user_id, start=start, end=end)
        rows = self._attendance.page_for_user(user_id, offset=page * size, limit=size, start=start, end=end)
        return PagedResponse.of(rows, page, size, total)

    def get_all_attendance_paginated(self, page: int, size: int) -> PagedResponse[Attendance]:
        total = self._attendance.count_all()
        rows = self._attendance.page_all(offset=page * size, limit=size)
        return PagedResponse.of(rows, page, size, total)

    def search_attendance(
        self,
        page: int,
        size: int,
        *,
        user_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> PagedResponse[Attendance]:
        """Admin listing: everything, or one user's records optionally limited to a window."""
        if user_id is None:
            return self.get_all_attendance_paginated(page, size)
        if start and end:
            return paginate_list(self.get_attendance_by_range(user_id, start, end), page, size)
        return paginate_list(self.get_attendance(user_id), page, size)

    def today_status(self, user_id: int, *, now: Optional[datetime] = None) -> dict:
        today = (now or self._clock()).date()
        record = self._attendance.get_for_user_and_date(user_id, today)
        return {
            "marked": record is not None,
            "present": bool(record and record.present),
            "checkedOut": bool(record and record.checked_out),
        }

    def get_stats(self, user_id: int, start: Optional[date] = None, end: Optional[date] = None) -> AttendanceStats:
        # A missing bound comes from the month of the given one, else the current month.
        first, last = month_bounds(start or end or self._clock().date())
        start = start or first
        end = end or last
        records = self.get_attendance_by_range(user_id, start, end)
        return attendance_stats(records, start=start, end=end)

    def get_attendance_summary(self, start: Optional[date] = None, end: Optional[date] = None) -> list[dict]:
        """Per-user stats over a window (default: first of this month through today)."""
        today = self._clock().date()
        start = start or today.replace(day=1)
        end = end or today
        _check_range(start, end)

        summary = []
        for user in self._users.list_all():
            stats = attendance_stats(self._attendance.list_for_user_between(user.user_id, start, end), start=start, end=end)
            summary.append(
                {
                    "userId": user.user_id,
                    "username": user.username,
                    "fullName": user.full_name,
                    "totalDays": stats.total_days,
                    "presentDays": stats.present_days,
                    "absentDays": stats.absent_days,
                    "attendancePercentage": stats.percentage,
                }
            )
        return summary

    def repair_missing_created_at(self) -> int:
        """Best-effort backfill for rows written before created_at was tracked."""
        try:
            fixed = self._attendance.fill_missing_created_at()
        except Exception:
            logger.exception("Could not repair attendance created_at values")
            return 0
        if fixed:
            logger.info("Backfilled created_at on %d attendance rows", fixed)
        return fixed
