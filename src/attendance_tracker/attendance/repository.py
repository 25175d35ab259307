from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import Attendance

USER_DATE_KEY = "uq_attendance_user_date"


class AttendanceRepository(Protocol):
    """Attendance storage.

    ``create`` raises ``DuplicateKeyError`` with USER_DATE_KEY when the
    (user, date) pair already has a record. All list reads are newest date first.
    """

    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[Attendance]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        work_date: date,
        present: bool,
        check_in_time: Optional[datetime],
        notes: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def set_check_out(self, attendance_id: int, *, check_out_time: datetime) -> bool:
        """Stamp check-out only if it is still unset. Returns False otherwise."""

        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Attendance]:
        raise NotImplementedError

    def list_for_user_between(self, user_id: int, start: date, end: date) -> Sequence[Attendance]:
        raise NotImplementedError

    def page_for_user(
        self,
        user_id: int,
        *,
        offset: int,
        limit: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Attendance]:
        raise NotImplementedError

    def count_for_user(self, user_id: int, *, start: Optional[date] = None, end: Optional[date] = None) -> int:
        raise NotImplementedError

    def page_all(self, *, offset: int, limit: int) -> Sequence[Attendance]:
        """Every record, ordered by date then check-in time, both descending."""

        raise NotImplementedError

    def count_all(self) -> int:
        raise NotImplementedError

    def delete_by_id(self, attendance_id: int) -> bool:
        raise NotImplementedError

    def fill_missing_created_at(self) -> int:
        raise NotImplementedError
