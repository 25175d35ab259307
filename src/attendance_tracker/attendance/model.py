from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="seconds") if value else None


@dataclass(frozen=True)
class Attendance:
    """Domain entity: one user's attendance for one calendar day."""

    attendance_id: int
    user_id: int
    work_date: date
    present: bool = True
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Read-model extras joined from users.
    username: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def checked_out(self) -> bool:
        return self.check_out_time is not None

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "userId": self.user_id,
            "username": self.username,
            "fullName": self.full_name,
            "date": self.work_date.isoformat(),
            "present": self.present,
            "checkInTime": _iso(self.check_in_time),
            "checkOutTime": _iso(self.check_out_time),
            "notes": self.notes,
        }
