from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


@dataclass(frozen=True)
class Leave:
    """Domain entity: a leave request and its decision."""

    leave_id: int
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: int
    status: LeaveStatus = LeaveStatus.PENDING
    reason: Optional[str] = None
    approved_by: Optional[int] = None
    approval_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Read-model extras joined from users.
    username: Optional[str] = None
    user_full_name: Optional[str] = None
    approved_by_name: Optional[str] = None

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and self.end_date >= start

    def to_dict(self) -> dict:
        return {
            "id": self.leave_id,
            "userId": self.user_id,
            "username": self.username,
            "userFullName": self.user_full_name,
            "leaveType": self.leave_type.value,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "days": self.days,
            "reason": self.reason,
            "status": self.status.value,
            "approvedById": self.approved_by,
            "approvedByName": self.approved_by_name,
            "approvalComment": self.approval_comment,
            "createdAt": self.created_at.isoformat(timespec="seconds") if self.created_at else None,
            "updatedAt": self.updated_at.isoformat(timespec="seconds") if self.updated_at else None,
        }
