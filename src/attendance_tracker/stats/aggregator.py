"""Pure reductions from record sets into summary DTOs.

Nothing here touches storage; callers load the records and hand them in.
Percentages are rounded once, at the end, half-up to two decimals.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional, TypeVar

from ..common.datetime_utils import iso_or_none
from ..core.enums import LeaveStatus, Role

T = TypeVar("T")


def count_where(records: Iterable[T], predicate: Callable[[T], bool]) -> int:
    return sum(1 for r in records if predicate(r))


def percentage(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return math.floor(part / total * 100 * 100 + 0.5) / 100


@dataclass(frozen=True)
class AttendanceStats:
    total_days: int
    present_days: int
    absent_days: int
    percentage: float
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "totalDays": self.total_days,
            "presentDays": self.present_days,
            "absentDays": self.absent_days,
            "attendancePercentage": self.percentage,
            "startDate": iso_or_none(self.start_date),
            "endDate": iso_or_none(self.end_date),
        }


@dataclass(frozen=True)
class LeaveStats:
    year: int
    approved_days: int
    pending_count: int
    approved_count: int
    rejected_count: int

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "totalDaysUsed": self.approved_days,
            "pendingRequests": self.pending_count,
            "approvedRequests": self.approved_count,
            "rejectedRequests": self.rejected_count,
        }


@dataclass(frozen=True)
class SystemStats:
    total_users: int
    active_users: int
    admin_count: int
    manager_count: int
    user_count: int
    pending_leaves: int

    def to_dict(self) -> dict:
        return {
            "totalUsers": self.total_users,
            "activeUsers": self.active_users,
            "adminCount": self.admin_count,
            "managerCount": self.manager_count,
            "userCount": self.user_count,
            "pendingLeaves": self.pending_leaves,
        }


def attendance_stats(records: Iterable, *, start: Optional[date] = None, end: Optional[date] = None) -> AttendanceStats:
    """Reduce attendance records (anything with a ``present`` flag)."""
    rows = list(records)
    total = len(rows)
    present = count_where(rows, lambda r: bool(r.present))
    return AttendanceStats(
        total_days=total,
        present_days=present,
        absent_days=total - present,
        percentage=percentage(present, total),
        start_date=start,
        end_date=end,
    )


def leave_stats(leaves: Iterable, *, year: int) -> LeaveStats:
    """Approved day total for leaves starting in ``year`` plus all-time status counts."""
    rows = list(leaves)
    approved_days = sum(
        int(l.days) for l in rows if l.status == LeaveStatus.APPROVED and l.start_date.year == int(year)
    )
    return LeaveStats(
        year=int(year),
        approved_days=approved_days,
        pending_count=count_where(rows, lambda l: l.status == LeaveStatus.PENDING),
        approved_count=count_where(rows, lambda l: l.status == LeaveStatus.APPROVED),
        rejected_count=count_where(rows, lambda l: l.status == LeaveStatus.REJECTED),
    )


def system_stats(users: Iterable, *, pending_leaves: int) -> SystemStats:
    rows = list(users)
    total = len(rows)
    admins = count_where(rows, lambda u: u.role == Role.ADMIN)
    managers = count_where(rows, lambda u: u.role == Role.MANAGER)
    return SystemStats(
        total_users=total,
        active_users=count_where(rows, lambda u: bool(u.enabled)),
        admin_count=admins,
        manager_count=managers,
        user_count=total - admins - managers,
        pending_leaves=int(pending_leaves),
    )
