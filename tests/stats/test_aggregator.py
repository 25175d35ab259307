from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from attendance_tracker.core.enums import LeaveStatus, Role
from attendance_tracker.stats.aggregator import attendance_stats, leave_stats, percentage, system_stats


@pytest.mark.parametrize(
    "part,total,expected",
    [
        (0, 0, 0.0),
        (2, 3, 66.67),
        (1, 3, 33.33),
        (1, 8, 12.5),
        (1, 200, 0.5),
        (5, 5, 100.0),
    ],
)
def test_percentage(part, total, expected):
    assert percentage(part, total) == expected


def test_attendance_stats_counts_present_and_absent():
    rows = [SimpleNamespace(present=p) for p in (True, True, False, True)]

    stats = attendance_stats(rows, start=date(2024, 3, 1), end=date(2024, 3, 31))

    assert (stats.total_days, stats.present_days, stats.absent_days) == (4, 3, 1)
    assert stats.percentage == 75.0
    assert stats.to_dict() == {
        "totalDays": 4,
        "presentDays": 3,
        "absentDays": 1,
        "attendancePercentage": 75.0,
        "startDate": "2024-03-01",
        "endDate": "2024-03-31",
    }


def test_leave_stats_ignores_cancelled():
    def leave(status, start, days):
        return SimpleNamespace(status=status, start_date=start, days=days)

    stats = leave_stats(
        [
            leave(LeaveStatus.APPROVED, date(2024, 1, 3), 2),
            leave(LeaveStatus.APPROVED, date(2024, 7, 1), 5),
            leave(LeaveStatus.CANCELLED, date(2024, 2, 1), 3),
            leave(LeaveStatus.PENDING, date(2024, 9, 1), 1),
        ],
        year=2024,
    )

    assert stats.to_dict() == {
        "year": 2024,
        "totalDaysUsed": 7,
        "pendingRequests": 1,
        "approvedRequests": 2,
        "rejectedRequests": 0,
    }


def test_system_stats_by_role():
    users = [
        SimpleNamespace(role=Role.ADMIN, enabled=True),
        SimpleNamespace(role=Role.MANAGER, enabled=True),
        SimpleNamespace(role=Role.USER, enabled=False),
        SimpleNamespace(role=Role.USER, enabled=True),
    ]

    stats = system_stats(users, pending_leaves=3)

    assert stats.total_users == 4
    assert stats.active_users == 3
    assert (stats.admin_count, stats.manager_count, stats.user_count) == (1, 1, 2)
    assert stats.to_dict()["pendingLeaves"] == 3
