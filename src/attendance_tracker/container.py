from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceLedger
from .common.datetime_utils import now_local
from .database.connection import DBConfig, DatabaseConnection
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.repository import LeaveRepository
from .leaves.service import LeaveWorkflow
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserDirectory


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    attendance_repo: AttendanceRepository
    leaves_repo: LeaveRepository

    user_directory: UserDirectory
    attendance_ledger: AttendanceLedger
    leave_workflow: LeaveWorkflow


def wire(
    users_repo: UserRepository,
    attendance_repo: AttendanceRepository,
    leaves_repo: LeaveRepository,
    *,
    stamp_absent_check_in: bool = False,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Build the services on top of any repository implementations."""
    return Container(
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        user_directory=UserDirectory(users_repo),
        attendance_ledger=AttendanceLedger(
            attendance_repo, users_repo, stamp_absent_check_in=stamp_absent_check_in, clock=clock
        ),
        leave_workflow=LeaveWorkflow(leaves_repo, users_repo, clock=clock),
    )


def build_container(*, db_config: dict, stamp_absent_check_in: bool = False) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return wire(
        MySQLUserRepository(conn),
        MySQLAttendanceRepository(conn),
        MySQLLeaveRepository(conn),
        stamp_absent_check_in=stamp_absent_check_in,
    )
