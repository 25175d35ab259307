from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.errors import OverlapConflictError, PersistenceError
from ..database.mysql_base import count, db_cursor, fetchall, fetchone
from .model import Leave
from .repository import LeaveRepository

_SELECT = """
    SELECT l.leave_id, l.user_id, l.leave_type, l.start_date, l.end_date, l.days, l.reason,
           l.status, l.approved_by, l.approval_comment, l.created_at, l.updated_at,
           u.username, u.first_name, u.last_name,
           a.username AS approver_username, a.first_name AS approver_first, a.last_name AS approver_last
    FROM leaves l
    JOIN users u ON u.user_id = l.user_id
    LEFT JOIN users a ON a.user_id = l.approved_by
"""

_ACTIVE = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)

_OVERLAP_SQL = """
    SELECT COUNT(*) AS n FROM leaves
    WHERE user_id=%s AND status IN (%s, %s) AND start_date<=%s AND end_date>=%s
"""


def _name(first: Optional[str], last: Optional[str], fallback: Optional[str]) -> Optional[str]:
    return " ".join(p for p in (first, last) if p).strip() or fallback


def _to_leave(r: dict) -> Leave:
    return Leave(
        leave_id=int(r["leave_id"]),
        user_id=int(r["user_id"]),
        leave_type=LeaveType(r["leave_type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        days=int(r["days"]),
        status=LeaveStatus(r["status"]),
        reason=r.get("reason"),
        approved_by=int(r["approved_by"]) if r.get("approved_by") is not None else None,
        approval_comment=r.get("approval_comment"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        username=r.get("username"),
        user_full_name=_name(r.get("first_name"), r.get("last_name"), r.get("username")),
        approved_by_name=_name(r.get("approver_first"), r.get("approver_last"), r.get("approver_username")),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, leave_id: int) -> Optional[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE l.leave_id=%s", (int(leave_id),))
            r = fetchone(cur)
            return _to_leave(r) if r else None

    def has_active_overlap(self, user_id: int, start: date, end: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_OVERLAP_SQL, (int(user_id), *_ACTIVE, end, start))
            return count(cur) > 0

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
        with db_cursor(self._conn_factory) as (_, cur):
            # Serialize leave creation per user on the owning users row.
            cur.execute("SELECT user_id FROM users WHERE user_id=%s FOR UPDATE", (int(user_id),))
            if not fetchone(cur):
                raise PersistenceError(f"User {user_id} does not exist")

            cur.execute(_OVERLAP_SQL, (int(user_id), *_ACTIVE, end_date, start_date))
            if count(cur) > 0:
                raise OverlapConflictError(f"Overlapping leave for user {user_id}")

            cur.execute(
                """
                INSERT INTO leaves(user_id, leave_type, start_date, end_date, days, reason, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    leave_type.value,
                    start_date,
                    end_date,
                    int(days),
                    reason,
                    LeaveStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def transition_from_pending(
        self,
        leave_id: int,
        *,
        status: LeaveStatus,
        approver_id: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leaves
                SET status=%s, approved_by=%s, approval_comment=%s
                WHERE leave_id=%s AND status=%s
                """,
                (status.value, approver_id, comment, int(leave_id), LeaveStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def list_for_user(self, user_id: int) -> Sequence[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE l.user_id=%s ORDER BY l.created_at DESC, l.leave_id DESC", (int(user_id),))
            return [_to_leave(r) for r in fetchall(cur)]

    def page_for_user(self, user_id: int, *, offset: int, limit: int) -> Sequence[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE l.user_id=%s ORDER BY l.created_at DESC, l.leave_id DESC LIMIT %s OFFSET %s",
                (int(user_id), int(limit), int(offset)),
            )
            return [_to_leave(r) for r in fetchall(cur)]

    def count_for_user(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM leaves WHERE user_id=%s", (int(user_id),))
            return count(cur)

    def page_all(self, *, offset: int, limit: int, status: Optional[LeaveStatus] = None) -> Sequence[Leave]:
        sql = _SELECT
        params: list[object] = []
        if status is not None:
            sql += " WHERE l.status=%s"
            params.append(status.value)
        sql += " ORDER BY l.created_at DESC, l.leave_id DESC LIMIT %s OFFSET %s"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (*params, int(limit), int(offset)))
            return [_to_leave(r) for r in fetchall(cur)]

    def count_all(self, *, status: Optional[LeaveStatus] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute("SELECT COUNT(*) AS n FROM leaves")
            else:
                cur.execute("SELECT COUNT(*) AS n FROM leaves WHERE status=%s", (status.value,))
            return count(cur)
