from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import count, db_cursor, fetchall, fetchone
from .model import Attendance
from .repository import AttendanceRepository

_SELECT = """
    SELECT a.attendance_id, a.user_id, a.work_date, a.present, a.check_in_time, a.check_out_time,
           a.notes, a.created_at, a.updated_at,
           u.username, u.first_name, u.last_name
    FROM attendance a
    JOIN users u ON u.user_id = a.user_id
"""


def _to_attendance(r: dict) -> Attendance:
    full_name = " ".join(p for p in (r.get("first_name"), r.get("last_name")) if p).strip()
    return Attendance(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        present=bool(r["present"]),
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        notes=r.get("notes"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        username=r.get("username"),
        full_name=full_name or r.get("username"),
    )


def _range_clause(start: Optional[date], end: Optional[date]) -> tuple[str, list]:
    sql, params = "", []
    if start is not None:
        sql += " AND a.work_date>=%s"
        params.append(start)
    if end is not None:
        sql += " AND a.work_date<=%s"
        params.append(end)
    return sql, params


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_attendance(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.user_id=%s AND a.work_date=%s", (int(user_id), work_date))
            r = fetchone(cur)
            return _to_attendance(r) if r else None

    def create(
        self,
        *,
        user_id: int,
        work_date: date,
        present: bool,
        check_in_time: Optional[datetime],
        notes: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(user_id, work_date, present, check_in_time, notes, created_at)
                VALUES(%s,%s,%s,%s,%s,NOW())
                """,
                (int(user_id), work_date, 1 if present else 0, check_in_time, notes),
            )
            return int(cur.lastrowid)

    def set_check_out(self, attendance_id: int, *, check_out_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET check_out_time=%s
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (check_out_time, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_for_user(self, user_id: int) -> Sequence[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.user_id=%s ORDER BY a.work_date DESC", (int(user_id),))
            return [_to_attendance(r) for r in fetchall(cur)]

    def list_for_user_between(self, user_id: int, start: date, end: date) -> Sequence[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE a.user_id=%s AND a.work_date BETWEEN %s AND %s ORDER BY a.work_date DESC",
                (int(user_id), start, end),
            )
            return [_to_attendance(r) for r in fetchall(cur)]

    def page_for_user(
        self,
        user_id: int,
        *,
        offset: int,
        limit: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Attendance]:
        where, params = _range_clause(start, end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE a.user_id=%s" + where + " ORDER BY a.work_date DESC LIMIT %s OFFSET %s",
                (int(user_id), *params, int(limit), int(offset)),
            )
            return [_to_attendance(r) for r in fetchall(cur)]

    def count_for_user(self, user_id: int, *, start: Optional[date] = None, end: Optional[date] = None) -> int:
        where, params = _range_clause(start, end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM attendance a WHERE a.user_id=%s" + where, (int(user_id), *params))
            return count(cur)

    def page_all(self, *, offset: int, limit: int) -> Sequence[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " ORDER BY a.work_date DESC, a.check_in_time DESC LIMIT %s OFFSET %s",
                (int(limit), int(offset)),
            )
            return [_to_attendance(r) for r in fetchall(cur)]

    def count_all(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM attendance")
            return count(cur)

    def delete_by_id(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            return cur.rowcount > 0

    def fill_missing_created_at(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET created_at=COALESCE(check_in_time, TIMESTAMP(work_date))
                WHERE created_at IS NULL
                """
            )
            return int(cur.rowcount or 0)
