from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from .connection import DatabaseConnection
from .errors import DuplicateKeyError

_DUP_KEY_RE = re.compile(r"for key '([^']+)'")


def duplicate_key_name(message: str) -> Optional[str]:
    """Extract the index name from a MySQL duplicate-entry message.

    MySQL 8 reports ``table.index``; older servers report just ``index``.
    """

    match = _DUP_KEY_RE.search(message or "")
    if not match:
        return None
    return match.group(1).rsplit(".", 1)[-1]


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Run one transaction: commit when the block exits cleanly, roll back otherwise."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as exc:
        conn.rollback()
        if exc.errno == errorcode.ER_DUP_ENTRY:
            raise DuplicateKeyError(duplicate_key_name(exc.msg), str(exc.msg)) from exc
        raise
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def count(cur) -> int:
    row = cur.fetchone()
    if not row:
        return 0
    value = row["n"] if isinstance(row, dict) else row[0]
    return int(value or 0)
