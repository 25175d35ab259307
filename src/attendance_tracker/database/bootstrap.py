from __future__ import annotations

import logging
import random
import re
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Iterable, Optional

from ..core.enums import Role
from .connection import DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

ADMIN_PASSWORD = "admin123"
DEMO_PASSWORD = "password123"
ATTENDANCE_HISTORY_DAYS = 60
PRESENCE_PROBABILITY = 0.85

DEMO_USERS = (
    ("john.doe", "John", "Doe", "john.doe@company.com"),
    ("jane.smith", "Jane", "Smith", "jane.smith@company.com"),
    ("mike.wilson", "Mike", "Wilson", "mike.wilson@company.com"),
    ("sarah.jones", "Sarah", "Jones", "sarah.jones@company.com"),
    ("david.brown", "David", "Brown", "david.brown@company.com"),
)


def _strip_create_db_and_use(sql: str) -> str:
    # The configured database name wins over the one in the file.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside quoted strings."""
    buf: list[str] = []
    quote: Optional[str] = None
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    """Create the database if needed and run the idempotent schema script."""
    target = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        cur.execute(f"USE `{target.database}`")
        for stmt in iter_sql_statements(_strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema ready in %s@%s/%s", target.user, target.host, target.database)


def _weekdays_back(today: date, days: int) -> Iterable[date]:
    for offset in range(days):
        day = today - timedelta(days=offset)
        if day.weekday() < 5:
            yield day


def seed_demo_data(container, *, today: date, rng: Optional[random.Random] = None) -> bool:
    """Populate an empty database with an admin, demo users and attendance history.

    Returns False (and changes nothing) when any user already exists.
    """
    users = container.user_directory
    ledger = container.attendance_ledger
    rng = rng or random.Random()

    if users.list_users():
        logger.info("Database already contains users; skipping seed")
        return False

    users.register_local_user(
        username="admin",
        email="admin@attendance.com",
        raw_password=ADMIN_PASSWORD,
        first_name="System",
        last_name="Administrator",
        role=Role.ADMIN,
    )
    logger.info("Seeded admin user 'admin'")

    records = 0
    for username, first, last, email in DEMO_USERS:
        user = users.register_local_user(
            username=username,
            email=email,
            raw_password=DEMO_PASSWORD,
            first_name=first,
            last_name=last,
        )
        for day in _weekdays_back(today, ATTENDANCE_HISTORY_DAYS):
            present = rng.random() < PRESENCE_PROBABILITY
            check_in = datetime.combine(day, time(8 + rng.randint(0, 1), rng.randint(0, 59)))
            ledger.mark_attendance(user.user_id, day, present, now=check_in)
            # Today stays open so the demo user can still check out.
            if present and day < today:
                check_out = datetime.combine(day, time(17 + rng.randint(0, 1), rng.randint(0, 59)))
                ledger.check_out(user.user_id, now=check_out)
            records += 1

    logger.info("Seeded %d demo users with %d attendance records", len(DEMO_USERS), records)
    return True


def run_startup_housekeeping(container) -> None:
    """Repairs that must never block startup."""
    container.attendance_ledger.repair_missing_created_at()
