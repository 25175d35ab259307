from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AuthProvider, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import count, db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_COLUMNS = """
    user_id, username, email, password_hash, first_name, last_name,
    role, enabled, auth_provider, provider_id, created_at
"""


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        username=row["username"],
        email=row["email"],
        password_hash=row.get("password_hash"),
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        role=Role(row["role"]),
        enabled=bool(row.get("enabled", True)),
        auth_provider=AuthProvider(row.get("auth_provider") or AuthProvider.LOCAL.value),
        provider_id=row.get("provider_id"),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, value: object) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where}=%s", (value,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("user_id", int(user_id))

    def get_by_username(self, username: str) -> Optional[User]:
        return self._get_one("username", username)

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email", email)

    def exists_by_username(self, username: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM users WHERE username=%s", (username,))
            return count(cur) > 0

    def exists_by_email(self, email: str, *, exclude_user_id: Optional[int] = None) -> bool:
        sql = "SELECT COUNT(*) AS n FROM users WHERE email=%s"
        params: list[object] = [email]
        if exclude_user_id is not None:
            sql += " AND user_id<>%s"
            params.append(int(exclude_user_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return count(cur) > 0

    def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
        role: Role,
        auth_provider: AuthProvider,
        provider_id: Optional[str] = None,
        enabled: bool = True,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(username, email, password_hash, first_name, last_name,
                                  role, enabled, auth_provider, provider_id, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,NOW())
                """,
                (
                    username,
                    email,
                    password_hash,
                    first_name,
                    last_name,
                    role.value,
                    1 if enabled else 0,
                    auth_provider.value,
                    provider_id,
                ),
            )
            return int(cur.lastrowid)

    def update_profile(self, user_id: int, *, first_name: Optional[str], last_name: Optional[str], email: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET first_name=%s, last_name=%s, email=%s WHERE user_id=%s",
                (first_name, last_name, email, int(user_id)),
            )
            return cur.rowcount > 0

    def update_external_identity(
        self,
        user_id: int,
        *,
        first_name: Optional[str],
        last_name: Optional[str],
        provider_id: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET first_name=%s, last_name=%s, provider_id=%s WHERE user_id=%s",
                (first_name, last_name, provider_id, int(user_id)),
            )
            return cur.rowcount > 0

    def update_password(self, user_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, int(user_id)))
            return cur.rowcount > 0

    def link_local_credentials(self, user_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET password_hash=%s, auth_provider=%s
                WHERE user_id=%s AND auth_provider<>%s
                """,
                (password_hash, AuthProvider.LOCAL.value, int(user_id), AuthProvider.LOCAL.value),
            )
            return cur.rowcount > 0

    def set_enabled(self, user_id: int, *, enabled: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET enabled=%s WHERE user_id=%s", (1 if enabled else 0, int(user_id)))
            return cur.rowcount > 0

    def update_role(self, user_id: int, *, role: Role) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET role=%s WHERE user_id=%s", (role.value, int(user_id)))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def list_all(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users ORDER BY user_id ASC")
            return [_to_user(r) for r in fetchall(cur)]
