from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AuthProvider, Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Plain data object; no database access lives here.
    """

    user_id: int
    username: str
    email: str
    password_hash: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    role: Role
    enabled: bool = True
    auth_provider: AuthProvider = AuthProvider.LOCAL
    provider_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p).strip()
        return name or self.username

    @property
    def has_local_password(self) -> bool:
        return self.auth_provider == AuthProvider.LOCAL and bool(self.password_hash)

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "role": self.role.value,
            "enabled": self.enabled,
            "authProvider": self.auth_provider.value,
            "createdAt": self.created_at.isoformat(timespec="seconds") if self.created_at else None,
        }
