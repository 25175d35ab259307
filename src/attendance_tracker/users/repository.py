from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AuthProvider, Role
from .model import User

USERNAME_KEY = "uq_users_username"
EMAIL_KEY = "uq_users_email"


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete database.
    Writes that hit the username/email unique constraints raise
    ``DuplicateKeyError`` carrying USERNAME_KEY or EMAIL_KEY.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def exists_by_username(self, username: str) -> bool:
        raise NotImplementedError

    def exists_by_email(self, email: str, *, exclude_user_id: Optional[int] = None) -> bool:
        raise NotImplementedError

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
        raise NotImplementedError

    def update_profile(self, user_id: int, *, first_name: Optional[str], last_name: Optional[str], email: str) -> bool:
        raise NotImplementedError

    def update_external_identity(
        self,
        user_id: int,
        *,
        first_name: Optional[str],
        last_name: Optional[str],
        provider_id: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def update_password(self, user_id: int, *, password_hash: str) -> bool:
        raise NotImplementedError

    def link_local_credentials(self, user_id: int, *, password_hash: str) -> bool:
        """Set the password hash and switch the provider to LOCAL in one write.

        Returns False when the account is already LOCAL.
        """

        raise NotImplementedError

    def set_enabled(self, user_id: int, *, enabled: bool) -> bool:
        raise NotImplementedError

    def update_role(self, user_id: int, *, role: Role) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_all(self) -> Sequence[User]:
        raise NotImplementedError
