from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import Role
from .exceptions import AuthorizationError, Unauthenticated


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller for one request.

    Built by the web layer from the resolved principal and handed to services
    explicitly.
    """

    current_user_id: Optional[int] = None
    role: Optional[Role] = None
    username: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "RequestContext":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.current_user_id is not None

    def require_user_id(self) -> int:
        if self.current_user_id is None:
            raise Unauthenticated("User not authenticated")
        return self.current_user_id

    def require_role(self, *roles: Role) -> None:
        self.require_user_id()
        if self.role not in roles:
            raise AuthorizationError("Access denied")
