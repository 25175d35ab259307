from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .datetime_utils import now_local


@dataclass(frozen=True)
class ApiResponse:
    """Uniform envelope returned by every JSON endpoint.

    ``None`` fields are dropped when serialized, so errors never carry data and
    successes never carry error/errorCode.
    """

    success: bool
    message: Optional[str] = None
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[int] = None
    timestamp: datetime = field(default_factory=now_local)

    @classmethod
    def ok(cls, data: Any = None, message: str = "Success") -> "ApiResponse":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, error_code: Optional[int] = None, *, error: Optional[str] = None) -> "ApiResponse":
        return cls(success=False, message=message, error=error or message, error_code=error_code)

    def to_dict(self) -> dict:
        body = {
            "success": self.success,
            "message": self.message,
            "data": None if not self.success else self.data,
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
            "error": None if self.success else self.error,
            "errorCode": None if self.success else self.error_code,
        }
        return {k: v for k, v in body.items() if v is not None}
