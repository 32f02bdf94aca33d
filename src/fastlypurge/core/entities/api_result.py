"""API result value object."""

from dataclasses import dataclass
from typing import Any

AUTH_ERROR_STATUS_CODES = frozenset({401, 403})


@dataclass(frozen=True)
class ApiResult:
    """Outcome of a call against the Fastly API.

    Expected CDN-side failures are reported through this object rather
    than raised. It is truthy only when the call succeeded, so callers
    can treat it as a plain success flag.
    """

    success: bool
    message: str = ""
    data: Any = None
    status_code: int | None = None

    def __bool__(self) -> bool:
        return self.success

    @property
    def is_auth_error(self) -> bool:
        """Check if the API rejected the credentials."""
        return self.status_code in AUTH_ERROR_STATUS_CODES

    @classmethod
    def ok(
        cls,
        message: str = "",
        data: Any = None,
        status_code: int | None = 200,
    ) -> "ApiResult":
        """Create a successful result."""
        return cls(success=True, message=message, data=data, status_code=status_code)

    @classmethod
    def failure(
        cls,
        message: str,
        data: Any = None,
        status_code: int | None = None,
    ) -> "ApiResult":
        """Create a failed result."""
        return cls(success=False, message=message, data=data, status_code=status_code)
