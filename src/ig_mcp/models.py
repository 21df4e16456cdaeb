"""Plain records shared by the broker client, the session store and the tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Categories a failed broker call is folded into."""

    AUTHENTICATION = "AUTHENTICATION"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    UNAVAILABLE = "UNAVAILABLE"
    # Any HTTP status without a dedicated category.
    UPSTREAM = "UPSTREAM"
    # No usable HTTP response at all.
    TRANSPORT = "TRANSPORT"


@dataclass(slots=True)
class IGCredentials:
    """Login material for the IG session endpoint."""

    username: str
    password: str = field(repr=False)
    api_key: str = field(repr=False)

    @property
    def complete(self) -> bool:
        return bool(self.username and self.password and self.api_key)


@dataclass(slots=True)
class IGSession:
    """Tokens and account details returned by a successful login."""

    cst: Optional[str] = field(default=None, repr=False)
    x_security_token: Optional[str] = field(default=None, repr=False)
    account_id: Optional[str] = None
    account_type: Optional[str] = None
    lightstreamer_endpoint: Optional[str] = None
    authenticated: bool = False
    authenticated_at: Optional[datetime] = None

    @property
    def has_tokens(self) -> bool:
        return bool(self.cst and self.x_security_token)


@dataclass(slots=True)
class IGError:
    error_code: str
    error_message: str

    def to_dict(self) -> Dict[str, str]:
        return {"errorCode": self.error_code, "errorMessage": self.error_message}


@dataclass(slots=True)
class IGResponse:
    """
    Uniform result of one broker call.

    ``data`` is only meaningful when ``success`` is true and is never ``None``
    in that case; failures carry ``error``, ``kind`` and raw diagnostics in
    ``debug``.
    """

    success: bool
    data: Any = None
    error: Optional[IGError] = None
    kind: Optional[ErrorKind] = None
    debug: Optional[Dict[str, Any]] = None
    user_message: str = ""

    @classmethod
    def ok(cls, data: Any, user_message: str) -> "IGResponse":
        return cls(success=True, data={} if data is None else data, user_message=user_message)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        error_code: str,
        error_message: str,
        user_message: str,
        debug: Optional[Dict[str, Any]] = None,
    ) -> "IGResponse":
        return cls(
            success=False,
            error=IGError(error_code=error_code, error_message=error_message),
            kind=kind,
            debug=debug,
            user_message=user_message,
        )


__all__ = [
    "ErrorKind",
    "IGCredentials",
    "IGError",
    "IGResponse",
    "IGSession",
]
