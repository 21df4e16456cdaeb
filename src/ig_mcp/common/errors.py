"""
Translation of broker failures into :class:`~ig_mcp.models.IGResponse` errors.

Every failed HTTP exchange is folded into one :class:`ErrorKind`. The friendly
message tells the agent what to do next, while ``debug`` keeps the raw status,
body and request so a human can diagnose the upstream problem.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import httpx

from ig_mcp.common.payloads import mask_secrets
from ig_mcp.models import ErrorKind, IGResponse

FRIENDLY_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION: (
        "Authentication failed. Please check your credentials and try logging in again."
    ),
    ErrorKind.NOT_FOUND: "The requested resource was not found. Please check the parameters.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait a moment before trying again.",
    ErrorKind.UNAVAILABLE: "IG API is currently unavailable. Please try again later.",
}


def classify_status(status: int) -> ErrorKind:
    if status in (401, 403):
        return ErrorKind.AUTHENTICATION
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if 500 <= status <= 599:
        return ErrorKind.UNAVAILABLE
    return ErrorKind.UPSTREAM


def _read_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _upstream_error(body: Any, fallback: str) -> Tuple[str, str]:
    error_code = "UNKNOWN_ERROR"
    error_message = fallback
    if isinstance(body, dict) and "errorCode" in body:
        error_code = str(body["errorCode"])
        error_message = str(body.get("errorMessage") or fallback)
    elif isinstance(body, str) and body:
        error_message = body
    return error_code, error_message


def describe_request(method: Optional[str], url: Optional[str], data: Any = None) -> Dict[str, Any]:
    return {"url": url, "method": method, "data": mask_secrets(data)}


def http_error(response: httpx.Response, failure: str, sent: Any = None) -> IGResponse:
    """Build the failure result for a non-2xx broker response."""
    status = response.status_code
    body = _read_body(response)
    kind = classify_status(status)
    error_code, error_message = _upstream_error(
        body, f"HTTP {status} {response.reason_phrase}".strip()
    )

    user_message = FRIENDLY_MESSAGES.get(kind)
    if user_message is None:
        # Unmapped status: surface the broker's own code.
        user_message = f"{failure} ({error_code}: {error_message})"

    return IGResponse.fail(
        kind,
        error_code,
        error_message,
        user_message,
        debug={
            "status": status,
            "statusText": response.reason_phrase,
            "response": mask_secrets(body),
            "request": describe_request(
                response.request.method, str(response.request.url), sent
            ),
        },
    )


def transport_error(
    exc: Exception,
    failure: str,
    method: Optional[str] = None,
    url: Optional[str] = None,
    sent: Any = None,
) -> IGResponse:
    """Build the failure result when no usable HTTP response exists."""
    message = str(exc) or exc.__class__.__name__
    return IGResponse.fail(
        ErrorKind.TRANSPORT,
        "UNKNOWN_ERROR",
        message,
        failure,
        debug={
            "error": exc.__class__.__name__,
            "detail": message,
            "request": describe_request(method, url, sent),
        },
    )


__all__ = [
    "FRIENDLY_MESSAGES",
    "classify_status",
    "describe_request",
    "http_error",
    "transport_error",
]
