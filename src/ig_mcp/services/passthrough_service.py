"""Generic access to IG endpoints without a dedicated tool."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from loguru import logger

from ig_mcp.models import ErrorKind, IGResponse

from .base import IGService

BODY_METHODS = ("POST", "PUT")


def _sendable_header(name: str, value: str) -> bool:
    if not name or not name.isascii() or not value.isascii():
        return False
    if any(ch.isspace() or not ch.isprintable() or ch == ":" for ch in name):
        return False
    return all(ch.isprintable() or ch == "\t" for ch in value)


@dataclass(slots=True)
class PassthroughService(IGService):
    """Forwards an arbitrary method/endpoint pair to the broker."""

    async def call_api(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Mapping[str, Any]] = None,
        version: str = "1",
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> IGResponse:
        method = method.upper()
        failure = f"Failed to call API endpoint: {endpoint}"

        # Session headers are attached to every request, so only broker paths are allowed.
        if "://" in endpoint or endpoint.startswith("//"):
            logger.warning("Rejected absolute endpoint for generic IG call")
            return IGResponse.fail(
                ErrorKind.UPSTREAM,
                "INVALID_ENDPOINT",
                "Endpoint must be a path relative to the IG API base URL",
                failure,
                debug={"endpoint": endpoint},
            )

        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        headers = {str(k): str(v) for k, v in (additional_headers or {}).items()}
        invalid = sorted(name for name, value in headers.items() if not _sendable_header(name, value))
        if invalid:
            logger.warning("Rejected unsendable headers for generic IG call | headers={headers}", headers=invalid)
            return IGResponse.fail(
                ErrorKind.UPSTREAM,
                "INVALID_HEADER",
                "Header names and values must be printable ASCII without line breaks",
                failure,
                debug={"headers": invalid},
            )

        json_body = None
        params = None
        if payload and method in BODY_METHODS:
            json_body = dict(payload)
        elif payload and method == "GET":
            params = dict(payload)

        return await self._request(
            method,
            path,
            version=version,
            failure=failure,
            success=f"API call to {endpoint} completed successfully",
            json=json_body,
            params=params,
            headers=headers,
        )
