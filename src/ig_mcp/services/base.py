"""Shared helpers for IG service objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

import httpx
from loguru import logger

from ig_mcp.common.errors import http_error, transport_error
from ig_mcp.models import IGResponse


@dataclass(slots=True)
class IGService:
    """Base class for small service helpers that need the shared HTTP client."""

    http: httpx.AsyncClient

    async def _exchange(
        self,
        method: str,
        path: str,
        *,
        version: str,
        failure: str,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Union[httpx.Response, IGResponse]:
        """
        Send one request to the broker.

        Returns the raw response for a 2xx status, otherwise the mapped
        failure. Network errors and timeouts never propagate.
        """
        request_headers: Dict[str, str] = {"Version": version}
        if headers:
            request_headers.update(headers)

        try:
            response = await self.http.request(
                method,
                path,
                json=json,
                params=params,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "IG request failed | method={method} path={path} error={error}",
                method=method,
                path=path,
                error=repr(exc),
            )
            return transport_error(exc, failure, method=method, url=path, sent=json)

        if not response.is_success:
            logger.info(
                "IG request rejected | method={method} path={path} status={status}",
                method=method,
                path=path,
                status=response.status_code,
            )
            return http_error(response, failure, sent=json)
        return response

    @staticmethod
    def _decode(response: httpx.Response, failure: str, sent: Any = None) -> Union[Any, IGResponse]:
        """Parse a 2xx body; an empty body decodes to ``{}``."""
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            return transport_error(
                exc,
                failure,
                method=response.request.method,
                url=str(response.request.url),
                sent=sent,
            )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        version: str,
        failure: str,
        success: str,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> IGResponse:
        """Run :meth:`_exchange` and wrap the decoded body in a successful result."""
        outcome = await self._exchange(
            method,
            path,
            version=version,
            failure=failure,
            json=json,
            params=params,
            headers=headers,
        )
        if isinstance(outcome, IGResponse):
            return outcome

        body = self._decode(outcome, failure, sent=json)
        if isinstance(body, IGResponse):
            return body
        return IGResponse.ok(body, success)
