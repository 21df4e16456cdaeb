"""Login handshake and session token handling."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from ig_mcp.common.payloads import pick
from ig_mcp.models import ErrorKind, IGCredentials, IGResponse, IGSession

from .base import IGService

CST_HEADER = "CST"
SECURITY_TOKEN_HEADER = "X-SECURITY-TOKEN"


@dataclass(slots=True)
class AuthService(IGService):
    """Creates IG sessions and keeps their tokens on the shared HTTP client."""

    async def authenticate(self, credentials: IGCredentials) -> IGResponse:
        failure = "Authentication failed"
        outcome = await self._exchange(
            "POST",
            "/session",
            version="2",
            failure=failure,
            json={"identifier": credentials.username, "password": credentials.password},
            headers={"X-IG-API-KEY": credentials.api_key},
        )
        if isinstance(outcome, IGResponse):
            return outcome

        cst = outcome.headers.get(CST_HEADER)
        security_token = outcome.headers.get(SECURITY_TOKEN_HEADER)
        if not cst or not security_token:
            logger.warning(
                "IG login answered {status} without session tokens",
                status=outcome.status_code,
            )
            return IGResponse.fail(
                ErrorKind.AUTHENTICATION,
                "AUTH_ERROR",
                "Missing authentication tokens in response",
                "Authentication failed: Invalid response from IG API",
                debug={
                    "status": outcome.status_code,
                    "headers": sorted(outcome.headers.keys()),
                },
            )

        body = self._decode(outcome, failure)
        if isinstance(body, IGResponse):
            return body

        session = IGSession(
            cst=cst,
            x_security_token=security_token,
            account_id=pick(body, "accountId") or pick(body, "currentAccountId"),
            account_type=pick(body, "accountType"),
            lightstreamer_endpoint=pick(body, "lightstreamerEndpoint"),
            authenticated=True,
            authenticated_at=datetime.now(timezone.utc),
        )
        self.set_session(session)
        logger.info(
            "IG session established | account={account} type={account_type}",
            account=session.account_id,
            account_type=session.account_type,
        )
        return IGResponse.ok(session, "Successfully authenticated with IG API")

    def set_session(self, session: IGSession) -> None:
        """Use the session's tokens as default headers for every later request."""
        if session.has_tokens:
            self.http.headers[CST_HEADER] = session.cst
            self.http.headers[SECURITY_TOKEN_HEADER] = session.x_security_token
