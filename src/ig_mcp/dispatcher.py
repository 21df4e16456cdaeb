"""
Tool dispatch for the IG MCP server.

``ToolDispatcher`` is the single context object both transports talk to. It
owns every piece of per-connection state (connection gate, broker sessions,
broker clients) and threads the caller's connection identity explicitly
through each call, so nothing depends on a process-wide "current
connection".
"""

from __future__ import annotations

import hmac
import traceback
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from loguru import logger
from mcp import types
from pydantic import BaseModel, ValidationError

from ig_mcp.client import IGClient
from ig_mcp.config import Settings
from ig_mcp.envelope import tool_error, tool_result
from ig_mcp.models import ErrorKind, IGCredentials, IGResponse
from ig_mcp.services import TradeRequest
from ig_mcp.sessions import SessionStore
from ig_mcp.tools import LOGIN, LOGOUT, MCP_AUTHENTICATE, TOOL_SPECS, get_tool

NOT_AUTHENTICATED = "Not authenticated. Please use the login tool first."

BrokerHandler = Callable[[IGClient, Any], Awaitable[IGResponse]]
ClientFactory = Callable[[str], IGClient]


async def _get_accounts(client: IGClient, req: Any) -> IGResponse:
    return await client.get_accounts()


async def _get_account_balance(client: IGClient, req: Any) -> IGResponse:
    return await client.get_account_balance(req.accountId)


async def _get_positions(client: IGClient, req: Any) -> IGResponse:
    return await client.get_positions()


async def _get_open_positions(client: IGClient, req: Any) -> IGResponse:
    return await client.get_open_positions()


async def _close_position(client: IGClient, req: Any) -> IGResponse:
    return await client.close_position(req.dealId, req.direction, req.size)


async def _place_order(client: IGClient, req: Any) -> IGResponse:
    trade = TradeRequest(
        epic=req.epic,
        direction=req.direction,
        size=req.size,
        expiry=req.expiry,
        order_type=req.orderType,
        level=req.level,
        time_in_force=req.timeInForce,
        good_till_date=req.goodTillDate,
        guaranteed_stop=req.guaranteedStop,
        stop_level=req.stopLevel,
        stop_distance=req.stopDistance,
        limit_level=req.limitLevel,
        limit_distance=req.limitDistance,
        currency_code=req.currencyCode,
        force_open=req.forceOpen,
    )
    return await client.place_order(trade, req.accountId or None)


async def _get_working_orders(client: IGClient, req: Any) -> IGResponse:
    return await client.get_working_orders()


async def _delete_working_order(client: IGClient, req: Any) -> IGResponse:
    return await client.delete_working_order(req.dealId)


async def _get_market_data(client: IGClient, req: Any) -> IGResponse:
    return await client.get_market_data(req.epic)


async def _search_instruments(client: IGClient, req: Any) -> IGResponse:
    return await client.search_instruments(req.searchTerm)


async def _get_historical_prices(client: IGClient, req: Any) -> IGResponse:
    page_size = 100
    if req.pageSize is not None:
        if req.pageSize < 1 or not float(req.pageSize).is_integer():
            return IGResponse.fail(
                ErrorKind.UPSTREAM,
                "INVALID_PAGE_SIZE",
                "pageSize must be a whole number of at least 1",
                f"Invalid pageSize {req.pageSize}: use a whole number of at least 1",
                debug={"pageSize": req.pageSize},
            )
        page_size = int(req.pageSize)
    return await client.get_historical_prices(
        req.epic, req.resolution, req.from_, req.to, page_size
    )


async def _get_watchlists(client: IGClient, req: Any) -> IGResponse:
    return await client.get_watchlists()


async def _get_watchlist_markets(client: IGClient, req: Any) -> IGResponse:
    return await client.get_watchlist_markets(req.watchlistId)


async def _call_api(client: IGClient, req: Any) -> IGResponse:
    return await client.call_api(
        req.method,
        req.endpoint,
        req.payload,
        req.version or "1",
        req.additionalHeaders,
    )


BROKER_HANDLERS: Dict[str, BrokerHandler] = {
    "ig_get_accounts": _get_accounts,
    "ig_get_account_balance": _get_account_balance,
    "ig_get_positions": _get_positions,
    "ig_get_open_positions": _get_open_positions,
    "ig_close_position": _close_position,
    "ig_place_order": _place_order,
    "ig_get_working_orders": _get_working_orders,
    "ig_delete_working_order": _delete_working_order,
    "ig_get_market_data": _get_market_data,
    "ig_search_instruments": _search_instruments,
    "ig_get_historical_prices": _get_historical_prices,
    "ig_get_watchlists": _get_watchlists,
    "ig_get_watchlist_markets": _get_watchlist_markets,
    "ig_call_api": _call_api,
}


def _validation_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "problem": error["msg"],
        }
        for error in exc.errors(include_url=False)
    ]


@dataclass
class ToolDispatcher:
    """Routes tool calls for any number of connections."""

    settings: Settings
    sessions: SessionStore = field(default_factory=SessionStore)
    client_factory: Optional[ClientFactory] = None
    authenticated_connections: Set[str] = field(default_factory=set)
    clients: Dict[str, IGClient] = field(default_factory=dict)

    def _new_client(self, api_key: str) -> IGClient:
        if self.client_factory is not None:
            return self.client_factory(api_key)
        return IGClient(
            api_key=api_key,
            base_url=self.settings.api_url,
            timeout=self.settings.http_timeout,
        )

    def get_client(self, connection_id: str) -> IGClient:
        client = self.clients.get(connection_id)
        if client is None:
            client = self._new_client(self.settings.api_key or "default-key")
            self.clients[connection_id] = client
        return client

    async def _client_for_key(self, connection_id: str, api_key: str) -> IGClient:
        client = self.clients.get(connection_id)
        if client is not None and client.api_key == api_key:
            return client
        if client is not None:
            await client.aclose()
        client = self._new_client(api_key)
        self.clients[connection_id] = client
        return client

    async def forget_connection(self, connection_id: str) -> None:
        """Drop the gate entry, session and client of one connection."""
        self.authenticated_connections.discard(connection_id)
        self.sessions.clear(connection_id)
        client = self.clients.pop(connection_id, None)
        if client is not None:
            await client.aclose()

    async def aclose(self) -> None:
        clients = list(self.clients.values())
        self.clients.clear()
        for client in clients:
            await client.aclose()

    def list_tools(self) -> List[types.Tool]:
        return [spec.to_mcp_tool() for spec in TOOL_SPECS]

    # Connection gate

    def is_connection_authenticated(self, connection_id: str) -> bool:
        if not self.settings.connection_auth_required:
            return True
        return connection_id in self.authenticated_connections

    def authenticate_connection(self, connection_id: str, api_key: Optional[str]) -> bool:
        if not self.settings.connection_auth_required:
            return True
        if api_key and hmac.compare_digest(api_key.encode(), self.settings.server_api_key.encode()):
            self.authenticated_connections.add(connection_id)
            return True
        return False

    # Dispatch

    async def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        connection_id: str,
    ) -> types.CallToolResult:
        """Run one tool call; always returns an envelope, never raises."""
        try:
            return await self._dispatch(name, arguments or {}, connection_id)
        except Exception as exc:
            logger.opt(exception=exc).error(
                "Tool call failed unexpectedly | tool={tool} connection={connection}",
                tool=name,
                connection=connection_id,
            )
            return tool_error(
                f"Unexpected error: {exc}",
                {"error": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))},
            )

    async def _dispatch(
        self,
        name: str,
        arguments: Dict[str, Any],
        connection_id: str,
    ) -> types.CallToolResult:
        if name != MCP_AUTHENTICATE and not self.is_connection_authenticated(connection_id):
            return tool_error(
                "Unauthorized: Connection not authenticated. Please call 'mcp_authenticate' first "
                "with your MCP_SERVER_API_KEY. This prevents unauthorized access to your IG account.",
                {
                    "securityPolicy": "Authentication required",
                    "requiresAuthentication": self.settings.require_authentication,
                    "apiKeyRequired": bool(self.settings.server_api_key),
                },
            )

        spec = get_tool(name)
        if spec is None:
            return tool_error(f"Unknown tool: {name}")

        try:
            request = spec.request_model.model_validate(arguments)
        except ValidationError as exc:
            return tool_error(
                f"Invalid arguments for {name}",
                {"errors": _validation_details(exc)},
            )

        logger.debug("Dispatching tool | tool={tool} connection={connection}", tool=name, connection=connection_id)

        if name == MCP_AUTHENTICATE:
            return self._mcp_authenticate(request, connection_id)
        if name == LOGIN:
            return await self._login(request, connection_id)

        session = self.sessions.get(connection_id)
        if session is None or not self.sessions.is_authenticated(connection_id):
            return tool_error(NOT_AUTHENTICATED)

        if name == LOGOUT:
            return await self._logout(connection_id)

        client = self.get_client(connection_id)
        client.set_session(session)
        result = await BROKER_HANDLERS[name](client, request)
        return tool_result(
            result.data if result.success else None,
            result.user_message,
            result.debug,
        )

    def _mcp_authenticate(self, request: BaseModel, connection_id: str) -> types.CallToolResult:
        if not self.settings.connection_auth_required:
            return tool_result(
                {"authenticated": True},
                "No API key required. Server is open for connections.",
            )

        if self.authenticate_connection(connection_id, request.apiKey):
            logger.info("Connection passed the server key check | connection={connection}", connection=connection_id)
            return tool_result(
                {"authenticated": True, "connectionId": connection_id},
                "Successfully authenticated with MCP server. You can now use IG API tools.",
            )

        logger.warning("Rejected server key | connection={connection}", connection=connection_id)
        return tool_error(
            "Authentication failed: Invalid API key. Please provide the correct MCP_SERVER_API_KEY.",
            {"authenticated": False},
        )

    async def _login(
        self,
        request: BaseModel,
        connection_id: str,
    ) -> types.CallToolResult:
        settings = self.settings
        from_tool = bool(request.username or request.password or request.apiKey)

        if settings.require_env_credentials and from_tool:
            return tool_error(
                "SECURITY: This server requires credentials to be set via environment variables only. "
                "Credentials cannot be passed through tool calls. Set IG_USERNAME, IG_PASSWORD, "
                "and IG_API_KEY as environment variables.",
                {"securityPolicy": "REQUIRE_ENV_CREDENTIALS is enabled"},
            )

        credentials = IGCredentials(
            username=request.username or settings.username,
            password=request.password or settings.password,
            api_key=request.apiKey or settings.api_key,
        )
        if not credentials.complete:
            return tool_error(
                "Missing credentials. Please provide username, password, and apiKey, or set them via "
                "environment variables (IG_USERNAME, IG_PASSWORD, IG_API_KEY).",
                {
                    "provided": {
                        "username": bool(request.username),
                        "password": bool(request.password),
                        "apiKey": bool(request.apiKey),
                    },
                    "envVarsSet": {
                        "username": bool(settings.username),
                        "password": bool(settings.password),
                        "apiKey": bool(settings.api_key),
                    },
                    "requireEnvCredentials": settings.require_env_credentials,
                },
            )

        if from_tool:
            logger.warning(
                "SECURITY WARNING: Credentials provided via tool call. Consider using environment variables instead."
            )

        client = await self._client_for_key(connection_id, credentials.api_key)
        result = await client.authenticate(credentials)
        if not result.success:
            return tool_error(result.user_message or "Authentication failed", result.debug)

        session = result.data
        self.sessions.set(connection_id, session)
        self.sessions.set_credentials(connection_id, credentials)
        client.set_session(session)

        return tool_result(
            {
                "authenticated": True,
                "accountId": session.account_id,
                "accountType": session.account_type,
                "connectionId": connection_id,
            },
            result.user_message or "Successfully authenticated",
            {"sessionToken": "***hidden***"},
        )

    async def _logout(self, connection_id: str) -> types.CallToolResult:
        self.sessions.clear(connection_id)
        client = self.clients.pop(connection_id, None)
        if client is not None:
            await client.aclose()
        logger.info("IG session cleared | connection={connection}", connection=connection_id)
        return tool_result(
            {"authenticated": False},
            "Successfully logged out and session cleared",
        )


__all__ = ["BROKER_HANDLERS", "NOT_AUTHENTICATED", "ToolDispatcher"]
