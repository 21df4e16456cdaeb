"""
Tool registry for the IG MCP server.

Each tool is declared once as a :class:`ToolSpec`. Its JSON schema is what
``tools/list`` publishes, and the same schema is turned into a strict
pydantic model that validates incoming arguments before dispatch.
"""

from __future__ import annotations

import keyword
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

from mcp import types
from pydantic import BaseModel, ConfigDict, Field, create_model

from ig_mcp.services.market_service import RESOLUTIONS

MCP_AUTHENTICATE = "mcp_authenticate"
LOGIN = "ig_login"
LOGOUT = "ig_logout"

DIRECTIONS = ["BUY", "SELL"]
ORDER_TYPES = ["MARKET", "LIMIT", "STOP"]
TIME_IN_FORCE = ["EXECUTE_AND_ELIMINATE", "FILL_OR_KILL", "GOOD_TILL_CANCELLED", "GOOD_TILL_DATE"]
HTTP_METHODS = ["GET", "POST", "PUT", "DELETE"]

_NO_ARGUMENTS: Dict[str, Any] = {"type": "object", "properties": {}}

_JSON_TYPES: Dict[str, Any] = {
    "string": str,
    "number": float,
    "boolean": bool,
    "object": Dict[str, Any],
}


def _python_type(prop: Dict[str, Any]) -> Any:
    if "enum" in prop:
        return Literal[tuple(prop["enum"])]
    return _JSON_TYPES[prop["type"]]


def build_request_model(tool_name: str, schema: Dict[str, Any]) -> Type[BaseModel]:
    """Create a strict pydantic model accepting exactly what ``schema`` describes."""
    required = set(schema.get("required", []))
    fields: Dict[str, Tuple[Any, Any]] = {}
    for prop_name, prop in schema.get("properties", {}).items():
        attr = f"{prop_name}_" if keyword.iskeyword(prop_name) else prop_name
        alias = prop_name if attr != prop_name else None
        py_type = _python_type(prop)
        if prop_name in required:
            fields[attr] = (py_type, Field(..., alias=alias, description=prop.get("description")))
        else:
            fields[attr] = (
                Optional[py_type],
                Field(default=None, alias=alias, description=prop.get("description")),
            )

    model_name = "".join(part.capitalize() for part in tool_name.split("_")) + "Request"
    return create_model(
        model_name,
        __config__=ConfigDict(extra="forbid", strict=True),
        **fields,
    )


@dataclass(frozen=True)
class ToolSpec:
    """A callable tool: wire name, description and argument schema."""

    name: str
    description: str
    input_schema: Dict[str, Any]
    request_model: Type[BaseModel] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "request_model", build_request_model(self.name, self.input_schema))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


TOOL_SPECS: List[ToolSpec] = [
    ToolSpec(
        name=MCP_AUTHENTICATE,
        description=(
            "Authenticate with the MCP server using an API key. Required before using other "
            "tools if MCP_SERVER_API_KEY is set. This prevents unauthorized access to your IG account."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "apiKey": {
                    "type": "string",
                    "description": "MCP Server API Key (from MCP_SERVER_API_KEY environment variable)",
                },
            },
            "required": ["apiKey"],
        },
    ),
    ToolSpec(
        name=LOGIN,
        description=(
            "Authenticate with IG.com API. Provide your username, password, and API key. "
            "If credentials are set via environment variables, you can call this without parameters."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "username": {
                    "type": "string",
                    "description": "IG.com username (optional if set via environment)",
                },
                "password": {
                    "type": "string",
                    "description": (
                        "IG.com password (optional if set via environment). "
                        "If using 2FA, append the 6-digit code to your password."
                    ),
                },
                "apiKey": {
                    "type": "string",
                    "description": "IG.com API key (optional if set via environment)",
                },
            },
        },
    ),
    ToolSpec(
        name=LOGOUT,
        description="Log out from IG.com API and clear session",
        input_schema=dict(_NO_ARGUMENTS),
    ),
    ToolSpec(
        name="ig_get_accounts",
        description="Get all accounts associated with the authenticated user",
        input_schema=dict(_NO_ARGUMENTS),
    ),
    ToolSpec(
        name="ig_get_account_balance",
        description="Get account balance and details for a specific account",
        input_schema={
            "type": "object",
            "properties": {
                "accountId": {
                    "type": "string",
                    "description": "Account ID to retrieve balance for",
                },
            },
            "required": ["accountId"],
        },
    ),
    ToolSpec(
        name="ig_get_positions",
        description="Get all positions (open and closed)",
        input_schema=dict(_NO_ARGUMENTS),
    ),
    ToolSpec(
        name="ig_get_open_positions",
        description="Get only open positions",
        input_schema=dict(_NO_ARGUMENTS),
    ),
    ToolSpec(
        name="ig_close_position",
        description="Close an existing position",
        input_schema={
            "type": "object",
            "properties": {
                "dealId": {
                    "type": "string",
                    "description": "Deal ID of the position to close",
                },
                "direction": {
                    "type": "string",
                    "enum": DIRECTIONS,
                    "description": "Direction of the position (BUY for long, SELL for short)",
                },
                "size": {
                    "type": "number",
                    "description": "Size of the position to close",
                },
            },
            "required": ["dealId", "direction", "size"],
        },
    ),
    ToolSpec(
        name="ig_place_order",
        description="Place a new trading order",
        input_schema={
            "type": "object",
            "properties": {
                "epic": {
                    "type": "string",
                    "description": "Instrument epic identifier (e.g., IX.D.FTSE.IFM.IP)",
                },
                "expiry": {
                    "type": "string",
                    "description": "Expiry date (YYYY-MM-DD or YYYY-MM, required for some instruments)",
                },
                "direction": {
                    "type": "string",
                    "enum": DIRECTIONS,
                    "description": "Trade direction",
                },
                "size": {
                    "type": "number",
                    "description": "Trade size",
                },
                "orderType": {
                    "type": "string",
                    "enum": ORDER_TYPES,
                    "description": "Order type (default: MARKET)",
                },
                "level": {
                    "type": "number",
                    "description": "Price level for LIMIT or STOP orders",
                },
                "timeInForce": {
                    "type": "string",
                    "enum": TIME_IN_FORCE,
                    "description": "Time in force (default: EXECUTE_AND_ELIMINATE)",
                },
                "goodTillDate": {
                    "type": "string",
                    "description": "Expiry date for GOOD_TILL_DATE orders (YYYY-MM-DD HH:MM)",
                },
                "guaranteedStop": {
                    "type": "boolean",
                    "description": "Whether to use a guaranteed stop",
                },
                "stopLevel": {
                    "type": "number",
                    "description": "Stop loss price level",
                },
                "stopDistance": {
                    "type": "number",
                    "description": "Stop loss distance",
                },
                "limitLevel": {
                    "type": "number",
                    "description": "Take profit price level",
                },
                "limitDistance": {
                    "type": "number",
                    "description": "Take profit distance",
                },
                "currencyCode": {
                    "type": "string",
                    "description": "Currency code (e.g., GBP, USD)",
                },
                "forceOpen": {
                    "type": "boolean",
                    "description": "Force open a new position even if one exists (default: true)",
                },
                "accountId": {
                    "type": "string",
                    "description": "Account ID to place order for (optional)",
                },
            },
            "required": ["epic", "direction", "size"],
        },
    ),
    ToolSpec(
        name="ig_get_working_orders",
        description="Get all working (pending) orders",
        input_schema=dict(_NO_ARGUMENTS),
    ),
    ToolSpec(
        name="ig_delete_working_order",
        description="Delete a working order",
        input_schema={
            "type": "object",
            "properties": {
                "dealId": {
                    "type": "string",
                    "description": "Deal ID of the working order to delete",
                },
            },
            "required": ["dealId"],
        },
    ),
    ToolSpec(
        name="ig_get_market_data",
        description="Get current market data (bid, ask, prices) for an instrument",
        input_schema={
            "type": "object",
            "properties": {
                "epic": {
                    "type": "string",
                    "description": "Instrument epic identifier",
                },
            },
            "required": ["epic"],
        },
    ),
    ToolSpec(
        name="ig_search_instruments",
        description="Search for instruments by name or keyword",
        input_schema={
            "type": "object",
            "properties": {
                "searchTerm": {
                    "type": "string",
                    "description": 'Search term (e.g., "FTSE", "Apple", "EUR/USD")',
                },
            },
            "required": ["searchTerm"],
        },
    ),
    ToolSpec(
        name="ig_get_historical_prices",
        description="Get historical price data for an instrument",
        input_schema={
            "type": "object",
            "properties": {
                "epic": {
                    "type": "string",
                    "description": "Instrument epic identifier",
                },
                "resolution": {
                    "type": "string",
                    "enum": list(RESOLUTIONS),
                    "description": "Price resolution (e.g., MINUTE, HOUR, DAY)",
                },
                "from": {
                    "type": "string",
                    "description": "Start date (YYYY-MM-DDTHH:mm:ss)",
                },
                "to": {
                    "type": "string",
                    "description": "End date (YYYY-MM-DDTHH:mm:ss)",
                },
                "pageSize": {
                    "type": "number",
                    "description": "Number of data points to retrieve (default: 100)",
                },
            },
            "required": ["epic", "resolution", "from", "to"],
        },
    ),
    ToolSpec(
        name="ig_get_watchlists",
        description="Get all watchlists",
        input_schema=dict(_NO_ARGUMENTS),
    ),
    ToolSpec(
        name="ig_get_watchlist_markets",
        description="Get markets in a specific watchlist",
        input_schema={
            "type": "object",
            "properties": {
                "watchlistId": {
                    "type": "string",
                    "description": "Watchlist ID",
                },
            },
            "required": ["watchlistId"],
        },
    ),
    ToolSpec(
        name="ig_call_api",
        description=(
            "Generic API caller for flexible endpoint access. Use this to call any IG API "
            "endpoint that may not be directly exposed by other tools."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "method": {
                    "type": "string",
                    "enum": HTTP_METHODS,
                    "description": "HTTP method",
                },
                "endpoint": {
                    "type": "string",
                    "description": 'API endpoint path (e.g., "/markets" or "/accounts")',
                },
                "payload": {
                    "type": "object",
                    "description": "Request payload (for POST/PUT) or query parameters (for GET)",
                },
                "version": {
                    "type": "string",
                    "description": 'API version (default: "1")',
                },
                "additionalHeaders": {
                    "type": "object",
                    "description": "Additional HTTP headers as key-value pairs",
                },
            },
            "required": ["method", "endpoint"],
        },
    ),
]

TOOLS: Dict[str, ToolSpec] = {spec.name: spec for spec in TOOL_SPECS}


def get_tool(name: str) -> Optional[ToolSpec]:
    return TOOLS.get(name)


__all__ = [
    "LOGIN",
    "LOGOUT",
    "MCP_AUTHENTICATE",
    "TOOLS",
    "TOOL_SPECS",
    "ToolSpec",
    "build_request_model",
    "get_tool",
]
