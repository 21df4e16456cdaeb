"""
JSON-RPC 2.0 handling for the HTTP ``/mcp`` endpoint.

Only the MCP methods this server implements are routed: ``initialize``,
``ping``, ``tools/list`` and ``tools/call``. Notifications (messages without
an ``id``) are accepted and produce no response.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from loguru import logger
from mcp import types

from ig_mcp.dispatcher import ToolDispatcher
from ig_mcp.tools import TOOL_SPECS

SERVER_NAME = "ig-mcp"
SERVER_VERSION = "1.0.0"

RequestId = Union[str, int, None]


def rpc_result(request_id: RequestId, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def rpc_error(request_id: RequestId, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def server_info() -> Dict[str, Any]:
    return {
        "protocolVersion": types.LATEST_PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
    }


async def handle_rpc_message(
    dispatcher: ToolDispatcher,
    message: Any,
    connection_id: str,
) -> Optional[Dict[str, Any]]:
    """Answer one decoded JSON-RPC message; ``None`` for notifications."""
    if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
        request_id = message.get("id") if isinstance(message, dict) else None
        return rpc_error(request_id, types.INVALID_REQUEST, "Invalid Request")

    method = message.get("method")
    if not isinstance(method, str):
        return rpc_error(message.get("id"), types.INVALID_REQUEST, "Invalid Request")

    if "id" not in message:
        logger.debug("Notification received | method={method}", method=method)
        return None

    request_id = message["id"]
    params = message.get("params") or {}

    if method == "initialize":
        return rpc_result(request_id, server_info())
    if method == "ping":
        return rpc_result(request_id, {})
    if method == "tools/list":
        return rpc_result(request_id, {"tools": [spec.as_dict() for spec in TOOL_SPECS]})
    if method == "tools/call":
        if not isinstance(params, dict) or not isinstance(params.get("name"), str):
            return rpc_error(request_id, types.INVALID_PARAMS, "Invalid params: 'name' is required")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return rpc_error(request_id, types.INVALID_PARAMS, "Invalid params: 'arguments' must be an object")
        result = await dispatcher.call_tool(params["name"], arguments, connection_id)
        return rpc_result(
            request_id,
            result.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    return rpc_error(request_id, types.METHOD_NOT_FOUND, f"Method not found: {method}")


async def handle_rpc_payload(
    dispatcher: ToolDispatcher,
    body: Union[str, bytes],
    connection_id: str,
) -> Optional[Dict[str, Any]]:
    """Decode ``body`` and answer it. Parse failures become a JSON-RPC error."""
    try:
        message = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return rpc_error(None, types.PARSE_ERROR, "Parse error")
    return await handle_rpc_message(dispatcher, message, connection_id)


__all__ = [
    "SERVER_NAME",
    "SERVER_VERSION",
    "handle_rpc_message",
    "handle_rpc_payload",
    "rpc_error",
    "rpc_result",
    "server_info",
]
