"""Tool call envelope: ``{message, data, debug?}`` wrapped in an MCP result."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from mcp import types

DEFAULT_MESSAGE = "Operation completed successfully"


def format_response(data: Any, message: Optional[str] = None, debug: Any = None) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "message": message or DEFAULT_MESSAGE,
        "data": data,
    }
    if isinstance(debug, dict) and debug:
        result["debug"] = debug
    return result


def tool_result(data: Any, message: Optional[str] = None, debug: Any = None) -> types.CallToolResult:
    """
    Build the tool call result.

    ``isError`` is derived from ``data``: a result is an error exactly when it
    carries no data.
    """
    payload = format_response(data, message, debug)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(payload, indent=2, default=str))],
        isError=data is None,
    )


def tool_error(message: str, debug: Any = None) -> types.CallToolResult:
    return tool_result(None, message, debug)


def decode_result(result: types.CallToolResult) -> Dict[str, Any]:
    """Parse the JSON document carried by the first text block of ``result``."""
    for block in result.content:
        if isinstance(block, types.TextContent):
            return json.loads(block.text)
    return {}


__all__ = ["decode_result", "format_response", "tool_error", "tool_result"]
