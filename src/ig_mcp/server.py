"""
MCP server entry point, packaged under ig_mcp.
"""

import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from loguru import logger
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ig_mcp.config import Settings
from ig_mcp.dispatcher import ToolDispatcher
from ig_mcp.envelope import decode_result
from ig_mcp.rpc import SERVER_NAME, handle_rpc_payload, rpc_error
from ig_mcp.sessions import SessionStore
from ig_mcp.tools import LOGIN

load_dotenv()

SESSION_HEADER = "Mcp-Session-Id"
API_KEY_HEADER = "X-MCP-API-Key"


def configure_logging(level: str = "INFO") -> None:
    """Send every log record to stderr; stdout belongs to the stdio protocol."""
    logger.remove()
    logger.add(sys.stderr, level=level)


def create_stdio_server(dispatcher: ToolDispatcher, connection_id: str) -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return dispatcher.list_tools()

    # Argument errors are reported by the dispatcher envelope, not the SDK.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> types.CallToolResult:
        return await dispatcher.call_tool(name, arguments, connection_id)

    return server


async def run_stdio(dispatcher: ToolDispatcher) -> None:
    connection_id = SessionStore.generate_connection_id()
    logger.info("Starting stdio transport | connection={connection}", connection=connection_id)
    server = create_stdio_server(dispatcher, connection_id)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def _connection_for(request: Request, dispatcher: ToolDispatcher) -> str:
    presented_id = request.headers.get(SESSION_HEADER)
    if not presented_id:
        # A fresh identity only passes the gate via mcp_authenticate or /api/login.
        return SessionStore.generate_connection_id()
    presented_key = request.headers.get(API_KEY_HEADER)
    if presented_key and not dispatcher.is_connection_authenticated(presented_id):
        dispatcher.authenticate_connection(presented_id, presented_key)
    return presented_id


def create_http_app(dispatcher: ToolDispatcher, settings: Settings) -> Starlette:
    """
    Build the Starlette app serving JSON-RPC on ``/mcp``.

    The caller's identity travels in the ``Mcp-Session-Id`` header; a request
    without one gets a fresh identity, returned in the same header.
    """

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "service": SERVER_NAME,
                "transport": "http",
                "endpoint": "/mcp",
                "note": f"Send JSON-RPC 2.0 requests via POST to /mcp with the {SESSION_HEADER} header",
            }
        )

    async def mcp_endpoint(request: Request) -> Response:
        connection_id = _connection_for(request, dispatcher)
        headers = {SESSION_HEADER: connection_id}
        try:
            body = await request.body()
            reply = await handle_rpc_payload(dispatcher, body, connection_id)
        except Exception as exc:
            logger.opt(exception=exc).error("MCP request failed | connection={connection}", connection=connection_id)
            return JSONResponse(
                rpc_error(None, types.INTERNAL_ERROR, "Internal error", str(exc)),
                status_code=500,
                headers=headers,
            )
        if reply is None:
            return Response(status_code=202, headers=headers)
        return JSONResponse(reply, headers=headers)

    async def api_login(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            body = {}
        api_key = body.get("apiKey") if isinstance(body, dict) else None

        connection_id = SessionStore.generate_connection_id()
        headers = {SESSION_HEADER: connection_id}
        if not dispatcher.authenticate_connection(connection_id, api_key):
            return JSONResponse(
                {"success": False, "error": "Invalid MCP server API key"},
                status_code=401,
                headers=headers,
            )

        result = await dispatcher.call_tool(LOGIN, {}, connection_id)
        payload = decode_result(result)
        if result.isError:
            await dispatcher.forget_connection(connection_id)
            return JSONResponse(
                {"success": False, "error": payload.get("message")},
                status_code=401,
                headers=headers,
            )
        return JSONResponse(
            {"success": True, "connectionId": connection_id, "data": payload.get("data")},
            headers=headers,
        )

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/mcp", mcp_endpoint, methods=["POST"]),
            Route("/api/login", api_login, methods=["POST"]),
        ]
    )

    # Browsers need the preflight answered and the session header exposed.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[SESSION_HEADER],
        allow_credentials=False,
    )
    return app


async def run_http_with_cors(dispatcher: ToolDispatcher, settings: Settings) -> None:
    """Serve the HTTP transport with uvicorn."""
    import uvicorn

    app = create_http_app(dispatcher, settings)
    logger.info(
        "Starting HTTP transport | host={host} port={port}",
        host=settings.host,
        port=settings.port,
    )
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


async def serve(settings: Optional[Settings] = None) -> None:
    """Async entry point; ``TRANSPORT`` picks stdio or http."""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    settings.startup_warnings()

    dispatcher = ToolDispatcher(settings=settings)
    try:
        if settings.transport == "http":
            await run_http_with_cors(dispatcher, settings)
        elif settings.transport == "stdio":
            await run_stdio(dispatcher)
        else:
            raise ValueError(f"Unsupported transport: {settings.transport}. Use 'http' or 'stdio'.")
    finally:
        logger.info("Server shutting down...")
        await dispatcher.aclose()
