"""
HTTP transport for the portfolio MCP gateway.

This module wraps the Dispatcher in a small Starlette application:
- POST (any path): decode the JSON-RPC request, dispatch, encode the response
- GET /sse: SSE connection handshake frame
- GET /health: liveness probe
- GET (any other path): server info
- OPTIONS: 200 with an empty body (CORSMiddleware answers browser preflights)
- anything else: 405 "Method not allowed"

Responses are plain JSON unless the client asks for server-sent events,
either with "Accept: text/event-stream" or by talking to the /sse path. An
SSE response carries a single frame:

    data: {"jsonrpc":"2.0","id":1,"result":{...}}

The transport never interprets the RPC payload. The only error it produces
itself is -32700, for a body that can't be decoded as JSON.

Running the server:
    python -m portfolio_mcp.server

    This starts uvicorn on http://0.0.0.0:8080 (MCP_HOST / MCP_PORT).
"""

import contextlib
import json
import logging
import sys
from typing import Any

import uvicorn
from mcp.types import PARSE_ERROR
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from portfolio_mcp.backend import BackendClient
from portfolio_mcp.config import settings
from portfolio_mcp.dispatcher import SERVER_INFO, Dispatcher, rpc_error, to_text
from portfolio_mcp.tools import build_registry

# ---------------------------------------------------------------------------
# Structured JSON Logging
# ---------------------------------------------------------------------------
# One JSON object per log line on stdout, so the hosting platform's log
# collector can index fields like tool, decision and request_id.


class JSONLogFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Example output:

        {"timestamp": "2026-10-19 10:30:00,123", "level": "WARNING",
         "logger": "portfolio_mcp.dispatcher", "message": "Tool call denied: tool not public",
         "tool": "delete_project", "decision": "denied"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Structured fields passed via logger.info("msg", extra={"rpc_data": {...}})
        if hasattr(record, "rpc_data"):
            log_entry.update(record.rpc_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(JSONLogFormatter())

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    handlers=[handler],
)
logger = logging.getLogger("portfolio-mcp-server")


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

SERVER_DESCRIPTION = "Portfolio MCP Server (Python)"


def json_response(data: Any, status_code: int = 200) -> Response:
    return JSONResponse(data, status_code=status_code)


def sse_response(data: Any) -> Response:
    return Response(
        f"data: {to_text(data)}\n\n",
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


def wants_sse(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "text/event-stream" in accept or request.url.path == "/sse"


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(dispatcher: Dispatcher) -> Starlette:
    """
    Build the ASGI app around a dispatcher.

    The dispatcher (and its backend client) is injected so tests can run the
    full HTTP stack against a mocked backend.
    """

    async def health_check(request: Request) -> Response:
        """Liveness probe: is the server process alive and responsive?"""
        return json_response({"status": "healthy"})

    async def handle(request: Request) -> Response:
        sse = wants_sse(request)

        if request.method == "OPTIONS":
            return Response(status_code=200)

        if request.method == "GET":
            if request.url.path == "/sse":
                return sse_response({"type": "connection_established"})
            info = {
                **dispatcher.server_info,
                "description": SERVER_DESCRIPTION,
                "status": "running",
            }
            return sse_response(info) if sse else json_response(info)

        if request.method == "POST":
            try:
                payload = await request.json()
            except ValueError as e:
                logger.warning("Failed to decode request body: %s", e)
                return json_response(rpc_error(None, PARSE_ERROR, f"Parse error: {e}"), 500)

            response_data = await dispatcher.handle(payload)
            return sse_response(response_data) if sse else json_response(response_data)

        error = {"error": "Method not allowed"}
        return sse_response(error) if sse else json_response(error, 405)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info(
            "Gateway ready",
            extra={
                "rpc_data": {
                    "api_base": dispatcher.backend.base_url,
                    "public_tools": sorted(dispatcher.registry.public),
                }
            },
        )
        yield
        await dispatcher.backend.aclose()

    return Starlette(
        routes=[
            Route("/health", health_check, methods=["GET"]),
            Route(
                "/{path:path}",
                handle,
                methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            ),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["Content-Type", "Authorization", "Accept"],
            )
        ],
        lifespan=lifespan,
    )


def create_default_app() -> Starlette:
    """The app as configured from the environment."""
    backend = BackendClient(settings.api_base, settings.credentials)
    dispatcher = Dispatcher(build_registry(settings.public_tools), backend, SERVER_INFO)
    return create_app(dispatcher)


app = create_default_app()


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    logger.info(
        "Starting portfolio MCP gateway on %s:%d (backend=%s)",
        settings.host,
        settings.port,
        settings.api_base,
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
