"""
JSON-RPC dispatcher for the MCP subset this gateway speaks.

The dispatcher takes an already-decoded request object and returns a response
object; encoding and HTTP concerns live in server.py. Three methods are
recognized:

- initialize:  static capability descriptor, no backend call
- tools/list:  descriptors of the public tools only
- tools/call:  visibility check, existence check, argument validation,
               one backend call, result wrapped as a text content block

Error mapping:
- -32601: unknown method, tool not public, tool not registered
- -32000: anything raised while handling the request (bad arguments included,
          or a request that is not an object)

A backend failure is NOT an RPC error. The backend's {"error": ...} payload is
returned inside a successful result, exactly like any other backend response.
"""

import json
import logging
import uuid
from typing import Any, Mapping

from mcp.types import METHOD_NOT_FOUND

from portfolio_mcp.backend import BackendClient
from portfolio_mcp.tools import ToolArgumentError, ToolRegistry

logger = logging.getLogger("portfolio_mcp.dispatcher")

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_ERROR = -32000

SERVER_INFO = {"name": "portfolio-mcp-server", "version": "1.0.0"}


def rpc_result(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def rpc_error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def to_text(value: Any) -> str:
    """Compact JSON, matching what JSON.stringify produces."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class Dispatcher:
    """
    Stateless per-request dispatcher.

    Holds only immutable configuration (the registry) and the shared backend
    client, so one instance serves any number of concurrent requests.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        backend: BackendClient,
        server_info: Mapping[str, str] = SERVER_INFO,
    ):
        self.registry = registry
        self.backend = backend
        self.server_info = dict(server_info)

    async def handle(self, request: Any) -> dict[str, Any]:
        """Dispatch one decoded JSON-RPC request and return the response object."""
        if not isinstance(request, Mapping):
            return rpc_error(None, SERVER_ERROR, "Server error: request must be a JSON object")

        request_id = request.get("id")
        method = request.get("method")

        try:
            if method == "initialize":
                return rpc_result(request_id, self.initialize())
            if method == "tools/list":
                return rpc_result(request_id, {"tools": self.registry.public_descriptors()})
            if method == "tools/call":
                return await self._call_tool(request_id, request.get("params") or {})
        except ToolArgumentError as e:
            logger.warning(
                "Tool call rejected: invalid arguments",
                extra={
                    "rpc_data": {
                        "request_id": request_id,
                        "tool": e.tool,
                        "details": e.details,
                        "decision": "error",
                    }
                },
            )
            return rpc_error(request_id, SERVER_ERROR, f"Server error: {e}")
        except Exception as e:
            logger.exception(
                "Request failed",
                extra={
                    "rpc_data": {
                        "request_id": request_id,
                        "method": method,
                        "decision": "error",
                    }
                },
            )
            return rpc_error(request_id, SERVER_ERROR, f"Server error: {e}")

        logger.info(
            "Method not found",
            extra={"rpc_data": {"request_id": request_id, "method": method, "decision": "unknown"}},
        )
        return rpc_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def initialize(self) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": dict(self.server_info),
        }

    async def _call_tool(self, request_id: Any, params: Mapping[str, Any]) -> dict[str, Any]:
        # Correlates the log lines of one call; the RPC id may be absent or reused.
        call_id = str(uuid.uuid4())[:8]
        name = params.get("name")
        arguments = params.get("arguments") or {}

        if not self.registry.is_public(name):
            logger.warning(
                "Tool call denied: tool not public",
                extra={
                    "rpc_data": {
                        "call_id": call_id,
                        "request_id": request_id,
                        "tool": name,
                        "decision": "denied",
                    }
                },
            )
            return rpc_error(request_id, METHOD_NOT_FOUND, f"Tool not available: {name}")

        spec = self.registry.get(name)
        if spec is None:
            logger.error(
                "Tool call denied: public tool has no handler",
                extra={
                    "rpc_data": {
                        "call_id": call_id,
                        "request_id": request_id,
                        "tool": name,
                        "decision": "unknown",
                    }
                },
            )
            return rpc_error(request_id, METHOD_NOT_FOUND, f"Unknown tool: {name}")

        logger.info(
            "Tool call allowed",
            extra={
                "rpc_data": {
                    "call_id": call_id,
                    "request_id": request_id,
                    "tool": name,
                    "argument_keys": sorted(arguments) if isinstance(arguments, Mapping) else [],
                    "decision": "allowed",
                }
            },
        )

        result = await spec.invoke(arguments, self.backend)
        if not result.ok:
            logger.info(
                "Backend reported an error",
                extra={"rpc_data": {"call_id": call_id, "tool": name, "error": result.error}},
            )

        return rpc_result(
            request_id,
            {"content": [{"type": "text", "text": to_text(result.payload())}]},
        )
