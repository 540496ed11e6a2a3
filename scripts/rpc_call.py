"""
CLI utility to send a JSON-RPC request to a running gateway.

Handy for poking at a local or deployed gateway without wiring up a full MCP
client. The script builds the request, POSTs it, and prints the response
envelope. SSE frames are unwrapped before printing.

Usage examples:

    # Handshake
    python -m scripts.rpc_call initialize

    # What's publicly available?
    python -m scripts.rpc_call tools/list

    # Call a public tool
    python -m scripts.rpc_call tools/call --tool list_skills

    # Call with arguments (private tools are rejected with -32601)
    python -m scripts.rpc_call tools/call --tool get_project --args '{"project_id": 5}'

    # Against a deployed gateway, asking for an SSE response
    python -m scripts.rpc_call --url https://mcp.example.com/ --sse tools/list
"""

import argparse
import json
import sys
from typing import Any

import httpx


def build_request(
    method: str,
    tool: str | None = None,
    arguments: dict[str, Any] | None = None,
    request_id: int | str | None = 1,
) -> dict[str, Any]:
    """
    Build a JSON-RPC 2.0 request object.

    Args:
        method: RPC method (initialize, tools/list, tools/call)
        tool: Tool name, only used for tools/call
        arguments: Tool arguments, only used for tools/call
        request_id: The id echoed back in the response

    Returns:
        The request object, ready to be JSON-encoded
    """
    request: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if method == "tools/call":
        request["params"] = {"name": tool, "arguments": arguments or {}}
    return request


def parse_response(text: str) -> Any:
    """Decode a plain JSON body, or the first 'data:' line of an SSE body."""
    for line in text.strip().split("\n"):
        if line.startswith("data: "):
            return json.loads(line[6:])
    return json.loads(text)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Send a JSON-RPC request to the portfolio MCP gateway.",
    )
    parser.add_argument("method", help="RPC method, e.g. initialize, tools/list, tools/call")
    parser.add_argument(
        "--url",
        default="http://localhost:8080/",
        help="Gateway URL (default: http://localhost:8080/)",
    )
    parser.add_argument("--tool", help="Tool name for tools/call")
    parser.add_argument(
        "--args",
        default="{}",
        help="Tool arguments as a JSON object (default: {})",
    )
    parser.add_argument("--id", default=1, type=int, help="Request id (default: 1)")
    parser.add_argument(
        "--sse",
        action="store_true",
        help="Ask for a text/event-stream response instead of JSON",
    )

    args = parser.parse_args()

    if args.method == "tools/call" and not args.tool:
        parser.error("--tool is required for tools/call")

    try:
        arguments = json.loads(args.args)
    except json.JSONDecodeError as e:
        parser.error(f"--args is not valid JSON: {e}")

    request = build_request(args.method, args.tool, arguments, args.id)
    accept = "text/event-stream" if args.sse else "application/json"

    try:
        response = httpx.post(args.url, json=request, headers={"Accept": accept})
    except httpx.HTTPError as e:
        print(f"Request failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"HTTP {response.status_code}")
    print(json.dumps(parse_response(response.text), indent=2))


if __name__ == "__main__":
    main()
