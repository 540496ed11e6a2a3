"""
Shared test fixtures for the gateway test suite.

The gateway talks to a remote REST API, so every test replaces the network
with httpx.MockTransport: the backend is a plain Python function that receives
the outgoing httpx.Request and returns an httpx.Response. Each request the
fake backend sees is recorded so tests can assert on URL, headers and body.

Key fixtures:
- make_backend: factory that builds a BackendClient over a fake backend
- make_dispatcher: factory that builds a Dispatcher over a fake backend
- rpc: factory for JSON-RPC request objects

Testing approach:
- test_backend.py: BackendClient in isolation (URLs, headers, error folding)
- test_tools.py: argument models, payload mapping and the registry invariant
- test_dispatcher.py: the RPC policy layer, envelope by envelope
- test_server.py: the Starlette app end to end via httpx.ASGITransport
"""

import os

# Settings are loaded at import time; give them a backend before any
# portfolio_mcp module is imported.
os.environ.setdefault("MCP_API_BASE", "https://api.example.test/api/")
os.environ.pop("MCP_CF_ACCESS_CLIENT_ID", None)
os.environ.pop("MCP_CF_ACCESS_CLIENT_SECRET", None)

import json

import httpx
import pytest

from portfolio_mcp.backend import BackendClient
from portfolio_mcp.dispatcher import Dispatcher
from portfolio_mcp.tools import DEFAULT_PUBLIC_TOOLS, build_registry

API_BASE = "https://api.example.test/api/"


class FakeBackend:
    """
    Records requests and answers them from a route table.

    Routes map "METHOD path" (path relative to API_BASE) to either an
    httpx.Response or a callable taking the request. Unrouted requests get 404.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = str(request.url)[len(API_BASE):]
        route = self.routes.get(f"{request.method} {path}")
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return route

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def make_backend(fake_backend):
    """
    Factory fixture for BackendClient instances over the fake backend.

    Usage in tests:
        async def test_something(make_backend, fake_backend):
            fake_backend.routes["GET skills/"] = httpx.Response(200, json=[])
            backend = make_backend(credentials=("id", "secret"))
    """
    clients = []

    def _make_backend(credentials: tuple[str, str] | None = None) -> BackendClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake_backend))
        clients.append(client)
        return BackendClient(API_BASE, credentials=credentials, client=client)

    return _make_backend


@pytest.fixture
def make_dispatcher(make_backend):
    """Factory fixture for a Dispatcher with a configurable visibility set."""

    def _make_dispatcher(public=DEFAULT_PUBLIC_TOOLS, credentials=None) -> Dispatcher:
        return Dispatcher(build_registry(public), make_backend(credentials))

    return _make_dispatcher


@pytest.fixture
def rpc():
    """Factory for JSON-RPC request objects."""

    def _rpc(method: str, params: dict | None = None, request_id=1) -> dict:
        request = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            request["params"] = params
        return request

    return _rpc
