"""
HTTP client for the portfolio REST API.

Every call performs exactly one outbound request and never raises across the
module boundary: network failures, non-2xx statuses and undecodable bodies are
all folded into a failed BackendResult. Callers therefore only ever deal with
one shape of outcome:

    result = await backend.call("GET", "projects/")
    result.payload()  # decoded JSON body, or {"error": "HTTP 404: Not Found"}

The target URL is the configured base URL concatenated with the relative path.
No normalization is applied, so paths must follow the backend's trailing-slash
convention ("projects/", "projects/5/").
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger("portfolio_mcp.backend")

# Only these methods carry a JSON body.
BODY_METHODS = frozenset({"POST", "PUT"})


@dataclass(frozen=True)
class BackendResult:
    """
    Outcome of a single backend call.

    Exactly one of `data` (success) or `error` (failure) is meaningful,
    as indicated by `ok`. Use the `success()` / `failure()` constructors.
    """

    ok: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def success(cls, data: Any) -> "BackendResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, message: str) -> "BackendResult":
        return cls(ok=False, error=message)

    def payload(self) -> Any:
        """The value forwarded to RPC callers: the body, or {"error": message}."""
        if self.ok:
            return self.data
        return {"error": self.error}


class BackendClient:
    """
    Thin async wrapper around httpx for the portfolio API.

    The underlying httpx.AsyncClient is shared across concurrent requests;
    it holds no per-request state. Pass a preconfigured `client` to control
    the transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        credentials: tuple[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url
        self._credentials = credentials
        self._client = client or httpx.AsyncClient()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._credentials is not None:
            client_id, client_secret = self._credentials
            if client_id and client_secret:
                headers["CF-Access-Client-Id"] = client_id
                headers["CF-Access-Client-Secret"] = client_secret
        return headers

    async def call(self, method: str, path: str, body: Any = None) -> BackendResult:
        """
        Issue one request against the backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: Path relative to the base URL, e.g. "projects/5/"
            body: JSON-serializable payload, only sent for POST/PUT

        Returns:
            BackendResult with the decoded JSON body, or a failure message
        """
        method = method.upper()
        url = f"{self.base_url}{path}"

        content = None
        if body is not None and method in BODY_METHODS:
            content = json.dumps(body)

        logger.debug("Backend request %s %s", method, url)

        try:
            response = await self._client.request(
                method, url, headers=self._headers(), content=content
            )
        except httpx.HTTPError as e:
            logger.warning("Backend request failed: %s %s: %s", method, url, e)
            return BackendResult.failure(f"Request failed: {e}")

        if not response.is_success:
            message = f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.warning("Backend returned error status: %s %s: %s", method, url, message)
            return BackendResult.failure(message)

        try:
            return BackendResult.success(response.json())
        except ValueError as e:
            logger.warning("Backend returned malformed JSON: %s %s: %s", method, url, e)
            return BackendResult.failure(f"Invalid JSON response: {e}")

    async def aclose(self) -> None:
        await self._client.aclose()
