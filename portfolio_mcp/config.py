"""
Application configuration loaded from environment variables.

Uses pydantic-settings to define typed configuration that automatically reads
from environment variables. All config comes from the environment (or a local
.env file), never hardcoded in source code.

Recognized variables (all prefixed with MCP_):
- MCP_API_BASE: base URL of the portfolio REST API (required)
- MCP_CF_ACCESS_CLIENT_ID / MCP_CF_ACCESS_CLIENT_SECRET: Cloudflare Access
  service-token credentials, forwarded to the backend as headers. Optional,
  but they must be supplied together.
- MCP_PUBLIC_TOOLS: JSON list of tool names reachable via tools/call
- MCP_HOST, MCP_PORT, MCP_LOG_LEVEL: HTTP server settings
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

from portfolio_mcp.tools import DEFAULT_PUBLIC_TOOLS


class Settings(BaseSettings):
    """
    Gateway configuration with environment variable bindings.

    Each field maps to an environment variable with the MCP_ prefix.
    For example, `api_base` reads from MCP_API_BASE, `cf_access_client_id`
    reads from MCP_CF_ACCESS_CLIENT_ID.
    """

    # --- Server settings ---

    # "0.0.0.0" listens on all interfaces, which is what a container needs.
    host: str = "0.0.0.0"
    port: int = 8080

    # Maps to Python's logging levels ("debug", "info", "warning", ...).
    log_level: str = "info"

    # --- Backend settings ---

    # The relative paths appended to this are "projects/", "skills/", ...
    # so the base URL is expected to end with a slash.
    api_base: str

    # Cloudflare Access service token. Both halves or neither.
    cf_access_client_id: str | None = None
    cf_access_client_secret: str | None = None

    # --- Tool visibility ---

    # Tools reachable through tools/call and advertised by tools/list.
    # Every other registered tool is unreachable. Defaults to the read-only
    # tools declared in tools.py.
    public_tools: list[str] = list(DEFAULT_PUBLIC_TOOLS)

    model_config = {
        "env_prefix": "MCP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @model_validator(mode="after")
    def _check_credential_pair(self) -> "Settings":
        has_id = bool(self.cf_access_client_id)
        has_secret = bool(self.cf_access_client_secret)
        if has_id != has_secret:
            raise ValueError(
                "MCP_CF_ACCESS_CLIENT_ID and MCP_CF_ACCESS_CLIENT_SECRET must be set together"
            )
        return self

    @property
    def credentials(self) -> tuple[str, str] | None:
        """The (client id, client secret) pair, or None when not configured."""
        if self.cf_access_client_id and self.cf_access_client_secret:
            return self.cf_access_client_id, self.cf_access_client_secret
        return None


# Singleton instance: import this from other modules.
# Created once at module load time, reads environment variables immediately.
settings = Settings()
