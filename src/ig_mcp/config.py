"""
Environment driven settings for the IG MCP server.

Values are read once at startup. ``load_dotenv`` is called by the server
module before :meth:`Settings.from_env`, so a local ``.env`` file works the
same way as exported variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from loguru import logger

DEFAULT_API_URL = "https://api.ig.com/gateway/deal"


def _flag_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _flag_not_false(value: Optional[str]) -> bool:
    return (value or "").strip().lower() != "false"


@dataclass(slots=True)
class Settings:
    """Broker credentials, security policy and transport options."""

    api_key: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    api_url: str = DEFAULT_API_URL
    http_timeout: float = 30.0
    server_api_key: str = field(default="", repr=False)
    require_env_credentials: bool = False
    require_authentication: bool = True
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 3000
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        raw_origins = env.get("CORS_ALLOW_ORIGINS", "*")
        if raw_origins.strip() == "*":
            origins = ["*"]
        else:
            origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

        return cls(
            api_key=env.get("IG_API_KEY", ""),
            username=env.get("IG_USERNAME", ""),
            password=env.get("IG_PASSWORD", ""),
            api_url=env.get("IG_API_URL") or DEFAULT_API_URL,
            http_timeout=float(env.get("IG_HTTP_TIMEOUT", "30")),
            server_api_key=env.get("MCP_SERVER_API_KEY", ""),
            require_env_credentials=_flag_true(env.get("REQUIRE_ENV_CREDENTIALS")),
            require_authentication=_flag_not_false(env.get("REQUIRE_AUTHENTICATION")),
            transport=env.get("TRANSPORT", "stdio").strip().lower(),
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "3000")),
            cors_allow_origins=origins,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def has_env_credentials(self) -> bool:
        return bool(self.api_key and self.username and self.password)

    @property
    def connection_auth_required(self) -> bool:
        """True when callers must present ``server_api_key`` before using tools."""
        return self.require_authentication and bool(self.server_api_key)

    def startup_warnings(self) -> List[str]:
        """Log and return advisory problems with the configuration. Never raises."""
        warnings: List[str] = []
        if self.require_env_credentials and not self.has_env_credentials:
            warnings.append(
                "REQUIRE_ENV_CREDENTIALS is enabled but credentials are missing. "
                "Set IG_API_KEY, IG_USERNAME and IG_PASSWORD."
            )
        if self.transport == "http" and not self.connection_auth_required:
            warnings.append(
                "HTTP transport is running without a connection key. "
                "Set MCP_SERVER_API_KEY to restrict access to the broker account."
            )
        for message in warnings:
            logger.warning("SECURITY WARNING: {message}", message=message)
        return warnings


__all__ = ["DEFAULT_API_URL", "Settings"]
