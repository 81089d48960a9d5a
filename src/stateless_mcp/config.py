"""Server configuration — listen address, logging, outbound timeouts."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from stateless_mcp.protocol.server import DEFAULT_SERVER_NAME, DEFAULT_SERVER_VERSION
from stateless_mcp.web.dispatcher import DEFAULT_MAX_BODY_SIZE

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Field name -> environment variable.
ENV_VARS: dict[str, str] = {
    "host": "HOST",
    "port": "PORT",
    "log_level": "MCP_LOG_LEVEL",
    "http_timeout": "MCP_HTTP_TIMEOUT",
    "telemetry": "MCP_TELEMETRY",
    "max_body_size": "MCP_MAX_BODY_SIZE",
}


class ServerSettings(BaseModel):
    """Runtime settings for the HTTP server.

    Every field can be set from the environment (see :data:`ENV_VARS`);
    ``PORT`` is the only one most deployments need.
    """

    host: str = Field(default="0.0.0.0", description="Interface to listen on.")
    port: int = Field(default=3000, ge=0, le=65535, description="TCP port to listen on.")
    path: str = Field(default="/mcp", description="HTTP path of the MCP endpoint.")
    log_level: LogLevel = "INFO"
    http_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for outbound calls made by tools.",
    )
    telemetry: bool = Field(default=False, description="Export tracing spans to the console.")
    max_body_size: int = Field(
        default=DEFAULT_MAX_BODY_SIZE,
        gt=0,
        description="Largest accepted request body in bytes; larger ones get HTTP 413.",
    )
    server_name: str = DEFAULT_SERVER_NAME
    server_version: str = DEFAULT_SERVER_VERSION

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @property
    def public_url(self) -> str:
        return f"http://localhost:{self.port}{self.path}"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> ServerSettings:
        """Read settings from *environ* (default: ``os.environ``).

        Unset or empty variables fall back to the defaults.  Keyword
        *overrides* that are not ``None`` win over the environment.

        Raises
        ------
        pydantic.ValidationError
            If a value cannot be converted (e.g. a non-numeric ``PORT``).
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field, var in ENV_VARS.items():
            raw = env.get(var)
            if raw:
                values[field] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
