"""Configuration loader for the Agama dumper.

The whole run is driven by one explicit :class:`RunConfig` value which is
passed to the orchestrator; nothing reads options from global state.

Example:
    >>> from agama_dump.config import load_config
    >>> config = load_config(api_dir="/usr/share/agama/openapi", password="linux")
    >>> print(config.agama.url)
    http://localhost

Environment Variables:
    AGAMA_URL: Agama server URL (default: http://localhost).
    AGAMA_PASSWORD: Login password (optional, prompted when missing).
    AGAMA_API_DIR: Directory with the OpenAPI JSON documents.
    AGAMA_OUTPUT: Output file (default: standard output).
    AGAMA_DEBUG: Enable debugging output (default: false).
    AGAMA_TLS_VERIFY: Verify TLS certificates (default: false).
    AGAMA_REQUEST_TIMEOUT: Request timeout in seconds (default: no timeout).
    LOG_LEVEL: Logging level (default: INFO).
    LOG_JSON: Use JSON format for logs (default: false).
    LOG_FILE: Optional log file path.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError, EnvironmentVariableError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_URL = "http://localhost"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


class AgamaConfig(BaseModel):
    """Agama server connection configuration.

    Attributes:
        url: Server base URL, HTTP or HTTPS.
        password: Login password (None until prompted).
        tls_verify: Whether to verify TLS certificates.
        request_timeout: Per-request timeout in seconds, None waits forever.
    """

    url: str = Field(default=DEFAULT_URL, description="Agama server URL")
    password: str | None = Field(default=None, description="Agama login password")
    tls_verify: bool = Field(
        default=False,
        description="Verify TLS certificates (Agama uses a self-signed one)",
    )
    request_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Request timeout in seconds (default: no timeout)",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Accept only http:// and https:// URLs, without the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Unsupported server URL (expected http:// or https://): {v}")
        return v.rstrip("/")

    model_config = {"extra": "ignore"}


class DumpConfig(BaseModel):
    """Dump run configuration.

    Attributes:
        api_dir: Directory with the Agama OpenAPI JSON documents.
        output: Output file, None writes to standard output.
        debug: Log failed responses and re-raise fatal errors.
        skip_parameterized: Skip GET endpoints with required parameters.
        strict_locale_switch: Treat a failed UI language switch as fatal.
        log_level: Logging level.
        log_json: Use JSON format for logs.
        log_file: Optional log file path.
    """

    api_dir: Path = Field(description="Agama OpenAPI specification directory")
    output: Path | None = Field(default=None, description="Output file (default: stdout)")
    debug: bool = Field(default=False, description="Enable debugging")
    skip_parameterized: bool = Field(
        default=False,
        description="Skip GET endpoints declaring a required parameter",
    )
    strict_locale_switch: bool = Field(
        default=False,
        description="Abort when changing the UI language fails",
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="Use JSON format for logs")
    log_file: str | None = Field(default=None, description="Optional log file path")

    @field_validator("api_dir")
    @classmethod
    def validate_api_dir(cls, v: Path) -> Path:
        """Validate that the OpenAPI directory exists."""
        if not v.is_dir():
            raise ValueError(f"OpenAPI directory not found: {v}")
        return v

    model_config = {"extra": "ignore"}


class RunConfig(BaseModel):
    """Main configuration container.

    Attributes:
        agama: Server connection settings.
        dump: Dump run settings.
    """

    agama: AgamaConfig = Field(default_factory=AgamaConfig)
    dump: DumpConfig

    model_config = {"extra": "ignore"}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise EnvironmentVariableError(name, message=f"{name} must be a boolean, got {value!r}")


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise EnvironmentVariableError(name, message=f"{name} must be a number, got {value!r}") from e


def load_config(env_file: str | None = None, **overrides: Any) -> RunConfig:
    """Load configuration from environment variables and explicit overrides.

    Overrides with a ``None`` value are ignored so the command line only
    replaces what the user actually specified.

    Args:
        env_file: Optional path to .env file.
        **overrides: Values taking precedence over the environment: ``url``,
            ``password``, ``api_dir``, ``output``, ``debug``, ``tls_verify``,
            ``request_timeout``, ``log_level``.

    Returns:
        Validated RunConfig object.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    logger.debug("Loading configuration from environment")

    values: dict[str, Any] = {
        "url": os.getenv("AGAMA_URL", DEFAULT_URL),
        "password": os.getenv("AGAMA_PASSWORD") or None,
        "api_dir": os.getenv("AGAMA_API_DIR") or None,
        "output": os.getenv("AGAMA_OUTPUT") or None,
        "debug": _env_bool("AGAMA_DEBUG"),
        "tls_verify": _env_bool("AGAMA_TLS_VERIFY"),
        "request_timeout": _env_float("AGAMA_REQUEST_TIMEOUT"),
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})

    if not values["api_dir"]:
        raise ConfigurationError("The OpenAPI specification directory is not configured")

    try:
        config = RunConfig(
            agama=AgamaConfig(
                url=values["url"],
                password=values["password"],
                tls_verify=values["tls_verify"],
                request_timeout=values["request_timeout"],
            ),
            dump=DumpConfig(
                api_dir=values["api_dir"],
                output=values["output"],
                debug=values["debug"],
                skip_parameterized=values.get("skip_parameterized", False),
                strict_locale_switch=values.get("strict_locale_switch", False),
                log_level="DEBUG" if values["debug"] else values["log_level"],
                log_json=_env_bool("LOG_JSON"),
                log_file=os.getenv("LOG_FILE"),
            ),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.debug(
        "Configuration loaded successfully",
        extra={"url": config.agama.url, "api_dir": str(config.dump.api_dir)},
    )
    return config
