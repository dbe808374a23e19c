"""Exception hierarchy for the Agama REST API dumper.

Fatal errors (configuration, OpenAPI loading, login, capability probing)
propagate to the orchestrator which wraps them in :class:`DumpFailedError`.
Ordinary request failures are not exceptions at all, they are reported
through :class:`agama_dump.api_client.RequestResult`.
"""

from __future__ import annotations

from typing import Any


class AgamaDumpError(Exception):
    """Base class for all dumper errors.

    Attributes:
        message: Human readable error message.
        details: Optional extra context (status code, path, ...).
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationError(AgamaDumpError):
    """Invalid or incomplete configuration."""


class EnvironmentVariableError(ConfigurationError):
    """An environment variable holds a value that cannot be used."""

    def __init__(self, variable: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Invalid value of environment variable {variable}",
            details={"variable": variable},
        )
        self.variable = variable


class OpenAPILoadError(AgamaDumpError):
    """The OpenAPI directory or one of its documents cannot be read."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(
            f"Cannot load OpenAPI specification {source}: {reason}",
            details={"source": source},
        )
        self.source = source


class AuthenticationError(AgamaDumpError):
    """Login to the Agama server failed."""

    def __init__(self, message: str = "Login failed", status_code: int | None = None) -> None:
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class CapabilityProbeError(AgamaDumpError):
    """A storage capability probe request failed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Capability probe {path} failed: {reason}", details={"path": path})
        self.path = path


class LocaleSwitchError(AgamaDumpError):
    """Switching the server UI locale failed (strict mode only)."""

    def __init__(self, locale: str, reason: str) -> None:
        super().__init__(
            f"Changing language to {locale} failed: {reason}",
            details={"locale": locale},
        )
        self.locale = locale


class DumpFailedError(AgamaDumpError):
    """Raised by the orchestrator when a fatal stage fails.

    The original error is always chained as ``__cause__``.
    """

    def __init__(self, state: str, message: str = "Agama dump failed") -> None:
        super().__init__(message, details={"state": state})
        self.state = state
