"""Agama REST API client.

This module provides an async HTTP client for the Agama installer REST API.
Agama uses a self-signed certificate, so TLS verification is disabled by
default. The client logs in once and attaches the bearer token to every
following request.

Example:
    >>> async with AgamaAPIClient("https://agama.local") as client:
    ...     await client.login("linux")
    ...     result = await client.get("/api/software/config")
    ...     if result.ok:
    ...         print(result.body["product"])

Note:
    :meth:`AgamaAPIClient.get` and :meth:`AgamaAPIClient.patch` never raise
    for HTTP or transport failures. They return a :class:`RequestResult` and
    the caller decides whether the failure is fatal. Only :meth:`login`
    raises, a failed login always ends the run.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any

import httpx

from .exceptions import AuthenticationError
from .logging_config import LoggerAdapter, get_logger

logger = get_logger(__name__)

AUTH_PATH = "/api/auth"
JSON_CONTENT_TYPE = "application/json"


class RequestErrorKind(str, enum.Enum):
    """Why a request did not produce a usable JSON body."""

    AUTH_ERROR = "auth_error"
    REQUEST_ERROR = "request_error"
    CONTENT_TYPE_WARNING = "content_type_warning"


@dataclass(frozen=True)
class RequestResult:
    """Outcome of a single request.

    Attributes:
        ok: True when the body was received and parsed.
        body: Parsed JSON body, None when not ``ok``.
        kind: Failure classification, None when ``ok``.
        detail: Human readable failure description.
        status_code: HTTP status, None for transport errors.
    """

    ok: bool
    body: Any = None
    kind: RequestErrorKind | None = None
    detail: str = ""
    status_code: int | None = None

    @classmethod
    def success(cls, body: Any, status_code: int = 200) -> "RequestResult":
        return cls(ok=True, body=body, status_code=status_code)

    @classmethod
    def failure(
        cls, kind: RequestErrorKind, detail: str, status_code: int | None = None
    ) -> "RequestResult":
        return cls(ok=False, kind=kind, detail=detail, status_code=status_code)

    @property
    def is_content_type_warning(self) -> bool:
        return self.kind is RequestErrorKind.CONTENT_TYPE_WARNING


def _media_type(response: httpx.Response) -> str:
    return response.headers.get("content-type", "").split(";", 1)[0].strip().lower()


class AgamaAPIClient:
    """Agama API client using bearer token authentication.

    Attributes:
        base_url: Server base URL without the trailing slash.
        token: Authentication token, None before :meth:`login`.
    """

    def __init__(
        self,
        base_url: str,
        tls_verify: bool = False,
        timeout: float | None = None,
        debug: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Agama API client.

        Args:
            base_url: Server URL (e.g., "https://agama.local").
            tls_verify: Whether to verify TLS certificates.
            timeout: Request timeout in seconds, None disables it.
            debug: Log status code and body of failed responses.
            transport: Optional httpx transport (used in tests).

        Raises:
            ValueError: If base_url is empty.
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip("/")
        self.tls_verify = tls_verify
        self.timeout = timeout
        self.debug = debug
        self.token: str | None = None

        self._transport = transport
        self._logger = LoggerAdapter(logger, {"url": self.base_url})

        # HTTP client (created lazily)
        self.client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(
                verify=self.tls_verify,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self.client

    def _headers(self, with_body: bool = False) -> dict[str, str]:
        headers = {}
        if with_body:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def login(self, password: str) -> str:
        """Log in and remember the authentication token.

        Args:
            password: Agama root password.

        Returns:
            The bearer token.

        Raises:
            AuthenticationError: If the server does not answer 200 with a token.
        """
        client = await self._ensure_client()
        try:
            response = await client.post(
                self.base_url + AUTH_PATH,
                content=json.dumps({"password": password}),
                headers=self._headers(with_body=True),
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Login failed: {e}") from e

        if response.status_code != 200:
            self._log_failure(response)
            raise AuthenticationError("Login failed", status_code=response.status_code)

        try:
            token = response.json()["token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(
                "Login failed: no token in the response", status_code=response.status_code
            ) from e

        self.token = token
        self._logger.debug("Logged in")
        return token

    async def get(self, path: str) -> RequestResult:
        """Download a JSON document.

        Args:
            path: Request path including an optional query string.

        Returns:
            The request result; a non-JSON body yields a content type warning.
        """
        client = await self._ensure_client()
        try:
            response = await client.get(self.base_url + path, headers=self._headers())
        except httpx.HTTPError as e:
            return RequestResult.failure(RequestErrorKind.REQUEST_ERROR, f"GET {path}: {e}")
        return self._parse_response(response, path)

    async def patch(self, path: str, body: dict[str, Any]) -> RequestResult:
        """Send a JSON PATCH request, any 2xx status is a success."""
        client = await self._ensure_client()
        try:
            response = await client.patch(
                self.base_url + path,
                content=json.dumps(body),
                headers=self._headers(with_body=True),
            )
        except httpx.HTTPError as e:
            return RequestResult.failure(RequestErrorKind.REQUEST_ERROR, f"PATCH {path}: {e}")

        if not 200 <= response.status_code < 300:
            return self._error_result(response, f"PATCH {path}")
        return RequestResult.success(None, status_code=response.status_code)

    def _parse_response(self, response: httpx.Response, path: str) -> RequestResult:
        if not 200 <= response.status_code < 300:
            return self._error_result(response, f"GET {path}")

        content_type = _media_type(response)
        if content_type != JSON_CONTENT_TYPE:
            return RequestResult.failure(
                RequestErrorKind.CONTENT_TYPE_WARNING,
                f"Ignoring {response.headers.get('content-type')} content",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            return RequestResult.failure(
                RequestErrorKind.REQUEST_ERROR,
                f"GET {path}: invalid JSON response: {e}",
                status_code=response.status_code,
            )
        return RequestResult.success(data, status_code=response.status_code)

    def _error_result(self, response: httpx.Response, request: str) -> RequestResult:
        self._log_failure(response)
        kind = (
            RequestErrorKind.AUTH_ERROR
            if response.status_code in (401, 403)
            else RequestErrorKind.REQUEST_ERROR
        )
        return RequestResult.failure(
            kind,
            f"{request} failed with HTTP {response.status_code}",
            status_code=response.status_code,
        )

    def _log_failure(self, response: httpx.Response) -> None:
        if self.debug:
            self._logger.debug(
                f"HTTP code {response.status_code}, response: {response.text}",
            )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self.client:
            await self.client.aclose()
            self.client = None
            self._logger.debug("HTTP client closed")

    async def __aenter__(self) -> "AgamaAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
