"""Pytest configuration and fixtures for Agama dumper tests."""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from agama_dump.api_client import AgamaAPIClient
from agama_dump.config import AgamaConfig, DumpConfig, RunConfig
from agama_dump.endpoints import LOCALIZED_PATHS
from agama_dump.logging_config import PACKAGE_LOGGER

BASE_URL = "http://agama.test"
PASSWORD = "linux"
TOKEN = "test-token"

ENV_VARS = [
    "AGAMA_URL",
    "AGAMA_PASSWORD",
    "AGAMA_API_DIR",
    "AGAMA_OUTPUT",
    "AGAMA_DEBUG",
    "AGAMA_TLS_VERIFY",
    "AGAMA_REQUEST_TIMEOUT",
    "LOG_LEVEL",
    "LOG_JSON",
    "LOG_FILE",
]

Reply = Union[Dict[str, Any], Callable[["FakeAgamaServer"], Dict[str, Any]]]


class FakeAgamaServer:
    """Scripted Agama server for httpx.MockTransport.

    GET replies are registered per request key (path plus query string) as
    ``{"status": ..., "json": ...}`` or ``{"status": ..., "text": ...}``
    dicts, or as callables building such a dict from the server state.
    """

    def __init__(self) -> None:
        self.replies: Dict[str, Reply] = {}
        self.requests: List[httpx.Request] = []
        self.login_status = 200
        self.locale_status: Dict[str, int] = {}
        self.ui_locale = "en_US.UTF-8"

    def add(self, path: str, json: Any = None, status: int = 200, text: Optional[str] = None) -> None:
        if text is not None:
            self.replies[path] = {"status": status, "text": text}
        else:
            self.replies[path] = {"status": status, "json": json}

    def add_empty(self, path: str, status: int = 204) -> None:
        """Reply without body and content type."""
        self.replies[path] = {"status": status}

    def add_dynamic(self, path: str, build: Callable[["FakeAgamaServer"], Any]) -> None:
        self.replies[path] = lambda server: {"status": 200, "json": build(server)}

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def calls(self) -> List[str]:
        """Method and request key of all requests, in order."""
        return [f"{r.method} {r.url.raw_path.decode()}" for r in self.requests]

    @property
    def get_paths(self) -> List[str]:
        return [r.url.raw_path.decode() for r in self.requests if r.method == "GET"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.raw_path.decode()

        if request.method == "POST" and path == "/api/auth":
            body = json.loads(request.content)
            if self.login_status != 200:
                return httpx.Response(self.login_status)
            if body.get("password") != PASSWORD:
                return httpx.Response(400)
            return httpx.Response(200, json={"token": TOKEN})

        if request.headers.get("authorization") != f"Bearer {TOKEN}":
            return httpx.Response(401)

        if request.method == "PATCH" and path == "/api/l10n/config":
            locale = json.loads(request.content)["uiLocale"]
            status = self.locale_status.get(locale, 200)
            if status < 300:
                self.ui_locale = locale
            return httpx.Response(status)

        reply = self.replies.get(path)
        if reply is None:
            return httpx.Response(404, text="Not found")
        if callable(reply):
            reply = reply(self)
        if "text" in reply:
            return httpx.Response(reply["status"], text=reply["text"])
        if "json" not in reply:
            return httpx.Response(reply["status"])
        return httpx.Response(reply["status"], json=reply["json"])


def write_openapi(directory: Path, name: str, paths: Dict[str, Any]) -> Path:
    spec_file = directory / name
    spec_file.write_text(
        json.dumps({"openapi": "3.0.3", "info": {"title": name, "version": "1"}, "paths": paths}),
        encoding="utf-8",
    )
    return spec_file


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() changes after each test."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all dumper environment variables (restored after the test)."""
    for var in ENV_VARS:
        # setenv first so monkeypatch restores the original state even if
        # load_dotenv() sets the variable during the test
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)


@pytest.fixture
def fake_server() -> FakeAgamaServer:
    """A server with the data of a typical x86_64 installation."""
    server = FakeAgamaServer()
    server.add("/api/storage/zfcp/supported", False)
    server.add("/api/storage/dasd/supported", False)
    server.add("/api/software/config", {"product": "Tumbleweed", "patterns": {}})
    server.add("/api/software/issues/product", [])
    server.add("/api/manager/installer", {"phase": "config", "busy": []})
    server.add(
        "/api/network/connections",
        [{"id": "eth0", "method4": "auto"}, {"id": "", "method4": "manual"}, {"id": "eth1"}],
    )
    server.add("/api/network/connections/eth0", {"id": "eth0", "status": "up"})
    server.add("/api/network/connections/eth1", {"id": "eth1", "status": "down"})
    server.add("/api/storage/product/params", {"encryptionMethods": ["luks2"], "mountPoints": ["/", "/home"]})
    server.add("/api/storage/product/volume_for?mount_path=%2F", {"mountPath": "/"})
    server.add("/api/storage/product/volume_for?mount_path=%2Fhome", {"mountPath": "/home"})
    server.add("/api/storage/product/volume_for?mount_path=", {"mountPath": ""})
    server.add("/languages.json", {"en-US": {"name": "English"}, "de-DE": {"name": "Deutsch"}})
    for path in LOCALIZED_PATHS:
        server.add_dynamic(path, lambda s, path=path: {"path": path, "locale": s.ui_locale})
    return server


@pytest.fixture
def api_client(fake_server) -> AgamaAPIClient:
    """A client talking to the fake server, not logged in."""
    return AgamaAPIClient(BASE_URL, transport=fake_server.transport())


@pytest.fixture
def logged_in_client(api_client) -> AgamaAPIClient:
    api_client.token = TOKEN
    return api_client


@pytest.fixture
def openapi_dir(tmp_path: Path) -> Path:
    """Two OpenAPI documents, sharing one path template."""
    directory = tmp_path / "openapi"
    directory.mkdir()
    write_openapi(
        directory,
        "manager.json",
        {
            "/api/manager/installer": {"get": {"operationId": "installer_status"}},
            "/api/software/config": {
                "get": {"operationId": "get_config"},
                "put": {"operationId": "set_config"},
            },
            "/api/manager/probe": {"post": {"operationId": "probe"}},
        },
    )
    write_openapi(
        directory,
        "storage.json",
        {
            "/api/software/config": {"get": {"operationId": "get_config"}},
            "/api/storage/zfcp/controllers": {"get": {"operationId": "zfcp_controllers"}},
            "/api/storage/dasd/devices": {"get": {"operationId": "dasd_devices"}},
            "/api/storage/product/params": {"get": {"operationId": "product_params"}},
            "/api/storage/product/volume_for": {
                "get": {
                    "operationId": "volume_for",
                    "parameters": [{"name": "mount_path", "in": "query", "required": True}],
                }
            },
            "/api/network/connections": {"get": {"operationId": "connections"}},
            "/api/network/connections/:id": {"get": {"operationId": "connection"}},
            "/api/l10n/keymaps": {"get": {"operationId": "keymaps"}},
            "/api/product/issues/product": {"get": {"operationId": "product_issues"}},
        },
    )
    return directory


@pytest.fixture
def run_config(tmp_path: Path, openapi_dir: Path) -> RunConfig:
    return RunConfig(
        agama=AgamaConfig(url=BASE_URL, password=PASSWORD),
        dump=DumpConfig(api_dir=openapi_dir, output=tmp_path / "dump.json"),
    )
