"""Tests for the dump orchestration."""

import json

import pytest

from agama_dump.api_client import AgamaAPIClient
from agama_dump.config import AgamaConfig, RunConfig
from agama_dump.dumper import AgamaDumper, DumpState, dump
from agama_dump.endpoints import LOCALIZED_PATHS
from agama_dump.exceptions import (
    AuthenticationError,
    CapabilityProbeError,
    ConfigurationError,
    DumpFailedError,
    LocaleSwitchError,
    OpenAPILoadError,
)

from .conftest import BASE_URL


def make_dumper(config, fake_server):
    return AgamaDumper(config, AgamaAPIClient(BASE_URL, transport=fake_server.transport()))


@pytest.mark.asyncio
async def test_complete_run(run_config, fake_server):
    dumper = make_dumper(run_config, fake_server)

    snapshot = await dumper.run()

    assert dumper.state is DumpState.DONE
    assert dumper.warnings == []
    data = json.loads(run_config.dump.output.read_text(encoding="utf-8"))
    assert data == snapshot.to_dict()
    assert list(data) == [
        # capability probes
        "/api/storage/zfcp/supported",
        "/api/storage/dasd/supported",
        # bulk pass
        "/api/manager/installer",
        "/api/software/config",
        "/api/storage/product/params",
        "/api/network/connections",
        # special paths
        "/api/network/connections/eth0",
        "/api/network/connections/eth1",
        "/api/storage/product/volume_for?mount_path=%2F",
        "/api/storage/product/volume_for?mount_path=%2Fhome",
        "/api/storage/product/volume_for?mount_path=",
        # extra paths
        "/api/software/issues/product",
        # localized paths
        "en-US",
        "de-DE",
    ]
    assert list(data["de-DE"]) == list(LOCALIZED_PATHS)
    assert data["de-DE"]["/api/l10n/keymaps"]["locale"] == "de_DE.UTF-8"
    assert fake_server.calls[0] == "POST /api/auth"


@pytest.mark.asyncio
async def test_stage_order(run_config, fake_server):
    dumper = make_dumper(run_config, fake_server)
    states = []
    advance = dumper._advance

    def record(state):
        states.append(state)
        advance(state)

    dumper._advance = record
    await dumper.run()

    assert states == [
        DumpState.LOGGED_IN,
        DumpState.PROBED_CAPABILITIES,
        DumpState.BULK_DOWNLOADED,
        DumpState.SPECIAL_RESOLVED,
        DumpState.EXTRA_RESOLVED,
        DumpState.LOCALIZED,
        DumpState.SERIALIZED,
        DumpState.DONE,
    ]


@pytest.mark.asyncio
async def test_login_failure(run_config, fake_server):
    fake_server.login_status = 401
    run_config.dump.output.write_text("previous dump")
    dumper = make_dumper(run_config, fake_server)

    with pytest.raises(DumpFailedError) as exc_info:
        await dumper.run()

    assert isinstance(exc_info.value.__cause__, AuthenticationError)
    assert exc_info.value.state == DumpState.INIT.value
    assert dumper.state is DumpState.FAILED
    assert fake_server.calls == ["POST /api/auth"]
    # the previous output is not overwritten
    assert run_config.dump.output.read_text() == "previous dump"


@pytest.mark.asyncio
async def test_login_failure_no_output(run_config, fake_server):
    fake_server.login_status = 401

    with pytest.raises(DumpFailedError):
        await make_dumper(run_config, fake_server).run()

    assert not run_config.dump.output.exists()


@pytest.mark.asyncio
async def test_probe_failure(run_config, fake_server):
    fake_server.add("/api/storage/zfcp/supported", {"error": "boom"}, status=500)
    dumper = make_dumper(run_config, fake_server)

    with pytest.raises(DumpFailedError) as exc_info:
        await dumper.run()

    assert isinstance(exc_info.value.__cause__, CapabilityProbeError)
    assert exc_info.value.state == DumpState.LOGGED_IN.value
    assert fake_server.get_paths == ["/api/storage/zfcp/supported"]
    assert not run_config.dump.output.exists()


@pytest.mark.asyncio
async def test_invalid_openapi(run_config, fake_server):
    (run_config.dump.api_dir / "zz-broken.json").write_text("{")
    dumper = make_dumper(run_config, fake_server)

    with pytest.raises(DumpFailedError) as exc_info:
        await dumper.run()

    assert isinstance(exc_info.value.__cause__, OpenAPILoadError)
    # nothing is sent to the server
    assert fake_server.requests == []


@pytest.mark.asyncio
async def test_missing_password(run_config, fake_server):
    config = run_config.model_copy(update={"agama": AgamaConfig(url=BASE_URL)})

    with pytest.raises(DumpFailedError) as exc_info:
        await make_dumper(config, fake_server).run()

    assert isinstance(exc_info.value.__cause__, ConfigurationError)
    assert fake_server.requests == []


@pytest.mark.asyncio
async def test_request_failures_are_not_fatal(run_config, fake_server):
    fake_server.add("/api/manager/installer", {"error": "boom"}, status=500)
    fake_server.add("/api/software/issues/product", text="oops")
    dumper = make_dumper(run_config, fake_server)

    snapshot = await dumper.run()

    assert dumper.state is DumpState.DONE
    assert "/api/manager/installer" not in snapshot
    # later endpoints, special paths and localized paths are still downloaded
    assert "/api/software/config" in snapshot
    assert "/api/network/connections/eth1" in snapshot
    assert snapshot.get("/api/software/issues/product") is None
    assert snapshot.languages() == ["en-US", "de-DE"]


@pytest.mark.asyncio
async def test_strict_locale_switch(run_config, fake_server):
    config = run_config.model_copy(
        update={"dump": run_config.dump.model_copy(update={"strict_locale_switch": True})}
    )
    fake_server.locale_status["de_DE.UTF-8"] = 500
    dumper = make_dumper(config, fake_server)

    with pytest.raises(DumpFailedError) as exc_info:
        await dumper.run()

    assert isinstance(exc_info.value.__cause__, LocaleSwitchError)
    assert exc_info.value.state == DumpState.EXTRA_RESOLVED.value
    assert not config.dump.output.exists()


@pytest.mark.asyncio
async def test_sanity_warning_does_not_fail(run_config, fake_server):
    fake_server.add("/api/software/config", {"product": None})
    dumper = make_dumper(run_config, fake_server)

    await dumper.run()

    assert dumper.state is DumpState.DONE
    assert len(dumper.warnings) == 1
    assert run_config.dump.output.exists()


@pytest.mark.asyncio
async def test_download_before_prepare(run_config, fake_server):
    with pytest.raises(RuntimeError):
        await make_dumper(run_config, fake_server).download()


@pytest.mark.asyncio
async def test_dump_closes_client(run_config, fake_server):
    client = AgamaAPIClient(BASE_URL, transport=fake_server.transport())

    snapshot = await dump(run_config, client=client)

    assert "/api/software/config" in snapshot
    assert client.client is None


@pytest.mark.asyncio
async def test_dump_to_stdout(run_config, fake_server, capsys):
    config = run_config.model_copy(
        update={"dump": run_config.dump.model_copy(update={"output": None})}
    )

    snapshot = await dump(config, client=AgamaAPIClient(BASE_URL, transport=fake_server.transport()))

    assert json.loads(capsys.readouterr().out) == snapshot.to_dict()
