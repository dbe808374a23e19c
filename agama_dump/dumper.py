"""Orchestration of a complete API dump.

A run goes through these states, strictly in this order::

    INIT -> LOGGED_IN -> PROBED_CAPABILITIES -> BULK_DOWNLOADED
         -> SPECIAL_RESOLVED -> EXTRA_RESOLVED -> LOCALIZED
         -> SERIALIZED -> DONE

A failure before the bulk pass (reading the OpenAPI documents, login,
capability probes) moves the run to FAILED. Later stages only log failed
requests and always complete.

Example:
    >>> config = load_config(api_dir="openapi", password="linux")
    >>> async with AgamaAPIClient(config.agama.url) as client:
    ...     snapshot = await AgamaDumper(config, client).run()
"""

from __future__ import annotations

import enum

from .api_client import AgamaAPIClient
from .capabilities import probe_capabilities
from .config import RunConfig
from .endpoints import EXTRA_PATHS, LOCALIZED_PATHS, EndpointFilter, FeatureFlags
from .exceptions import AgamaDumpError, ConfigurationError, DumpFailedError
from .localization import download_localized
from .logging_config import LoggerAdapter, get_logger
from .openapi import OpenAPIDocument, load_openapi_documents
from .snapshot import Snapshot, emit, sanity_check
from .special_paths import resolve_special_paths
from .traversal import download_extra, traverse_declared

logger = get_logger(__name__)


class DumpState(str, enum.Enum):
    INIT = "init"
    LOGGED_IN = "logged_in"
    PROBED_CAPABILITIES = "probed_capabilities"
    BULK_DOWNLOADED = "bulk_downloaded"
    SPECIAL_RESOLVED = "special_resolved"
    EXTRA_RESOLVED = "extra_resolved"
    LOCALIZED = "localized"
    SERIALIZED = "serialized"
    DONE = "done"
    FAILED = "failed"


class AgamaDumper:
    """Runs all dump stages against one server.

    Attributes:
        config: The run configuration.
        client: API client, not logged in yet.
        snapshot: Collected responses.
        state: Current run state.
        flags: Probed feature flags, None before probing.
        warnings: Sanity check warnings of a finished run.
    """

    def __init__(self, config: RunConfig, client: AgamaAPIClient) -> None:
        self.config = config
        self.client = client
        self.snapshot = Snapshot()
        self.state = DumpState.INIT
        self.flags: FeatureFlags | None = None
        self.documents: list[OpenAPIDocument] = []
        self.warnings: list[str] = []
        self._logger = LoggerAdapter(logger, {"url": config.agama.url})

    def _advance(self, state: DumpState) -> None:
        self._logger.debug(f"Dump state {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: AgamaDumpError) -> DumpFailedError:
        failed_in = self.state
        self._advance(DumpState.FAILED)
        self._logger.error(str(error))
        return DumpFailedError(failed_in.value)

    async def prepare(self) -> FeatureFlags:
        """Read the OpenAPI documents, log in and probe the capabilities.

        Raises:
            DumpFailedError: If any of these steps fails.
        """
        try:
            self.documents = await load_openapi_documents(self.config.dump.api_dir)

            password = self.config.agama.password
            if password is None:
                raise ConfigurationError("The login password is not configured")
            await self.client.login(password)
            self._advance(DumpState.LOGGED_IN)

            self.flags = await probe_capabilities(self.client, self.snapshot)
            self._advance(DumpState.PROBED_CAPABILITIES)
        except AgamaDumpError as e:
            raise self._fail(e) from e
        return self.flags

    async def download(self) -> Snapshot:
        """Run the download passes, individual request failures are only logged."""
        if self.flags is None:
            raise RuntimeError("prepare() must be called before download()")

        endpoint_filter = EndpointFilter(
            self.flags, skip_parameterized=self.config.dump.skip_parameterized
        )
        count = await traverse_declared(
            self.documents, endpoint_filter, self.client, self.snapshot
        )
        self._logger.info(f"Recorded {count} endpoints from the OpenAPI specification")
        self._advance(DumpState.BULK_DOWNLOADED)

        await resolve_special_paths(self.client, self.snapshot)
        self._advance(DumpState.SPECIAL_RESOLVED)

        await download_extra(EXTRA_PATHS, self.client, self.snapshot)
        self._advance(DumpState.EXTRA_RESOLVED)

        try:
            await download_localized(
                LOCALIZED_PATHS,
                self.client,
                self.snapshot,
                strict=self.config.dump.strict_locale_switch,
            )
        except AgamaDumpError as e:
            raise self._fail(e) from e
        self._advance(DumpState.LOCALIZED)
        return self.snapshot

    def finish(self) -> str:
        """Serialize and write the snapshot, then run the sanity checks."""
        text = self.snapshot.serialize()
        emit(text, self.config.dump.output)
        self._advance(DumpState.SERIALIZED)

        self.warnings = sanity_check(self.snapshot)
        self._advance(DumpState.DONE)
        return text

    async def run(self) -> Snapshot:
        """Run the complete dump.

        Returns:
            The collected snapshot.

        Raises:
            DumpFailedError: If a fatal stage fails, with the original error
                as its ``__cause__``. Nothing is written in that case.
        """
        await self.prepare()
        await self.download()
        self.finish()
        return self.snapshot


async def dump(config: RunConfig, client: AgamaAPIClient | None = None) -> Snapshot:
    """Dump the Agama REST API data described by ``config``."""
    if client is None:
        client = AgamaAPIClient(
            config.agama.url,
            tls_verify=config.agama.tls_verify,
            timeout=config.agama.request_timeout,
            debug=config.dump.debug,
        )
    async with client:
        return await AgamaDumper(config, client).run()
