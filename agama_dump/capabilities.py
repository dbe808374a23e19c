"""Storage capability probing.

ZFCP and DASD devices exist only on s390 mainframes, on other machines the
related endpoints fail. The probes run before the bulk pass and their
results decide which endpoints are valid.
"""

from __future__ import annotations

from .api_client import AgamaAPIClient
from .endpoints import FeatureFlags
from .exceptions import CapabilityProbeError
from .logging_config import get_logger
from .snapshot import Snapshot

logger = get_logger(__name__)


def supported_path(storage: str) -> str:
    return f"/api/storage/{storage}/supported"


async def probe_storage_support(client: AgamaAPIClient, snapshot: Snapshot, storage: str) -> bool:
    """Ask the server whether a storage subsystem is supported.

    The raw response is recorded in the snapshot under the probe path.

    Raises:
        CapabilityProbeError: If the request fails.
    """
    path = supported_path(storage)
    logger.info(f"Downloading {path}")
    result = await client.get(path)

    if result.is_content_type_warning:
        logger.warning(result.detail)
    elif not result.ok:
        raise CapabilityProbeError(path, result.detail)

    snapshot.record(path, result.body)
    supported = bool(result.body)
    logger.debug(f"{storage} supported: {supported}")
    return supported


async def probe_capabilities(client: AgamaAPIClient, snapshot: Snapshot) -> FeatureFlags:
    """Probe the ZFCP and DASD support, in this order."""
    zfcp = await probe_storage_support(client, snapshot, "zfcp")
    dasd = await probe_storage_support(client, snapshot, "dasd")
    return FeatureFlags(zfcp_supported=zfcp, dasd_supported=dasd)
