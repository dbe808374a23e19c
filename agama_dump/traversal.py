"""Downloading and recording of single endpoints.

All requests are made strictly one after another, the server state (the
UI language) may change between them.
"""

from __future__ import annotations

from collections.abc import Iterable

from .api_client import AgamaAPIClient, RequestResult
from .endpoints import EndpointDecision, EndpointFilter
from .logging_config import get_logger
from .openapi import OpenAPIDocument, iter_get_endpoints
from .snapshot import Snapshot

logger = get_logger(__name__)


def request_key(path: str) -> str:
    """Remove the trailing slash from a path, the result is the request key."""
    return path[:-1] if path.endswith("/") else path


async def download_path(
    client: AgamaAPIClient,
    snapshot: Snapshot,
    path: str,
    language: str | None = None,
) -> RequestResult:
    """Download one path and record the result.

    A non-JSON response is recorded as ``None``. Any other failure is logged
    and the key is not recorded.
    """
    logger.info(f"Downloading {path}")
    key = request_key(path)
    result = await client.get(key)

    if result.ok:
        snapshot.record(key, result.body, language=language)
    elif result.is_content_type_warning:
        logger.warning(result.detail)
        snapshot.record(key, None, language=language)
    else:
        logger.error(f"Download failed: {result.detail}")
    return result


async def traverse_declared(
    documents: Iterable[OpenAPIDocument],
    endpoint_filter: EndpointFilter,
    client: AgamaAPIClient,
    snapshot: Snapshot,
) -> int:
    """Download every GET endpoint of the OpenAPI documents not filtered out.

    Returns:
        Number of endpoints recorded in the snapshot, including those
        recorded as ``None`` for non-JSON content.
    """
    recorded = 0
    for endpoint in iter_get_endpoints(documents):
        decision = endpoint_filter.decide(endpoint)
        if decision is not EndpointDecision.DOWNLOAD:
            logger.info(f"Skipping {endpoint.path_template}")
            continue

        result = await download_path(client, snapshot, endpoint.path_template)
        if result.ok or result.is_content_type_warning:
            recorded += 1
    return recorded


async def download_extra(
    extra_paths: Iterable[str], client: AgamaAPIClient, snapshot: Snapshot
) -> None:
    """Download paths which are valid but missing in the OpenAPI documents."""
    for path in extra_paths:
        await download_path(client, snapshot, path)
