"""Endpoints needing parameters taken from earlier responses.

These run after the bulk pass, which downloads the parent responses:

* ``/api/network/connections`` lists the connections, each one is then
  downloaded from ``/api/network/connections/<id>``.
* ``/api/storage/product/params`` lists the mount points, the volume for each
  one is downloaded from ``/api/storage/product/volume_for?mount_path=<path>``.

The extraction helpers never raise, a missing or unexpected parent response
just means there is nothing to download.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .api_client import AgamaAPIClient
from .logging_config import get_logger
from .snapshot import Snapshot
from .traversal import download_path

logger = get_logger(__name__)

CONNECTIONS_PATH = "/api/network/connections"
STORAGE_PARAMS_PATH = "/api/storage/product/params"
VOLUME_FOR_PATH = "/api/storage/product/volume_for"

# characters left alone by JavaScript encodeURIComponent() besides the
# unreserved set quote() always keeps
_URI_COMPONENT_SAFE = "!*'()"


def extract_connection_ids(connections: Any) -> list[str]:
    """Return the non-empty connection IDs from a connections response."""
    if not isinstance(connections, list):
        return []

    ids = []
    for connection in connections:
        if not isinstance(connection, dict):
            continue
        conn_id = connection.get("id")
        if isinstance(conn_id, str) and conn_id:
            ids.append(conn_id)
    return ids


def extract_mount_points(params: Any) -> list[str]:
    """Return the mount points from a storage product params response."""
    if not isinstance(params, dict):
        return []
    mount_points = params.get("mountPoints")
    if not isinstance(mount_points, list):
        return []
    return [mount_point for mount_point in mount_points if isinstance(mount_point, str)]


def connection_paths(snapshot: Snapshot) -> list[str]:
    connections = snapshot.get(CONNECTIONS_PATH)
    return [f"{CONNECTIONS_PATH}/{conn_id}" for conn_id in extract_connection_ids(connections)]


def volume_paths(snapshot: Snapshot) -> list[str]:
    """Build the ``volume_for`` requests for the known mount points.

    Nothing is built when the params response is missing. Otherwise an extra
    request with an empty mount path is added at the end, the web UI queries
    it as well.
    """
    params = snapshot.get(STORAGE_PARAMS_PATH)
    if not isinstance(params, dict) or not isinstance(params.get("mountPoints"), list):
        return []

    # the recorded response is not modified, copy the list
    mount_points = extract_mount_points(params) + [""]
    return [
        f"{VOLUME_FOR_PATH}?mount_path={quote(mount_point, safe=_URI_COMPONENT_SAFE)}"
        for mount_point in mount_points
    ]


async def resolve_special_paths(client: AgamaAPIClient, snapshot: Snapshot) -> None:
    """Download the parameterized endpoints, must run after the bulk pass."""
    for path in connection_paths(snapshot) + volume_paths(snapshot):
        await download_path(client, snapshot, path)
