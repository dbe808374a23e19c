"""Agama REST API dumper.

This package snapshots the data served by a running Agama installer REST
API into a single JSON document, for later comparison or offline
inspection. The endpoints to download are discovered from the Agama OpenAPI
specification, complemented by a few hand written rules for endpoints that
need parameters, exist only on some hardware or return localized data.

Example:
    Using as a CLI tool::

        $ python -m agama_dump --api openapi/ --url https://agama.local -o dump.json

    Using as a library::

        from agama_dump.config import load_config
        from agama_dump.dumper import dump

        config = load_config(api_dir="openapi/", password="linux")
        snapshot = await dump(config)

Attributes:
    __version__: Package version following semantic versioning.
"""

__version__ = "1.0.0"

# Import public API
from .api_client import AgamaAPIClient, RequestErrorKind, RequestResult
from .config import RunConfig, load_config
from .dumper import AgamaDumper, DumpState, dump
from .snapshot import Snapshot

__all__ = [
    "__version__",
    "AgamaAPIClient",
    "AgamaDumper",
    "DumpState",
    "RequestErrorKind",
    "RequestResult",
    "RunConfig",
    "Snapshot",
    "dump",
    "load_config",
]
