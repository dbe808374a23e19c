"""Snapshot aggregation and serialization.

The snapshot maps request keys (the literal path and query string of a GET
request) to the decoded responses. Localized responses are nested one level
deeper under the language tag::

    {
        "/api/software/config": {...},
        "en-US": {"/api/l10n/keymaps": [...]},
        "de-DE": {"/api/l10n/keymaps": [...]}
    }

Keys keep the order in which the requests were made.
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, TextIO

from .logging_config import get_logger

logger = get_logger(__name__)

SOFTWARE_CONFIG_PATH = "/api/software/config"


class Snapshot:
    """Single-writer store of the downloaded responses."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def record(self, key: str, value: Any, language: str | None = None) -> None:
        """Store a response, a repeated key overwrites the previous value.

        Args:
            key: Request key (path plus query string).
            value: Decoded response, None for non-JSON content.
            language: Language tag for localized responses.
        """
        if language is not None:
            self._data.setdefault(language, {})[key] = value
        else:
            self._data[key] = value

    def get(self, key: str, language: str | None = None, default: Any = None) -> Any:
        if language is not None:
            return self._data.get(language, {}).get(key, default)
        return self._data.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def keys(self) -> list[str]:
        return list(self._data)

    def languages(self) -> list[str]:
        """Language partitions, in the order they were created."""
        return [
            key
            for key, value in self._data.items()
            if not key.startswith("/") and isinstance(value, dict)
        ]

    def to_dict(self) -> dict[str, Any]:
        return self._data

    def serialize(self) -> str:
        """Pretty print with 2 spaces indentation, keeping the insertion order."""
        return json.dumps(self._data, indent=2, ensure_ascii=False)


def write_atomic(path: Path, text: str) -> None:
    """Replace a file only once the new content is completely written."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def emit(text: str, output: Path | str | None = None, stream: TextIO | None = None) -> None:
    """Write the serialized snapshot to a file or to standard output."""
    if output:
        write_atomic(Path(output), text)
        logger.info(f"Saved the API dump to {output}")
    else:
        stream = stream or sys.stdout
        stream.write(text)
        stream.write("\n")
        stream.flush()


def sanity_check(snapshot: Snapshot) -> list[str]:
    """Return advisory warnings about the dumped data.

    The warnings are also logged, they never change the exit status.
    """
    warnings = []

    config = snapshot.get(SOFTWARE_CONFIG_PATH)
    if not isinstance(config, dict) or not config.get("product"):
        warnings.append(
            "No product is selected, some settings (storage, software) "
            "depend on selected product."
        )

    for warning in warnings:
        logger.warning(warning)
    return warnings
