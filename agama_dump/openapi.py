"""Agama OpenAPI specification loader.

Agama ships its REST API description split into several OpenAPI 3 JSON
documents (one per service). Only the ``paths`` mapping and the GET
operations are relevant for dumping.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import OpenAPILoadError
from .logging_config import get_logger

logger = get_logger(__name__)

PARAMETER_LOCATIONS = ("path", "query")


@dataclass(frozen=True)
class ParameterSpec:
    """A declared GET parameter."""

    name: str
    required: bool = False
    location: str = "query"


@dataclass(frozen=True)
class EndpointSpec:
    """One path template of an OpenAPI document."""

    path_template: str
    has_get: bool
    declared_parameters: tuple[ParameterSpec, ...] = ()

    @property
    def requires_input(self) -> bool:
        """True if the GET call cannot be made without extra parameters."""
        return any(param.required for param in self.declared_parameters)


@dataclass
class OpenAPIDocument:
    """The endpoints declared by one OpenAPI document, in declaration order."""

    source: str
    endpoints: list[EndpointSpec] = field(default_factory=list)


def _parse_parameters(raw: Any) -> tuple[ParameterSpec, ...]:
    if not isinstance(raw, list):
        return ()

    params = []
    for item in raw:
        # "$ref" parameters and other locations (header, cookie) do not matter here
        if not isinstance(item, dict) or item.get("in") not in PARAMETER_LOCATIONS:
            continue
        params.append(
            ParameterSpec(
                name=str(item.get("name", "")),
                required=bool(item.get("required", False)),
                location=item["in"],
            )
        )
    return tuple(params)


def parse_openapi_document(data: Any, source: str = "<memory>") -> OpenAPIDocument:
    """Extract the endpoint list from a decoded OpenAPI document.

    Args:
        data: Decoded JSON document.
        source: Document name used in messages.

    Returns:
        The parsed document; a document without ``paths`` has no endpoints.

    Raises:
        OpenAPILoadError: If the document or its ``paths`` is not an object.
    """
    if not isinstance(data, dict):
        raise OpenAPILoadError(source, "the document is not a JSON object")

    paths = data.get("paths") or {}
    if not isinstance(paths, dict):
        raise OpenAPILoadError(source, "'paths' is not a JSON object")

    document = OpenAPIDocument(source=source)
    for template, operations in paths.items():
        get = operations.get("get") if isinstance(operations, dict) else None
        document.endpoints.append(
            EndpointSpec(
                path_template=template,
                has_get=isinstance(get, dict),
                declared_parameters=_parse_parameters(get.get("parameters"))
                if isinstance(get, dict)
                else (),
            )
        )
    return document


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


async def load_openapi_document(path: Path) -> OpenAPIDocument:
    """Read and parse one OpenAPI JSON file."""
    try:
        data = await asyncio.to_thread(_read_json, path)
    except (OSError, ValueError) as e:
        raise OpenAPILoadError(str(path), str(e)) from e
    return parse_openapi_document(data, source=path.name)


async def load_openapi_documents(directory: Path | str) -> list[OpenAPIDocument]:
    """Load all ``*.json`` documents from a directory, sorted by file name.

    Raises:
        OpenAPILoadError: If the directory or any document cannot be read.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise OpenAPILoadError(str(directory), "not a directory")

    files = sorted(p for p in directory.glob("*.json") if p.is_file())
    if not files:
        logger.warning(f"No OpenAPI documents found in {directory}")

    documents = []
    for path in files:
        document = await load_openapi_document(path)
        logger.debug(f"Loaded {len(document.endpoints)} paths from {path.name}")
        documents.append(document)
    return documents


def iter_get_endpoints(documents: Iterable[OpenAPIDocument]) -> Iterator[EndpointSpec]:
    """Yield each distinct GET endpoint once, in document then declaration order.

    A template declared by several documents is yielded only for its first
    occurrence.
    """
    seen: set[str] = set()
    for document in documents:
        for endpoint in document.endpoints:
            if not endpoint.has_get or endpoint.path_template in seen:
                continue
            seen.add(endpoint.path_template)
            yield endpoint
