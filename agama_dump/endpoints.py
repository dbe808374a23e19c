"""Endpoint lists and the bulk pass endpoint filter.

Some endpoints cannot be dumped just by following the OpenAPI documents:
they need parameters, they return localized data, or they exist only on
s390 mainframes. These are listed here explicitly.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from .openapi import EndpointSpec

# never downloaded in the bulk pass
SKIP_PATHS: frozenset[str] = frozenset(
    {
        # returns error 404, invalid OpenAPI?
        "/api/product/issues/product",
        # needs "id" parameter, see special_paths
        "/api/network/connections/:id",
        # needs "mount_path" query parameter, see special_paths
        "/api/storage/product/volume_for",
    }
)

# valid paths missing in the OpenAPI documents
EXTRA_PATHS: tuple[str, ...] = ("/api/software/issues/product",)

# paths returning data depending on the current UI language
LOCALIZED_PATHS: tuple[str, ...] = (
    "/api/l10n/keymaps",
    "/api/l10n/locales",
    "/api/l10n/timezones",
    "/api/software/patterns",
    "/api/software/products",
    "/api/storage/devices/result",
    "/api/storage/proposal/actions",
    "/api/users/issues",
)

ZFCP_PATTERN = re.compile("zfcp")
DASD_PATTERN = re.compile("dasd")


@dataclass(frozen=True)
class FeatureFlags:
    """Hardware support detected on the server (s390 only features)."""

    zfcp_supported: bool = False
    dasd_supported: bool = False


class EndpointDecision(str, enum.Enum):
    """What the bulk pass does with a path template."""

    DOWNLOAD = "download"
    SKIP = "skip"
    DEFER = "defer"


def classify_endpoint(path_template: str, flags: FeatureFlags) -> EndpointDecision:
    """Decide how the bulk pass handles a path template, first match wins."""
    if path_template in SKIP_PATHS:
        return EndpointDecision.SKIP
    # downloaded later, once per UI language
    if path_template in LOCALIZED_PATHS:
        return EndpointDecision.DEFER
    if not flags.zfcp_supported and ZFCP_PATTERN.search(path_template):
        return EndpointDecision.SKIP
    if not flags.dasd_supported and DASD_PATTERN.search(path_template):
        return EndpointDecision.SKIP
    return EndpointDecision.DOWNLOAD


def should_skip(path_template: str, flags: FeatureFlags) -> bool:
    """True if the bulk pass must not download the path template."""
    return classify_endpoint(path_template, flags) is not EndpointDecision.DOWNLOAD


class EndpointFilter:
    """Bulk pass filter bound to the probed feature flags.

    Args:
        flags: Probed feature flags.
        skip_parameterized: Also skip endpoints declaring a required parameter.
    """

    def __init__(self, flags: FeatureFlags, skip_parameterized: bool = False) -> None:
        self.flags = flags
        self.skip_parameterized = skip_parameterized

    def decide(self, endpoint: EndpointSpec) -> EndpointDecision:
        decision = classify_endpoint(endpoint.path_template, self.flags)
        if (
            decision is EndpointDecision.DOWNLOAD
            and self.skip_parameterized
            and endpoint.requires_input
        ):
            return EndpointDecision.SKIP
        return decision

    def should_skip(self, endpoint: EndpointSpec) -> bool:
        return self.decide(endpoint) is not EndpointDecision.DOWNLOAD
