"""Download of the localized endpoints.

Some endpoints return data translated to the current UI language. For each
language offered by the web UI the server locale is switched first and then
all localized endpoints are downloaded. The locale is shared server state,
so the languages are processed strictly one after another.
"""

from __future__ import annotations

from collections.abc import Iterable

from .api_client import AgamaAPIClient
from .exceptions import LocaleSwitchError
from .logging_config import get_logger
from .snapshot import Snapshot
from .traversal import download_path

logger = get_logger(__name__)

LANGUAGES_PATH = "/languages.json"
L10N_CONFIG_PATH = "/api/l10n/config"


def ui_locale(language: str) -> str:
    """Convert a web UI language tag to a locale name ("pt-BR" -> "pt_BR.UTF-8")."""
    parts = language.split("-")
    if len(parts) < 2:
        return f"{parts[0]}.UTF-8"
    return f"{parts[0]}_{parts[1]}.UTF-8"


async def discover_languages(client: AgamaAPIClient) -> list[str]:
    """Return the language tags supported by the web UI.

    A failed or unexpected response is logged and yields no languages.
    """
    logger.info(f"Downloading {LANGUAGES_PATH}")
    result = await client.get(LANGUAGES_PATH)
    if not result.ok:
        logger.error(f"Cannot read the list of languages: {result.detail}")
        return []
    if not isinstance(result.body, dict):
        logger.error(f"Unexpected {LANGUAGES_PATH} content, expected an object")
        return []
    return list(result.body)


async def switch_language(client: AgamaAPIClient, locale: str) -> bool:
    logger.info(f"Switching UI language to {locale}")
    result = await client.patch(L10N_CONFIG_PATH, {"uiLocale": locale})
    if not result.ok:
        logger.error(f"Changing language failed: {result.detail}")
    return result.ok


async def download_localized(
    localized_paths: Iterable[str],
    client: AgamaAPIClient,
    snapshot: Snapshot,
    strict: bool = False,
) -> None:
    """Download the localized paths once per language.

    The results are stored under ``snapshot[language][path]``. When switching
    the language fails, the downloads for that language are skipped, or with
    ``strict`` the whole pass is aborted.

    Raises:
        LocaleSwitchError: If ``strict`` is set and a language switch fails.
    """
    localized_paths = list(localized_paths)

    for language in await discover_languages(client):
        locale = ui_locale(language)
        if not await switch_language(client, locale):
            if strict:
                raise LocaleSwitchError(locale, "the server rejected the request")
            logger.warning(f"Skipping localized data for {language}")
            continue

        for path in localized_paths:
            await download_path(client, snapshot, path, language=language)
