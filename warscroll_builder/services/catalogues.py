"""List and fetch catalogue files from the community data repository."""

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable
from urllib.parse import quote

import httpx

from .. import config

logger = logging.getLogger(__name__)

LORES_CATALOGUE_PATH = "Lores.cat"
REGIMENTS_OF_RENOWN_PATH = "Regiments of Renown.cat"

LIBRARY_FILE_RE = re.compile(r" - Library\.cat$", re.IGNORECASE)
_LABEL_SUFFIX_RE = re.compile(r"\s*-\s*Library\s*$", re.IGNORECASE)
_CAT_EXTENSION_RE = re.compile(r"\.cat$", re.IGNORECASE)


class CatalogueFetchError(Exception):
    """Raised when a catalogue cannot be downloaded."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


@dataclass(frozen=True)
class CatalogueItem:
    name: str
    path: str
    label: str


def library_catalogue_label(filename: str) -> str:
    label = _LABEL_SUFFIX_RE.sub("", _CAT_EXTENSION_RE.sub("", filename)).strip()
    return label or filename


def _item(path: str) -> CatalogueItem:
    return CatalogueItem(name=path, path=path, label=library_catalogue_label(path))


FALLBACK_LIBRARY: list[CatalogueItem] = [
    _item(f"{faction} - Library.cat")
    for faction in (
        "Beasts of Chaos",
        "Blades of Khorne",
        "Bonesplitterz",
        "Cities of Sigmar",
        "Daughters of Khaine",
        "Disciples of Tzeentch",
        "Flesh-eater Courts",
        "Fyreslayers",
        "Gloomspite Gitz",
        "Hedonites of Slaanesh",
        "Helsmiths of Hashut",
        "Idoneth Deepkin",
        "Ironjawz",
        "Kharadron Overlords",
        "Kruleboyz",
        "Lumineth Realm-lords",
        "Maggotkin of Nurgle",
        "Nighthaunt",
        "Ogor Mawtribes",
        "Ossiarch Bonereapers",
        "Seraphon",
        "Skaven",
        "Slaves to Darkness",
        "Sons of Behemat",
        "Soulblight Gravelords",
    )
]


def get_battle_trait_catalogue_path(library_path: str) -> str:
    """``"Fyreslayers - Library.cat"`` -> ``"Fyreslayers.cat"``."""
    return LIBRARY_FILE_RE.sub(".cat", library_path)


def get_raw_catalogue_url(path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    encoded = "/".join(quote(segment, safe="") for segment in path.split("/"))
    return f"{config.CATALOGUE_RAW_BASE}/{encoded}"


@asynccontextmanager
async def _client_scope(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=config.FETCH_TIMEOUT, follow_redirects=True) as owned:
        yield owned


async def fetch_catalogue_xml(path: str, client: httpx.AsyncClient | None = None) -> str:
    url = get_raw_catalogue_url(path)
    async with _client_scope(client) as http:
        try:
            response = await http.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CatalogueFetchError(
                path, f"HTTP {exc.response.status_code} from {url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CatalogueFetchError(path, f"request failed: {exc}") from exc
    logger.debug("Fetched %s (%d bytes)", path, len(response.content))
    return response.text


async def list_catalogues(client: httpx.AsyncClient | None = None) -> list[CatalogueItem]:
    """Library catalogues in the repository; the static list when the API is unavailable."""
    async with _client_scope(client) as http:
        try:
            response = await http.get(
                config.CATALOGUE_API_LIST,
                headers={"Accept": "application/vnd.github.v3+json"},
            )
            response.raise_for_status()
            listing = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Catalogue listing unavailable, using fallback list: %s", exc)
            return list(FALLBACK_LIBRARY)

    if not isinstance(listing, list):
        return list(FALLBACK_LIBRARY)
    items = [
        CatalogueItem(
            name=entry["name"],
            path=entry.get("path") or entry["name"],
            label=library_catalogue_label(entry["name"]),
        )
        for entry in listing
        if isinstance(entry, dict) and LIBRARY_FILE_RE.search(entry.get("name") or "")
    ]
    return sorted(items, key=lambda item: item.name)


async def fetch_many(
    paths: Iterable[str], client: httpx.AsyncClient | None = None
) -> dict[str, str]:
    """Fetch several catalogues concurrently; failed paths are logged and left out."""
    unique_paths = list(dict.fromkeys(paths))
    if not unique_paths:
        return {}
    semaphore = asyncio.Semaphore(config.FETCH_CONCURRENCY)

    async with _client_scope(client) as http:

        async def _fetch_one(path: str) -> str:
            async with semaphore:
                return await fetch_catalogue_xml(path, http)

        results = await asyncio.gather(
            *(_fetch_one(path) for path in unique_paths), return_exceptions=True
        )

    fetched: dict[str, str] = {}
    for path, result in zip(unique_paths, results):
        if isinstance(result, CatalogueFetchError):
            logger.warning("Skipping catalogue %s: %s", path, result)
        elif isinstance(result, BaseException):
            raise result
        else:
            fetched[path] = result
    return fetched
