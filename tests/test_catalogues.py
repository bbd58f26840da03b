import asyncio
import sys
from pathlib import Path

import httpx
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from warscroll_builder import config
from warscroll_builder.services import catalogues


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_raw_url_encodes_each_segment():
    assert catalogues.get_raw_catalogue_url("Fyreslayers - Library.cat") == (
        f"{config.CATALOGUE_RAW_BASE}/Fyreslayers%20-%20Library.cat"
    )
    assert catalogues.get_raw_catalogue_url("https://example.org/x.cat") == "https://example.org/x.cat"


def test_battle_trait_path_drops_library_suffix():
    assert catalogues.get_battle_trait_catalogue_path("Fyreslayers - Library.cat") == "Fyreslayers.cat"
    assert catalogues.get_battle_trait_catalogue_path("Lores.cat") == "Lores.cat"


def test_fetch_returns_text_and_raises_on_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        if "Skaven" in str(request.url):
            return httpx.Response(404)
        return httpx.Response(200, text="<catalogue/>")

    async def run():
        async with _client(handler) as client:
            ok = await catalogues.fetch_catalogue_xml("Seraphon - Library.cat", client)
            with pytest.raises(catalogues.CatalogueFetchError) as excinfo:
                await catalogues.fetch_catalogue_xml("Skaven - Library.cat", client)
        return ok, excinfo.value

    text, error = asyncio.run(run())
    assert text == "<catalogue/>"
    assert error.path == "Skaven - Library.cat"
    assert isinstance(error.__cause__, httpx.HTTPStatusError)


def test_list_catalogues_keeps_library_files_sorted():
    listing = [
        {"name": "Seraphon - Library.cat", "path": "Seraphon - Library.cat"},
        {"name": "Seraphon.cat", "path": "Seraphon.cat"},
        {"name": "Beasts of Chaos - Library.cat", "path": "Beasts of Chaos - Library.cat"},
        {"name": "README.md", "path": "README.md"},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=listing)

    async def run():
        async with _client(handler) as client:
            return await catalogues.list_catalogues(client)

    items = asyncio.run(run())
    assert [item.label for item in items] == ["Beasts of Chaos", "Seraphon"]
    assert items[0].path == "Beasts of Chaos - Library.cat"


def test_list_catalogues_falls_back_when_api_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "rate limited"})

    async def run():
        async with _client(handler) as client:
            return await catalogues.list_catalogues(client)

    items = asyncio.run(run())
    assert len(items) == 25
    assert items[7].label == "Fyreslayers"


def test_fetch_many_tolerates_individual_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if "Skaven" in url:
            return httpx.Response(500)
        if "Nighthaunt" in url:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text=f"xml for {request.url.path}")

    paths = [
        "Seraphon - Library.cat",
        "Skaven - Library.cat",
        "Nighthaunt - Library.cat",
        "Ironjawz - Library.cat",
        "Seraphon - Library.cat",
    ]

    async def run():
        async with _client(handler) as client:
            return await catalogues.fetch_many(paths, client)

    fetched = asyncio.run(run())
    assert sorted(fetched) == ["Ironjawz - Library.cat", "Seraphon - Library.cat"]
