import json

import httpx
import pytest

from app.schemas.enums import MediaType
from app.services.tmdb_client import SeasonInfo, TMDBClient, parse_seasons

SERIES_DOC = {
    "id": 1399,
    "name": "Dragons",
    "seasons": [
        {"season_number": 0, "episode_count": 3},
        {"season_number": 1, "episode_count": 10},
        {"season_number": 2, "episode_count": 8},
    ],
}


def _client(handler, **kwargs) -> TMDBClient:
    return TMDBClient(
        base_url="https://tmdb.test/3",
        api_key="k",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_parse_seasons_drops_specials_and_bad_entries():
    payload = {"seasons": [{"season_number": 0, "episode_count": 2}, {"season_number": "x"}, "junk",
                           {"season_number": 1, "episode_count": None}, {"season_number": 2, "episode_count": 6}]}
    assert parse_seasons(payload) == [SeasonInfo(1, 0), SeasonInfo(2, 6)]
    assert parse_seasons([]) is None
    assert parse_seasons({"seasons": "nope"}) is None
    assert parse_seasons({}) == []


@pytest.mark.anyio
async def test_get_seasons_sends_key_and_language():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=SERIES_DOC)

    seasons = await _client(handler).get_seasons(1399, "pt-BR")
    assert seasons == [SeasonInfo(1, 10), SeasonInfo(2, 8)]
    assert seen["path"] == "/3/tv/1399"
    assert seen["params"] == {"api_key": "k", "language": "pt-BR"}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "status,body",
    [
        (404, {"json": {"status_message": "not found"}}),
        (500, {"text": "boom"}),
        (200, {"text": "<html>not json</html>"}),
        (200, {"json": ["not", "a", "document"]}),
    ],
)
async def test_failures_degrade_to_none(status, body):
    client = _client(lambda request: httpx.Response(status, **body))
    assert await client.get_seasons(1399) is None
    assert await client.get_media_details(1399, MediaType.TV) is None


@pytest.mark.anyio
async def test_network_error_degrades_to_none():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    assert await _client(handler).get_media_details(550, MediaType.MOVIE) is None


@pytest.mark.anyio
async def test_details_are_cached_in_redis(redis_client):
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(200, json={"id": 550, "title": "Fight Club"})

    client = _client(handler, cache_ttl=60)
    first = await client.get_media_details(550, MediaType.MOVIE, "en-US")
    second = await client.get_media_details(550, "movie", "en-US")

    assert first == second == {"id": 550, "title": "Fight Club"}
    assert calls == ["/3/movie/550"]
    cached = await redis_client.get("tmdb:details:movie:550:en-US")
    assert json.loads(cached)["title"] == "Fight Club"


@pytest.mark.anyio
async def test_details_without_redis_always_fetch(redis_down):
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(200, json={"id": 1, "name": "Show"})

    client = _client(handler)
    await client.get_media_details(1, MediaType.TV)
    await client.get_media_details(1, MediaType.TV)
    assert len(calls) == 2


@pytest.mark.anyio
async def test_seasons_are_never_cached(redis_client):
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(200, json=SERIES_DOC)

    client = _client(handler)
    await client.get_seasons(1399)
    await client.get_seasons(1399)
    assert len(calls) == 2
