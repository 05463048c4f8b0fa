import pytest
from sqlalchemy import func, select

from app.db.models.watch_history import WatchHistory

URL = "/api/v1/user/watch-history"


@pytest.mark.anyio
async def test_requires_authentication(async_client):
    resp = await async_client.get(URL)
    assert resp.status_code == 401
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.anyio
async def test_rejects_garbage_token(async_client):
    resp = await async_client.get(URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_record_and_list_progress(async_client, create_test_user):
    user = await create_test_user()

    resp = await async_client.post(URL, json={"tmdb_id": 550, "media_type": "movie", "progress": 42.5},
                                   headers=user.headers)
    assert resp.status_code == 204
    assert resp.headers["cache-control"] == "no-store"

    resp = await async_client.post(
        URL,
        json={"tmdb_id": 1399, "media_type": "tv", "season_number": 1, "episode_number": 2, "progress": 12},
        headers=user.headers,
    )
    assert resp.status_code == 204

    resp = await async_client.get(URL, headers=user.headers)
    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    items = resp.json()["items"]
    assert [(i["tmdb_id"], i["season_number"], i["episode_number"]) for i in items] == [(1399, 1, 2), (550, 0, 0)]
    assert items[1]["progress"] == 42.5


@pytest.mark.anyio
async def test_repeated_reports_update_the_same_record(async_client, db_session, create_test_user):
    user = await create_test_user()
    body = {"tmdb_id": 1399, "media_type": "tv", "season_number": 2, "episode_number": 5}
    for progress in (15, 55, 91):
        resp = await async_client.post(URL, json={**body, "progress": progress}, headers=user.headers)
        assert resp.status_code == 204

    rows = (await db_session.execute(select(WatchHistory))).scalars().all()
    assert len(rows) == 1
    assert rows[0].progress == 91


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body",
    [
        {"tmdb_id": 1399, "media_type": "tv", "progress": 10},
        {"tmdb_id": 1399, "media_type": "tv", "season_number": 1, "progress": 10},
        {"tmdb_id": 550, "media_type": "movie", "season_number": 1, "episode_number": 1, "progress": 10},
        {"tmdb_id": 550, "media_type": "movie", "progress": 101},
        {"tmdb_id": 550, "media_type": "movie", "progress": -1},
        {"tmdb_id": 0, "media_type": "movie", "progress": 10},
        {"tmdb_id": 550, "media_type": "anime", "progress": 10},
    ],
)
async def test_invalid_reports_are_rejected(async_client, create_test_user, body):
    user = await create_test_user()
    resp = await async_client.post(URL, json=body, headers=user.headers)
    assert resp.status_code == 422
    assert resp.json()["errors"]


@pytest.mark.anyio
async def test_list_filters_and_isolation(async_client, create_test_user):
    alice = await create_test_user()
    bob = await create_test_user()
    await async_client.post(URL, json={"tmdb_id": 1, "media_type": "movie", "progress": 20}, headers=alice.headers)
    await async_client.post(URL, json={"tmdb_id": 2, "media_type": "movie", "progress": 20}, headers=alice.headers)
    await async_client.post(URL, json={"tmdb_id": 3, "media_type": "movie", "progress": 20}, headers=bob.headers)

    resp = await async_client.get(URL, params={"tmdb_id": 2}, headers=alice.headers)
    assert [i["tmdb_id"] for i in resp.json()["items"]] == [2]

    resp = await async_client.get(URL, params={"limit": 1}, headers=alice.headers)
    assert [i["tmdb_id"] for i in resp.json()["items"]] == [2]

    resp = await async_client.get(URL, headers=bob.headers)
    assert [i["tmdb_id"] for i in resp.json()["items"]] == [3]


@pytest.mark.anyio
async def test_continue_watching_listing(async_client, create_test_user, tmdb_stub):
    user = await create_test_user()
    tmdb_stub.add_movie(550, "Fight Club", "/fc.jpg")
    await async_client.post(URL, json={"tmdb_id": 550, "media_type": "movie", "progress": 30}, headers=user.headers)
    await async_client.post(URL, json={"tmdb_id": 13, "media_type": "movie", "progress": 99}, headers=user.headers)

    resp = await async_client.get(URL, params={"continue_watching": "true"}, headers=user.headers)

    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [(i["tmdb_id"], i["title"], i["backdrop_path"]) for i in items] == [(550, "Fight Club", "/fc.jpg")]


@pytest.mark.anyio
async def test_delete_single_record_then_404(async_client, create_test_user):
    user = await create_test_user()
    await async_client.post(URL, json={"tmdb_id": 550, "media_type": "movie", "progress": 30}, headers=user.headers)

    body = {"tmdb_id": 550, "media_type": "movie"}
    resp = await async_client.request("DELETE", URL, json=body, headers=user.headers)
    assert resp.status_code == 204

    resp = await async_client.request("DELETE", URL, json=body, headers=user.headers)
    assert resp.status_code == 404
    problem = resp.json()
    assert problem["reason"] == "watch_record_not_found"
    assert problem["status"] == 404
    assert problem["request_id"] == resp.headers["x-request-id"]


@pytest.mark.anyio
async def test_delete_whole_series(async_client, db_session, create_test_user):
    user = await create_test_user()
    for episode in (1, 2, 3):
        await async_client.post(
            URL,
            json={"tmdb_id": 1399, "media_type": "tv", "season_number": 1, "episode_number": episode, "progress": 50},
            headers=user.headers,
        )

    resp = await async_client.request(
        "DELETE", URL, json={"tmdb_id": 1399, "media_type": "tv", "season_number": 1, "episode_number": 2},
        headers=user.headers,
    )
    assert resp.status_code == 204
    count = (await db_session.execute(select(func.count()).select_from(WatchHistory))).scalar_one()
    assert count == 2

    for _ in range(2):
        resp = await async_client.request("DELETE", URL, json={"tmdb_id": 1399, "media_type": "tv"},
                                          headers=user.headers)
        assert resp.status_code == 204
    count = (await db_session.execute(select(func.count()).select_from(WatchHistory))).scalar_one()
    assert count == 0


@pytest.mark.anyio
async def test_delete_requires_season_and_episode_together(async_client, create_test_user):
    user = await create_test_user()
    resp = await async_client.request(
        "DELETE", URL, json={"tmdb_id": 1399, "media_type": "tv", "season_number": 1}, headers=user.headers
    )
    assert resp.status_code == 422
