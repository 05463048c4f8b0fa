import uuid

import pytest

from app.core.redis_client import redis_wrapper


@pytest.mark.anyio
async def test_healthz(async_client):
    resp = await async_client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert "server" not in resp.headers


@pytest.mark.anyio
async def test_readyz_reports_db_and_redis(async_client):
    resp = await async_client.get("/readyz")
    assert resp.json() == {"ready": True, "checks": {"db": True, "redis": True}}


@pytest.mark.anyio
async def test_readyz_without_redis_is_still_ready(async_client, redis_down):
    assert not redis_wrapper.connected
    body = (await async_client.get("/readyz")).json()
    assert body["ready"] is True
    assert body["checks"]["redis"] is False


@pytest.mark.anyio
async def test_request_id_is_reused_when_valid(async_client):
    incoming = str(uuid.uuid4())
    resp = await async_client.get("/healthz", headers={"X-Request-ID": incoming})
    assert resp.headers["x-request-id"] == incoming


@pytest.mark.anyio
@pytest.mark.parametrize("incoming", ["not-a-uuid", str(uuid.uuid1())])
async def test_request_id_is_replaced_when_invalid(async_client, incoming):
    resp = await async_client.get("/healthz", headers={"X-Request-ID": incoming})
    generated = resp.headers["x-request-id"]
    assert generated != incoming
    assert uuid.UUID(generated).version == 4


@pytest.mark.anyio
async def test_correlation_id_header_is_accepted(async_client):
    incoming = str(uuid.uuid4())
    resp = await async_client.get("/healthz", headers={"X-Correlation-ID": incoming})
    assert resp.headers["x-request-id"] == incoming


@pytest.mark.anyio
async def test_unknown_route_is_problem_json(async_client):
    resp = await async_client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["status"] == 404
    assert body["request_id"] == resp.headers["x-request-id"]


@pytest.mark.anyio
async def test_validation_errors_are_problem_json(async_client, create_test_user):
    user = await create_test_user()
    resp = await async_client.post("/api/v1/user/watch-history", json={"tmdb_id": "x"}, headers=user.headers)
    assert resp.status_code == 422
    body = resp.json()
    assert body["title"] == "Validation error"
    assert body["errors"]
