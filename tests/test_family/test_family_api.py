import pytest
from sqlalchemy import select

from app.db.models.family import FamilyInvite, FamilyMember
from app.schemas.enums import InviteStatus, PlanId

FAMILY = "/api/v1/user/family"


@pytest.mark.anyio
async def test_family_requires_auth(async_client):
    resp = await async_client.get(FAMILY)
    assert resp.status_code == 401
    assert resp.headers["content-type"].startswith("application/problem+json")


@pytest.mark.anyio
async def test_overview_before_any_family(async_client, create_test_user):
    user = await create_test_user(plan=PlanId.DUO)
    resp = await async_client.get(FAMILY, headers=user.headers)

    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    body = resp.json()
    assert body["owned_family"] is None
    assert body["membership"] is None
    assert body["slots"] == {"used": 1, "pending": 0, "total": 2, "available": 1, "can_invite": True}


@pytest.mark.anyio
async def test_create_family_then_conflict(async_client, create_test_user):
    user = await create_test_user(full_name="Dee", plan=PlanId.FAMILY)

    created = await async_client.post(FAMILY, headers=user.headers)
    assert created.status_code == 201
    assert created.json()["name"] == "Dee's family"
    assert created.json()["max_members"] == 4

    again = await async_client.post(FAMILY, headers=user.headers)
    assert again.status_code == 409
    assert again.json()["reason"] == "family_exists"


@pytest.mark.anyio
async def test_single_screen_plan_cannot_invite(async_client, create_test_user):
    user = await create_test_user(plan=PlanId.INDIVIDUAL)
    resp = await async_client.post(f"{FAMILY}/invites", json={}, headers=user.headers)
    assert resp.status_code == 403
    assert resp.json()["reason"] == "plan_has_no_family"


@pytest.mark.anyio
async def test_invite_accept_and_overview(async_client, create_test_user):
    owner = await create_test_user(full_name="Eve", plan=PlanId.DUO)
    joiner = await create_test_user(full_name="Finn", email="finn@example.com")

    invited = await async_client.post(f"{FAMILY}/invites", json={"email": "finn@example.com"}, headers=owner.headers)
    assert invited.status_code == 201
    invite = invited.json()
    assert invite["email"] == "finn@example.com"

    full = await async_client.post(f"{FAMILY}/invites", json={}, headers=owner.headers)
    assert full.status_code == 400
    assert full.json()["reason"] == "family_capacity"

    accepted = await async_client.post(f"{FAMILY}/accept", json={"token": invite["token"]}, headers=joiner.headers)
    assert accepted.status_code == 204
    assert accepted.headers["cache-control"] == "no-store"

    owner_view = (await async_client.get(FAMILY, headers=owner.headers)).json()
    assert [m["user"]["name"] for m in owner_view["owned_family"]["members"]] == ["Finn"]
    assert owner_view["owned_family"]["invites"] == []
    assert owner_view["slots"]["available"] == 0

    member_view = (await async_client.get(FAMILY, headers=joiner.headers)).json()
    assert member_view["owned_family"] is None
    assert member_view["membership"]["family_name"] == "Eve's family"
    assert member_view["membership"]["owner"]["name"] == "Eve"


@pytest.mark.anyio
async def test_invalid_invite_email_is_422(async_client, create_test_user):
    owner = await create_test_user(plan=PlanId.FAMILY)
    resp = await async_client.post(f"{FAMILY}/invites", json={"email": "nope@@example"}, headers=owner.headers)
    assert resp.status_code == 422
    assert resp.json()["reason"] == "invalid_invite_email"


@pytest.mark.anyio
async def test_accept_unknown_token_is_404(async_client, create_test_user):
    user = await create_test_user()
    resp = await async_client.post(f"{FAMILY}/accept", json={"token": "missing-token-123"}, headers=user.headers)
    assert resp.status_code == 404
    assert resp.json()["reason"] == "invite_not_found"


@pytest.mark.anyio
async def test_revoke_invite(async_client, create_test_user, db_session):
    owner = await create_test_user(plan=PlanId.DUO)
    invite = (await async_client.post(f"{FAMILY}/invites", json={}, headers=owner.headers)).json()

    resp = await async_client.delete(f"{FAMILY}/invites/{invite['id']}", headers=owner.headers)
    assert resp.status_code == 204

    status = (
        await db_session.execute(select(FamilyInvite.status).where(FamilyInvite.token == invite["token"]))
    ).scalar_one()
    assert status == InviteStatus.REVOKED

    again = await async_client.delete(f"{FAMILY}/invites/{invite['id']}", headers=owner.headers)
    assert again.status_code == 400
    assert again.json()["reason"] == "invite_already_used"


@pytest.mark.anyio
async def test_remove_member_and_leave(async_client, create_test_user, db_session):
    owner = await create_test_user(plan=PlanId.FAMILY)
    first = await create_test_user()
    second = await create_test_user()
    for joiner in (first, second):
        invite = (await async_client.post(f"{FAMILY}/invites", json={}, headers=owner.headers)).json()
        resp = await async_client.post(f"{FAMILY}/accept", json={"token": invite["token"]}, headers=joiner.headers)
        assert resp.status_code == 204

    members = (await async_client.get(FAMILY, headers=owner.headers)).json()["owned_family"]["members"]
    assert len(members) == 2

    forbidden = await async_client.delete(f"{FAMILY}/members/{members[0]['id']}", headers=second.headers)
    assert forbidden.status_code == 403
    assert forbidden.json()["reason"] == "not_family_owner"

    removed = await async_client.delete(f"{FAMILY}/members/{members[0]['id']}", headers=owner.headers)
    assert removed.status_code == 204

    left = await async_client.post(f"{FAMILY}/leave", headers=second.headers)
    assert left.status_code == 204

    remaining = (await db_session.execute(select(FamilyMember))).scalars().all()
    assert remaining == []

    not_member = await async_client.post(f"{FAMILY}/leave", headers=second.headers)
    assert not_member.status_code == 404
    assert not_member.json()["reason"] == "not_family_member"
