"""Integration tests for homeowner review routes and contractor submission routes.

Covers /api/v1/homes/{id}/service-records/*, /api/v1/service-records/pending/count
and /api/v1/pro/service-records.
"""

from sqlalchemy import select

from dwella.models.attachment import Attachment
from dwella.models.connection import Connection
from dwella.tests.conftest import TestSession


def _approve_url(home_id: str, sr_id: str) -> str:
    return f"/api/v1/homes/{home_id}/service-records/{sr_id}/approve"


def _reject_url(home_id: str, sr_id: str) -> str:
    return f"/api/v1/homes/{home_id}/service-records/{sr_id}/reject"


# ===========================================================================
# Approve / reject
# ===========================================================================


async def test_approve_promotes_submission(
    client, make_user, make_home, make_service_record, make_attachment, auth_header,
):
    """S1: cost 250 with two attachments, approved by the homeowner."""
    owner = await make_user(name="U1")
    contractor = await make_user(role="PRO", business_name="K1 Heating")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, contractor.id, cost=250)
    await make_attachment(sr, "invoice.pdf")
    await make_attachment(sr, "photo.jpg", mime_type="image/jpeg", category="photo")

    resp = await client.post(_approve_url(home.id, sr.id), headers=auth_header(owner))

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["service_record"]["status"] == "APPROVED"
    assert data["service_record"]["final_record_id"] == data["final_record"]["id"]
    assert data["final_record"]["cost"] == 250.0
    assert data["final_record"]["vendor"] == "K1 Heating"

    async with TestSession() as fresh:
        attachments = (await fresh.execute(
            select(Attachment).where(Attachment.home_id == home.id)
        )).scalars().all()
        connection = (await fresh.execute(
            select(Connection).where(Connection.home_id == home.id)
        )).scalar_one()
    assert {(a.parent_type, a.parent_id) for a in attachments} == {("RECORD", data["final_record"]["id"])}
    assert connection.status == "ACTIVE"
    assert connection.verified_service_count == 1
    assert float(connection.total_spent) == 250.0


async def test_approve_twice_returns_same_record(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, contractor.id)

    first = await client.post(_approve_url(home.id, sr.id), headers=auth_header(owner))
    second = await client.post(_approve_url(home.id, sr.id), headers=auth_header(owner))

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["final_record"]["id"] == first.json()["final_record"]["id"]


async def test_approve_requires_auth(client, make_user, make_home, make_service_record):
    owner = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, contractor.id)

    resp = await client.post(_approve_url(home.id, sr.id))
    assert resp.status_code == 401


async def test_approve_by_stranger_forbidden(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    stranger = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, contractor.id)

    resp = await client.post(_approve_url(home.id, sr.id), headers=auth_header(stranger))
    assert resp.status_code == 403


async def test_approve_unknown_record(client, make_user, make_home, auth_header):
    owner = await make_user()
    home = await make_home(owner.id)

    resp = await client.post(_approve_url(home.id, "missing"), headers=auth_header(owner))
    assert resp.status_code == 404


async def test_approve_mismatched_home(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    other_home = await make_home(owner.id, address="8 Other Ave")
    sr = await make_service_record(home.id, contractor.id)

    resp = await client.post(_approve_url(other_home.id, sr.id), headers=auth_header(owner))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Service record does not belong to this home"


async def test_reject_with_reason(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, contractor.id)

    resp = await client.post(
        _reject_url(home.id, sr.id), json={"reason": "Not my house"}, headers=auth_header(owner),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["service_record"]["status"] == "REJECTED"
    assert body["service_record"]["rejection_reason"] == "Not my house"
    assert body["service_record"]["final_record_id"] is None


async def test_reject_without_body_uses_default(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, contractor.id)

    resp = await client.post(_reject_url(home.id, sr.id), headers=auth_header(owner))

    assert resp.status_code == 200
    assert resp.json()["service_record"]["rejection_reason"] == "Rejected by homeowner"


async def test_approve_after_reject_is_conflict(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, contractor.id)

    await client.post(_reject_url(home.id, sr.id), headers=auth_header(owner))
    resp = await client.post(_approve_url(home.id, sr.id), headers=auth_header(owner))

    assert resp.status_code == 409


# ===========================================================================
# Pending queues
# ===========================================================================


async def test_pending_list_and_count(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    contractor = await make_user(role="PRO")
    home = await make_home(owner.id)
    pending = await make_service_record(home.id, contractor.id)
    await make_service_record(home.id, contractor.id, status="APPROVED", is_verified=True)

    listed = await client.get(f"/api/v1/homes/{home.id}/service-records/pending", headers=auth_header(owner))
    counted = await client.get("/api/v1/service-records/pending/count", headers=auth_header(owner))

    assert listed.status_code == 200
    assert [sr["id"] for sr in listed.json()] == [pending.id]
    assert counted.json() == {"total": 1}


# ===========================================================================
# Contractor submissions
# ===========================================================================


async def test_contractor_submits_by_address(client, make_user, auth_header):
    pro = await make_user(role="PRO")

    resp = await client.post(
        "/api/v1/pro/service-records",
        json={
            "address": {"street": "4 Pine Rd", "city": "Boise", "state": "ID", "zip": "83702"},
            "service_type": "Water heater install",
            "service_date": "2026-09-20T10:00:00Z",
            "cost": 1800,
        },
        headers=auth_header(pro),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "DOCUMENTED_UNVERIFIED"
    assert body["is_verified"] is False
    assert body["contractor_id"] == pro.id
    assert body["cost"] == 1800.0


async def test_homeowner_cannot_submit(client, make_user, auth_header):
    owner = await make_user()

    resp = await client.post(
        "/api/v1/pro/service-records",
        json={
            "address": {"street": "4 Pine Rd", "city": "Boise", "state": "ID", "zip": "83702"},
            "service_type": "Painting",
            "service_date": "2026-09-20T10:00:00Z",
        },
        headers=auth_header(owner),
    )
    assert resp.status_code == 403


async def test_submission_needs_home_or_address(client, make_user, auth_header):
    pro = await make_user(role="PRO")

    resp = await client.post(
        "/api/v1/pro/service-records",
        json={"service_type": "Painting", "service_date": "2026-09-20T10:00:00Z"},
        headers=auth_header(pro),
    )
    assert resp.status_code == 422


async def test_submission_for_unconnected_home(client, make_user, make_home, auth_header):
    owner = await make_user()
    pro = await make_user(role="PRO")
    home = await make_home(owner.id)

    resp = await client.post(
        "/api/v1/pro/service-records",
        json={"home_id": home.id, "service_type": "Painting", "service_date": "2026-09-20T10:00:00Z"},
        headers=auth_header(pro),
    )
    assert resp.status_code == 403


async def test_contractor_adds_attachments(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    pro = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, pro.id)

    resp = await client.post(
        f"/api/v1/pro/service-records/{sr.id}/attachments",
        json={"files": [
            {"name": "invoice.pdf", "type": "application/pdf", "size": 4096, "category": "invoice"},
        ]},
        headers=auth_header(pro),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert len(body) == 1
    assert body[0]["parent_type"] == "SERVICE_RECORD"
    assert body[0]["parent_id"] == sr.id


async def test_attachment_with_wrong_type_is_400(client, make_user, make_home, make_service_record, auth_header):
    owner = await make_user()
    pro = await make_user(role="PRO")
    home = await make_home(owner.id)
    sr = await make_service_record(home.id, pro.id)

    resp = await client.post(
        f"/api/v1/pro/service-records/{sr.id}/attachments",
        json={"files": [{"name": "clip.mp4", "type": "video/mp4", "size": 4096, "category": "photo"}]},
        headers=auth_header(pro),
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "File clip.mp4 must be an image"
