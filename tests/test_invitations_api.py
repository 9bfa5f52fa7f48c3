from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import START, FailingDocumentStore, run
from vendor_mdm.main import create_app
from vendor_mdm.stores.documents import DOMAIN_EVENTS, INVITATION_ARTIFACTS
from vendor_mdm.stores.queue import INVITATION_EMAILS

BUYER = {"X-User-Id": "buyer-7", "X-User-Name": "Dana Buyer"}


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _invite(client, email="ops@globex.com", **extra):
    body = {"vendorLegalName": "Globex Ltd", "primaryContactEmail": email, **extra}
    return client.post("/api/v1/invitations", json=body, headers=BUYER)


def _register(client, token, email="ops@globex.com"):
    body = {
        "companyName": "Globex Ltd",
        "taxId": "DE123456789",
        "contactName": "Hank Scorpio",
        "email": email,
    }
    return client.post(f"/api/v1/invitations/complete/{token}", json=body)


@pytest.fixture
def failing_client(settings, queue, clock):
    app = create_app(
        settings, document_store=FailingDocumentStore(), queue_backend=queue, clock=clock
    )
    with TestClient(app) as test_client:
        yield test_client


# ------------------------------------------------------------------
# Create
# ------------------------------------------------------------------

def test_create_invitation_writes_row_artifact_event_and_email(client, documents, queue):
    resp = _invite(client, email="  Ops@Globex.com", notes="Preferred supplier")
    assert resp.status_code == 201
    payload = resp.json()
    data = payload["data"]
    token = data["invitationToken"]
    inv_id = data["invitationId"]

    assert len(token) == 43
    assert data["invitationLink"] == f"/invitation/register/{token}"
    assert data["status"] == "Pending"
    assert _ts(data["expiresAt"]) == START + timedelta(days=14)
    assert [s["name"] for s in payload["sideEffects"]] == [
        "archive_invitation",
        "emit_event:InvitationCreated",
        "publish:invitation-created",
    ]
    assert all(s["succeeded"] for s in payload["sideEffects"])

    artifact = run(documents.read_item(INVITATION_ARTIFACTS, inv_id, inv_id))
    assert artifact["token"] == token
    assert artifact["invitedBy"] == "buyer-7"
    assert artifact["primaryContactEmail"] == "ops@globex.com"
    assert artifact["fullPayload"]["notes"] == "Preferred supplier"

    events = run(documents.query_items(DOMAIN_EVENTS, partition_key="InvitationCreated"))
    assert [e["entityId"] for e in events] == [inv_id]

    [message] = queue.peek_all(INVITATION_EMAILS)
    assert message.body["eventType"] == "invitation-created"
    assert message.body["properties"]["sapEnvironmentCode"] == "D01"
    email = message.body["data"]
    assert email["invitationId"] == inv_id
    assert email["email"] == "ops@globex.com"
    assert email["token"] == token
    assert email["vendorName"] == "Globex Ltd"
    assert email["invitedByName"] == "Dana Buyer"
    assert email["companyName"] == "Contoso Procurement"
    assert email["notes"] == "Preferred supplier"
    assert _ts(email["expiresAt"]) == START + timedelta(days=14)


def test_custom_expiration_days(client):
    resp = _invite(client, expirationDays=3)
    assert _ts(resp.json()["data"]["expiresAt"]) == START + timedelta(days=3)


def test_expiration_days_out_of_range_is_rejected(client):
    assert _invite(client, expirationDays=0).status_code == 422
    assert _invite(client, expirationDays=366).status_code == 422


def test_default_actor_used_without_headers(client, queue):
    client.post(
        "/api/v1/invitations",
        json={"vendorLegalName": "Globex Ltd", "primaryContactEmail": "ops@globex.com"},
    )
    [message] = queue.peek_all(INVITATION_EMAILS)
    assert message.body["data"]["invitedByName"] == "System Admin"


def test_overlong_user_id_header_is_rejected_without_writes(client, queue):
    resp = client.post(
        "/api/v1/invitations",
        json={"vendorLegalName": "Globex Ltd", "primaryContactEmail": "ops@globex.com"},
        headers={"X-User-Id": "u" * 37},
    )
    assert resp.status_code == 422
    assert queue.peek_all(INVITATION_EMAILS) == []


def test_duplicate_active_invitation_rejected_without_writes(client, documents, queue):
    first = _invite(client)
    assert first.status_code == 201

    resp = _invite(client, email="OPS@globex.com")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "BUSINESS_RULE_VIOLATION"
    assert "active invitation" in resp.json()["error"]["message"]

    listing = client.get("/api/v1/invitations").json()
    assert listing["meta"]["totalCount"] == 1
    assert run(queue.pending_count(INVITATION_EMAILS)) == 1
    assert len(run(documents.query_items(INVITATION_ARTIFACTS))) == 1
    assert len(run(documents.query_items(DOMAIN_EVENTS, partition_key="InvitationCreated"))) == 1


def test_invitation_rejected_when_application_exists_for_email(client, queue):
    application = client.post(
        "/api/v1/vendor-applications",
        json={
            "companyName": "Globex Ltd",
            "contactName": "Hank Scorpio",
            "contactEmail": "ops@globex.com",
        },
    )
    assert application.status_code == 201

    resp = _invite(client)
    assert resp.status_code == 400
    assert "vendor application already exists" in resp.json()["error"]["message"]
    assert client.get("/api/v1/invitations").json()["meta"]["totalCount"] == 0
    assert run(queue.pending_count(INVITATION_EMAILS)) == 0


def test_new_invitation_allowed_after_cancel(client):
    inv_id = _invite(client).json()["data"]["invitationId"]
    client.post(f"/api/v1/invitations/{inv_id}/cancel")
    assert _invite(client).status_code == 201


def test_document_store_failure_does_not_block_invitation(failing_client, queue):
    resp = _invite(failing_client)
    assert resp.status_code == 201
    payload = resp.json()
    results = {s["name"]: s for s in payload["sideEffects"]}
    assert results["archive_invitation"]["succeeded"] is False
    assert "document store unavailable" in results["archive_invitation"]["error"]
    assert results["emit_event:InvitationCreated"]["succeeded"] is False
    assert results["publish:invitation-created"]["succeeded"] is True

    inv_id = payload["data"]["invitationId"]
    stored = failing_client.get(f"/api/v1/invitations/{inv_id}")
    assert stored.status_code == 200
    assert stored.json()["data"]["status"] == "Pending"
    assert run(queue.pending_count(INVITATION_EMAILS)) == 1


# ------------------------------------------------------------------
# Validate / details
# ------------------------------------------------------------------

def test_validate_fresh_token(client):
    token = _invite(client).json()["data"]["invitationToken"]
    data = client.get(f"/api/v1/invitations/validate/{token}").json()["data"]
    assert data["isValid"] is True
    assert data["errorMessage"] is None
    assert data["vendorLegalName"] == "Globex Ltd"
    assert data["primaryContactEmail"] == "ops@globex.com"


def test_validate_unknown_token(client):
    resp = client.get("/api/v1/invitations/validate/not-a-real-token")
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "isValid": False,
        "errorMessage": "Invalid invitation link.",
        "vendorLegalName": None,
        "primaryContactEmail": None,
        "expiresAt": None,
    }


def test_validate_past_expiry_flips_status_to_expired(client, clock):
    created = _invite(client).json()["data"]
    clock.advance(days=14, seconds=1)

    data = client.get(f"/api/v1/invitations/validate/{created['invitationToken']}").json()["data"]
    assert data["isValid"] is False
    assert "expired" in data["errorMessage"]

    stored = client.get(f"/api/v1/invitations/{created['invitationId']}").json()["data"]
    assert stored["status"] == "Expired"


def test_expired_invitation_frees_the_email(client, clock):
    token = _invite(client).json()["data"]["invitationToken"]
    clock.advance(days=20)
    client.get(f"/api/v1/invitations/validate/{token}")
    assert _invite(client).status_code == 201


def test_validate_cancelled_invitation(client):
    created = _invite(client).json()["data"]
    resp = client.post(f"/api/v1/invitations/{created['invitationId']}/cancel")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Cancelled"

    data = client.get(f"/api/v1/invitations/validate/{created['invitationToken']}").json()["data"]
    assert data["isValid"] is False
    assert data["errorMessage"] == "This invitation has been cancelled."


def test_details_by_token(client):
    token = _invite(client).json()["data"]["invitationToken"]
    data = client.get(f"/api/v1/invitations/details/{token}").json()["data"]
    assert data["vendorLegalName"] == "Globex Ltd"
    assert data["status"] == "Pending"
    assert "invitationToken" not in data

    assert client.get("/api/v1/invitations/details/unknown").status_code == 404


# ------------------------------------------------------------------
# Registration / completion
# ------------------------------------------------------------------

def test_register_through_invitation_completes_it(client, documents):
    created = _invite(client).json()["data"]
    resp = _register(client, created["invitationToken"])
    assert resp.status_code == 201
    payload = resp.json()
    application_id = payload["data"]["applicationId"]
    assert payload["data"]["status"] == "Submitted"
    assert [s["name"] for s in payload["sideEffects"]] == [
        "archive_completion",
        "emit_event:InvitationCompleted",
    ]

    invitation = client.get(f"/api/v1/invitations/{created['invitationId']}").json()["data"]
    assert invitation["status"] == "Completed"
    assert invitation["vendorApplicationId"] == application_id
    assert _ts(invitation["completedAt"]) == START

    application = client.get(f"/api/v1/vendor-applications/{application_id}").json()["data"]
    assert application["registrationType"] == "Invitation"
    assert application["invitationId"] == created["invitationId"]
    assert application["status"] == "Submitted"

    artifacts = run(
        documents.query_items(INVITATION_ARTIFACTS, partition_key=created["invitationId"])
    )
    completion = [a for a in artifacts if "vendorApplicationId" in a]
    assert len(completion) == 1
    assert completion[0]["submittedData"]["taxId"] == "DE123456789"


def test_second_registration_with_same_token_is_rejected(client):
    created = _invite(client).json()["data"]
    first = _register(client, created["invitationToken"])
    assert first.status_code == 201

    second = _register(client, created["invitationToken"])
    assert second.status_code == 400
    assert second.json()["error"]["message"] == "This invitation has already been used."

    invitation = client.get(f"/api/v1/invitations/{created['invitationId']}").json()["data"]
    assert invitation["vendorApplicationId"] == first.json()["data"]["applicationId"]


def test_register_with_unknown_token(client):
    resp = _register(client, "bogus")
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Invalid invitation link."


def test_register_with_expired_token(client, clock):
    token = _invite(client).json()["data"]["invitationToken"]
    clock.advance(days=30)
    resp = _register(client, token)
    assert resp.status_code == 400
    assert "expired" in resp.json()["error"]["message"]


# ------------------------------------------------------------------
# Resend / cancel / sweep / list
# ------------------------------------------------------------------

def test_resend_rotates_token_and_extends_expiry(client, clock, queue):
    created = _invite(client, expirationDays=2).json()["data"]
    clock.advance(days=5)

    resp = client.post(f"/api/v1/invitations/{created['invitationId']}/resend", headers=BUYER)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["invitationToken"] != created["invitationToken"]
    assert data["status"] == "Pending"
    assert _ts(data["expiresAt"]) == clock.now + timedelta(days=14)
    assert [s["name"] for s in resp.json()["sideEffects"]] == [
        "emit_event:InvitationResent",
        "publish:invitation-created",
    ]

    old = client.get(f"/api/v1/invitations/validate/{created['invitationToken']}").json()["data"]
    assert old["isValid"] is False
    new = client.get(f"/api/v1/invitations/validate/{data['invitationToken']}").json()["data"]
    assert new["isValid"] is True

    messages = queue.peek_all(INVITATION_EMAILS)
    assert [m.body["data"]["token"] for m in messages] == [
        created["invitationToken"],
        data["invitationToken"],
    ]


def test_resend_reopens_expired_invitation(client, clock):
    created = _invite(client).json()["data"]
    clock.advance(days=15)
    client.get(f"/api/v1/invitations/validate/{created['invitationToken']}")

    resp = client.post(f"/api/v1/invitations/{created['invitationId']}/resend")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Pending"


def test_resend_completed_invitation_is_rejected(client):
    created = _invite(client).json()["data"]
    _register(client, created["invitationToken"])

    resp = client.post(f"/api/v1/invitations/{created['invitationId']}/resend")
    assert resp.status_code == 400
    invitation = client.get(f"/api/v1/invitations/{created['invitationId']}").json()["data"]
    assert invitation["status"] == "Completed"


def test_resend_and_cancel_unknown_invitation(client):
    assert client.post("/api/v1/invitations/missing/resend").status_code == 404
    assert client.post("/api/v1/invitations/missing/cancel").status_code == 404


def test_cancel_twice_is_rejected(client):
    inv_id = _invite(client).json()["data"]["invitationId"]
    assert client.post(f"/api/v1/invitations/{inv_id}/cancel").status_code == 200
    assert client.post(f"/api/v1/invitations/{inv_id}/cancel").status_code == 400


def test_expire_sweep_only_touches_stale_pending(client, clock):
    _invite(client, email="a@globex.com", expirationDays=1)
    _invite(client, email="b@globex.com", expirationDays=2)
    clock.advance(days=3)
    _invite(client, email="c@globex.com")

    resp = client.post("/api/v1/invitations/expire")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"expiredCount": 2}

    expired = client.get("/api/v1/invitations", params={"status": "Expired"}).json()
    assert {i["primaryContactEmail"] for i in expired["data"]} == {"a@globex.com", "b@globex.com"}
    assert client.post("/api/v1/invitations/expire").json()["data"]["expiredCount"] == 0


def test_list_is_paginated(client):
    for name in ("a", "b", "c"):
        _invite(client, email=f"{name}@globex.com")

    page = client.get("/api/v1/invitations", params={"page": 1, "limit": 2}).json()
    assert len(page["data"]) == 2
    assert page["meta"] == {"totalCount": 3, "page": 1, "pageSize": 2, "pages": 2}

    rest = client.get("/api/v1/invitations", params={"page": 2, "limit": 2}).json()
    emails = {i["primaryContactEmail"] for i in page["data"] + rest["data"]}
    assert emails == {"a@globex.com", "b@globex.com", "c@globex.com"}


def test_list_sorts_by_camel_case_field(client):
    for name in ("Initech", "Acme", "Umbrella"):
        _invite(client, email=f"ops@{name.lower()}.com", vendorLegalName=name)

    resp = client.get("/api/v1/invitations", params={"sort": "vendorLegalName", "order": "asc"})
    assert [i["vendorLegalName"] for i in resp.json()["data"]] == ["Acme", "Initech", "Umbrella"]


def test_manual_send_email(client):
    resp = client.post(
        "/api/v1/invitations/send-email",
        json={
            "invitationId": "inv-1",
            "vendorName": "Globex Ltd",
            "email": "ops@globex.com",
            "token": "abc",
            "expiresAt": "2026-03-16T09:30:00Z",
            "invitedByName": "Dana Buyer",
        },
    )
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "success": True,
        "message": "Invitation email sent to ops@globex.com",
    }
