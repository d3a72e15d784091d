import json
import os
import uuid
from datetime import datetime, timezone

from svix.webhooks import Webhook

URL = "/api/v1/webhooks/clerk"


def clerk_user(clerk_id, email):
    return {
        "id": clerk_id,
        "email_addresses": [{"id": "idn_1", "email_address": email}],
        "primary_email_address_id": "idn_1",
    }


def signed(event_type, data, secret=None):
    body = json.dumps({"type": event_type, "object": "event", "data": data})
    msg_id = f"msg_{uuid.uuid4().hex}"
    now = datetime.now(timezone.utc)
    signature = Webhook(secret or os.environ["CLERK_WEBHOOK_SECRET"]).sign(msg_id, now, body)
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": str(int(now.timestamp())),
        "svix-signature": signature,
        "content-type": "application/json",
    }
    return body, headers


def test_user_created_inserts_row(client, db):
    body, headers = signed("user.created", clerk_user("u_1", "ada@example.com"))
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 200
    assert response.text == "OK"
    rows = db.rows("users")
    assert len(rows) == 1
    assert rows[0]["clerk_id"] == "u_1"
    assert rows[0]["email"] == "ada@example.com"
    assert rows[0]["is_freelancer"] is False


def test_tampered_payload_is_rejected_without_writes(client, db):
    body, headers = signed("user.created", clerk_user("u_1", "ada@example.com"))
    tampered = body.replace("ada@example.com", "eve@example.com")

    response = client.post(URL, content=tampered, headers=headers)

    assert response.status_code == 400
    assert db.rows("users") == []


def test_missing_svix_headers(client, db):
    body, headers = signed("user.created", clerk_user("u_1", "ada@example.com"))
    del headers["svix-signature"]

    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 400
    assert db.rows("users") == []


def test_wrong_secret_is_rejected(client, db):
    body, headers = signed(
        "user.created", clerk_user("u_1", "ada@example.com"),
        secret="whsec_" + "b3RoZXItc2VjcmV0LWtleS12YWx1ZQ=="
    )
    response = client.post(URL, content=body, headers=headers)
    assert response.status_code == 400


def test_user_updated_keeps_freelancer_flag(client, db):
    db.seed("users", clerk_id="u_1", email="old@example.com", is_freelancer=True)
    body, headers = signed("user.updated", clerk_user("u_1", "new@example.com"))

    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 200
    [row] = db.rows("users")
    assert row["is_freelancer"] is True
    assert row["email"] == "new@example.com"


def test_repeated_user_created_is_idempotent(client, db):
    for _ in range(2):
        body, headers = signed("user.created", clerk_user("u_1", "ada@example.com"))
        assert client.post(URL, content=body, headers=headers).status_code == 200
    assert len(db.rows("users")) == 1


def test_user_deleted_removes_row(client, db):
    db.seed("users", clerk_id="u_1", email="ada@example.com")
    body, headers = signed("user.deleted", {"id": "u_1", "deleted": True})

    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 200
    assert db.rows("users") == []


def test_delete_of_unknown_user_is_a_noop(client, db):
    db.seed("users", clerk_id="u_2", email="bob@example.com")
    body, headers = signed("user.deleted", {"id": "u_missing", "deleted": True})

    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 200
    assert len(db.rows("users")) == 1


def test_store_failure_surfaces_as_500(client, db):
    db.fail_on("users", "upsert")
    body, headers = signed("user.created", clerk_user("u_1", "ada@example.com"))

    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 500


def test_redelivered_user_created_refreshes_email_only(client, db):
    db.seed("users", clerk_id="u_1", email="old@example.com", is_freelancer=True)
    body, headers = signed("user.created", clerk_user("u_1", "new@example.com"))

    assert client.post(URL, content=body, headers=headers).status_code == 200
    [row] = db.rows("users")
    assert row["email"] == "new@example.com"
    assert row["is_freelancer"] is True
    assert row["updated_at"]


def test_missing_secret_is_a_server_error(client, db, monkeypatch):
    from app.config import settings
    body, headers = signed("user.created", clerk_user("u_1", "ada@example.com"))
    monkeypatch.setattr(settings, "clerk_webhook_secret", None)

    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Webhook secret not configured"}
    assert db.rows("users") == []
