import pytest

OFFER = {
    "title": "Logo design",
    "description": "A new logo",
    "price": 120,
    "time_estimate": "3 days",
    "form_type": "commercial",
}


@pytest.fixture
def thread(client, make_user):
    client_user, client_auth = make_user("carol")
    freelancer, freelancer_auth = make_user("dave", is_freelancer=True)
    first = client.post(
        "/api/v1/messages", json={"receiver_id": client_user["id"], "content": "hello"}, headers=freelancer_auth
    )
    return {
        "conversation_id": first.json()["conversation_id"],
        "client": client_user,
        "client_auth": client_auth,
        "freelancer": freelancer,
        "freelancer_auth": freelancer_auth,
    }


def create_offer(client, thread, **overrides):
    return client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/offers",
        json={**OFFER, **overrides},
        headers=thread["freelancer_auth"]
    )


def test_offer_creates_pending_form_and_form_message(client, db, thread):
    response = create_offer(client, thread)

    assert response.status_code == 201
    offer = response.json()
    assert offer["status"] == "pending"
    assert offer["receiver_id"] == thread["client"]["id"]
    form_messages = [m for m in db.rows("messages") if m["message_type"] == "form"]
    assert len(form_messages) == 1
    assert form_messages[0]["form_id"] == offer["id"]


@pytest.mark.parametrize("override", [{"price": 0}, {"title": "   "}, {"time_estimate": ""}])
def test_offer_validation(client, db, thread, override):
    assert create_offer(client, thread, **override).status_code == 422
    assert db.rows("forms") == []


def test_outsider_cannot_send_offer(client, thread, make_user):
    _, outsider_auth = make_user("mallory")
    response = client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/offers", json=OFFER, headers=outsider_auth
    )
    assert response.status_code == 403


def test_only_receiver_responds_and_only_once(client, thread):
    offer_id = create_offer(client, thread).json()["id"]
    url = f"/api/v1/offers/{offer_id}/respond"

    assert client.post(url, json={"status": "accepted"}, headers=thread["freelancer_auth"]).status_code == 403
    accepted = client.post(url, json={"status": "accepted"}, headers=thread["client_auth"])
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["responded_at"] is not None
    assert client.post(url, json={"status": "refused"}, headers=thread["client_auth"]).status_code == 409


def test_delivery_uploads_files_and_marks_form(client, db, thread):
    offer_id = create_offer(client, thread).json()["id"]
    client.post(f"/api/v1/offers/{offer_id}/respond", json={"status": "accepted"}, headers=thread["client_auth"])

    response = client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/delivery",
        data={"notes": "Final files", "url": "https://drive.test/x"},
        files=[("files", ("logo.svg", b"<svg/>", "image/svg+xml")), ("files", ("logo.png", b"png", "image/png"))],
        headers=thread["freelancer_auth"]
    )

    assert response.status_code == 200
    body = response.json()
    assert body["form"]["project_submitted"] is True
    assert body["form"]["project_notes"] == "Final files"
    assert len(body["files"]) == 2
    assert body["files"][0]["file_path"].startswith(f"{thread['freelancer']['id']}/{offer_id}_")
    assert len(db.objects["project_submissions"]) == 2
    notice = db.rows("messages")[-1]
    assert notice["content"].startswith("Project delivered! (2 files)")
    assert notice["receiver_id"] == thread["client"]["id"]

    again = client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/delivery",
        data={"notes": "again"},
        headers=thread["freelancer_auth"]
    )
    assert again.status_code == 409


def test_delivery_needs_an_accepted_form(client, thread):
    create_offer(client, thread)
    response = client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/delivery",
        data={"notes": "early"},
        headers=thread["freelancer_auth"]
    )
    assert response.status_code == 404


def test_delivery_prefers_commercial_form(client, db, thread):
    proposal_id = create_offer(client, thread, form_type="proposal").json()["id"]
    commercial_id = create_offer(client, thread).json()["id"]
    for form_id in (proposal_id, commercial_id):
        client.post(f"/api/v1/offers/{form_id}/respond", json={"status": "accepted"}, headers=thread["client_auth"])

    body = client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/delivery",
        data={"notes": "done"},
        headers=thread["freelancer_auth"]
    ).json()

    assert body["form"]["id"] == commercial_id


def test_file_row_failure_removes_object(client, db, thread):
    offer_id = create_offer(client, thread).json()["id"]
    client.post(f"/api/v1/offers/{offer_id}/respond", json={"status": "accepted"}, headers=thread["client_auth"])
    db.fail_on("project_files", "insert")

    response = client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/delivery",
        files=[("files", ("logo.png", b"png", "image/png"))],
        headers=thread["freelancer_auth"]
    )

    assert response.status_code == 500
    assert db.objects["project_submissions"] == {}
    [form] = db.rows("forms")
    assert form["project_submitted"] is False


def test_project_files_have_signed_urls(client, thread):
    offer_id = create_offer(client, thread).json()["id"]
    client.post(f"/api/v1/offers/{offer_id}/respond", json={"status": "accepted"}, headers=thread["client_auth"])
    client.post(
        f"/api/v1/conversations/{thread['conversation_id']}/delivery",
        files=[("files", ("logo.png", b"png", "image/png"))],
        headers=thread["freelancer_auth"]
    )

    [entry] = client.get(f"/api/v1/offers/{offer_id}/files", headers=thread["client_auth"]).json()

    assert entry["file_name"] == "logo.png"
    assert entry["url"].endswith("expires=300")
