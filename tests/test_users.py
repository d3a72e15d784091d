def test_me_uses_profile_display_name(client, db, make_user):
    alice, auth = make_user("alice", is_freelancer=True)
    db.seed("freelancer_profiles", user_id=alice["id"], first_name="Alice", last_name="Doe")

    body = client.get("/api/v1/users/me", headers=auth).json()

    assert body["id"] == alice["id"]
    assert body["display_name"] == "Alice Doe"
    assert body["avatar_url"] is None


def test_avatar_upload_records_exact_path(client, db, make_user):
    alice, auth = make_user("alice")

    response = client.post(
        "/api/v1/users/me/avatar", files={"file": ("me.webp", b"img", "image/webp")}, headers=auth
    )

    assert response.status_code == 200
    assert response.json()["avatar_path"] == f"{alice['id']}/avatar.webp"
    assert alice["avatar_path"] == f"{alice['id']}/avatar.webp"
    assert alice["avatar_content_type"] == "image/webp"
    assert response.json()["avatar_url"].startswith("https://storage.test/avatars/")


def test_avatar_replacement_removes_previous_object(client, db, make_user):
    alice, auth = make_user("alice")
    client.post("/api/v1/users/me/avatar", files={"file": ("me.png", b"1", "image/png")}, headers=auth)
    client.post("/api/v1/users/me/avatar", files={"file": ("me.jpg", b"2", "image/jpeg")}, headers=auth)

    assert list(db.objects["avatars"]) == [f"{alice['id']}/avatar.jpg"]


def test_avatar_rejects_non_images_and_large_files(client, make_user, monkeypatch):
    from app.config import settings
    _, auth = make_user("alice")

    wrong_type = client.post(
        "/api/v1/users/me/avatar", files={"file": ("cv.pdf", b"pdf", "application/pdf")}, headers=auth
    )
    assert wrong_type.status_code == 400

    monkeypatch.setattr(settings, "max_avatar_size", 2)
    too_big = client.post("/api/v1/users/me/avatar", files={"file": ("me.png", b"123", "image/png")}, headers=auth)
    assert too_big.status_code == 413


def test_search_shows_the_opposite_side(client, db, make_user):
    _, client_auth = make_user("carol")
    make_user("dave", is_freelancer=True)
    make_user("erin")

    emails = [u["email"] for u in client.get("/api/v1/users/search", headers=client_auth).json()]

    assert emails == ["dave@example.com"]


def test_search_matches_profile_names(client, db, make_user):
    _, client_auth = make_user("carol")
    dave, _ = make_user("dave", is_freelancer=True)
    db.seed("freelancer_profiles", user_id=dave["id"], display_name="Pixel Wizard")

    results = client.get("/api/v1/users/search", params={"q": "wizard"}, headers=client_auth).json()

    assert [u["id"] for u in results] == [dave["id"]]
    assert results[0]["full_name"] == "Pixel Wizard"


def test_search_by_email(client, make_user):
    _, freelancer_auth = make_user("dave", is_freelancer=True)
    carol, _ = make_user("carol")
    make_user("chris")

    results = client.get("/api/v1/users/search", params={"q": "carol"}, headers=freelancer_auth).json()

    assert [u["id"] for u in results] == [carol["id"]]
