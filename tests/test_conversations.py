from postgrest.exceptions import APIError

from app.modules.conversations.service import ConversationService


def test_start_conversation_is_order_independent(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, bob_auth = make_user("bob", is_freelancer=True)

    first = client.post("/api/v1/conversations", json={"other_user_id": bob["id"]}, headers=alice_auth)
    second = client.post("/api/v1/conversations", json={"other_user_id": alice["id"]}, headers=bob_auth)

    assert first.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    [row] = db.rows("conversations")
    assert row["user1_id"] < row["user2_id"]


def test_start_conversation_with_self_is_rejected(client, make_user):
    alice, alice_auth = make_user("alice")
    response = client.post("/api/v1/conversations", json={"other_user_id": alice["id"]}, headers=alice_auth)
    assert response.status_code == 400


def test_start_conversation_with_unknown_user(client, make_user):
    _, alice_auth = make_user("alice")
    response = client.post("/api/v1/conversations", json={"other_user_id": "nobody"}, headers=alice_auth)
    assert response.status_code == 404


def test_losing_a_creation_race_returns_the_winner(db):
    service = ConversationService(db)
    winner = db.seed("conversations", user1_id="a", user2_id="b")
    lookups = []
    real_find = service.find_by_pair

    def find_after_race(user1_id, user2_id):
        # The first lookup runs before the concurrent insert lands
        lookups.append((user1_id, user2_id))
        return None if len(lookups) == 1 else real_find(user1_id, user2_id)

    service.find_by_pair = find_after_race

    assert service.start_conversation("b", "a") == winner["id"]
    assert len(db.rows("conversations")) == 1
    assert len(lookups) == 2


def test_unique_violation_is_raised_by_the_store(db):
    db.seed("conversations", user1_id="a", user2_id="b")
    try:
        db.table("conversations").insert({"user1_id": "a", "user2_id": "b"}).execute()
    except APIError as e:
        assert e.code == "23505"
    else:
        raise AssertionError("duplicate pair was accepted")


def test_list_conversations_orders_by_latest_activity(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, _ = make_user("bob", is_freelancer=True)
    carol, _ = make_user("carol", is_freelancer=True)

    client.post("/api/v1/messages", json={"receiver_id": bob["id"], "content": "hi bob"}, headers=alice_auth)
    client.post("/api/v1/messages", json={"receiver_id": carol["id"], "content": "hi carol"}, headers=alice_auth)
    client.post("/api/v1/messages", json={"receiver_id": bob["id"], "content": "again"}, headers=alice_auth)

    response = client.get("/api/v1/conversations", headers=alice_auth)

    assert response.status_code == 200
    summaries = response.json()
    assert [s["participant"]["id"] for s in summaries] == [bob["id"], carol["id"]]
    assert summaries[0]["last_message"]["content"] == "again"
    assert summaries[0]["unread_count"] == 0


def test_list_conversations_counts_unread_for_receiver(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, bob_auth = make_user("bob", is_freelancer=True)

    client.post("/api/v1/messages", json={"receiver_id": bob["id"], "content": "one"}, headers=alice_auth)
    client.post("/api/v1/messages", json={"receiver_id": bob["id"], "content": "two"}, headers=alice_auth)

    [summary] = client.get("/api/v1/conversations", headers=bob_auth).json()
    assert summary["unread_count"] == 2
    assert summary["participant"]["full_name"] == "alice"
