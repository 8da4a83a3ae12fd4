"""Tests for conversations and their embedded messages."""

from datetime import datetime, timedelta

import pytest

import chat
from chat import message_matches


@pytest.fixture
def conversation(client):
    response = client.post("/api/chat/conversations", json={"title": "Wedding shoot", "client": "Rao family"})
    assert response.status_code == 201
    return response.json()


class TestMessageMatching:
    def test_matches_store_id(self):
        assert message_matches({"_id": "65a1f0c2e4b0a1b2c3d4e5f6"}, "65a1f0c2e4b0a1b2c3d4e5f6")

    def test_matches_numeric_local_id(self):
        assert message_matches({"id": 7}, "7")
        assert message_matches({"id": 7}, "7.0")

    def test_matches_string_local_id(self):
        assert message_matches({"id": "m-7"}, "m-7")

    def test_no_match(self):
        assert not message_matches({"id": 7}, "8")
        assert not message_matches({"id": True}, "1")
        assert not message_matches(None, "1")
        assert not message_matches({"text": "hi"}, "hi")
        assert not message_matches({"id": 16}, "0x10")


class TestConversations:
    def test_create_and_get(self, client, conversation):
        assert conversation["_id"]
        assert conversation["title"] == "Wedding shoot"
        assert "createdAt" in conversation

        response = client.get(f"/api/chat/conversations/{conversation['_id']}")
        assert response.status_code == 200
        assert response.json()["client"] == "Rao family"

    def test_lookup_by_local_id(self, client, db):
        db["chat"].insert_one({"id": 42, "title": "seeded"})
        db["chat"].insert_one({"id": "17", "title": "seeded as text"})
        db["chat"].insert_one({"id": "support", "title": "raw"})

        assert client.get("/api/chat/conversations/42").json()["title"] == "seeded"
        assert client.get("/api/chat/conversations/17").json()["title"] == "seeded as text"
        assert client.get("/api/chat/conversations/support").json()["title"] == "raw"

    def test_lookup_by_padded_local_id(self, client, db):
        db["chat"].insert_one({"id": "007", "title": "padded"})
        db["chat"].insert_one({"id": 5, "title": "signed"})

        assert client.get("/api/chat/conversations/007").json()["title"] == "padded"
        assert client.get("/api/chat/conversations/+5").json()["title"] == "signed"
        assert client.get("/api/chat/conversations/7").status_code == 404

    def test_missing_conversation(self, client):
        response = client.get("/api/chat/conversations/65a1f0c2e4b0a1b2c3d4e5f6")
        assert response.status_code == 404
        assert response.json() == {"message": "Conversation not found"}

    def test_list_orders_by_recent_activity(self, client, db):
        base = datetime(2025, 6, 1, 12, 0)
        db["chat"].insert_many([
            {"title": "old", "createdAt": base, "updatedAt": base},
            {"title": "busy", "createdAt": base, "updatedAt": base + timedelta(hours=2)},
            {"title": "tie-newer", "createdAt": base + timedelta(minutes=5), "updatedAt": base + timedelta(hours=1)},
            {"title": "tie-older", "createdAt": base, "updatedAt": base + timedelta(hours=1)},
        ])
        titles = [c["title"] for c in client.get("/api/chat/conversations").json()]
        assert titles == ["busy", "tie-newer", "tie-older", "old"]

    def test_append_bumps_updated_at(self, client, conversation):
        client.post(f"/api/chat/conversations/{conversation['_id']}/messages", json={"text": "bump"})
        fetched = client.get(f"/api/chat/conversations/{conversation['_id']}").json()
        assert fetched["updatedAt"] >= conversation["updatedAt"]

    def test_update(self, client, conversation):
        response = client.put(f"/api/chat/conversations/{conversation['_id']}", json={"title": "Renamed"})
        assert response.status_code == 200
        fetched = client.get(f"/api/chat/conversations/{conversation['_id']}").json()
        assert fetched["title"] == "Renamed"
        assert fetched["updatedAt"] >= fetched["createdAt"]

    def test_update_missing(self, client):
        response = client.put("/api/chat/conversations/nope", json={"title": "x"})
        assert response.status_code == 404

    def test_delete(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}"
        assert client.delete(path).status_code == 200
        assert client.get(path).status_code == 404
        assert client.delete(path).status_code == 404

    def test_reset_removes_everything(self, client, db, conversation):
        client.post("/api/chat/conversations", json={"title": "another"})
        response = client.post("/api/chat/reset")
        assert response.status_code == 200
        assert db["chat"].count_documents({}) == 0


class TestMessages:
    def test_empty_list(self, client, conversation):
        response = client.get(f"/api/chat/conversations/{conversation['_id']}/messages")
        assert response.status_code == 200
        assert response.json() == []

    def test_messages_for_missing_conversation(self, client):
        response = client.get("/api/chat/conversations/ghost/messages")
        assert response.status_code == 404

    def test_append_keeps_order(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}/messages"
        for n in range(5):
            response = client.post(path, json={"text": f"message {n}"})
            assert response.status_code == 201
            assert response.json()["_id"]
            assert "createdAt" in response.json()

        messages = client.get(path).json()
        assert [m["text"] for m in messages] == [f"message {n}" for n in range(5)]

    def test_append_to_missing_conversation(self, client):
        response = client.post("/api/chat/conversations/ghost/messages", json={"text": "hi"})
        assert response.status_code == 404

    def test_update_message(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}/messages"
        sent = client.post(path, json={"text": "draft"}).json()

        response = client.put(f"{path}/{sent['_id']}", json={"text": "final"})
        assert response.status_code == 200
        message = client.get(path).json()[0]
        assert message["text"] == "final"
        assert message["_id"] == sent["_id"]
        assert "updatedAt" in message

    def test_update_missing_message(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}/messages/404"
        response = client.put(path, json={"text": "x"})
        assert response.status_code == 404
        assert response.json() == {"message": "Message not found"}

    def test_delete_by_store_id_and_by_local_id(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}/messages"
        by_store = client.post(path, json={"text": "one"}).json()
        client.post(path, json={"id": 2, "text": "two"})
        client.post(path, json={"text": "three"})

        assert client.delete(f"{path}/{by_store['_id']}").status_code == 200
        assert client.delete(f"{path}/2").status_code == 200
        assert [m["text"] for m in client.get(path).json()] == ["three"]

    def test_delete_missing_message_leaves_list_unchanged(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}/messages"
        client.post(path, json={"id": 1, "text": "one"})
        before = client.get(path).json()

        for _ in range(2):
            response = client.delete(f"{path}/99")
            assert response.status_code == 404
        assert client.get(path).json() == before

    def test_delete_removes_only_first_duplicate(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}/messages"
        client.post(path, json={"id": 5, "text": "a"})
        client.post(path, json={"id": 5, "text": "b"})

        client.delete(f"{path}/5")
        assert [m["text"] for m in client.get(path).json()] == ["b"]

    def test_clear(self, client, conversation):
        path = f"/api/chat/conversations/{conversation['_id']}/messages"
        client.post(path, json={"text": "one"})
        assert client.delete(path).status_code == 200
        assert client.get(path).json() == []


class TestConcurrentRewrite:
    def test_retries_when_conversation_changes(self, db, monkeypatch):
        conv = chat.create_conversation(db, {"title": "race"})
        chat.append_message(db, str(conv["_id"]), {"id": 1, "text": "one"})

        real_find = chat.find_by_identifier
        calls = {"n": 0}

        def find_then_interfere(collection, raw):
            doc = real_find(collection, raw)
            calls["n"] += 1
            if calls["n"] == 1:
                # another writer appends between our read and our write
                chat.append_message(db, raw, {"id": 2, "text": "two"})
            return doc

        monkeypatch.setattr(chat, "find_by_identifier", find_then_interfere)
        chat.update_message(db, str(conv["_id"]), "1", {"text": "edited"})

        texts = [m["text"] for m in chat.list_messages(db, str(conv["_id"]))]
        assert texts == ["edited", "two"]
