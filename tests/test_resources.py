"""Tests for the schema-less collections, policies and settings."""

import pytest
from bson import ObjectId

import database


class TestIdentifiers:
    def test_object_id_first(self):
        raw = "65a1f0c2e4b0a1b2c3d4e5f6"
        candidates = database.identifier_candidates(raw)
        assert isinstance(candidates[0], database.ObjectIdentifier)
        assert candidates[0].query() == {"_id": ObjectId(raw)}
        assert isinstance(candidates[1], database.RawIdentifier)

    def test_numeric(self):
        candidates = database.identifier_candidates("12")
        assert candidates == [database.LocalIdentifier(12, "12")]
        assert candidates[0].query() == {"$or": [{"id": 12}, {"id": "12"}]}
        assert candidates[0].upsert_key() == {"id": 12}

    def test_numeric_keeps_the_text_sent(self):
        candidates = database.identifier_candidates("007")
        assert candidates == [database.LocalIdentifier(7, "007")]
        assert candidates[0].query() == {"$or": [{"id": 7}, {"id": "007"}]}
        assert database.parse_identifier("+5").query() == {"$or": [{"id": 5}, {"id": "+5"}]}

    def test_all_digit_object_id_falls_back_to_local(self):
        candidates = database.identifier_candidates("123456789012345678901234")
        assert [type(c) for c in candidates] == [database.ObjectIdentifier, database.LocalIdentifier]

    def test_raw(self):
        assert database.parse_identifier("summer-2025") == database.RawIdentifier("summer-2025")


@pytest.mark.parametrize("collection", ["projects", "billing", "quotations", "events", "services"])
class TestGenericCollections:
    def test_crud_cycle(self, client, collection):
        created = client.post(f"/api/{collection}", json={"name": "Sharma wedding", "amount": 1200})
        assert created.status_code == 201
        doc = created.json()
        assert doc["_id"] and "createdAt" in doc

        path = f"/api/{collection}/{doc['_id']}"
        assert client.get(path).json()["name"] == "Sharma wedding"

        updated = client.put(path, json={"name": "Sharma reception"})
        assert updated.status_code == 200
        assert updated.json()["name"] == "Sharma reception"
        assert updated.json()["amount"] == 1200

        assert client.delete(path).json() == {"success": True}
        assert client.get(path).status_code == 404

    def test_list_newest_first(self, client, db, collection):
        db[collection].insert_many([
            {"name": "older", "createdAt": database.utcnow().replace(year=2020)},
            {"name": "newer", "createdAt": database.utcnow()},
        ])
        names = [d["name"] for d in client.get(f"/api/{collection}").json()]
        assert names == ["newer", "older"]


class TestLegacyIds:
    def test_get_by_local_id(self, client, db):
        db["projects"].insert_one({"id": 3, "name": "seeded"})
        assert client.get("/api/projects/3").json()["name"] == "seeded"

    def test_get_by_padded_local_id(self, client, db):
        db["projects"].insert_one({"id": "007", "name": "padded"})
        assert client.get("/api/projects/007").json()["name"] == "padded"
        assert client.delete("/api/projects/007").status_code == 200
        assert db["projects"].count_documents({}) == 0

    def test_put_upserts_by_local_id(self, client, db):
        response = client.put("/api/events/77", json={"title": "Mehendi"})
        assert response.status_code == 200
        assert response.json()["id"] == 77
        assert response.json()["title"] == "Mehendi"
        assert "createdAt" in response.json()
        assert db["events"].count_documents({"id": 77}) == 1

    def test_delete_missing(self, client):
        response = client.delete("/api/projects/65a1f0c2e4b0a1b2c3d4e5f6")
        assert response.status_code == 404


class TestPolicy:
    def test_create_defaults_group(self, client):
        response = client.post("/api/policy", json={"content": "50% advance to confirm booking"})
        assert response.status_code == 201
        data = response.json()
        assert data["group"] == "Uncategorized"
        assert "createdAt" in data and "updatedAt" in data

    def test_content_required(self, client):
        response = client.post("/api/policy", json={"group": "Payments"})
        assert response.status_code == 400
        assert "content" in response.json()["message"]

    def test_numeric_fallback(self, client, db):
        db["policies"].insert_one({"id": 5, "content": "No refunds", "group": "Payments"})
        assert client.get("/api/policy/5").json()["content"] == "No refunds"

        updated = client.put("/api/policy/5", json={"content": "Refunds within 7 days"})
        assert updated.json()["content"] == "Refunds within 7 days"
        assert db["policies"].count_documents({}) == 1

        assert client.delete("/api/policy/5").status_code == 200
        assert client.get("/api/policy/5").status_code == 404

    def test_put_upserts_unknown_numeric_id(self, client, db):
        response = client.put("/api/policy/9", json={"content": "Travel billed separately"})
        assert response.status_code == 200
        assert db["policies"].find_one({"id": 9})["content"] == "Travel billed separately"

    def test_put_unknown_string_id(self, client):
        response = client.put("/api/policy/whatever", json={"content": "x"})
        assert response.status_code == 404


class TestSettings:
    def test_first_document_or_empty(self, client, db):
        assert client.get("/api/settings").json() == {}
        db["settings"].insert_one({"studioName": "Mivent"})
        assert client.get("/api/settings").json()["studioName"] == "Mivent"

    def test_upsert_by_id(self, client):
        response = client.put("/api/settings/1", json={"currency": "INR"})
        assert response.status_code == 200
        assert client.get("/api/settings/1").json()["currency"] == "INR"

        doc_id = response.json()["_id"]
        client.put(f"/api/settings/{doc_id}", json={"currency": "USD"})
        assert client.get("/api/settings").json()["currency"] == "USD"

    def test_missing(self, client):
        assert client.get("/api/settings/65a1f0c2e4b0a1b2c3d4e5f6").status_code == 404
