"""
Schema-less CRUD surfaces: projects, billing, quotations, events, services.

Each gets the same five routes over its own collection; documents are stored
as sent, with only createdAt stamped by the server.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pymongo import ReturnDocument
from pymongo.database import Database

from database import (
    create_document,
    find_by_identifier,
    get_db,
    get_documents,
    parse_identifier,
    serialize_doc,
    serialize_docs,
    utcnow,
)
from errors import NotFound

COLLECTIONS = ("projects", "billing", "quotations", "events", "services")


def upsert_by_identifier(db: Database, collection_name: str, raw_id: str, fields: Dict[str, Any],
                         touch: bool = False) -> dict:
    """Patch the document `raw_id` names, creating it under that id when none does."""
    collection = db[collection_name]
    updates = {key: value for key, value in fields.items() if key not in ("_id", "createdAt")}
    if touch:
        updates["updatedAt"] = utcnow()
    existing = find_by_identifier(collection, raw_id)
    key = {"_id": existing["_id"]} if existing else parse_identifier(raw_id).upsert_key()
    update = {"$setOnInsert": {"createdAt": utcnow()}}
    if updates:
        update["$set"] = updates
    return collection.find_one_and_update(key, update, upsert=True, return_document=ReturnDocument.AFTER)


def delete_by_identifier(db: Database, collection_name: str, raw_id: str) -> None:
    doc = find_by_identifier(db[collection_name], raw_id)
    if doc is None:
        raise NotFound("Not found")
    db[collection_name].delete_one({"_id": doc["_id"]})


def build_router(collection_name: str) -> APIRouter:
    router = APIRouter()

    @router.get("")
    def list_items(db: Database = Depends(get_db)):
        return serialize_docs(get_documents(db, collection_name, sort=[("createdAt", -1)]))

    @router.post("", status_code=201)
    def create_item(payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
        return serialize_doc(create_document(db, collection_name, payload or {}))

    @router.get("/{item_id}")
    def get_item(item_id: str, db: Database = Depends(get_db)):
        doc = find_by_identifier(db[collection_name], item_id)
        if doc is None:
            raise NotFound("Not found")
        return serialize_doc(doc)

    @router.put("/{item_id}")
    def update_item(item_id: str, payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
        return serialize_doc(upsert_by_identifier(db, collection_name, item_id, payload or {}))

    @router.delete("/{item_id}")
    def delete_item(item_id: str, db: Database = Depends(get_db)):
        delete_by_identifier(db, collection_name, item_id)
        return {"success": True}

    return router
