"""
Conversation/message store, mounted under /api/chat.

Conversations live in the `chat` collection; each keeps its messages as an
embedded, ordered `messages` array. Appends use an atomic $push. Edits and
deletes rewrite the array only if it still holds what was read, so a
concurrent change makes the write miss and the edit is retried on fresh data.
"""
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import APIRouter, Body, Depends
from pymongo.database import Database

from database import create_document, find_by_identifier, get_db, serialize_doc, serialize_docs, utcnow
from errors import NotFound, ServerError

logger = logging.getLogger(__name__)

router = APIRouter()

CHAT = "chat"
MAX_REWRITE_ATTEMPTS = 3


def _conversation_or_404(db: Database, conversation_id: str) -> dict:
    doc = find_by_identifier(db[CHAT], conversation_id)
    if doc is None:
        raise NotFound("Conversation not found")
    return doc


def _numeric(value: str) -> Optional[Union[int, float]]:
    # decimal and exponent forms only; hex such as "0x10" is not treated as a number
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def message_matches(message: Any, message_id: str) -> bool:
    """True when `message_id` names the message by its _id or its caller-supplied id."""
    if not isinstance(message, dict):
        return False
    if "_id" in message and str(message["_id"]) == message_id:
        return True
    local_id = message.get("id")
    if local_id is None or isinstance(local_id, bool):
        return False
    if local_id == message_id:
        return True
    numeric = _numeric(message_id)
    return numeric is not None and isinstance(local_id, (int, float)) and local_id == numeric


def list_conversations(db: Database) -> List[dict]:
    cursor = db[CHAT].find({}).sort([("updatedAt", -1), ("createdAt", -1)])
    return list(cursor)


def create_conversation(db: Database, fields: Dict[str, Any]) -> dict:
    return create_document(db, CHAT, fields, stamp_updated=True)


def get_conversation(db: Database, conversation_id: str) -> dict:
    return _conversation_or_404(db, conversation_id)


def update_conversation(db: Database, conversation_id: str, fields: Dict[str, Any]) -> None:
    doc = _conversation_or_404(db, conversation_id)
    updates = {key: value for key, value in fields.items() if key != "_id"}
    updates["updatedAt"] = utcnow()
    result = db[CHAT].update_one({"_id": doc["_id"]}, {"$set": updates})
    if result.matched_count == 0:
        raise NotFound("Conversation not found")


def delete_conversation(db: Database, conversation_id: str) -> None:
    doc = _conversation_or_404(db, conversation_id)
    result = db[CHAT].delete_one({"_id": doc["_id"]})
    if result.deleted_count == 0:
        raise NotFound("Conversation not found")


def list_messages(db: Database, conversation_id: str) -> List[dict]:
    doc = _conversation_or_404(db, conversation_id)
    return doc.get("messages") or []


def append_message(db: Database, conversation_id: str, fields: Dict[str, Any]) -> dict:
    doc = _conversation_or_404(db, conversation_id)
    now = utcnow()
    message = dict(fields)
    message.setdefault("_id", ObjectId())
    message["createdAt"] = now
    result = db[CHAT].update_one(
        {"_id": doc["_id"]},
        {"$push": {"messages": message}, "$set": {"updatedAt": now}},
    )
    if result.matched_count == 0:
        raise NotFound("Conversation not found")
    return message


def _rewrite_message(db: Database, conversation_id: str, message_id: str,
                     rewrite: Callable[[List[dict], int], dict]) -> dict:
    for _ in range(MAX_REWRITE_ATTEMPTS):
        doc = _conversation_or_404(db, conversation_id)
        messages = list(doc.get("messages") or [])
        index = next((i for i, m in enumerate(messages) if message_matches(m, message_id)), None)
        if index is None:
            raise NotFound("Message not found")

        affected = rewrite(messages, index)
        result = db[CHAT].update_one(
            {"_id": doc["_id"], "messages": doc["messages"]},
            {"$set": {"messages": messages, "updatedAt": utcnow()}},
        )
        if result.matched_count:
            return affected
        logger.info("Conversation %s changed while editing message %s, retrying", doc["_id"], message_id)
    raise ServerError("Conversation is being modified concurrently, please retry")


def update_message(db: Database, conversation_id: str, message_id: str, fields: Dict[str, Any]) -> dict:
    updates = {key: value for key, value in fields.items() if key != "_id"}

    def merge(messages, index):
        messages[index] = {**messages[index], **updates, "updatedAt": utcnow()}
        return messages[index]

    return _rewrite_message(db, conversation_id, message_id, merge)


def delete_message(db: Database, conversation_id: str, message_id: str) -> dict:
    return _rewrite_message(db, conversation_id, message_id, lambda messages, index: messages.pop(index))


def clear_messages(db: Database, conversation_id: str) -> None:
    doc = _conversation_or_404(db, conversation_id)
    result = db[CHAT].update_one({"_id": doc["_id"]}, {"$set": {"messages": [], "updatedAt": utcnow()}})
    if result.matched_count == 0:
        raise NotFound("Conversation not found")


def reset_all(db: Database) -> int:
    result = db[CHAT].delete_many({})
    logger.info("Chat reset removed %s conversations", result.deleted_count)
    return result.deleted_count


@router.get("/conversations")
def get_conversations(db: Database = Depends(get_db)):
    return serialize_docs(list_conversations(db))


@router.post("/conversations", status_code=201)
def post_conversation(payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
    return serialize_doc(create_conversation(db, payload or {}))


@router.get("/conversations/{conversation_id}")
def get_conversation_route(conversation_id: str, db: Database = Depends(get_db)):
    return serialize_doc(get_conversation(db, conversation_id))


@router.put("/conversations/{conversation_id}")
def put_conversation(conversation_id: str, payload: Optional[Dict[str, Any]] = Body(None),
                     db: Database = Depends(get_db)):
    update_conversation(db, conversation_id, payload or {})
    return {"message": "Conversation updated"}


@router.delete("/conversations/{conversation_id}")
def delete_conversation_route(conversation_id: str, db: Database = Depends(get_db)):
    delete_conversation(db, conversation_id)
    return {"message": "Conversation deleted"}


@router.get("/conversations/{conversation_id}/messages")
def get_messages(conversation_id: str, db: Database = Depends(get_db)):
    return serialize_docs(list_messages(db, conversation_id))


@router.post("/conversations/{conversation_id}/messages", status_code=201)
def post_message(conversation_id: str, payload: Optional[Dict[str, Any]] = Body(None),
                 db: Database = Depends(get_db)):
    return serialize_doc(append_message(db, conversation_id, payload or {}))


@router.delete("/conversations/{conversation_id}/messages")
def delete_messages(conversation_id: str, db: Database = Depends(get_db)):
    clear_messages(db, conversation_id)
    return {"message": "All messages deleted"}


@router.put("/conversations/{conversation_id}/messages/{message_id}")
def put_message(conversation_id: str, message_id: str, payload: Optional[Dict[str, Any]] = Body(None),
                db: Database = Depends(get_db)):
    update_message(db, conversation_id, message_id, payload or {})
    return {"message": "Message updated"}


@router.delete("/conversations/{conversation_id}/messages/{message_id}")
def delete_message_route(conversation_id: str, message_id: str, db: Database = Depends(get_db)):
    delete_message(db, conversation_id, message_id)
    return {"message": "Message deleted"}


@router.post("/reset")
def reset_chats(db: Database = Depends(get_db)):
    reset_all(db)
    return {"message": "All chats reset"}
