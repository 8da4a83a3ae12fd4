"""
Team members and the payments owed to them, mounted under /api/team.
Every route requires a bearer token.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, find_by_identifier, get_db, get_documents, serialize_doc, serialize_docs, utcnow
from errors import Conflict, NotFound, ValidationFailed, describe_validation_error
from schemas import TeamMember
from security import get_current_user

router = APIRouter(dependencies=[Depends(get_current_user)])

TEAM = "teammembers"
MEMBER_FIELDS = ("name", "role", "phone", "email", "avatar", "payments")
DUPLICATE_EMAIL = "A team member with this email already exists"


def normalize_member_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {key: value for key, value in fields.items() if key in MEMBER_FIELDS}
    for key in ("name", "role", "phone"):
        if isinstance(normalized.get(key), str):
            normalized[key] = normalized[key].strip()
    if isinstance(normalized.get("email"), str):
        normalized["email"] = normalized["email"].strip().lower()
    return normalized


def validate_member(fields: Dict[str, Any]) -> Dict[str, Any]:
    try:
        member = TeamMember(**fields)
    except ValidationError as e:
        raise ValidationFailed(describe_validation_error(e))
    return member.model_dump(by_alias=True)


def _member_or_404(db: Database, member_id: str) -> dict:
    doc = find_by_identifier(db[TEAM], member_id)
    if doc is None:
        raise NotFound("Team member not found")
    return doc


def create_member(db: Database, fields: Dict[str, Any]) -> dict:
    fields = normalize_member_fields(fields)
    if not fields.get("name") or not fields.get("role") or not fields.get("email"):
        raise ValidationFailed("Name, role, and email are required")
    if db[TEAM].find_one({"email": fields["email"]}):
        raise Conflict(DUPLICATE_EMAIL)

    member = validate_member(fields)
    try:
        return create_document(db, TEAM, member, stamp_updated=True)
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_EMAIL)


def update_member(db: Database, member_id: str, fields: Dict[str, Any]) -> dict:
    existing = _member_or_404(db, member_id)
    updates = normalize_member_fields(fields)

    if updates.get("email"):
        clash = db[TEAM].find_one({"email": updates["email"], "_id": {"$ne": existing["_id"]}})
        if clash:
            raise Conflict(DUPLICATE_EMAIL)

    current = {key: existing[key] for key in MEMBER_FIELDS if key in existing}
    validated = validate_member({**current, **updates})
    changes = {key: validated[key] for key in updates}
    changes["updatedAt"] = utcnow()

    try:
        updated = db[TEAM].find_one_and_update(
            {"_id": existing["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_EMAIL)
    if updated is None:
        raise NotFound("Team member not found")
    return updated


def delete_member(db: Database, member_id: str) -> None:
    existing = _member_or_404(db, member_id)
    db[TEAM].delete_one({"_id": existing["_id"]})


@router.get("")
def list_members(db: Database = Depends(get_db)):
    return serialize_docs(get_documents(db, TEAM, sort=[("name", 1)]))


@router.post("", status_code=201)
def post_member(payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
    return serialize_doc(create_member(db, payload or {}))


@router.get("/{member_id}")
def get_member(member_id: str, db: Database = Depends(get_db)):
    return serialize_doc(_member_or_404(db, member_id))


@router.put("/{member_id}")
def put_member(member_id: str, payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
    return serialize_doc(update_member(db, member_id, payload or {}))


@router.delete("/{member_id}")
def delete_member_route(member_id: str, db: Database = Depends(get_db)):
    delete_member(db, member_id)
    return {"message": "Team member deleted successfully"}
