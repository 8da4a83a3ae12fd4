from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError
from pymongo.database import Database

from database import (
    RawIdentifier,
    create_document,
    find_by_identifier,
    get_db,
    get_documents,
    parse_identifier,
    serialize_doc,
    serialize_docs,
)
from errors import NotFound, ValidationFailed, describe_validation_error
from resources import delete_by_identifier, upsert_by_identifier
from schemas import Policy

router = APIRouter()

POLICIES = "policies"
POLICY_FIELDS = ("id", "content", "group")


@router.get("")
def list_policies(db: Database = Depends(get_db)):
    return serialize_docs(get_documents(db, POLICIES, sort=[("createdAt", -1)]))


@router.post("", status_code=201)
def create_policy(payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
    try:
        policy = Policy(**(payload or {}))
    except ValidationError as e:
        raise ValidationFailed(describe_validation_error(e))
    return serialize_doc(create_document(db, POLICIES, policy.model_dump(exclude_none=True), stamp_updated=True))


@router.get("/{policy_id}")
def get_policy(policy_id: str, db: Database = Depends(get_db)):
    doc = find_by_identifier(db[POLICIES], policy_id)
    if doc is None:
        raise NotFound("Not found")
    return serialize_doc(doc)


@router.put("/{policy_id}")
def update_policy(policy_id: str, payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
    updates = {key: value for key, value in (payload or {}).items() if key in POLICY_FIELDS}
    try:
        Policy(**{"content": "-", **updates})
    except ValidationError as e:
        raise ValidationFailed(describe_validation_error(e))

    # legacy ids are numeric; a free-form string can only name an existing policy
    if isinstance(parse_identifier(policy_id), RawIdentifier) and not find_by_identifier(db[POLICIES], policy_id):
        raise NotFound("Not found")
    return serialize_doc(upsert_by_identifier(db, POLICIES, policy_id, updates, touch=True))


@router.delete("/{policy_id}")
def delete_policy(policy_id: str, db: Database = Depends(get_db)):
    delete_by_identifier(db, POLICIES, policy_id)
    return {"success": True}
