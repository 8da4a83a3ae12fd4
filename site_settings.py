"""
Deployment settings. A single schema-less document is expected; GET without
an id returns the first one found (or an empty object).
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pymongo.database import Database

from database import find_by_identifier, get_db, serialize_doc
from errors import NotFound
from resources import upsert_by_identifier

router = APIRouter()

SETTINGS = "settings"


@router.get("")
def get_first_settings(db: Database = Depends(get_db)):
    doc = db[SETTINGS].find_one({})
    return serialize_doc(doc) if doc else {}


@router.get("/{settings_id}")
def get_settings(settings_id: str, db: Database = Depends(get_db)):
    doc = find_by_identifier(db[SETTINGS], settings_id)
    if doc is None:
        raise NotFound("Not found")
    return serialize_doc(doc)


@router.put("/{settings_id}")
def put_settings(settings_id: str, payload: Optional[Dict[str, Any]] = Body(None), db: Database = Depends(get_db)):
    return serialize_doc(upsert_by_identifier(db, SETTINGS, settings_id, payload or {}, touch=True))
