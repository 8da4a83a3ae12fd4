"""
Document store adapter.

Wraps a pymongo database: the module-level `db` handle, a FastAPI dependency
that hands it to routes, timestamp/insert helpers, and the single place where
a caller-supplied identifier is turned into a store query.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

import config
from errors import ServerError

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None

if config.DATABASE_URL and config.DATABASE_NAME:
    client = MongoClient(
        config.DATABASE_URL,
        serverSelectionTimeoutMS=config.DB_TIMEOUT_MS,
        socketTimeoutMS=config.DB_TIMEOUT_MS,
    )
    db = client[config.DATABASE_NAME]
else:
    logger.warning("DATABASE_URL/DATABASE_NAME not set; document store disabled")


def get_db() -> Database:
    if db is None:
        raise ServerError("Database not configured")
    return db


def ensure_indexes(database: Database) -> None:
    database["users"].create_index("email", unique=True)
    database["teammembers"].create_index("email", unique=True)


def utcnow() -> datetime:
    # naive UTC at millisecond precision: exactly what the store hands back
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000, tzinfo=None)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict],
                    stamp_updated: bool = False) -> dict:
    """Insert a document stamped with createdAt and return it with its _id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = dict(data)
    data_dict.pop("_id", None)
    data_dict["createdAt"] = utcnow()
    if stamp_updated:
        data_dict["updatedAt"] = data_dict["createdAt"]
    result = database[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return data_dict


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  sort: Optional[list] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


# Identifiers: a path segment may name a document by its store-generated
# ObjectId, by a legacy numeric "id" field, or by an arbitrary string "id".

_NUMERIC = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class ObjectIdentifier:
    value: ObjectId

    def query(self) -> dict:
        return {"_id": self.value}

    def upsert_key(self) -> dict:
        return {"_id": self.value}


@dataclass(frozen=True)
class LocalIdentifier:
    value: int
    raw: str

    def query(self) -> dict:
        # seeded documents store the local id either as a number or as the text sent
        return {"$or": [{"id": self.value}, {"id": self.raw}]}

    def upsert_key(self) -> dict:
        return {"id": self.value}


@dataclass(frozen=True)
class RawIdentifier:
    value: str

    def query(self) -> dict:
        return {"id": self.value}

    def upsert_key(self) -> dict:
        return {"id": self.value}


Identifier = Union[ObjectIdentifier, LocalIdentifier, RawIdentifier]


def identifier_candidates(raw: str) -> List[Identifier]:
    """Every form `raw` may denote, in lookup precedence order."""
    candidates: List[Identifier] = []
    if ObjectId.is_valid(raw):
        candidates.append(ObjectIdentifier(ObjectId(raw)))
    if _NUMERIC.match(raw):
        candidates.append(LocalIdentifier(int(raw), raw))
    else:
        candidates.append(RawIdentifier(raw))
    return candidates


def parse_identifier(raw: str) -> Identifier:
    return identifier_candidates(raw)[0]


def find_by_identifier(collection: Collection, raw: str) -> Optional[dict]:
    """Object id first, then local numeric id, then raw string id."""
    for candidate in identifier_candidates(raw):
        doc = collection.find_one(candidate.query())
        if doc is not None:
            return doc
    return None


def serialize_doc(value: Any) -> Any:
    """Make a stored document JSON-friendly (ObjectId -> str)."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: serialize_doc(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_doc(item) for item in value]
    return value


def serialize_docs(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_doc(doc) for doc in docs]
