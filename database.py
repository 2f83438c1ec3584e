"""
MongoDB access for the HomeNest API.

A single MongoClient is created lazily per process and shared by every
request. Collection helpers return plain dicts shaped like the driver's
JSON results so handlers can hand them back verbatim.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.server_api import ServerApi

import config

logger = logging.getLogger(__name__)

PROPERTIES = "propertiesCollection"
USERS = "users"
BOOKINGS = "bookings"
REVIEWS = "reviews"
CONTACT = "contact"

_client: Optional[MongoClient] = None
_client_lock = threading.Lock()


def get_client() -> MongoClient:
    global _client
    if _client is None:
        with _client_lock:
            # another request may have connected while we waited
            if _client is None:
                logger.info("Creating MongoDB client for database %s", config.DATABASE_NAME)
                _client = MongoClient(
                    config.MONGODB_URI,
                    server_api=ServerApi("1", strict=True, deprecation_errors=True),
                )
    return _client


def get_db() -> Database:
    return get_client()[config.DATABASE_NAME]


def reset_client() -> None:
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
            logger.info("MongoDB client closed")
        _client = None


def ensure_indexes(db: Database) -> None:
    # email is the natural key for users
    db[USERS].create_index("email", unique=True)
    db[PROPERTIES].create_index([("createdAt", -1)])
    db[BOOKINGS].create_index("userEmail")
    db[REVIEWS].create_index("propertyId")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def id_filter(raw: str) -> Dict[str, Any]:
    """Filter on `_id`; strings that are not ObjectIds simply match nothing."""
    try:
        return {"_id": ObjectId(raw)}
    except (InvalidId, TypeError):
        return {"_id": raw}


def serialize(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])  # stringify
    return doc


def create_document(db: Database, collection_name: str, data) -> dict:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    data_dict.setdefault("createdAt", utcnow())

    result = db[collection_name].insert_one(data_dict)
    return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(d) for d in cursor]


def get_document(db: Database, collection_name: str, filter_dict: dict) -> Optional[dict]:
    return serialize(db[collection_name].find_one(filter_dict))


def update_document(db: Database, collection_name: str, filter_dict: dict, updates: dict) -> dict:
    result = db[collection_name].update_one(filter_dict, {"$set": updates}, upsert=False)
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
        "upsertedId": str(result.upserted_id) if result.upserted_id is not None else None,
    }


def delete_document(db: Database, collection_name: str, filter_dict: dict) -> dict:
    result = db[collection_name].delete_one(filter_dict)
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}
