"""
Database helpers for the Onyxia backend.

Collections (one per schema in schemas.py):
- product, order, city, language, session
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import Settings

logger = structlog.get_logger(__name__)


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url)
    logger.info("database_client_created", database=settings.database_name)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    """Create the unique and TTL indexes the services rely on."""
    db["order"].create_index([("orderId", ASCENDING)], unique=True)
    db["order"].create_index([("status", ASCENDING)])
    db["city"].create_index([("name", ASCENDING)], unique=True)
    db["language"].create_index([("key", ASCENDING)], unique=True)
    db["session"].create_index([("sid", ASCENDING)], unique=True)
    # sessions are purged by mongo once expires_at has passed
    db["session"].create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)


def now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Mongo hands back naive datetimes unless the client is tz aware."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string, returning None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def create_document(db: Database, collection: str, data: Dict[str, Any]) -> str:
    """Insert a document stamped with created_at/updated_at, return its id."""
    stamp = now()
    doc = {**data, "created_at": stamp, "updated_at": stamp}
    result = db[collection].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[tuple]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
    return d


def get_db(request: Request) -> Database:
    """FastAPI dependency returning the database bound at startup."""
    return request.app.state.db
