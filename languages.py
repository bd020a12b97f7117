"""Translation strings keyed by identifier, in English and Arabic."""
from typing import Any, Dict, List

import structlog
from pymongo import ASCENDING
from pymongo.database import Database

from database import get_documents, now, serialize_doc
from errors import BadRequest
from schemas import Language

logger = structlog.get_logger(__name__)


def list_entries(db: Database) -> List[Dict[str, Any]]:
    return [serialize_doc(e) for e in get_documents(db, "language", sort=[("key", ASCENDING)])]


def upsert_entries(db: Database, entries: Any) -> List[Dict[str, Any]]:
    if not isinstance(entries, list):
        raise BadRequest("Invalid request format")

    languages = []
    for entry in entries:
        key = str(entry.get("key") or "").strip() if isinstance(entry, dict) else ""
        if not key:
            raise BadRequest("Every language entry needs a key")
        languages.append(Language(key=key, en=str(entry.get("en") or ""), ar=str(entry.get("ar") or "")))

    upserted = modified = 0
    for language in languages:
        stamp = now()
        result = db["language"].update_one(
            {"key": language.key},
            {
                "$set": {"en": language.en, "ar": language.ar, "updated_at": stamp},
                "$setOnInsert": {"created_at": stamp},
            },
            upsert=True,
        )
        upserted += 1 if result.upserted_id is not None else 0
        modified += result.modified_count
    if languages:
        logger.info("language_entries_saved", upserted=upserted, modified=modified)
    return list_entries(db)
