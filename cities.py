"""Per-city shipping fees for desk pickup and home delivery."""
from typing import Any, Dict, List

import structlog
from pymongo import ASCENDING
from pymongo.database import Database

from database import get_documents, now, serialize_doc, to_object_id
from errors import BadRequest
from schemas import City

logger = structlog.get_logger(__name__)

ALGERIAN_CITIES = [
    "Adrar", "Chlef", "Laghouat", "Oum El Bouaghi", "Batna", "Béjaïa", "Biskra", "Béchar", "Blida", "Bouira",
    "Tamanrasset", "Tébessa", "Tlemcen", "Tiaret", "Tizi Ouzou", "Algiers", "Djelfa", "Jijel", "Sétif", "Saïda",
    "Skikda", "Sidi Bel Abbès", "Annaba", "Guelma", "Constantine", "Médéa", "Mostaganem", "M'Sila", "Mascara", "Ouargla",
    "Oran", "El Bayadh", "Illizi", "Bordj Bou Arreridj", "Boumerdès", "El Tarf", "Tindouf", "Tissemsilt", "El Oued", "Khenchela",
    "Souk Ahras", "Tipaza", "Mila", "Aïn Defla", "Naâma", "Aïn Témouchent", "Ghardaïa", "Relizane", "Timimoun", "Bordj Badji Mokhtar",
    "Ouled Djellal", "Bél Abbès", "In Salah", "In Guezzam", "Touggourt", "Djanet", "El M'Ghair", "El Meniaa",
]


def coerce_fee(value: Any) -> int:
    """Parse a fee the way a lenient form would: junk becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        fee = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(fee, 0)


def initialize(db: Database) -> Dict[str, Any]:
    count = db["city"].count_documents({})
    if count:
        logger.debug("cities_already_initialized", count=count)
        return {"initialized": False, "count": count}

    stamp = now()
    result = db["city"].insert_many([
        {**City(name=name).model_dump(by_alias=True), "created_at": stamp, "updated_at": stamp}
        for name in ALGERIAN_CITIES
    ])
    inserted = len(result.inserted_ids)
    logger.info("cities_initialized", count=inserted)
    return {"initialized": True, "count": inserted}


def list_all(db: Database) -> List[Dict[str, Any]]:
    cities = get_documents(db, "city", sort=[("name", ASCENDING)])
    return [serialize_doc(c) for c in cities]


def update_fees(db: Database, updates: Any) -> List[Dict[str, Any]]:
    if not isinstance(updates, list):
        raise BadRequest("Invalid request format")

    changes = []
    for update in updates:
        if not isinstance(update, dict):
            raise BadRequest("Invalid request format")
        raw_id = update.get("id", update.get("_id"))
        city_id = to_object_id(raw_id)
        if city_id is None:
            raise BadRequest(f"Invalid city ID: {raw_id}")
        changes.append((city_id, {
            "desktopFee": coerce_fee(update.get("desktopFee")),
            "houseFee": coerce_fee(update.get("houseFee")),
        }))

    matched = 0
    for city_id, fees in changes:
        result = db["city"].update_one({"_id": city_id}, {"$set": {**fees, "updated_at": now()}})
        matched += result.matched_count
    if changes:
        logger.info("city_fees_updated", matched=matched)
    return list_all(db)
