"""
Product catalog.

Admin forms send loosely typed bodies: stock may be a number, a numeric
string or a {"quantity": ...} object, and image lists may be a single string,
a list or a JSON encoded list. Everything is normalized into the Product shape
before validation.
"""
import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database

from database import create_document, get_documents, now, serialize_doc, to_object_id
from errors import NotFound, ValidationError
from schemas import Product, StockStatus

logger = structlog.get_logger(__name__)

UPLOADS_PREFIX = "/uploads/"


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        value = value.strip()
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "on", "yes")
    return bool(value)


def normalize_stock(value: Any) -> Dict[str, Any]:
    """Return {"quantity", "status"} with status derived from quantity."""
    if isinstance(value, dict):
        value = value.get("quantity")
    quantity = max(_to_int(value), 0)
    status = StockStatus.available if quantity > 0 else StockStatus.unavailable
    return {"quantity": quantity, "status": status.value}


def normalize_image_path(image: str) -> str:
    image = image.strip()
    if image.startswith(("data:", "http://", "https://", "/")):
        return image
    return UPLOADS_PREFIX + image


def normalize_images(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                value = json.loads(text)
            except ValueError:
                value = [text]
        else:
            value = [text]
    if not isinstance(value, list):
        raise ValidationError(
            "Validation failed", fields={"additionalImages": "must be a list of image references"}
        )
    return [normalize_image_path(str(img)) for img in value if str(img).strip()]


def _parse_id(product_id: str) -> ObjectId:
    oid = to_object_id(product_id)
    if oid is None:
        raise ValidationError(f"Invalid product ID format: {product_id}")
    return oid


def _validate(doc: Dict[str, Any]) -> None:
    errors = {}
    if not str(doc.get("name") or "").strip():
        errors["name"] = "Product name is required"
    price = doc.get("price")
    if price is None or price <= 0:
        errors["price"] = "Valid price is required"
    if not str(doc.get("description") or "").strip():
        errors["description"] = "Description is required"
    if errors:
        raise ValidationError("Validation failed", fields=errors)


def _apply_fields(doc: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay the supplied body fields onto doc, normalizing as we go."""
    for key in ("name", "description", "smallDescription"):
        if key in data:
            doc[key] = str(data[key] if data[key] is not None else "").strip()
    if "price" in data:
        doc["price"] = _to_float(data["price"])

    # keep existing images unless replacements are supplied
    if data.get("image"):
        doc["image"] = normalize_image_path(str(data["image"]))
    if data.get("additionalImages"):
        doc["additionalImages"] = normalize_images(data["additionalImages"])

    if "stock" in data:
        doc["stock"] = normalize_stock(data["stock"])
    else:
        doc["stock"] = normalize_stock(doc.get("stock"))

    if "display_home" in data:
        doc["display_home"] = parse_bool(data["display_home"])
    if "home_position" in data:
        doc["home_position"] = _to_int(data["home_position"])
    if not doc.get("display_home"):
        doc["home_position"] = 0
    return doc


def _to_product(doc: Dict[str, Any]) -> Dict[str, Any]:
    product = Product.model_validate({k: v for k, v in doc.items() if v is not None})
    return product.model_dump(by_alias=True)


def list_products(db: Database) -> List[Dict[str, Any]]:
    return [serialize_doc(p) for p in get_documents(db, "product")]


def list_home(db: Database) -> List[Dict[str, Any]]:
    products = get_documents(db, "product", {"display_home": True}, sort=[("home_position", ASCENDING)])
    return [serialize_doc(p) for p in products]


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    product = db["product"].find_one({"_id": _parse_id(product_id)})
    if not product:
        raise NotFound("Product not found")
    return serialize_doc(product)


def create_product(db: Database, data: Dict[str, Any]) -> Dict[str, Any]:
    doc = _apply_fields({"smallDescription": "", "image": "", "additionalImages": []}, data)
    _validate(doc)
    product_id = create_document(db, "product", _to_product(doc))
    logger.info("product_created", product_id=product_id, name=doc["name"])
    return serialize_doc(db["product"].find_one({"_id": ObjectId(product_id)}))


def update_product(db: Database, product_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    oid = _parse_id(product_id)
    existing = db["product"].find_one({"_id": oid})
    if not existing:
        raise NotFound(f"Product with ID {product_id} not found")

    doc = {k: v for k, v in existing.items() if k not in ("_id", "created_at", "updated_at")}
    doc = _apply_fields(doc, data)
    _validate(doc)

    updated = db["product"].find_one_and_update(
        {"_id": oid},
        {"$set": {**_to_product(doc), "updated_at": now()}},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("product_updated", product_id=product_id)
    return serialize_doc(updated)


def owned_files(product: Dict[str, Any], upload_dir: str) -> List[Path]:
    images = [product.get("image") or ""] + list(product.get("additionalImages") or [])
    return [Path(upload_dir) / Path(img).name for img in images if img.startswith(UPLOADS_PREFIX)]


def delete_product(db: Database, product_id: str, upload_dir: str) -> Dict[str, Any]:
    deleted = db["product"].find_one_and_delete({"_id": _parse_id(product_id)})
    if not deleted:
        raise NotFound(f"Product with ID {product_id} not found")

    for path in owned_files(deleted, upload_dir):
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("product_image_not_removed", path=str(path), error=str(exc))
    logger.info("product_deleted", product_id=product_id)
    return serialize_doc(deleted)


def with_image_url(product: Dict[str, Any], base_url: str) -> Dict[str, Any]:
    image = product.get("image") or ""
    if image.startswith("/"):
        image_url = base_url.rstrip("/") + image
    else:
        image_url = image
    return {**product, "imageUrl": image_url}
