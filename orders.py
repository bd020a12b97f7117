"""
Order intake: cart validation, totals, order id assignment and persistence.

Money is rounded half-up to two decimals on the decimal string of each float,
so 19.995 becomes 20.0 rather than 19.99.
"""
import secrets
import time
import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any, Dict, List

import pydantic
import structlog
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_documents, now, serialize_doc
from errors import DuplicateKey, InvalidStatus, NotFound, ValidationError
from schemas import CartItem, DeliveryMethod, Order, OrderCreate, OrderItem, OrderStatus

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ["firstName", "lastName", "phone", "address", "city", "deliveryMethod", "items"]
ITEM_FIELDS = ["productId", "productName", "productImage"]
VALID_STATUSES = [s.value for s in OrderStatus]

# The per-city fee table is not consulted here; shipping depends only on the
# delivery method.
SHIPPING_FEES = {
    DeliveryMethod.home.value: 500,
    DeliveryMethod.desktop.value: 0,
}


# wide enough for any finite float quantized to cents
MONEY_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)


def round_money(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), context=MONEY_CONTEXT))


def generate_order_id() -> str:
    """ORD-<epoch ms>-<random hex>; uniqueness is enforced by the store."""
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _field_path(loc) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def validate_cart(payload: Dict[str, Any]) -> OrderCreate:
    """Check a raw checkout body and parse it into an OrderCreate."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = [f for f in REQUIRED_FIELDS if _is_blank(payload.get(f))]
    if missing:
        raise ValidationError("Missing required fields", missing_fields=missing)

    items = payload["items"]
    if not isinstance(items, list) or not items:
        raise ValidationError(
            "Cart must contain at least one item", fields={"items": "must be a non-empty list"}
        )

    item_errors = {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            item_errors[f"items[{index}]"] = "must be an object"
            continue
        for name in ITEM_FIELDS:
            if _is_blank(item.get(name)):
                item_errors[f"items[{index}].{name}"] = "required"
    if item_errors:
        raise ValidationError(
            "Missing required fields in cart items: productId, productName, or productImage",
            fields=item_errors,
        )

    try:
        return OrderCreate.model_validate(payload)
    except pydantic.ValidationError as exc:
        fields = {_field_path(err["loc"]): err["msg"] for err in exc.errors()}
        raise ValidationError("Validation failed", fields=fields) from exc


def _line_total(item: CartItem) -> float:
    try:
        return item.price * item.quantity
    except OverflowError:
        return math.inf


def build_order(cart: OrderCreate) -> Order:
    out_of_range = {
        f"items[{index}].price": "line total is out of range"
        for index, item in enumerate(cart.items)
        if not math.isfinite(_line_total(item))
    }
    if out_of_range:
        raise ValidationError("Validation failed", fields=out_of_range)

    items = [
        OrderItem(
            product_id=item.product_id,
            name=item.product_name,
            image=item.product_image,
            price=item.price,
            quantity=item.quantity,
            item_total=_line_total(item),
        )
        for item in cart.items
    ]
    raw_subtotal = sum(i.item_total for i in items)
    if not math.isfinite(raw_subtotal):
        raise ValidationError("Validation failed", fields={"items": "order total is out of range"})
    subtotal = round_money(raw_subtotal)
    shipping_fee = SHIPPING_FEES[cart.delivery_method]

    return Order(
        order_id=generate_order_id(),
        status=OrderStatus.pending,
        order_date=now(),
        first_name=cart.first_name,
        last_name=cart.last_name,
        phone=cart.phone,
        address=cart.address,
        city=cart.city,
        delivery_method=cart.delivery_method,
        notes=cart.notes,
        items=items,
        item_count=sum(i.quantity for i in items),
        subtotal=subtotal,
        shipping_fee=shipping_fee,
        total=round_money(subtotal + shipping_fee),
    )


def create_order(db: Database, payload: Dict[str, Any]) -> Dict[str, Any]:
    cart = validate_cart(payload)
    order = build_order(cart)
    try:
        create_document(db, "order", order.model_dump(by_alias=True))
    except DuplicateKeyError as exc:
        logger.warning("order_id_conflict", order_id=order.order_id)
        raise DuplicateKey("Duplicate order ID", "An order with this ID already exists") from exc

    saved = db["order"].find_one({"orderId": order.order_id})
    logger.info(
        "order_created",
        order_id=order.order_id,
        item_count=order.item_count,
        total=order.total,
        delivery_method=order.delivery_method,
    )
    return serialize_doc(saved)


def list_orders(db: Database) -> List[Dict[str, Any]]:
    orders = get_documents(db, "order", sort=[("created_at", DESCENDING)])
    return [serialize_doc(o) for o in orders]


def get_order(db: Database, order_id: str) -> Dict[str, Any]:
    order = db["order"].find_one({"orderId": order_id})
    if not order:
        raise NotFound("Order not found")
    return serialize_doc(order)


def set_status(db: Database, order_id: str, status: Any) -> Dict[str, Any]:
    if status not in VALID_STATUSES:
        raise InvalidStatus(status, VALID_STATUSES)

    updated = db["order"].find_one_and_update(
        {"orderId": order_id},
        {"$set": {"status": status, "updated_at": now()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFound(f"Order with ID {order_id} not found")
    logger.info("order_status_updated", order_id=order_id, status=status)
    return serialize_doc(updated)


def delete_order(db: Database, order_id: str) -> Dict[str, Any]:
    deleted = db["order"].find_one_and_delete({"orderId": order_id})
    if not deleted:
        raise NotFound(f"Order with ID {order_id} not found")
    logger.info("order_deleted", order_id=order_id)
    return serialize_doc(deleted)
