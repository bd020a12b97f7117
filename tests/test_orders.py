"""Tests for the order intake workflow."""

import pytest

import orders
from conftest import make_cart
from errors import DuplicateKey, InvalidStatus, NotFound, ValidationError


class TestTotals:
    def test_home_delivery_example(self, db):
        order = orders.create_order(db, make_cart())

        assert order["subtotal"] == 2250
        assert order["shippingFee"] == 500
        assert order["total"] == 2750
        assert order["itemCount"] == 3
        assert order["status"] == "pending"
        assert order["orderId"].startswith("ORD-")

    def test_desktop_delivery_is_free(self, db):
        order = orders.create_order(db, make_cart(deliveryMethod="desktop"))

        assert order["shippingFee"] == 0
        assert order["total"] == order["subtotal"] == 2250

    def test_line_totals(self, db):
        order = orders.create_order(db, make_cart())

        assert [i["itemTotal"] for i in order["items"]] == [2000, 250]
        assert order["items"][0]["name"] == "Leather bag"
        assert order["items"][0]["image"] == "/uploads/bag.jpg"
        assert order["items"][0]["productId"] == "64b7f0c2a1b2c3d4e5f60718"

    def test_subtotal_rounds_half_up(self, db):
        item = {"productId": "p1", "productName": "Pin", "productImage": "pin.png",
                "price": 19.995, "quantity": 1}
        order = orders.create_order(db, make_cart(deliveryMethod="desktop", items=[item]))

        assert order["subtotal"] == 20.0
        assert order["total"] == 20.0

    def test_float_noise_is_rounded_away(self, db):
        item = {"productId": "p1", "productName": "Pin", "productImage": "pin.png",
                "price": 0.1, "quantity": 3}
        order = orders.create_order(db, make_cart(items=[item]))

        assert order["subtotal"] == 0.3
        assert order["total"] == 500.3

    def test_numeric_strings_are_accepted(self, db):
        item = {"productId": "p1", "productName": "Pin", "productImage": "pin.png",
                "price": "120.5", "quantity": "2"}
        order = orders.create_order(db, make_cart(deliveryMethod="desktop", items=[item]))

        assert order["subtotal"] == 241.0

    def test_customer_fields_are_trimmed(self, db):
        order = orders.create_order(db, make_cart(firstName="  Amina  ", notes=" ring twice "))

        assert order["firstName"] == "Amina"
        assert order["notes"] == "ring twice"

    def test_phone_sent_as_number_is_kept_as_text(self, db):
        order = orders.create_order(db, make_cart(phone=550123456))

        assert order["phone"] == "550123456"

    def test_large_prices_are_rounded(self, db):
        item = {"productId": "p1", "productName": "Yacht", "productImage": "yacht.png",
                "price": 1e27, "quantity": 1}
        order = orders.create_order(db, make_cart(deliveryMethod="desktop", items=[item]))

        assert order["subtotal"] == 1e27
        assert order["total"] == 1e27


class TestOrderIds:
    def test_ids_are_distinct(self, db):
        ids = [orders.create_order(db, make_cart())["orderId"] for _ in range(50)]

        assert len(set(ids)) == 50

    def test_collision_is_reported(self, db, monkeypatch):
        monkeypatch.setattr(orders, "generate_order_id", lambda: "ORD-1-ABCDEF")
        orders.create_order(db, make_cart())

        with pytest.raises(DuplicateKey):
            orders.create_order(db, make_cart())
        assert db["order"].count_documents({}) == 1


class TestValidation:
    @pytest.mark.parametrize("field", ["firstName", "lastName", "phone", "address", "city", "deliveryMethod"])
    def test_missing_field_is_named(self, db, field):
        cart = make_cart()
        del cart[field]

        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, cart)
        assert exc_info.value.missing_fields == [field]

    def test_blank_field_counts_as_missing(self, db):
        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, make_cart(city="   "))
        assert exc_info.value.missing_fields == ["city"]

    def test_empty_items_rejected(self, db):
        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, make_cart(items=[]))
        assert "items" in exc_info.value.missing_fields

    def test_items_must_be_a_list(self, db):
        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, make_cart(items={"productId": "x"}))
        assert "items" in exc_info.value.fields

    def test_item_without_image_rejected_before_write(self, db):
        cart = make_cart()
        del cart["items"][1]["productImage"]

        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, cart)
        assert "items[1].productImage" in exc_info.value.fields
        assert db["order"].count_documents({}) == 0

    def test_unknown_delivery_method(self, db):
        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, make_cart(deliveryMethod="drone"))
        assert "deliveryMethod" in exc_info.value.fields

    def test_zero_quantity(self, db):
        cart = make_cart()
        cart["items"][0]["quantity"] = 0

        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, cart)
        assert "items[0].quantity" in exc_info.value.fields

    def test_negative_price(self, db):
        cart = make_cart()
        cart["items"][0]["price"] = -5

        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, cart)
        assert "items[0].price" in exc_info.value.fields

    @pytest.mark.parametrize("price", [float("inf"), "1e400", "nan"])
    def test_non_finite_price(self, db, price):
        cart = make_cart()
        cart["items"][0]["price"] = price

        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, cart)
        assert "items[0].price" in exc_info.value.fields
        assert db["order"].count_documents({}) == 0

    def test_line_total_overflow(self, db):
        cart = make_cart()
        cart["items"][1]["price"] = 1e300
        cart["items"][1]["quantity"] = 10 ** 10

        with pytest.raises(ValidationError) as exc_info:
            orders.create_order(db, cart)
        assert "items[1].price" in exc_info.value.fields
        assert db["order"].count_documents({}) == 0

    def test_body_must_be_an_object(self, db):
        with pytest.raises(ValidationError):
            orders.create_order(db, ["not", "a", "cart"])


class TestStatus:
    def test_set_status(self, db):
        order_id = orders.create_order(db, make_cart())["orderId"]

        updated = orders.set_status(db, order_id, "shipped")

        assert updated["status"] == "shipped"
        assert orders.get_order(db, order_id)["status"] == "shipped"

    def test_set_status_is_idempotent(self, db):
        order_id = orders.create_order(db, make_cart())["orderId"]

        first = orders.set_status(db, order_id, "processing")
        second = orders.set_status(db, order_id, "processing")

        assert first["status"] == second["status"] == "processing"
        assert second["subtotal"] == first["subtotal"]

    def test_invalid_status(self, db):
        order_id = orders.create_order(db, make_cart())["orderId"]

        with pytest.raises(InvalidStatus):
            orders.set_status(db, order_id, "lost")
        assert orders.get_order(db, order_id)["status"] == "pending"

    def test_missing_status(self, db):
        with pytest.raises(InvalidStatus) as exc_info:
            orders.set_status(db, "ORD-1-X", None)
        assert exc_info.value.message == "Status is required"

    def test_unknown_order(self, db):
        with pytest.raises(NotFound):
            orders.set_status(db, "ORD-0-000000", "shipped")


class TestReadAndDelete:
    def test_get_unknown_order(self, db):
        with pytest.raises(NotFound):
            orders.get_order(db, "ORD-0-000000")

    def test_list_orders(self, db):
        for _ in range(3):
            orders.create_order(db, make_cart())

        assert len(orders.list_orders(db)) == 3

    def test_delete(self, db):
        order_id = orders.create_order(db, make_cart())["orderId"]

        deleted = orders.delete_order(db, order_id)

        assert deleted["orderId"] == order_id
        with pytest.raises(NotFound):
            orders.delete_order(db, order_id)
