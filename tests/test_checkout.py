"""Checkout: order construction, stock deduction, totals."""

from decimal import Decimal

import pytest

from common.exceptions import ValidationError
from modules.order.models import Order, build_order, build_order_item
from modules.order.service import order_service, CheckoutLine, OrderFilter
from factories import make_order, make_product, stock_of, audit_rows


def test_create_order_snapshots_items_and_deducts_stock(db, customer):
    serum = make_product(db, name="Glow Serum", stock=20, price="1500.00")
    lotion = make_product(db, name="Body Lotion", stock=20, price="800.00", discount_price=Decimal("700.00"))

    result = order_service.create_order(
        db, customer.id,
        [CheckoutLine(serum.id, 2), CheckoutLine(lotion.id, 1)],
        shipping_address="5 Marina Road, Lagos",
    )

    assert result["success"] is True
    data = result["data"]["order"]
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert data["order_number"].startswith("ORD-")
    assert data["subtotal"] == Decimal("3700.00")
    assert data["total_amount"] == Decimal("3700.00")
    names = sorted(item["product_name"] for item in data["items"])
    assert names == ["Body Lotion", "Glow Serum"]
    assert stock_of(db, serum.id) == 18
    assert stock_of(db, lotion.id) == 19


def test_checkout_merges_duplicate_lines(db, customer, product):
    result = order_service.create_order(
        db, customer.id,
        [CheckoutLine(product.id, 1), CheckoutLine(product.id, 2)],
        shipping_address="Lekki",
    )
    assert result["success"] is True
    assert result["data"]["order"]["items"][0]["quantity"] == 3
    assert stock_of(db, product.id) == 7


def test_insufficient_stock_rolls_back_everything(db, customer):
    plenty = make_product(db, name="Plenty", stock=50)
    scarce = make_product(db, name="Scarce", stock=1)

    result = order_service.create_order(
        db, customer.id,
        [CheckoutLine(plenty.id, 5), CheckoutLine(scarce.id, 2)],
        shipping_address="Abuja",
    )

    assert result["success"] is False
    assert "Insufficient stock" in result["error"]
    assert stock_of(db, plenty.id) == 50
    assert stock_of(db, scarce.id) == 1
    assert db.query(Order).count() == 0


def test_inactive_product_cannot_be_ordered(db, customer, product):
    product.is_active = False
    db.commit()

    result = order_service.create_order(db, customer.id, [CheckoutLine(product.id, 1)], shipping_address="Ibadan")

    assert result == {"success": False, "error": "Product is no longer available", "code": "validation"}


@pytest.mark.parametrize("lines,address,error", [
    ([], "Lagos", "Cart is empty"),
    ([CheckoutLine("x", 0)], "Lagos", "Quantity must be a positive integer"),
    ([CheckoutLine("x", 1)], "  ", "Shipping address is required"),
])
def test_checkout_validation(db, customer, lines, address, error):
    result = order_service.create_order(db, customer.id, lines, shipping_address=address)
    assert result["success"] is False
    assert result["error"] == error


def test_low_stock_alert_is_system_audit(db, customer):
    product = make_product(db, stock=12)

    order_service.create_order(db, customer.id, [CheckoutLine(product.id, 3)], shipping_address="Enugu")

    rows = audit_rows(db, action="low_stock_alert")
    assert len(rows) == 1
    assert rows[0].admin_id is None
    assert rows[0].resource_id == product.id
    assert rows[0].changes == {"remaining_stock": 9}


def test_build_order_enforces_total():
    item = build_order_item("p1", "Serum", 2, "10.00")
    assert item.total_price == Decimal("20.00")

    order = build_order("u1", "ORD-1", [item], tax="1.50", shipping_cost="5", total_amount="26.50")
    assert order.total_amount == Decimal("26.50")
    assert order.subtotal == Decimal("20.00")

    with pytest.raises(ValidationError, match="does not equal"):
        build_order("u1", "ORD-2", [build_order_item("p1", "Serum", 2, "10.00")], total_amount="25.00")


@pytest.mark.parametrize("quantity,price", [(0, "1.00"), (-1, "1.00"), (1, "-1"), (1, "abc")])
def test_build_order_item_rejects_bad_input(quantity, price):
    with pytest.raises(ValidationError):
        build_order_item("p1", "Serum", quantity, price)


def test_list_orders_filters(db, agent_perms, customer, product):
    make_order(db, customer, product, status="pending")
    make_order(db, customer, product, status="shipped", payment_status="completed")

    result = order_service.list_orders(db, agent_perms, OrderFilter(status="shipped"))
    assert [o["status"] for o in result["data"]["orders"]] == ["shipped"]

    result = order_service.list_orders(db, agent_perms, OrderFilter(payment_status="pending"))
    assert len(result["data"]["orders"]) == 1

    result = order_service.list_orders(db, agent_perms, OrderFilter(status="bogus"))
    assert result["code"] == "validation"


def test_list_orders_requires_staff(db, customer_perms):
    assert order_service.list_orders(db, customer_perms)["code"] == "forbidden"


def test_order_number_exhaustion_is_reported(db, customer, product, monkeypatch):
    taken = make_order(db, customer, product)
    monkeypatch.setattr("modules.order.service.generate_order_number", lambda prefix: taken.order_number)

    result = order_service.create_order(db, customer.id, [CheckoutLine(product.id, 1)], shipping_address="Jos")

    assert result == {
        "success": False,
        "error": "Failed to generate unique order number after retries",
        "code": "error",
    }
    assert db.query(Order).count() == 1
    assert stock_of(db, product.id) == 10
