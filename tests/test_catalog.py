"""Product administration."""

import re
from decimal import Decimal

import pytest

from modules.catalog.models import Product
from modules.catalog.service import ProductFilter, product_service, validate_product_data
from factories import audit_rows, make_order, make_product

VALID = {"name": "Vitamin C Serum", "category": "Skincare", "price": "4500", "stock_quantity": 20}


@pytest.mark.parametrize("overrides, message", [
    ({"name": "  "}, "Product name is required"),
    ({"category": None}, "Product category is required"),
    ({"price": "abc"}, "Valid price is required"),
    ({"price": "-1"}, "Valid price is required"),
    ({"price": "NaN"}, "Valid price is required"),
    ({"price": "Infinity"}, "Valid price is required"),
    ({"discount_price": "NaN"}, "Discount price must be positive"),
    ({"stock_quantity": -3}, "Valid stock quantity is required"),
    ({"stock_quantity": "7"}, "Valid stock quantity is required"),
    ({"discount_price": "-5"}, "Discount price must be positive"),
    ({"discount_price": "4500"}, "Discount price must be less than original price"),
])
def test_validation_messages(db, agent_perms, overrides, message):
    result = product_service.create_product(db, agent_perms, {**VALID, **overrides})

    assert result == {"success": False, "error": message, "code": "validation"}
    assert db.query(Product).count() == 0


def test_validate_normalizes_money():
    cleaned = validate_product_data({**VALID, "name": " Serum ", "discount_price": "3999.5"})

    assert cleaned["name"] == "Serum"
    assert cleaned["price"] == Decimal("4500.00")
    assert cleaned["discount_price"] == Decimal("3999.50")


@pytest.mark.parametrize("raw", ["NaN", "-nan", "sNaN", "Infinity", "-inf", "1e40", "abc", ""])
def test_to_money_rejects_non_amounts(raw):
    from common.helpers import to_money

    assert to_money(raw) is None


def test_create_generates_slug_and_sku(db, agent_perms, agent):
    result = product_service.create_product(db, agent_perms, VALID)

    assert result["success"] is True
    product = db.get(Product, result["data"]["product_id"])
    assert product.slug == "vitamin-c-serum"
    assert re.fullmatch(r"JRAD-SKI-[0-9A-Z]+-[0-9A-Z]{4}", product.sku)
    assert product.created_by == agent.id
    [row] = audit_rows(db, resource_id=product.id, action="product_created")
    assert row.changes["slug"] == "vitamin-c-serum"


def test_slug_collisions_get_numeric_suffix(db, agent_perms):
    ids = [
        product_service.create_product(db, agent_perms, VALID)["data"]["product_id"]
        for _ in range(3)
    ]

    db.expire_all()
    slugs = [db.get(Product, pid).slug for pid in ids]
    assert slugs == ["vitamin-c-serum", "vitamin-c-serum-1", "vitamin-c-serum-2"]


def test_customer_cannot_create(db, customer_perms):
    result = product_service.create_product(db, customer_perms, VALID)
    assert result["code"] == "forbidden"


def test_update_merges_and_audits(db, agent_perms, product):
    result = product_service.update_product(db, agent_perms, product.id, {"price": "1800", "stock_quantity": 4})

    assert result == {"success": True, "message": "Product updated successfully"}
    db.expire_all()
    assert product.price == Decimal("1800.00")
    assert product.stock_quantity == 4
    assert product.name == "Glow Serum"
    [row] = audit_rows(db, resource_id=product.id, action="product_updated")
    assert row.changes == {"price": "1800.00", "stock_quantity": 4}


def test_update_renames_slug(db, agent_perms, product):
    make_product(db, name="Night Cream")

    product_service.update_product(db, agent_perms, product.id, {"name": "Night Cream"})

    db.expire_all()
    assert product.slug == "night-cream-1"


def test_update_rejects_invalid_merge(db, agent_perms, product):
    result = product_service.update_product(db, agent_perms, product.id, {"discount_price": "2000"})

    assert result["error"] == "Discount price must be less than original price"
    db.expire_all()
    assert product.discount_price is None


def test_update_requires_changes(db, agent_perms, product):
    assert product_service.update_product(db, agent_perms, product.id, {"bogus": 1})["error"] == "No changes provided"


def test_toggle_status(db, agent_perms, product):
    assert product_service.toggle_product_status(db, agent_perms, product.id)["message"] == "Product deactivated"
    db.expire_all()
    assert product.is_active is False
    assert audit_rows(db, resource_id=product.id, action="product_deactivated")


def test_delete_blocked_when_ordered(db, agent_perms, customer, product):
    make_order(db, customer, product)

    result = product_service.delete_product(db, agent_perms, product.id)

    assert result["code"] == "validation"
    db.expire_all()
    assert db.get(Product, product.id) is not None


def test_delete_unordered_product(db, agent_perms, product):
    result = product_service.delete_product(db, agent_perms, product.id)

    assert result == {"success": True, "message": "Product deleted successfully"}
    db.expire_all()
    assert db.get(Product, product.id) is None


def test_list_products_filters(db):
    make_product(db, name="Rose Toner", category="skincare")
    make_product(db, name="Matte Lipstick", category="makeup")
    make_product(db, name="Old Lipstick", category="makeup", is_active=False)

    makeup = product_service.list_products(db, ProductFilter(category="makeup"))
    active_lip = product_service.list_products(db, ProductFilter(search="lipstick", is_active=True))

    assert {p.name for p in makeup} == {"Matte Lipstick", "Old Lipstick"}
    assert [p.name for p in active_lip] == ["Matte Lipstick"]


def test_admin_catalog_route(client, db, agent):
    from factories import login

    login(client, agent)
    response = client.post("/admin/catalog", json=VALID)

    assert response.status_code == 201
    assert response.json()["message"] == "Product created successfully"
    assert client.get("/admin/catalog").json()["data"]["products"][0]["slug"] == "vitamin-c-serum"


def test_mutations_trigger_revalidation(db, agent_perms):
    from common.revalidation import register_listener, unregister_listener

    seen = []
    register_listener(seen.append)
    try:
        product_service.create_product(db, agent_perms, VALID)
        product_service.create_product(db, agent_perms, {**VALID, "price": "oops"})
    finally:
        unregister_listener(seen.append)

    assert seen == ["/admin/catalog", "/shop"]
