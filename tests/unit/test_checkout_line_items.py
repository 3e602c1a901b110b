import json
import types

import pytest
from fastapi import HTTPException

from freshleap.checkout import aggregate_quantities, check_availability, make_metadata, to_line_items


def _product(pid, name="Carrots", price=2, qty=10, description="Orange", image_url=None):
    return types.SimpleNamespace(
        product_id=pid,
        name=name,
        price=price,
        quantity_available=qty,
        description=description,
        image_url=image_url,
    )


def test_aggregate_quantities_ok():
    items = [
        {"product_id": "1", "quantity": 1},
        {"product_id": "2", "quantity": 2},
        {"product_id": "1", "quantity": 3},  # agrégé
        {"product_id": "", "quantity": 5},   # ignoré
        {"product_id": "3", "quantity": 0},  # ignoré
        {"id": "4", "quantity": 1},          # alias accepté
        {"product_id": "5", "quantity": "x"},  # ignoré
    ]
    assert aggregate_quantities(items) == {"1": 4, "2": 2, "4": 1}


def test_aggregate_quantities_empty_raises():
    with pytest.raises(HTTPException) as exc:
        aggregate_quantities([])
    assert exc.value.status_code == 400


def test_check_availability_unknown_product_404():
    with pytest.raises(HTTPException) as exc:
        check_availability({}, {"missing": 1})
    assert exc.value.status_code == 404


def test_check_availability_insufficient_stock_400():
    with pytest.raises(HTTPException) as exc:
        check_availability({"a": _product("a", qty=2)}, {"a": 3})
    assert exc.value.status_code == 400
    assert "Insufficient stock" in exc.value.detail


def test_check_availability_exact_stock_ok():
    check_availability({"a": _product("a", qty=3)}, {"a": 3})


def test_to_line_items_uses_catalog_price_and_carries_product_id():
    products = {
        "a": _product("a", name="Carrots", price=2, image_url="https://img.test/c.png"),
        "b": _product("b", name="Eggs", price=6, description=""),
    }
    line_items = to_line_items(products, {"a": 3, "b": 1}, currency="usd")
    assert len(line_items) == 2

    carrots = next(li for li in line_items if li["price_data"]["product_data"]["name"] == "Carrots")
    assert carrots["quantity"] == 3
    assert carrots["price_data"]["currency"] == "usd"
    assert carrots["price_data"]["unit_amount"] == 200
    assert carrots["price_data"]["product_data"]["metadata"] == {"product_id": "a"}
    assert carrots["price_data"]["product_data"]["images"] == ["https://img.test/c.png"]

    eggs = next(li for li in line_items if li["price_data"]["product_data"]["name"] == "Eggs")
    # Description vide: non envoyée (Stripe refuse les chaînes vides)
    assert "description" not in eggs["price_data"]["product_data"]


def test_to_line_items_nothing_valid_raises():
    with pytest.raises(HTTPException) as exc:
        to_line_items({}, {"ghost": 1})
    assert exc.value.status_code == 400


def test_make_metadata_compact_and_truncated():
    meta = make_metadata("user-1", {"a": 2})
    assert meta["user_id"] == "user-1"
    assert json.loads(meta["cart"]) == [{"id": "a", "quantity": 2}]

    big = {f"product-{i:04d}-xxxxxxxxxxxxxxxxxxxx": 1 for i in range(100)}
    assert len(make_metadata(None, big)["cart"]) <= 500
    assert make_metadata(None, {"a": 1})["user_id"] == ""
