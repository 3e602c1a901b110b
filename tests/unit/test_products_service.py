import pytest
from fastapi import HTTPException

from freshleap.models import Category, Role
from freshleap.products import service


@pytest.fixture()
def catalog(make_product):
    return [
        make_product(name="Honeycrisp Apples", price=5, category=Category.fruits),
        make_product(name="Green Apples", price=3, category=Category.fruits),
        make_product(name="Goat Cheese", price=12, category=Category.dairy),
        make_product(name="Carrots", price=2, category=Category.vegetables),
    ]


def test_search_filters_combine(db, catalog):
    res = service.search_products(db, category="fruits", min_price="4")
    assert res["totalCount"] == 1
    assert res["products"][0]["name"] == "Honeycrisp Apples"


def test_search_name_is_case_insensitive(db, catalog):
    res = service.search_products(db, name="APPLE")
    assert res["totalCount"] == 2


def test_search_invalid_filters_are_ignored(db, catalog):
    res = service.search_products(db, category="candy", min_price="cheap", page="zero", limit="-")
    assert res["totalCount"] == 4
    assert len(res["products"]) == 4


def test_search_pagination(db, catalog):
    first = service.search_products(db, page="1", limit="3")
    second = service.search_products(db, page="2", limit="3")
    assert first["totalCount"] == second["totalCount"] == 4
    assert len(first["products"]) == 3
    assert len(second["products"]) == 1
    ids = {p["product_id"] for p in first["products"]} | {p["product_id"] for p in second["products"]}
    assert len(ids) == 4


def test_detail_unknown_product(db):
    with pytest.raises(HTTPException) as exc:
        service.get_product_detail(db, "missing")
    assert exc.value.status_code == 404


def test_detail_includes_farmer_and_rating(db, make_product, farmer_user):
    product = make_product()
    data = service.get_product_detail(db, product.product_id)
    assert data["farmer"]["farm_name"] == "Fred Farm"
    assert data["reviews"] == []
    assert data["averageRating"] is None


def test_only_owner_can_update(db, make_product, make_user):
    product = make_product()
    other = make_user("olga", Role.farmer)
    with pytest.raises(HTTPException) as exc:
        service.update_product(db, product.product_id, other.farmer.farmer_id, {"price": 1})
    assert exc.value.status_code == 403


def test_owner_update_and_delete(db, make_product, farmer_user):
    product = make_product()
    farmer_id = farmer_user.farmer.farmer_id

    updated = service.update_product(db, product.product_id, farmer_id, {"price": 9, "quantity_available": 1})
    assert updated["price"] == 9
    assert updated["quantity_available"] == 1

    service.delete_product(db, product.product_id, farmer_id)
    with pytest.raises(HTTPException) as exc:
        service.get_product_detail(db, product.product_id)
    assert exc.value.status_code == 404
