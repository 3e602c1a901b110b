from freshleap.models import Cart


def test_guest_cart_lives_in_session(client, make_product):
    apples = make_product(name="Apples", price=3)
    milk = make_product(name="Milk", price=4)

    r = client.post("/api/v1/cart/items", json={"product_id": apples.product_id})
    assert r.status_code == 201
    assert r.json()["message"] == "Item added to cart successfully"
    client.post("/api/v1/cart/items", json={"product_id": apples.product_id})
    client.post("/api/v1/cart/items", json={"product_id": milk.product_id})

    cart = client.get("/api/v1/cart").json()
    assert cart["itemCount"] == 3
    assert cart["totalPrice"] == 3 * 2 + 4
    quantities = {i["product_id"]: i["quantity"] for i in cart["items"]}
    assert quantities == {apples.product_id: 2, milk.product_id: 1}


def test_cart_responses_are_not_cached(client):
    r = client.get("/api/v1/cart")
    assert "no-store" in r.headers.get("cache-control", "")


def test_update_and_remove(client, make_product):
    product = make_product(price=5)
    client.post("/api/v1/cart/items", json={"product_id": product.product_id})

    r = client.put(f"/api/v1/cart/items/{product.product_id}", json={"quantity": 4})
    assert r.status_code == 200
    assert r.json()["cart"]["totalPrice"] == 20

    r = client.put(f"/api/v1/cart/items/{product.product_id}", json={"quantity": 0})
    assert r.json()["cart"]["items"] == []
    assert r.json()["cart"]["itemCount"] == 0


def test_update_missing_item_404(client):
    r = client.put("/api/v1/cart/items/unknown", json={"quantity": 2})
    assert r.status_code == 404
    assert r.json()["detail"] == "Item not found in cart"


def test_update_missing_item_to_zero_404(client):
    # Même réponse que DELETE sur une ligne absente
    r = client.put("/api/v1/cart/items/unknown", json={"quantity": 0})
    assert r.status_code == 404
    assert r.json()["detail"] == "Item not found in cart"
    assert client.delete("/api/v1/cart/items/unknown").status_code == 404


def test_remove_and_clear(client, make_product):
    a = make_product(name="A")
    b = make_product(name="B")
    client.post("/api/v1/cart/items", json={"product_id": a.product_id})
    client.post("/api/v1/cart/items", json={"product_id": b.product_id})

    r = client.delete(f"/api/v1/cart/items/{a.product_id}")
    assert r.status_code == 200
    assert r.json()["message"] == "Item removed from cart"
    assert client.delete(f"/api/v1/cart/items/{a.product_id}").status_code == 404

    r = client.delete("/api/v1/cart")
    assert r.json()["message"] == "Cart cleared successfully"
    assert client.get("/api/v1/cart").json()["itemCount"] == 0


def test_add_unknown_product_404(client):
    r = client.post("/api/v1/cart/items", json={"product_id": "nope"})
    assert r.status_code == 404
    assert r.json()["detail"] == "Product not found"


def test_logged_in_cart_is_persisted(client, auth_state, customer, make_product, db):
    product = make_product(price=7)
    auth_state.login_as(customer)

    client.post("/api/v1/cart/items", json={"product_id": product.product_id})
    client.post("/api/v1/cart/items", json={"product_id": product.product_id})

    db.expire_all()
    cart = db.query(Cart).filter(Cart.user_id == customer.user_id).one()
    assert [(ci.product_id, ci.quantity) for ci in cart.items] == [(product.product_id, 2)]

    # Connecté: le panier vient de la base, pas du cookie de session
    assert client.get("/api/v1/cart").json()["totalPrice"] == 14
