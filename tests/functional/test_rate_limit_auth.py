from freshleap.auth import service as auth_service


def test_login_rate_limit_with_local_fallback(app, client, monkeypatch):
    # Limiteur mémoire intégré (pas de Redis): 3 tentatives / 60s sur /login
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    app.state._rl_store = {}

    def fake_sign_in(email, password):
        raise Exception("Invalid login credentials")

    monkeypatch.setattr(auth_service, "sign_in_password", fake_sign_in)
    payload = {"identifier": "user@example.com", "password": "password123"}

    try:
        for i in range(3):
            resp = client.post("/api/v1/auth/login", json=payload)
            assert resp.status_code == 401, f"Unexpected {resp.status_code} on attempt {i+1}"

        resp = client.post("/api/v1/auth/login", json=payload)
        assert resp.status_code == 429, f"Expected 429 on 4th attempt, got {resp.status_code}"

        # Les autres routes ne partagent pas le compteur
        assert client.get("/api/v1/products").status_code == 200
    finally:
        app.state._rl_store = {}


def test_checkout_rate_limit(app, client, monkeypatch, make_product):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    app.state._rl_store = {}
    product = make_product(quantity_available=100)
    payload = {"lineItems": [{"product_id": product.product_id, "quantity": 1}]}

    try:
        codes = [client.post("/api/v1/checkout", json=payload).status_code for _ in range(11)]
        assert codes[:10] == [200] * 10
        assert codes[10] == 429
    finally:
        app.state._rl_store = {}
