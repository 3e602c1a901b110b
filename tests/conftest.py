import os

# Environnement de test posé AVANT tout import freshleap (config lue à l'import)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_AUTO_CREATE"] = "false"
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("APP_URL", "http://shop.test")

import pytest
import stripe
from typing import Any, Dict, Generator, List, Optional
from uuid import uuid4
from fastapi import HTTPException
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from freshleap.app_setup.factory import create_app
from freshleap.infra.database import Base, SessionLocal, engine
from freshleap.models import Category, Farmer, Product, Role, User
from freshleap.utils.security import get_current_user, get_optional_user

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)

@pytest.fixture(scope="session")
def app():
    return create_app()

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# --- Base SQLite en mémoire, recréée à chaque test ---

@pytest.fixture(autouse=True)
def _schema():
    import freshleap.models  # noqa: F401  (peuple Base.metadata)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture()
def db(_schema):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def make_user(db):
    def _make(username: str = "alice", role: Role = Role.customer, verified: bool = True) -> User:
        user = User(
            user_id=str(uuid4()),
            username=username,
            email=f"{username}@example.com",
            role=role,
            is_verified=verified,
        )
        db.add(user)
        if role == Role.farmer:
            db.add(Farmer(
                user_id=user.user_id,
                farm_name=f"{username.title()} Farm",
                farm_location="Springfield",
                contact_number="+1 555 0100",
            ))
        db.commit()
        return user
    return _make

@pytest.fixture()
def farmer_user(make_user) -> User:
    return make_user("fred", Role.farmer)

@pytest.fixture()
def customer(make_user) -> User:
    return make_user("carol", Role.customer)

@pytest.fixture()
def make_product(db, farmer_user):
    def _make(
        name: str = "Honeycrisp Apples",
        price: int = 5,
        quantity_available: int = 10,
        category: Category = Category.fruits,
        farmer: Optional[Farmer] = None,
        description: Optional[str] = "Crisp and sweet",
    ) -> Product:
        owner = farmer or farmer_user.farmer
        product = Product(
            farmer_id=owner.farmer_id,
            name=name,
            category=category,
            description=description,
            price=price,
            quantity_available=quantity_available,
            image_url=None,
        )
        db.add(product)
        db.commit()
        return product
    return _make

def reload(db, model, pk):
    """Relit une ligne après une requête API (autre Session)."""
    db.expire_all()
    return db.get(model, pk)

# --- Authentification simulée (pas d'appel Supabase) ---

class AuthState:
    def __init__(self):
        self.user: Optional[Dict[str, Any]] = None

    def login_as(self, user: Optional[User]) -> Optional[Dict[str, Any]]:
        if user is None:
            self.user = None
            return None
        farmer = user.farmer
        self.user = {
            "id": user.user_id,
            "email": user.email,
            "username": user.username,
            "role": user.role.value,
            "farmer_id": farmer.farmer_id if farmer else None,
            "metadata": {},
            "token": "fake-token",
        }
        return self.user

@pytest.fixture(autouse=True)
def auth_state(app) -> Generator[AuthState, None, None]:
    state = AuthState()

    def _current_user():
        if state.user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return state.user

    app.dependency_overrides[get_current_user] = _current_user
    app.dependency_overrides[get_optional_user] = lambda: state.user
    try:
        yield state
    finally:
        app.dependency_overrides.pop(get_current_user, None)
        app.dependency_overrides.pop(get_optional_user, None)

@pytest.fixture(autouse=True)
def _no_supabase(monkeypatch):
    # Aucun appel réseau GoTrue: les tests auth patchent les fonctions du repository
    monkeypatch.setattr("freshleap.auth.repository.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("freshleap.auth.repository.get_service_supabase", lambda: MagicMock())

# --- Stripe simulé ---

def stripe_item(product_id: Optional[str], quantity: int, unit_amount: Optional[int], description: str = "Item") -> Dict[str, Any]:
    metadata = {"product_id": product_id} if product_id else {}
    return {
        "object": "item",
        "description": description,
        "quantity": quantity,
        "amount_total": (unit_amount or 0) * quantity,
        "price": {
            "unit_amount": unit_amount,
            "product": {"object": "product", "name": description, "metadata": metadata},
        },
    }

class FakeStripe:
    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.line_items: Dict[str, List[Dict[str, Any]]] = {}
        self.created: List[Dict[str, Any]] = []
        self.retrieve_calls = 0
        self.fail_create: Optional[Exception] = None

    def create_session(self, **kwargs) -> Dict[str, Any]:
        if self.fail_create:
            raise self.fail_create
        self.created.append(kwargs)
        sid = f"cs_test_{len(self.created)}"
        return {"id": sid, "url": f"https://checkout.stripe.test/pay/{sid}"}

    def get_session(self, session_id: str) -> Dict[str, Any]:
        self.retrieve_calls += 1
        if session_id not in self.sessions:
            raise stripe.InvalidRequestError(f"No such checkout.session: '{session_id}'", "id")
        return self.sessions[session_id]

    def list_line_items(self, session_id: str) -> List[Dict[str, Any]]:
        return list(self.line_items.get(session_id, []))

    def add_session(
        self,
        session_id: str,
        items: List[Dict[str, Any]],
        *,
        payment_status: str = "paid",
        amount_total: Optional[int] = None,
        client_reference_id: Optional[str] = None,
        payment_intent: Any = None,
        customer_details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        session = {
            "id": session_id,
            "object": "checkout.session",
            "payment_status": payment_status,
            "amount_total": amount_total if amount_total is not None else sum(i["amount_total"] for i in items),
            "client_reference_id": client_reference_id,
            "payment_intent": payment_intent,
            "customer_details": customer_details,
            "metadata": {},
        }
        self.sessions[session_id] = session
        self.line_items[session_id] = items
        return session

@pytest.fixture(autouse=True)
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr("freshleap.checkout.stripe_client.create_session", fake.create_session)
    monkeypatch.setattr("freshleap.checkout.stripe_client.get_session", fake.get_session)
    monkeypatch.setattr("freshleap.checkout.stripe_client.list_line_items", fake.list_line_items)
    return fake

@pytest.fixture()
def line_item():
    """Fabrique de lignes Stripe (price.product développé)."""
    return stripe_item

@pytest.fixture()
def fresh(db):
    """Relit une ligne en base après un appel API."""
    def _fresh(model, pk):
        return reload(db, model, pk)
    return _fresh
