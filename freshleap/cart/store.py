"""
Panier: objet CartStore explicite, construit par requête et injecté (pas de singleton).

- Lignes: {product_id, name, price, quantity, image_url}
- add_item: incrémente la quantité si le produit est présent, sinon ajoute avec quantité 1
- update_quantity: quantité <= 0 => suppression de la ligne
- item_count / total_price recalculés à chaque mutation à partir des lignes
- Optimiste: aucune vérification de stock ici (faite à la création de session Stripe)

Le stockage est interchangeable: session signée (visiteur), base (utilisateur connecté),
mémoire (tests/scripts).
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from freshleap.models import Cart, CartItem

logger = logging.getLogger(__name__)

SESSION_KEY = "cart"


def _normalize_line(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    pid = str(raw.get("product_id") or "").strip()
    try:
        qty = int(raw.get("quantity") or 0)
        price = int(raw.get("price") or 0)
    except (TypeError, ValueError):
        return None
    if not pid or qty <= 0:
        return None
    return {
        "product_id": pid,
        "name": raw.get("name") or "",
        "price": price,
        "quantity": qty,
        "image_url": raw.get("image_url"),
    }


class MemoryCartStorage:
    def __init__(self, items: Optional[List[Dict[str, Any]]] = None):
        self._items = [dict(i) for i in (items or [])]

    def load(self) -> List[Dict[str, Any]]:
        return [dict(i) for i in self._items]

    def save(self, items: List[Dict[str, Any]]) -> None:
        self._items = [dict(i) for i in items]


class SessionCartStorage:
    """Stockage dans request.session (cookie signé par SessionMiddleware)."""

    def __init__(self, session: Dict[str, Any]):
        self._session = session

    def load(self) -> List[Dict[str, Any]]:
        raw = self._session.get(SESSION_KEY) or []
        return [line for line in (_normalize_line(r) for r in raw if isinstance(r, dict)) if line]

    def save(self, items: List[Dict[str, Any]]) -> None:
        if items:
            self._session[SESSION_KEY] = items
        else:
            self._session.pop(SESSION_KEY, None)


class DatabaseCartStorage:
    """Stockage dans carts / cart_items pour un utilisateur authentifié."""

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def _get_cart(self, create: bool = False) -> Optional[Cart]:
        cart = self.db.query(Cart).filter(Cart.user_id == self.user_id).one_or_none()
        if cart is None and create:
            cart = Cart(user_id=self.user_id)
            self.db.add(cart)
            self.db.flush()
        return cart

    def load(self) -> List[Dict[str, Any]]:
        cart = self._get_cart()
        if cart is None:
            return []
        lines = []
        for ci in cart.items:
            product = ci.product
            lines.append({
                "product_id": ci.product_id,
                "name": product.name if product else "",
                "price": ci.price,
                "quantity": ci.quantity,
                "image_url": product.image_url if product else None,
            })
        return lines

    def save(self, items: List[Dict[str, Any]]) -> None:
        cart = self._get_cart(create=bool(items))
        if cart is None:
            return
        wanted = {i["product_id"]: i for i in items}
        for ci in list(cart.items):
            line = wanted.pop(ci.product_id, None)
            if line is None:
                cart.items.remove(ci)
            else:
                ci.quantity = line["quantity"]
                ci.price = line["price"]
        for line in items:
            if line["product_id"] in wanted:
                cart.items.append(CartItem(product_id=line["product_id"], quantity=line["quantity"], price=line["price"]))
        self.db.commit()


class CartStore:
    def __init__(self, storage=None):
        self.storage = storage if storage is not None else MemoryCartStorage()
        self.items: List[Dict[str, Any]] = self.storage.load()
        self.item_count = 0
        self.total_price = 0
        self._recompute()

    def _recompute(self) -> None:
        self.item_count = sum(i["quantity"] for i in self.items)
        self.total_price = sum(i["price"] * i["quantity"] for i in self.items)

    def _commit(self) -> None:
        self._recompute()
        self.storage.save(self.items)

    def _find(self, product_id: str) -> Optional[Dict[str, Any]]:
        for line in self.items:
            if line["product_id"] == product_id:
                return line
        return None

    def add_item(self, product: Dict[str, Any]) -> Dict[str, Any]:
        """Ajoute une unité du produit (dict avec product_id, name, price, image_url)."""
        pid = str(product.get("product_id") or "").strip()
        if not pid:
            raise ValueError("product_id is required")
        line = self._find(pid)
        if line:
            line["quantity"] += 1
        else:
            line = {
                "product_id": pid,
                "name": product.get("name") or "",
                "price": int(product.get("price") or 0),
                "quantity": 1,
                "image_url": product.get("image_url"),
            }
            self.items.append(line)
        self._commit()
        return line

    def remove_item(self, product_id: str) -> bool:
        before = len(self.items)
        self.items = [i for i in self.items if i["product_id"] != product_id]
        removed = len(self.items) != before
        self._commit()
        return removed

    def update_quantity(self, product_id: str, quantity: int) -> Optional[Dict[str, Any]]:
        if quantity <= 0:
            self.remove_item(product_id)
            return None
        line = self._find(product_id)
        if line is None:
            return None
        line["quantity"] = int(quantity)
        self._commit()
        return line

    def clear(self) -> None:
        self.items = []
        self._commit()

    def checkout_lines(self) -> List[Dict[str, Any]]:
        """Lignes au format attendu par l'initiateur de session Stripe."""
        return [{"product_id": i["product_id"], "quantity": i["quantity"]} for i in self.items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [dict(i) for i in self.items],
            "itemCount": self.item_count,
            "totalPrice": self.total_price,
        }
