"""
Cas d'usage 'cart': construction du CartStore de la requête et opérations HTTP.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from freshleap.infra.database import get_db
from freshleap.products import repository as products_repo
from freshleap.utils.security import get_optional_user
from .store import CartStore, DatabaseCartStorage, SessionCartStorage

logger = logging.getLogger(__name__)


def get_cart_store(
    request: Request,
    db: Session = Depends(get_db),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> CartStore:
    """
    Dépendance FastAPI: un CartStore par requête.
    - Utilisateur connecté: panier persistant (carts/cart_items)
    - Visiteur: panier dans la session signée
    """
    if user and user.get("id"):
        return CartStore(DatabaseCartStorage(db, user["id"]))
    return CartStore(SessionCartStorage(request.session))


def add_product(db: Session, store: CartStore, product_id: str) -> Dict[str, Any]:
    product = products_repo.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    store.add_item(product.to_dict())
    logger.info("cart.add product_id=%s count=%s", product_id, store.item_count)
    return store.to_dict()


def update_quantity(store: CartStore, product_id: str, quantity: int) -> Dict[str, Any]:
    if not any(i["product_id"] == product_id for i in store.items):
        raise HTTPException(status_code=404, detail="Item not found in cart")
    store.update_quantity(product_id, quantity)
    return store.to_dict()


def remove_product(store: CartStore, product_id: str) -> Dict[str, Any]:
    if not store.remove_item(product_id):
        raise HTTPException(status_code=404, detail="Item not found in cart")
    return store.to_dict()
