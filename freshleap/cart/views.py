from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from freshleap.infra.database import get_db
from . import service
from .service import get_cart_store
from .store import CartStore

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class AddItemRequest(BaseModel):
    product_id: str = Field(min_length=1)


class UpdateQuantityRequest(BaseModel):
    quantity: int


@router.get("")
def get_cart(store: CartStore = Depends(get_cart_store)) -> Dict[str, Any]:
    return store.to_dict()


@router.post("/items", status_code=201)
def add_item(body: AddItemRequest, store: CartStore = Depends(get_cart_store), db: Session = Depends(get_db)):
    cart = service.add_product(db, store, body.product_id)
    return {"message": "Item added to cart successfully", "cart": cart}


@router.put("/items/{product_id}")
def update_item(product_id: str, body: UpdateQuantityRequest, store: CartStore = Depends(get_cart_store)):
    """Quantité <= 0: la ligne est retirée du panier."""
    cart = service.update_quantity(store, product_id, body.quantity)
    return {"message": "Cart updated successfully", "cart": cart}


@router.delete("/items/{product_id}")
def remove_item(product_id: str, store: CartStore = Depends(get_cart_store)):
    cart = service.remove_product(store, product_id)
    return {"message": "Item removed from cart", "cart": cart}


@router.delete("")
def clear_cart(store: CartStore = Depends(get_cart_store)):
    store.clear()
    return {"message": "Cart cleared successfully", "cart": store.to_dict()}
