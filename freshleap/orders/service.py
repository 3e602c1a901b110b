"""
Cas d'usage 'orders': consultation (client, producteur) et changement de statut par le producteur.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from freshleap.models import OrderStatus
from . import repository

logger = logging.getLogger(__name__)


def list_my_orders(db: Session, user_id: str) -> List[Dict[str, Any]]:
    return [o.to_dict() for o in repository.list_orders_for_user(db, user_id)]


def get_order_for_session(db: Session, session_id: Optional[str]) -> Dict[str, Any]:
    session_id = (session_id or "").strip()
    if not session_id:
        raise HTTPException(status_code=400, detail="No session ID provided")
    order = repository.get_order_by_session(db, session_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order.to_dict()


def get_order_for_user(db: Session, order_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Visible par le client propriétaire, ou par un producteur dont un produit figure dans la commande
    (il ne voit alors que ses propres lignes).
    """
    order = repository.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.user_id == user.get("id"):
        return order.to_dict()
    farmer_id = user.get("farmer_id")
    if farmer_id and repository.farmer_sells_in_order(db, order_id, farmer_id):
        data = order.to_dict()
        data["items"] = [it.to_dict() for it in order.items if it.product and it.product.farmer_id == farmer_id]
        return data
    raise HTTPException(status_code=403, detail="You are not allowed to view this order")


def parse_status(value: Optional[str]) -> OrderStatus:
    try:
        return OrderStatus((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise HTTPException(status_code=400, detail=f"Invalid status. Allowed: {allowed}")


def update_status(db: Session, order_id: str, status_value: Optional[str], farmer_id: str) -> Dict[str, Any]:
    status = parse_status(status_value)
    order = repository.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not repository.farmer_sells_in_order(db, order_id, farmer_id):
        raise HTTPException(status_code=403, detail="You can only update orders containing your products")

    previous = order.status
    order.status = status
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("orders.update_status failed order_id=%s", order_id)
        raise HTTPException(status_code=500, detail="Failed to update order status")
    logger.info(
        "orders.update_status order_id=%s from=%s to=%s farmer_id=%s",
        order_id, previous.value if previous else None, status.value, farmer_id,
    )
    return order.to_dict()
