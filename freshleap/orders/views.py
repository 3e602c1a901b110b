from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from freshleap.infra.database import get_db
from freshleap.utils.security import require_farmer, require_user
from . import service

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


class StatusUpdate(BaseModel):
    status: str


@router.get("")
def my_orders(user: Dict[str, Any] = Depends(require_user), db: Session = Depends(get_db)):
    """Commandes de l'utilisateur connecté, plus récentes d'abord."""
    return {"orders": service.list_my_orders(db, user["id"])}


@router.get("/session")
def order_for_session(session_id: Optional[str] = None, db: Session = Depends(get_db)):
    # Page de succès: la possession du session_id Stripe suffit
    return {"order": service.get_order_for_session(db, session_id)}


@router.get("/{order_id}")
def get_order(order_id: str, user: Dict[str, Any] = Depends(require_user), db: Session = Depends(get_db)):
    return {"order": service.get_order_for_user(db, order_id, user)}


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: str,
    body: StatusUpdate,
    user: Dict[str, Any] = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    order = service.update_status(db, order_id, body.status, user["farmer_id"])
    return {"message": "Order status updated successfully", "order": order}
