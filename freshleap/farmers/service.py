"""
Cas d'usage 'farmers': tableau de bord (produits, commandes, statistiques) et profil de l'exploitation.
"""
import logging
from typing import Any, Dict, List

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from freshleap.models import Order, User
from freshleap.orders import repository as orders_repo
from freshleap.products import repository as products_repo
from freshleap.users import repository as users_repo

logger = logging.getLogger(__name__)


def _farmer_order_view(order: Order, farmer_id: str, customers: Dict[str, User]) -> Dict[str, Any]:
    data = order.to_dict(include_items=False)
    items = [it for it in order.items if it.product and it.product.farmer_id == farmer_id]
    data["items"] = [it.to_dict() for it in items]
    data["farmer_total"] = sum(it.price * it.quantity for it in items)
    customer = customers.get(order.user_id)
    data["customer"] = {"username": customer.username, "email": customer.email} if customer else None
    return data


def compute_stats(products: List[Any], orders: List[Dict[str, Any]]) -> Dict[str, int]:
    return {
        "totalProducts": len(products),
        "totalOrders": len(orders),
        "totalCustomers": len({o["user_id"] for o in orders}),
        "totalRevenue": sum(o["farmer_total"] for o in orders),
    }


def get_dashboard(db: Session, farmer_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    farmer = users_repo.get_farmer(db, farmer_id)
    if not farmer:
        raise HTTPException(status_code=404, detail="Farmer not found")
    if farmer.user_id != user.get("id"):
        raise HTTPException(status_code=403, detail="You can only view your own dashboard")

    products = products_repo.list_products_by_farmer(db, farmer_id)
    orders = orders_repo.list_orders_for_farmer(db, farmer_id)
    user_ids = {o.user_id for o in orders}
    customers = {u.user_id: u for u in db.query(User).filter(User.user_id.in_(user_ids)).all()} if user_ids else {}
    order_views = [_farmer_order_view(o, farmer_id, customers) for o in orders]

    return {
        "farmer": farmer.to_dict(),
        "products": [p.to_dict() for p in products],
        "orders": order_views,
        "stats": compute_stats(products, order_views),
    }


def update_profile(db: Session, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    farmer = users_repo.get_farmer_by_user(db, user_id)
    if not farmer:
        raise HTTPException(status_code=404, detail="Farmer not found")
    for key, value in fields.items():
        setattr(farmer, key, value)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("farmers.update_profile failed user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Failed to update farm profile")
    return farmer.to_dict()
