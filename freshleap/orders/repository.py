"""Couche d'accès aux données (SQLAlchemy) pour les commandes.
Aucune fonction ne commit: la transaction appartient au service appelant.
"""
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session, joinedload, selectinload

from freshleap.models import Cart, Order, OrderItem, OrderStatus, Product


def get_order(db: Session, order_id: str) -> Optional[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items).joinedload(OrderItem.product))
        .filter(Order.order_id == order_id)
        .one_or_none()
    )


def get_order_by_session(db: Session, session_id: str) -> Optional[Order]:
    if not session_id:
        return None
    return (
        db.query(Order)
        .options(selectinload(Order.items).joinedload(OrderItem.product))
        .filter(Order.stripe_session_id == session_id)
        .one_or_none()
    )


def list_orders_for_user(db: Session, user_id: str) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items).joinedload(OrderItem.product))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
        .all()
    )


def list_orders_for_farmer(db: Session, farmer_id: str) -> List[Order]:
    """Commandes contenant au moins un produit du producteur (plus récentes d'abord)."""
    order_ids = (
        db.query(OrderItem.order_id)
        .join(Product, Product.product_id == OrderItem.product_id)
        .filter(Product.farmer_id == farmer_id)
        .distinct()
    )
    return (
        db.query(Order)
        .options(selectinload(Order.items).joinedload(OrderItem.product))
        .filter(Order.order_id.in_(order_ids))
        .order_by(Order.created_at.desc())
        .all()
    )


def farmer_sells_in_order(db: Session, order_id: str, farmer_id: str) -> bool:
    row = (
        db.query(OrderItem.order_item_id)
        .join(Product, Product.product_id == OrderItem.product_id)
        .filter(OrderItem.order_id == order_id, Product.farmer_id == farmer_id)
        .first()
    )
    return row is not None


def insert_order(
    db: Session,
    *,
    user_id: str,
    stripe_session_id: Optional[str],
    total_price: int,
    shipping_address: str,
    items: Iterable[Dict[str, Any]],
    status: OrderStatus = OrderStatus.pending,
) -> Order:
    """
    Insère l'Order et ses OrderItems (flush, sans commit).
    items: [{product_id, quantity, price}, ...]
    """
    order = Order(
        user_id=user_id,
        stripe_session_id=stripe_session_id,
        total_price=total_price,
        status=status,
        shipping_address=shipping_address,
    )
    for it in items:
        order.items.append(OrderItem(product_id=it["product_id"], quantity=it["quantity"], price=it["price"]))
    db.add(order)
    db.flush()
    return order


def decrement_stock(db: Session, product_id: str, quantity: int) -> int:
    """
    Décrément atomique plancher à 0 (une seule instruction UPDATE).
    Retourne le nombre de lignes touchées (0 si le produit n'existe pas).
    """
    remaining = Product.quantity_available - quantity
    return (
        db.query(Product)
        .filter(Product.product_id == product_id)
        .update(
            {Product.quantity_available: case((remaining > 0, remaining), else_=0)},
            synchronize_session=False,
        )
    )


def clear_user_cart(db: Session, user_id: str) -> None:
    cart = db.query(Cart).filter(Cart.user_id == user_id).one_or_none()
    if cart is not None:
        cart.items.clear()
        db.flush()


def load_order(db: Session, order: Order) -> Order:
    # Recharge items + produits après commit (nouvelle commande)
    return get_order(db, order.order_id) or order
