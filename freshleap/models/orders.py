from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from freshleap.infra.database import Base
from .base import OrderStatus, enum_column_type, iso, new_id, utcnow


class Cart(Base):
    __tablename__ = "carts"

    cart_id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.created_at",
    )


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
    )

    cart_item_id = Column(String(36), primary_key=True, default=new_id)
    cart_id = Column(String(36), ForeignKey("carts.cart_id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("stripe_session_id", name="uq_orders_stripe_session_id"),
    )

    order_id = Column(String(36), primary_key=True, default=new_id)
    # Pas de FK: les commandes invitées portent un identifiant généré
    user_id = Column(String(36), nullable=False, index=True)
    stripe_session_id = Column(String(255), nullable=True)
    total_price = Column(Integer, nullable=False)
    status = Column(enum_column_type(OrderStatus, "order_status"), nullable=False, default=OrderStatus.pending)
    shipping_address = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.order_item_id",
    )

    def to_dict(self, include_items: bool = True):
        data = {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "stripe_session_id": self.stripe_session_id,
            "total_price": self.total_price,
            "status": self.status.value if self.status else None,
            "shipping_address": self.shipping_address,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_items:
            data["items"] = [it.to_dict() for it in self.items]
        return data


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    order_item_id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.product_id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    # Prix unitaire figé au moment de l'achat
    price = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    def to_dict(self):
        return {
            "order_item_id": self.order_item_id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "price": self.price,
        }
