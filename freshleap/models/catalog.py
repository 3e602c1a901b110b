from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from freshleap.infra.database import Base
from .base import Category, enum_column_type, iso, new_id, utcnow


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity_available >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    product_id = Column(String(36), primary_key=True, default=new_id)
    farmer_id = Column(String(36), ForeignKey("farmers.farmer_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(enum_column_type(Category, "category"), nullable=False)
    description = Column(Text, nullable=True)
    # Prix entier en unités de devise (CURRENCY); Stripe reçoit price * 100
    price = Column(Integer, nullable=False)
    quantity_available = Column(Integer, nullable=False, default=0)
    image_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    farmer = relationship("Farmer", back_populates="products")
    reviews = relationship(
        "ProductReview",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductReview.created_at.desc()",
    )

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "farmer_id": self.farmer_id,
            "name": self.name,
            "category": self.category.value if self.category else None,
            "description": self.description,
            "price": self.price,
            "quantity_available": self.quantity_available,
            "image_url": self.image_url,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


class ProductReview(Base):
    __tablename__ = "product_reviews"
    __table_args__ = (
        UniqueConstraint("product_id", "user_id", name="uq_product_reviews_product_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_reviews_rating_range"),
    )

    review_id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    product = relationship("Product", back_populates="reviews")
    user = relationship("User")

    def to_dict(self):
        return {
            "review_id": self.review_id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": iso(self.created_at),
        }
