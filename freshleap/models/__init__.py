# Façade "M" (Models): tables SQLAlchemy et énumérations métier.
# Importer ce paquet suffit à peupler Base.metadata (create_all, tests).
from .base import Category, OrderStatus, Role, is_uuid, new_id, utcnow
from .users import Farmer, User
from .catalog import Product, ProductReview
from .orders import Cart, CartItem, Order, OrderItem

__all__ = [
    # Enums / helpers
    "Category",
    "OrderStatus",
    "Role",
    "is_uuid",
    "new_id",
    "utcnow",
    # Comptes
    "User",
    "Farmer",
    # Catalogue
    "Product",
    "ProductReview",
    # Panier / commandes
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
]
