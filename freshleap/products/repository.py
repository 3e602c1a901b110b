"""Couche d'accès aux données (SQLAlchemy) pour le catalogue produits.
Les fonctions reçoivent la Session de la requête; le commit est fait par l'appelant
(service), sauf mention contraire.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from freshleap.models import Category, Product


def get_product(db: Session, product_id: str) -> Optional[Product]:
    if not product_id:
        return None
    return db.get(Product, product_id)


def get_product_with_details(db: Session, product_id: str) -> Optional[Product]:
    return (
        db.query(Product)
        .options(joinedload(Product.farmer), joinedload(Product.reviews))
        .filter(Product.product_id == product_id)
        .one_or_none()
    )


def get_products_map(db: Session, product_ids: Iterable[str]) -> Dict[str, Product]:
    """Charge les produits par identifiant: {product_id: Product} (ids inconnus absents)."""
    ids = [i for i in set(product_ids) if i]
    if not ids:
        return {}
    rows = db.query(Product).filter(Product.product_id.in_(ids)).all()
    return {p.product_id: p for p in rows}


def list_products(db: Session) -> List[Product]:
    return db.query(Product).order_by(Product.created_at.desc()).all()


def list_products_by_farmer(db: Session, farmer_id: str) -> List[Product]:
    return (
        db.query(Product)
        .filter(Product.farmer_id == farmer_id)
        .order_by(Product.created_at.desc())
        .all()
    )


def search_products(
    db: Session,
    *,
    category: Optional[Category] = None,
    min_price: Optional[int] = None,
    max_price: Optional[int] = None,
    name: Optional[str] = None,
    page: int = 1,
    limit: int = 8,
) -> Tuple[List[Product], int]:
    q = db.query(Product)
    if category is not None:
        q = q.filter(Product.category == category)
    if min_price is not None:
        q = q.filter(Product.price >= min_price)
    if max_price is not None:
        q = q.filter(Product.price <= max_price)
    if name:
        q = q.filter(func.lower(Product.name).like(f"%{name.lower()}%"))

    total = q.count()
    rows = (
        q.order_by(Product.created_at.desc(), Product.product_id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def create_product(db: Session, farmer_id: str, **fields) -> Product:
    product = Product(farmer_id=farmer_id, **fields)
    db.add(product)
    db.flush()
    return product


def delete_product(db: Session, product: Product) -> None:
    db.delete(product)
    db.flush()
