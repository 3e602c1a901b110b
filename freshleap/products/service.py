"""
Cas d'usage 'products': catalogue public, recherche paginée, gestion par le producteur.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from freshleap.models import Category, Product
from . import repository

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 8


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _parse_category(value: Optional[str]) -> Optional[Category]:
    try:
        return Category((value or "").strip().lower())
    except ValueError:
        return None


def list_products(db: Session) -> Dict[str, Any]:
    return {"products": [p.to_dict() for p in repository.list_products(db)]}


def search_products(
    db: Session,
    *,
    category: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    name: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Recherche tolérante: un filtre invalide (catégorie hors énumération, prix non entier)
    est ignoré plutôt que rejeté. page/limit invalides => valeurs par défaut.
    """
    page_n = _parse_int(page) or DEFAULT_PAGE
    limit_n = _parse_int(limit) or DEFAULT_LIMIT
    page_n = max(page_n, 1)
    limit_n = max(limit_n, 1)

    rows, total = repository.search_products(
        db,
        category=_parse_category(category),
        min_price=_parse_int(min_price),
        max_price=_parse_int(max_price),
        name=(name or "").strip() or None,
        page=page_n,
        limit=limit_n,
    )
    return {"products": [p.to_dict() for p in rows], "totalCount": total}


def get_product_detail(db: Session, product_id: str) -> Dict[str, Any]:
    product = repository.get_product_with_details(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    data = product.to_dict()
    farmer = product.farmer
    data["farmer"] = {
        "farmer_id": farmer.farmer_id,
        "farm_name": farmer.farm_name,
        "farm_location": farmer.farm_location,
    } if farmer else None
    reviews = list(product.reviews)
    data["reviews"] = [r.to_dict() for r in reviews]
    data["averageRating"] = round(sum(r.rating for r in reviews) / len(reviews), 2) if reviews else None
    return data


def _owned_product(db: Session, product_id: str, farmer_id: str) -> Product:
    product = repository.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.farmer_id != farmer_id:
        raise HTTPException(status_code=403, detail="You can only manage your own products")
    return product


def create_product(db: Session, farmer_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    try:
        product = repository.create_product(db, farmer_id, **fields)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("products.create failed farmer_id=%s", farmer_id)
        raise HTTPException(status_code=500, detail="Failed to create product")
    logger.info("products.create product_id=%s farmer_id=%s", product.product_id, farmer_id)
    return product.to_dict()


def update_product(db: Session, product_id: str, farmer_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    product = _owned_product(db, product_id, farmer_id)
    for key, value in fields.items():
        setattr(product, key, value)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("products.update failed product_id=%s", product_id)
        raise HTTPException(status_code=500, detail="Failed to update product")
    return product.to_dict()


def delete_product(db: Session, product_id: str, farmer_id: str) -> None:
    product = _owned_product(db, product_id, farmer_id)
    try:
        repository.delete_product(db, product)
        db.commit()
    except IntegrityError:
        # Des lignes de commande référencent encore ce produit
        db.rollback()
        raise HTTPException(status_code=409, detail="Product has existing orders and cannot be deleted")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("products.delete failed product_id=%s", product_id)
        raise HTTPException(status_code=500, detail="Failed to delete product")
    logger.info("products.delete product_id=%s farmer_id=%s", product_id, farmer_id)
