"""
Cas d'usage 'reviews': un avis par (produit, utilisateur), note de 1 à 5.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from freshleap.models import ProductReview
from freshleap.products import repository as products_repo

logger = logging.getLogger(__name__)


def submit_review(db: Session, user_id: str, product_id: str, rating: int, comment: Optional[str]) -> Dict[str, Any]:
    if not products_repo.get_product(db, product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    already = (
        db.query(ProductReview.review_id)
        .filter(ProductReview.product_id == product_id, ProductReview.user_id == user_id)
        .first()
    )
    if already:
        raise HTTPException(status_code=400, detail="You have already reviewed this product")

    review = ProductReview(product_id=product_id, user_id=user_id, rating=rating, comment=(comment or "").strip() or None)
    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        # Double soumission concurrente: la contrainte unique tranche
        db.rollback()
        raise HTTPException(status_code=400, detail="You have already reviewed this product")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("reviews.submit failed product_id=%s user_id=%s", product_id, user_id)
        raise HTTPException(status_code=500, detail="Failed to submit review")
    logger.info("reviews.submit product_id=%s rating=%s", product_id, rating)
    return review.to_dict()


def list_reviews(db: Session, product_id: str) -> Dict[str, Any]:
    rows = (
        db.query(ProductReview)
        .options(joinedload(ProductReview.user))
        .filter(ProductReview.product_id == product_id)
        .order_by(ProductReview.created_at.desc())
        .all()
    )
    avg = db.query(func.avg(ProductReview.rating)).filter(ProductReview.product_id == product_id).scalar()
    return {
        "reviews": [r.to_dict() for r in rows],
        "averageRating": round(float(avg), 2) if avg is not None else None,
        "count": len(rows),
    }
