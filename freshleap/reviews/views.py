from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from freshleap.infra.database import get_db
from freshleap.utils.rate_limit import optional_rate_limit
from freshleap.utils.security import require_user
from . import service

router = APIRouter(prefix="/api/v1/reviews", tags=["Reviews API"])


class ReviewRequest(BaseModel):
    product_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


@router.post("", status_code=201, dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def submit_review(body: ReviewRequest, user: Dict[str, Any] = Depends(require_user), db: Session = Depends(get_db)):
    review = service.submit_review(db, user["id"], body.product_id, body.rating, body.comment)
    return {"message": "Review submitted successfully", "review": review}


@router.get("/{product_id}")
def product_reviews(product_id: str, db: Session = Depends(get_db)):
    return service.list_reviews(db, product_id)
