from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from freshleap.infra.database import get_db
from freshleap.models import Category
from freshleap.utils.security import require_farmer
from . import service

router = APIRouter(prefix="/api/v1/products", tags=["Products API"])


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: Category
    description: Optional[str] = None
    price: int = Field(ge=0)
    quantity_available: int = Field(ge=0)
    image_url: Optional[str] = Field(default=None, max_length=1024)

    @field_validator("name")
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[Category] = None
    description: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    quantity_available: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = Field(default=None, max_length=1024)


@router.get("")
def list_products(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return service.list_products(db)


@router.get("/search")
def search_products(
    category: Optional[str] = None,
    min_price: Optional[str] = Query(default=None, alias="minPrice"),
    max_price: Optional[str] = Query(default=None, alias="maxPrice"),
    name: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Recherche paginée: {products, totalCount}. Filtres invalides ignorés."""
    return service.search_products(
        db,
        category=category,
        min_price=min_price,
        max_price=max_price,
        name=name,
        page=page,
        limit=limit,
    )


@router.get("/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return service.get_product_detail(db, product_id)


@router.post("", status_code=201)
def create_product(body: ProductCreate, user: Dict[str, Any] = Depends(require_farmer), db: Session = Depends(get_db)):
    product = service.create_product(db, user["farmer_id"], body.model_dump())
    return {"message": "Product created successfully", "product": product}


@router.put("/{product_id}")
def update_product(
    product_id: str,
    body: ProductUpdate,
    user: Dict[str, Any] = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    fields = body.model_dump(exclude_unset=True)
    # Les champs obligatoires ne peuvent pas être remis à null
    fields = {k: v for k, v in fields.items() if v is not None or k in ("description", "image_url")}
    product = service.update_product(db, product_id, user["farmer_id"], fields)
    return {"message": "Product updated successfully", "product": product}


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: str, user: Dict[str, Any] = Depends(require_farmer), db: Session = Depends(get_db)):
    service.delete_product(db, product_id, user["farmer_id"])
    return Response(status_code=204)
