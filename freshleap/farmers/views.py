from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from freshleap.infra.database import get_db
from freshleap.utils.security import require_farmer
from freshleap.utils.validators import validate_contact_number
from . import service

router = APIRouter(prefix="/api/v1/farmers", tags=["Farmers API"])


class FarmProfileUpdate(BaseModel):
    farm_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    farm_location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_number: Optional[str] = None

    @field_validator("contact_number")
    def contact_ok(cls, v: Optional[str]) -> Optional[str]:
        return validate_contact_number(v) if v is not None else v


@router.put("/me")
def update_my_farm(body: FarmProfileUpdate, user: Dict[str, Any] = Depends(require_farmer), db: Session = Depends(get_db)):
    fields = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    farmer = service.update_profile(db, user["id"], fields)
    return {"message": "Farm profile updated successfully", "farmer": farmer}


@router.get("/{farmer_id}")
def farmer_dashboard(farmer_id: str, user: Dict[str, Any] = Depends(require_farmer), db: Session = Depends(get_db)):
    """Tableau de bord du producteur: {farmer, products, orders, stats}."""
    return service.get_dashboard(db, farmer_id, user)
