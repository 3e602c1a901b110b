"""
Types communs aux tables: identifiants UUID (texte), horodatage UTC, énumérations.
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Enum as SAEnum


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_uuid(value) -> bool:
    """True si value est un UUID texte valide (forme canonique ou non)."""
    if not value or not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class Role(str, enum.Enum):
    farmer = "farmer"
    customer = "customer"


class Category(str, enum.Enum):
    fruits = "fruits"
    vegetables = "vegetables"
    dairy = "dairy"
    meat = "meat"
    grains = "grains"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    cancelled = "cancelled"
    shipped = "shipped"


def enum_column_type(enum_cls, name: str) -> SAEnum:
    # Valeurs stockées = .value (et non le nom du membre); CHECK portable SQLite/Postgres
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda e: [m.value for m in e],
        native_enum=False,
        validate_strings=True,
        length=16,
    )


def iso(dt) -> str | None:
    return dt.isoformat() if dt else None
