"""Couche d'accès aux données (SQLAlchemy) pour les comptes: users et farmers.
Profil applicatif miroir de l'identité Supabase (user_id = uid GoTrue).
"""
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from freshleap.models import Farmer, Role, User


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    if not user_id:
        return None
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    if not email:
        return None
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).one_or_none()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    if not username:
        return None
    return db.query(User).filter(User.username == username.strip()).one_or_none()


def get_farmer_by_user(db: Session, user_id: str) -> Optional[Farmer]:
    if not user_id:
        return None
    return db.query(Farmer).filter(Farmer.user_id == user_id).one_or_none()


def get_farmer(db: Session, farmer_id: str) -> Optional[Farmer]:
    if not farmer_id:
        return None
    return db.get(Farmer, farmer_id)


def create_user(db: Session, *, user_id: str, username: str, email: str, role: Role, is_verified: bool = False) -> User:
    user = User(user_id=user_id, username=username, email=email.strip().lower(), role=role, is_verified=is_verified)
    db.add(user)
    db.flush()
    return user


def upsert_farmer(db: Session, user_id: str, *, farm_name: str, farm_location: str, contact_number: str) -> Farmer:
    farmer = get_farmer_by_user(db, user_id)
    if farmer is None:
        farmer = Farmer(user_id=user_id, farm_name=farm_name, farm_location=farm_location, contact_number=contact_number)
        db.add(farmer)
    else:
        farmer.farm_name = farm_name
        farmer.farm_location = farm_location
        farmer.contact_number = contact_number
    db.flush()
    return farmer
