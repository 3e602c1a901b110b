from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from freshleap.infra.database import Base
from .base import Role, enum_column_type, iso, new_id, utcnow


class User(Base):
    __tablename__ = "users"

    # user_id = uid Supabase Auth (profil applicatif miroir)
    user_id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(enum_column_type(Role, "role"), nullable=False, default=Role.customer)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    farmer = relationship("Farmer", back_populates="user", uselist=False)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value if self.role else None,
            "is_verified": bool(self.is_verified),
            "created_at": iso(self.created_at),
        }


class Farmer(Base):
    __tablename__ = "farmers"

    farmer_id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False)
    farm_name = Column(String(255), nullable=False)
    farm_location = Column(String(255), nullable=False)
    contact_number = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="farmer")
    products = relationship("Product", back_populates="farmer")

    def to_dict(self):
        return {
            "farmer_id": self.farmer_id,
            "user_id": self.user_id,
            "farm_name": self.farm_name,
            "farm_location": self.farm_location,
            "contact_number": self.contact_number,
            "created_at": iso(self.created_at),
        }
