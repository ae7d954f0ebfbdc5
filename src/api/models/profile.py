from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.sql import func

from src.api.core.database import Base


class Profile(Base):
    """Actor profile; the id is the identity provider's subject"""
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True)
    full_name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    phone = Column(String(50))
    user_type = Column(String(20), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Profile {self.full_name} ({self.user_type})>"


class Farmer(Base):
    __tablename__ = "farmers"

    id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    farm_size = Column(String(100))
    primary_crops = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Farmer {self.id}>"


class Factory(Base):
    __tablename__ = "factories"

    id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    company_name = Column(String(255), nullable=False)
    materials_needed = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Factory {self.company_name}>"
