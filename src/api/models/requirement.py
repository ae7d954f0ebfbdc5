from sqlalchemy import Column, String, Float, Text, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from src.api.core.database import Base


class Requirement(Base):
    """Material requirement posted by a factory"""
    __tablename__ = "requirements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    factory_id = Column(Uuid, ForeignKey("factories.id", ondelete="CASCADE"), nullable=False, index=True)
    material_name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    quantity_needed = Column(Float, nullable=False)
    unit = Column(String(50), nullable=False)
    price_willing = Column(Float, nullable=False)
    description = Column(Text)
    urgent = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Requirement {self.material_name}>"
