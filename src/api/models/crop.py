from sqlalchemy import Column, String, Float, Date, Text, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from src.api.core.database import Base


class Crop(Base):
    """Crop listing owned by a farmer"""
    __tablename__ = "crops"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    farmer_id = Column(Uuid, ForeignKey("farmers.id", ondelete="CASCADE"), nullable=False, index=True)
    crop_name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    unit = Column(String(50), nullable=False)
    price_per_unit = Column(Float, nullable=False)
    harvest_date = Column(Date, nullable=False)
    description = Column(Text)
    image_url = Column(String(1024))
    available = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Crop {self.crop_name}>"
