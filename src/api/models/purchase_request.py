from sqlalchemy import Column, String, Float, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from src.api.core.database import Base
from src.api.models.enums import RequestStatus


class PurchaseRequest(Base):
    __tablename__ = "purchase_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    crop_id = Column(Uuid, ForeignKey("crops.id", ondelete="CASCADE"), nullable=False, index=True)
    farmer_id = Column(Uuid, ForeignKey("farmers.id", ondelete="CASCADE"), nullable=False, index=True)
    factory_id = Column(Uuid, ForeignKey("factories.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    offered_price = Column(Float, nullable=False)
    message = Column(Text)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<PurchaseRequest {self.id} ({self.status})>"
