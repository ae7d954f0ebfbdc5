from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime
from uuid import UUID

# Valid purchase request status values
RequestStatusValue = Literal["pending", "accepted", "rejected", "completed"]


class PurchaseRequestCreate(BaseModel):
    """
    Schema for a factory's purchase request

    farmer_id is optional; the crop's owner is always used and a
    different value is rejected.
    """
    crop_id: UUID
    farmer_id: Optional[UUID] = None
    quantity: float = Field(..., gt=0)
    offered_price: float = Field(..., ge=0)
    message: Optional[str] = None


class PurchaseRequestStatusUpdate(BaseModel):
    status: RequestStatusValue


class PurchaseRequestResponse(BaseModel):
    id: UUID
    crop_id: UUID
    farmer_id: UUID
    factory_id: UUID
    quantity: float
    offered_price: float
    message: Optional[str]
    status: str
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class PurchaseRequestList(BaseModel):
    requests: list[PurchaseRequestResponse]
    total: int
    page: int
    page_size: int
