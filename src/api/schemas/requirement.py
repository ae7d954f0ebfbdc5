from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from src.api.schemas.crop import CropCategoryValue


class RequirementCreate(BaseModel):
    """Schema for posting a material requirement"""
    material_name: str = Field(..., min_length=1, max_length=255)
    category: CropCategoryValue
    quantity_needed: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=50)
    price_willing: float = Field(..., ge=0)
    description: Optional[str] = None
    urgent: bool = False


class RequirementUpdate(BaseModel):
    material_name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[CropCategoryValue] = None
    quantity_needed: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    price_willing: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    urgent: Optional[bool] = None
    active: Optional[bool] = None


class RequirementResponse(BaseModel):
    id: UUID
    factory_id: UUID
    material_name: str
    category: str
    quantity_needed: float
    unit: str
    price_willing: float
    description: Optional[str]
    urgent: bool
    active: bool
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class RequirementList(BaseModel):
    requirements: list[RequirementResponse]
    total: int
    page: int
    page_size: int
