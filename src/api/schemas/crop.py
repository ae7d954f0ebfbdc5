from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import date, datetime
from uuid import UUID

# Valid crop category values
CropCategoryValue = Literal["grains", "vegetables", "fruits", "spices", "pulses", "oilseeds", "other"]


class CropCreate(BaseModel):
    """Schema for listing a crop"""
    crop_name: str = Field(..., min_length=1, max_length=255)
    category: CropCategoryValue
    quantity: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=50)
    price_per_unit: float = Field(..., ge=0)
    harvest_date: date
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)


class CropUpdate(BaseModel):
    """Schema for updating a crop listing"""
    crop_name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[CropCategoryValue] = None
    quantity: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    price_per_unit: Optional[float] = Field(None, ge=0)
    harvest_date: Optional[date] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)
    available: Optional[bool] = None


class CropResponse(BaseModel):
    """Schema for crop response"""
    id: UUID
    farmer_id: UUID
    crop_name: str
    category: str
    quantity: float
    unit: str
    price_per_unit: float
    harvest_date: date
    description: Optional[str]
    image_url: Optional[str]
    available: bool
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class CropList(BaseModel):
    """Schema for paginated crop list"""
    crops: list[CropResponse]
    total: int
    page: int
    page_size: int
