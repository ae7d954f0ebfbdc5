from pydantic import BaseModel, Field, model_validator
from typing import Optional, Literal
from datetime import datetime
from uuid import UUID

UserTypeValue = Literal["farmer", "factory"]


class ProfileCreate(BaseModel):
    """
    Schema for registering the caller's profile

    Farmers may send farm details; factories must send a company name.
    """
    full_name: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    user_type: UserTypeValue
    farm_size: Optional[str] = Field(None, max_length=100)
    primary_crops: Optional[list[str]] = None
    company_name: Optional[str] = Field(None, max_length=255)
    materials_needed: Optional[list[str]] = None

    @model_validator(mode="after")
    def require_company_name(self):
        if self.user_type == "factory" and not self.company_name:
            raise ValueError("company_name is required for factory profiles")
        return self


class ProfileUpdate(BaseModel):
    """Schema for updating profile details; the role cannot change"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class FarmerDetails(BaseModel):
    farm_size: Optional[str]
    primary_crops: Optional[list[str]]

    class Config:
        from_attributes = True


class FactoryDetails(BaseModel):
    company_name: str
    materials_needed: Optional[list[str]]

    class Config:
        from_attributes = True


class ProfileResponse(BaseModel):
    id: UUID
    full_name: str
    location: str
    phone: Optional[str]
    user_type: str
    created_at: datetime
    updated_at: Optional[datetime]
    farmer: Optional[FarmerDetails] = None
    factory: Optional[FactoryDetails] = None

    class Config:
        from_attributes = True
