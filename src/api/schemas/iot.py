from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime
from uuid import UUID

DeviceTypeValue = Literal["moisture_sensor", "water_pump"]
PumpActionValue = Literal["start", "stop"]


class SensorDataIn(BaseModel):
    """Telemetry sample posted by a sensor"""
    # Kept as a string: ids that do not resolve are a 404, not a 422
    device_id: str = Field(..., min_length=1)
    # Out-of-range values from faulty sensors are stored as reported
    moisture_level: float
    temperature: float


class SensorDataResponse(BaseModel):
    success: bool = True
    message: str
    pump_triggered: bool


class PumpControlIn(BaseModel):
    """Manual pump command"""
    device_id: str = Field(..., min_length=1)
    action: PumpActionValue
    duration_seconds: Optional[int] = Field(None, ge=0)


class PumpControlResponse(BaseModel):
    success: bool = True
    message: str
    device_id: str
    action: str


class DeviceCreate(BaseModel):
    """Schema for registering a device"""
    device_name: str = Field(..., min_length=1, max_length=255)
    device_type: DeviceTypeValue
    location: Optional[str] = Field(None, max_length=255)
    active: bool = True


class DeviceUpdate(BaseModel):
    """Schema for updating a device; the type is fixed at registration"""
    device_name: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    active: Optional[bool] = None


class DeviceResponse(BaseModel):
    id: UUID
    farmer_id: UUID
    device_name: str
    device_type: str
    location: Optional[str]
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class DeviceList(BaseModel):
    devices: list[DeviceResponse]
    total: int


class ReadingResponse(BaseModel):
    id: UUID
    device_id: UUID
    moisture_level: float
    temperature: float
    recorded_at: datetime

    class Config:
        from_attributes = True


class LatestReadingResponse(ReadingResponse):
    """Latest reading with its moisture band (low / medium / optimal)"""
    status: str


class ReadingList(BaseModel):
    readings: list[ReadingResponse]
    total: int
    hours: int


class PumpActionResponse(BaseModel):
    id: UUID
    device_id: UUID
    action: str
    triggered_by: str
    duration_seconds: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class PumpActionList(BaseModel):
    actions: list[PumpActionResponse]
    total: int


class PumpStatusResponse(BaseModel):
    """Derived pump state; last write wins, nothing is stored"""
    device_id: UUID
    state: Literal["running", "idle"]
    last_action: Optional[PumpActionResponse] = None
