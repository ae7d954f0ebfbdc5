from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from src.api.core.database import Base
from src.utils.clock import utcnow


class IotDevice(Base):
    """Moisture sensor or water pump registered by a farmer"""
    __tablename__ = "iot_devices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    farmer_id = Column(Uuid, ForeignKey("farmers.id", ondelete="CASCADE"), nullable=False, index=True)
    device_name = Column(String(255), nullable=False)
    device_type = Column(String(50), nullable=False, index=True)
    location = Column(String(255))
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<IotDevice {self.device_name} ({self.device_type})>"


class MoistureReading(Base):
    """Append-only soil sensor sample"""
    __tablename__ = "moisture_readings"
    __table_args__ = (
        Index("ix_moisture_readings_device_recorded", "device_id", "recorded_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    device_id = Column(Uuid, ForeignKey("iot_devices.id", ondelete="RESTRICT"), nullable=False)
    moisture_level = Column(Float, nullable=False)
    temperature = Column(Float, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    device = relationship(IotDevice, lazy="raise")

    def __repr__(self):
        return f"<MoistureReading device={self.device_id} moisture={self.moisture_level}>"


class PumpAction(Base):
    """Append-only pump command log; the latest row defines pump state"""
    __tablename__ = "pump_actions"
    __table_args__ = (
        Index("ix_pump_actions_device_created", "device_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    device_id = Column(Uuid, ForeignKey("iot_devices.id", ondelete="RESTRICT"), nullable=False)
    action = Column(String(10), nullable=False)
    triggered_by = Column(String(20), nullable=False)
    duration_seconds = Column(Integer)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    device = relationship(IotDevice, lazy="raise")

    def __repr__(self):
        return f"<PumpAction device={self.device_id} {self.action} ({self.triggered_by})>"
