"""
Sensor telemetry ingestion

Receives soil moisture samples from field devices, stores them and runs
the irrigation rule for the device's farmer. The reading and any automatic
pump start are committed together: either both are recorded or neither.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.events import ChangeNotifier, row_to_dict
from src.api.models.enums import DeviceType
from src.api.models.iot import IotDevice, MoistureReading, PumpAction
from src.control.irrigation import IrrigationController
from src.control.pump_control import parse_device_id
from src.models.irrigation import IrrigationDecision
from src.utils.clock import utcnow
from src.utils.errors import DeviceNotFound, PersistenceError
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class IngestionResult:
    """
    Outcome of one ingested sample

    Attributes:
        reading: The stored MoistureReading
        decision: Irrigation rule outcome for the sample
        pump_action: Automatic start written with the reading, if any
    """
    reading: MoistureReading
    decision: IrrigationDecision
    pump_action: Optional[PumpAction] = None

    @property
    def pump_triggered(self) -> bool:
        return self.pump_action is not None


class SensorIngestionService:
    """
    Stores moisture samples and applies automatic irrigation

    The caller is a service credential, not a person: the device identity in
    the payload is trusted once it resolves to a registered moisture sensor.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[ChangeNotifier] = None):
        self.db = db
        self.notifier = notifier
        self.irrigation = IrrigationController(db)

    async def resolve_sensor(self, device_id) -> IotDevice:
        """
        Look up the reporting device

        Raises:
            DeviceNotFound: Unknown id, malformed id, or not a moisture sensor
        """
        sensor_id = parse_device_id(device_id)
        if sensor_id is None:
            logger.error(f"Device not found: malformed id {device_id!r}")
            raise DeviceNotFound()

        result = await self.db.execute(
            select(IotDevice).where(
                and_(
                    IotDevice.id == sensor_id,
                    IotDevice.device_type == DeviceType.MOISTURE_SENSOR.value
                )
            )
        )
        device = result.scalar_one_or_none()

        if device is None:
            logger.error(f"Device not found: {device_id}")
            raise DeviceNotFound()

        return device

    async def ingest(
        self,
        device_id,
        moisture_level: float,
        temperature: float
    ) -> IngestionResult:
        """
        Record one sample and run the irrigation rule

        Args:
            device_id: Reporting sensor id as sent by the device
            moisture_level: Soil moisture percentage
            temperature: Temperature in degrees Celsius

        Returns:
            IngestionResult with the stored reading and optional pump action

        Raises:
            DeviceNotFound: The device does not resolve to a moisture sensor
            PersistenceError: Nothing was recorded
        """
        log = logger.bind(device_id=str(device_id))
        log.info(f"Received sensor data: moisture={moisture_level} temperature={temperature}")

        device = await self.resolve_sensor(device_id)

        reading = MoistureReading(
            device_id=device.id,
            moisture_level=moisture_level,
            temperature=temperature,
            recorded_at=utcnow(),
        )
        self.db.add(reading)

        try:
            await self.db.flush()
            decision, pump_action = await self.irrigation.evaluate(moisture_level, device.farmer_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.error(f"Error inserting reading: {e}")
            raise PersistenceError("Failed to insert reading") from e

        log.info(f"Stored reading {reading.id} (pump triggered: {pump_action is not None})")

        if self.notifier is not None:
            await self.notifier.publish("INSERT", MoistureReading.__tablename__, row_to_dict(reading))
            if pump_action is not None:
                await self.notifier.publish("INSERT", PumpAction.__tablename__, row_to_dict(pump_action))

        return IngestionResult(reading=reading, decision=decision, pump_action=pump_action)
