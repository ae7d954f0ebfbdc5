"""
Manual pump commands

Validates that the caller owns the target pump and appends the command to
the pump action log. No hardware signal is sent from here; pumps poll the
``pump_actions`` table for new commands.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.events import ChangeNotifier, row_to_dict
from src.api.core.ownership import Actor
from src.api.models.enums import DeviceType, PumpCommand, TriggerSource
from src.api.models.iot import IotDevice, PumpAction
from src.utils.errors import DeviceNotFoundOrUnauthorized, PersistenceError
from src.utils.logger import get_logger

logger = get_logger(__name__)


def parse_device_id(device_id) -> Optional[UUID]:
    """UUID of a client-supplied device id, or None when malformed"""
    if isinstance(device_id, UUID):
        return device_id
    try:
        return UUID(str(device_id))
    except ValueError:
        return None


async def latest_pump_action(db: AsyncSession, device_id: UUID) -> Optional[PumpAction]:
    """Most recent action for a pump; its ``action`` is the pump's state"""
    result = await db.execute(
        select(PumpAction)
        .where(PumpAction.device_id == device_id)
        .order_by(PumpAction.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


@dataclass
class PumpCommandResult:
    device_id: UUID
    action: str
    pump_action: PumpAction

    @property
    def message(self) -> str:
        return f"Pump {self.action} command sent"


class PumpCommandService:
    """Handles operator-issued start/stop commands"""

    def __init__(self, db: AsyncSession, notifier: Optional[ChangeNotifier] = None):
        self.db = db
        self.notifier = notifier

    async def _owned_pump(self, actor: Actor, device_id) -> IotDevice:
        pump_id = parse_device_id(device_id)
        if pump_id is None:
            raise DeviceNotFoundOrUnauthorized()

        result = await self.db.execute(
            select(IotDevice).where(
                and_(
                    IotDevice.id == pump_id,
                    IotDevice.farmer_id == actor.id,
                    IotDevice.device_type == DeviceType.WATER_PUMP.value
                )
            )
        )
        device = result.scalar_one_or_none()

        if device is None:
            logger.warning(f"Device not found or unauthorized: {device_id} (caller {actor.id})")
            raise DeviceNotFoundOrUnauthorized()

        return device

    async def send_command(
        self,
        actor: Actor,
        device_id,
        action: PumpCommand,
        duration_seconds: Optional[int] = None
    ) -> PumpCommandResult:
        """
        Log a manual pump command

        Args:
            actor: Authenticated caller
            device_id: Target pump id as supplied by the client
            action: start or stop
            duration_seconds: Optional run duration for starts

        Raises:
            DeviceNotFoundOrUnauthorized: Pump missing, foreign, or not a pump
            PersistenceError: The action could not be stored
        """
        action = PumpCommand(action)
        log = logger.bind(device_id=str(device_id), farmer_id=str(actor.id))
        log.info(f"Pump control request: action={action.value} duration={duration_seconds}")

        device = await self._owned_pump(actor, device_id)

        pump_action = PumpAction(
            device_id=device.id,
            action=action.value,
            triggered_by=TriggerSource.MANUAL.value,
            duration_seconds=duration_seconds or None,
        )
        self.db.add(pump_action)

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.error(f"Error logging pump action: {e}")
            raise PersistenceError("Failed to log pump action") from e

        log.info(f"Pump {action.value} command sent")

        if self.notifier is not None:
            await self.notifier.publish("INSERT", PumpAction.__tablename__, row_to_dict(pump_action))

        return PumpCommandResult(device_id=device.id, action=action.value, pump_action=pump_action)
