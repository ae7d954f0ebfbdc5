"""
Automatic irrigation

Runs the irrigation rule against the store: finds the farmer's first active
pump, reads its latest action and, when the rule triggers, stages an
automatic start in the caller's transaction.
"""

from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.models.enums import DeviceType
from src.api.models.iot import IotDevice, PumpAction
from src.control.pump_control import latest_pump_action
from src.models.irrigation import IrrigationDecision, decide_irrigation, needs_irrigation
from src.utils.logger import get_logger

logger = get_logger(__name__)


class IrrigationController:
    """Applies the irrigation rule for one farmer"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def first_active_pump(self, farmer_id: UUID) -> Optional[IotDevice]:
        """
        Oldest active pump of the farmer, row-locked

        The lock serialises concurrent low readings for the same farmer so
        only one of them sees an idle pump. Backends without FOR UPDATE
        ignore it.
        """
        result = await self.db.execute(
            select(IotDevice)
            .where(
                and_(
                    IotDevice.farmer_id == farmer_id,
                    IotDevice.device_type == DeviceType.WATER_PUMP.value,
                    IotDevice.active.is_(True)
                )
            )
            .order_by(IotDevice.created_at, IotDevice.id)
            .limit(1)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def evaluate(
        self,
        moisture_level: float,
        farmer_id: UUID,
        now: Optional[datetime] = None
    ) -> Tuple[IrrigationDecision, Optional[PumpAction]]:
        """
        Decide on one sample and stage the automatic start if triggered

        The pump action is added to the session but not committed.

        Returns:
            The decision and the staged PumpAction (None when not triggered)
        """
        if not needs_irrigation(moisture_level):
            return decide_irrigation(moisture_level, []), None

        logger.info(f"Low moisture detected ({moisture_level}%), checking for pump...")

        pump = await self.first_active_pump(farmer_id)
        pumps = [pump] if pump is not None else []
        last_action = await latest_pump_action(self.db, pump.id) if pump is not None else None

        decision = decide_irrigation(moisture_level, pumps, last_action, now)

        if not decision.triggered:
            logger.info(f"Pump not triggered: {decision.reason.value}")
            return decision, None

        pump_action = PumpAction(**decision.action_values())
        self.db.add(pump_action)
        logger.info(f"Pump {pump.id} triggered automatically")

        return decision, pump_action
