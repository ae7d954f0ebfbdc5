"""
Rule-Based Irrigation Decision

Decides whether a soil moisture sample should start a farmer's water pump.
The rule is a fixed threshold:
- moisture below 30% starts the first active pump for 60 seconds
- no pump, or a pump that is already running, means no action

Pump state is never stored. It is derived from the latest pump action
(last write wins): a ``start`` whose run window has not elapsed, or a
``start`` without a duration, means the pump is running.

Author: AgriLink Development Team
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from src.api.models.enums import PumpCommand, TriggerSource
from src.utils.clock import as_utc, utcnow

# Fixed for every device and farmer
MOISTURE_THRESHOLD = 30.0
AUTO_RUN_SECONDS = 60

# Display bands for readings
MEDIUM_MOISTURE_THRESHOLD = 60.0


class PumpState(str, Enum):
    RUNNING = "running"
    IDLE = "idle"


class MoistureStatus(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    OPTIMAL = "optimal"


class DecisionReason(str, Enum):
    MOISTURE_OK = "moisture_ok"
    NO_ACTIVE_PUMP = "no_active_pump"
    PUMP_ALREADY_RUNNING = "pump_already_running"
    LOW_MOISTURE = "low_moisture"


@dataclass
class IrrigationDecision:
    """
    Outcome of evaluating one moisture sample

    Attributes:
        triggered: Whether an automatic start should be written
        reason: Which branch of the rule decided
        moisture_level: The evaluated sample
        pump_id: Pump to start when triggered
        duration_seconds: Run duration of the automatic start
    """
    triggered: bool
    reason: DecisionReason
    moisture_level: float
    pump_id: Optional[UUID] = None
    duration_seconds: int = AUTO_RUN_SECONDS
    metadata: Dict[str, Any] = field(default_factory=dict)

    def action_values(self) -> Dict[str, Any]:
        """Column values of the pump action this decision emits"""
        if not self.triggered:
            raise ValueError("Decision did not trigger a pump action")
        return {
            "device_id": self.pump_id,
            "action": PumpCommand.START.value,
            "triggered_by": TriggerSource.AUTOMATIC.value,
            "duration_seconds": self.duration_seconds,
        }


def needs_irrigation(moisture_level: float) -> bool:
    return moisture_level < MOISTURE_THRESHOLD


def moisture_status(moisture_level: float) -> MoistureStatus:
    """Band a reading as low / medium / optimal"""
    if moisture_level < MOISTURE_THRESHOLD:
        return MoistureStatus.LOW
    if moisture_level < MEDIUM_MOISTURE_THRESHOLD:
        return MoistureStatus.MEDIUM
    return MoistureStatus.OPTIMAL


def run_window_end(last_action) -> Optional[datetime]:
    """When a start action stops running, or None for open-ended starts"""
    if last_action.duration_seconds is None:
        return None
    return as_utc(last_action.created_at) + timedelta(seconds=last_action.duration_seconds)


def derive_pump_state(last_action, now: Optional[datetime] = None) -> PumpState:
    """
    Pump state from its most recent action

    Args:
        last_action: Latest PumpAction for the pump, or None
        now: Evaluation time (defaults to current UTC time)
    """
    if last_action is None or last_action.action != PumpCommand.START.value:
        return PumpState.IDLE

    window_end = run_window_end(last_action)
    if window_end is None:
        return PumpState.RUNNING

    now = as_utc(now) if now else utcnow()
    return PumpState.RUNNING if now < window_end else PumpState.IDLE


def decide_irrigation(
    moisture_level: float,
    active_pumps: Sequence,
    last_action=None,
    now: Optional[datetime] = None
) -> IrrigationDecision:
    """
    Apply the irrigation rule to one sample

    Args:
        moisture_level: Soil moisture percentage
        active_pumps: The farmer's active water pumps, oldest first
        last_action: Latest action of the first pump, if any
        now: Evaluation time

    Returns:
        IrrigationDecision; at most one pump is started
    """
    if not needs_irrigation(moisture_level):
        return IrrigationDecision(False, DecisionReason.MOISTURE_OK, moisture_level)

    if not active_pumps:
        return IrrigationDecision(False, DecisionReason.NO_ACTIVE_PUMP, moisture_level)

    pump = active_pumps[0]

    if derive_pump_state(last_action, now) == PumpState.RUNNING:
        return IrrigationDecision(
            False,
            DecisionReason.PUMP_ALREADY_RUNNING,
            moisture_level,
            pump_id=pump.id,
            metadata={"running_since": as_utc(last_action.created_at).isoformat()}
        )

    return IrrigationDecision(
        True,
        DecisionReason.LOW_MOISTURE,
        moisture_level,
        pump_id=pump.id,
        metadata={"active_pumps": len(active_pumps)}
    )
