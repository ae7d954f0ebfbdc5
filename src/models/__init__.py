"""
Decision models for AgriLink

This module includes:
- Rule-based irrigation decision for soil moisture samples

Author: AgriLink Development Team
"""

from .irrigation import (
    AUTO_RUN_SECONDS,
    MOISTURE_THRESHOLD,
    DecisionReason,
    IrrigationDecision,
    MoistureStatus,
    PumpState,
    decide_irrigation,
    derive_pump_state,
    moisture_status,
    needs_irrigation
)

__all__ = [
    'AUTO_RUN_SECONDS',
    'MOISTURE_THRESHOLD',
    'DecisionReason',
    'IrrigationDecision',
    'MoistureStatus',
    'PumpState',
    'decide_irrigation',
    'derive_pump_state',
    'moisture_status',
    'needs_irrigation'
]
