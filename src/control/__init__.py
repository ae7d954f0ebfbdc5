"""
Pump control for AgriLink
"""

from .irrigation import IrrigationController
from .pump_control import PumpCommandResult, PumpCommandService, latest_pump_action, parse_device_id

__all__ = [
    'IrrigationController',
    'PumpCommandResult',
    'PumpCommandService',
    'latest_pump_action',
    'parse_device_id'
]
