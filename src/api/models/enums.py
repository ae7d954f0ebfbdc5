from enum import Enum


class UserType(str, Enum):
    """Actor roles; every profile has exactly one"""
    FARMER = "farmer"
    FACTORY = "factory"


class CropCategory(str, Enum):
    GRAINS = "grains"
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    SPICES = "spices"
    PULSES = "pulses"
    OILSEEDS = "oilseeds"
    OTHER = "other"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class DeviceType(str, Enum):
    MOISTURE_SENSOR = "moisture_sensor"
    WATER_PUMP = "water_pump"


class PumpCommand(str, Enum):
    START = "start"
    STOP = "stop"


class TriggerSource(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
