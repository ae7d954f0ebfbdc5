"""
Row ownership policy

Every read or write against the store is gated by a predicate over the
caller's identity and the row's owning foreign key. ``can_access`` evaluates
the predicate against an in-memory row; ``ownership_filter`` expresses the
same rule as a SQL clause so that updates and deletes can carry it in their
WHERE clause instead of a separate read.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import false, inspect, or_, true
from sqlalchemy.orm.base import NO_VALUE

from src.api.models.crop import Crop
from src.api.models.enums import UserType
from src.api.models.iot import IotDevice, MoistureReading, PumpAction
from src.api.models.profile import Factory, Farmer, Profile
from src.api.models.purchase_request import PurchaseRequest
from src.api.models.requirement import Requirement
from src.utils.errors import PermissionDenied


class Operation(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Actor:
    """
    Resolved caller identity, passed explicitly to every handler

    Attributes:
        id: Identity provider subject, equal to the profile id
        role: Role from the caller's profile, or None before registration
    """
    id: UUID
    role: Optional[UserType] = None

    @property
    def is_farmer(self) -> bool:
        return self.role == UserType.FARMER

    @property
    def is_factory(self) -> bool:
        return self.role == UserType.FACTORY


WRITE_OPERATIONS = (Operation.INSERT, Operation.UPDATE, Operation.DELETE)


def _loaded_device(row) -> Optional[IotDevice]:
    """Parent device of a reading or action, only if already loaded"""
    value = inspect(row).attrs.device.loaded_value
    return None if value is NO_VALUE else value


def _owns_device(actor: Actor, device: Optional[IotDevice]) -> bool:
    return device is not None and device.farmer_id == actor.id


def can_access(actor: Optional[Actor], operation: Operation, row: Any) -> bool:
    """
    Decide whether ``actor`` may perform ``operation`` on ``row``

    Args:
        actor: Caller identity, None for anonymous callers
        operation: Requested operation
        row: ORM instance the operation targets

    Returns:
        True when the ownership predicate for the row's table allows it
    """
    if isinstance(row, (Profile, Farmer, Factory)):
        if operation == Operation.SELECT:
            return True
        return actor is not None and row.id == actor.id

    if isinstance(row, Crop):
        if operation == Operation.SELECT and row.available:
            return True
        return actor is not None and actor.is_farmer and row.farmer_id == actor.id

    if isinstance(row, Requirement):
        if operation == Operation.SELECT and row.active:
            return True
        return actor is not None and actor.is_factory and row.factory_id == actor.id

    if actor is None:
        return False

    if isinstance(row, PurchaseRequest):
        if operation == Operation.SELECT:
            return actor.id in (row.factory_id, row.farmer_id)
        if operation == Operation.INSERT:
            return actor.is_factory and row.factory_id == actor.id
        if operation == Operation.UPDATE:
            return row.farmer_id == actor.id
        return False

    if isinstance(row, IotDevice):
        if operation == Operation.INSERT and not actor.is_farmer:
            return False
        return row.farmer_id == actor.id

    if isinstance(row, (MoistureReading, PumpAction)):
        # Event log rows are never mutated
        if operation in (Operation.UPDATE, Operation.DELETE):
            return False
        return _owns_device(actor, _loaded_device(row))

    return False


def authorize(actor: Optional[Actor], operation: Operation, row: Any) -> None:
    """Raise PermissionDenied unless ``can_access`` allows the operation"""
    if not can_access(actor, operation, row):
        raise PermissionDenied(
            f"Not allowed to {operation.value} this {type(row).__name__.lower()}"
        )


def ownership_filter(actor: Optional[Actor], operation: Operation, model):
    """
    SQL clause equivalent of ``can_access`` for ``model``

    MoistureReading and PumpAction are scoped through their device, so the
    returned clause expects the query to join IotDevice.
    """
    if model in (Profile, Farmer, Factory):
        if operation == Operation.SELECT:
            return true()
        return model.id == actor.id if actor is not None else false()

    if model is Crop:
        owner = (
            Crop.farmer_id == actor.id
            if actor is not None and actor.is_farmer
            else false()
        )
        if operation == Operation.SELECT:
            return or_(Crop.available.is_(True), owner)
        return owner

    if model is Requirement:
        owner = (
            Requirement.factory_id == actor.id
            if actor is not None and actor.is_factory
            else false()
        )
        if operation == Operation.SELECT:
            return or_(Requirement.active.is_(True), owner)
        return owner

    if actor is None:
        return false()

    if model is PurchaseRequest:
        if operation == Operation.SELECT:
            return or_(
                PurchaseRequest.factory_id == actor.id,
                PurchaseRequest.farmer_id == actor.id,
            )
        if operation == Operation.UPDATE:
            return PurchaseRequest.farmer_id == actor.id
        if operation == Operation.INSERT and actor.is_factory:
            return PurchaseRequest.factory_id == actor.id
        return false()

    if model is IotDevice:
        return IotDevice.farmer_id == actor.id

    if model in (MoistureReading, PumpAction):
        if operation in (Operation.UPDATE, Operation.DELETE):
            return false()
        return IotDevice.farmer_id == actor.id

    return false()
