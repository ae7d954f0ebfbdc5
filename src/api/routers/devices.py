from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, update, delete
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from datetime import timedelta
from uuid import UUID
import logging

from src.api.core.database import get_db
from src.api.core.events import ChangeNotifier, get_notifier, row_to_dict
from src.api.core.ownership import Actor, Operation, authorize, ownership_filter
from src.api.core.security import get_current_actor
from src.api.config import settings
from src.api.models.enums import DeviceType
from src.api.models.iot import IotDevice, MoistureReading, PumpAction
from src.api.schemas.iot import (
    DeviceCreate,
    DeviceUpdate,
    DeviceResponse,
    DeviceList,
    LatestReadingResponse,
    ReadingList,
    PumpActionList,
    PumpStatusResponse
)
from src.control.pump_control import latest_pump_action
from src.models.irrigation import derive_pump_state, moisture_status
from src.utils.clock import utcnow
from src.utils.errors import Conflict, NotFound, PersistenceError

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_owned_device(db: AsyncSession, actor: Actor, device_id: UUID) -> IotDevice:
    """Fetch a device only if the caller owns it"""
    result = await db.execute(
        select(IotDevice).where(
            and_(
                IotDevice.id == device_id,
                ownership_filter(actor, Operation.SELECT, IotDevice)
            )
        )
    )
    device = result.scalar_one_or_none()

    if not device:
        raise NotFound("Device not found")

    return device


@router.get("/", response_model=DeviceList)
async def list_devices(
    device_type: Optional[DeviceType] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's devices, newest first

    Optionally filter by device_type (moisture_sensor or water_pump)
    """
    query = select(IotDevice).where(ownership_filter(actor, Operation.SELECT, IotDevice))
    if device_type:
        query = query.where(IotDevice.device_type == device_type.value)

    result = await db.execute(query.order_by(IotDevice.created_at.desc()))
    devices = result.scalars().all()

    return DeviceList(devices=devices, total=len(devices))


@router.post("/", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def register_device(
    device_data: DeviceCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Register a sensor or pump

    Only farmers can own devices.
    """
    device = IotDevice(farmer_id=actor.id, **device_data.model_dump())
    authorize(actor, Operation.INSERT, device)

    db.add(device)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error registering device: {e}")
        raise PersistenceError("Failed to register device") from e
    await db.refresh(device)

    await notifier.publish("INSERT", IotDevice.__tablename__, row_to_dict(device))
    return device


@router.put("/{device_id}", response_model=DeviceResponse)
async def update_device(
    device_id: UUID,
    device_data: DeviceUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Rename, relocate, activate or deactivate a device

    The ownership check is part of the UPDATE statement itself.
    """
    update_data = device_data.model_dump(exclude_unset=True)
    if update_data:
        result = await db.execute(
            update(IotDevice)
            .where(
                and_(
                    IotDevice.id == device_id,
                    ownership_filter(actor, Operation.UPDATE, IotDevice)
                )
            )
            .values(**update_data)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFound("Device not found")
        await db.commit()

    device = await get_owned_device(db, actor, device_id)
    await db.refresh(device)

    await notifier.publish("UPDATE", IotDevice.__tablename__, row_to_dict(device))
    return device


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(
    device_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Remove a device that has never reported or been commanded

    Readings and pump actions are never deleted, so a device with history
    is refused with 409; deactivate it with PUT instead.
    """
    await get_owned_device(db, actor, device_id)

    for model in (MoistureReading, PumpAction):
        history = await db.execute(
            select(model.id).where(model.device_id == device_id).limit(1)
        )
        if history.first() is not None:
            raise Conflict("Device has recorded history; deactivate it instead")

    result = await db.execute(
        delete(IotDevice).where(
            and_(
                IotDevice.id == device_id,
                ownership_filter(actor, Operation.DELETE, IotDevice)
            )
        )
    )

    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Device not found")

    await db.commit()
    await notifier.publish("DELETE", IotDevice.__tablename__, {"id": device_id})


@router.get("/{device_id}/readings", response_model=ReadingList)
async def list_readings(
    device_id: UUID,
    hours: int = Query(settings.READINGS_HISTORY_HOURS, ge=1, le=settings.MAX_READINGS_HISTORY_HOURS),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Reading history of a sensor, oldest first

    Defaults to the last 24 hours.
    """
    await get_owned_device(db, actor, device_id)

    since = utcnow() - timedelta(hours=hours)
    result = await db.execute(
        select(MoistureReading)
        .join(IotDevice, MoistureReading.device_id == IotDevice.id)
        .where(
            and_(
                MoistureReading.device_id == device_id,
                MoistureReading.recorded_at >= since,
                ownership_filter(actor, Operation.SELECT, MoistureReading)
            )
        )
        .order_by(MoistureReading.recorded_at.asc())
    )
    readings = result.scalars().all()

    return ReadingList(readings=readings, total=len(readings), hours=hours)


@router.get("/{device_id}/readings/latest", response_model=LatestReadingResponse)
async def get_latest_reading(
    device_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Most recent reading of a sensor with its moisture band
    """
    await get_owned_device(db, actor, device_id)

    result = await db.execute(
        select(MoistureReading)
        .where(MoistureReading.device_id == device_id)
        .order_by(MoistureReading.recorded_at.desc())
        .limit(1)
    )
    reading = result.scalar_one_or_none()

    if not reading:
        raise NotFound("No readings for this device")

    return LatestReadingResponse(
        id=reading.id,
        device_id=reading.device_id,
        moisture_level=reading.moisture_level,
        temperature=reading.temperature,
        recorded_at=reading.recorded_at,
        status=moisture_status(reading.moisture_level).value
    )


@router.get("/{device_id}/pump-actions", response_model=PumpActionList)
async def list_pump_actions(
    device_id: UUID,
    limit: int = Query(settings.PUMP_ACTIONS_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Recent pump actions, newest first
    """
    await get_owned_device(db, actor, device_id)

    count_query = select(func.count()).select_from(PumpAction).where(PumpAction.device_id == device_id)
    total_result = await db.execute(count_query)
    total = total_result.scalar()

    result = await db.execute(
        select(PumpAction)
        .where(PumpAction.device_id == device_id)
        .order_by(PumpAction.created_at.desc())
        .limit(limit)
    )
    actions = result.scalars().all()

    return PumpActionList(actions=actions, total=total)


@router.get("/{device_id}/status", response_model=PumpStatusResponse)
async def get_pump_status(
    device_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Current pump state, derived from the latest pump action

    There is no stored state: the answer can be stale by the time a new
    command is issued.
    """
    device = await get_owned_device(db, actor, device_id)
    if device.device_type != DeviceType.WATER_PUMP.value:
        raise NotFound("Pump not found")

    last_action = await latest_pump_action(db, device.id)

    return PumpStatusResponse(
        device_id=device.id,
        state=derive_pump_state(last_action).value,
        last_action=last_action
    )
