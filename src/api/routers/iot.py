from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import hmac
import logging

from src.api.core.database import get_db
from src.api.core.events import ChangeNotifier, get_notifier
from src.api.core.ownership import Actor
from src.api.core.security import get_current_actor
from src.api.schemas.iot import SensorDataIn, SensorDataResponse, PumpControlIn, PumpControlResponse
from src.api.config import settings
from src.control.pump_control import PumpCommandService
from src.ingestion.sensor_ingestion import SensorIngestionService
from src.utils.errors import Unauthorized

router = APIRouter()
logger = logging.getLogger(__name__)

# Browser dashboards call these endpoints cross-origin
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


async def verify_device_key(x_device_key: Optional[str] = Header(None)) -> None:
    """Check the shared ingestion key when one is configured"""
    expected = settings.SENSOR_INGEST_KEY
    if not expected:
        return
    if x_device_key is None or not hmac.compare_digest(x_device_key, expected):
        raise Unauthorized()


@router.options("/sensor-data", include_in_schema=False)
@router.options("/pump-control", include_in_schema=False)
async def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    "/sensor-data",
    response_model=SensorDataResponse,
    dependencies=[Depends(verify_device_key)]
)
async def receive_sensor_data(
    payload: SensorDataIn,
    response: Response,
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Ingest a soil moisture sample

    Stores the reading and starts the farmer's first active pump for
    60 seconds when moisture is below 30% and the pump is not already running.
    """
    service = SensorIngestionService(db, notifier)
    result = await service.ingest(payload.device_id, payload.moisture_level, payload.temperature)

    response.headers.update(CORS_HEADERS)
    return SensorDataResponse(
        message="Sensor data recorded",
        pump_triggered=result.pump_triggered
    )


@router.post("/pump-control", response_model=PumpControlResponse)
async def control_pump(
    payload: PumpControlIn,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Send a manual start/stop command to one of the caller's pumps

    Devices that do not exist, belong to another farmer, or are not pumps
    all return the same 404.
    """
    service = PumpCommandService(db, notifier)
    result = await service.send_command(
        actor,
        payload.device_id,
        payload.action,
        payload.duration_seconds
    )

    response.headers.update(CORS_HEADERS)
    return PumpControlResponse(
        message=result.message,
        device_id=str(result.device_id),
        action=result.action
    )
