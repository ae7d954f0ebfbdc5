from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, update
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from uuid import UUID
import logging

from src.api.core.database import get_db
from src.api.core.events import ChangeNotifier, get_notifier, row_to_dict
from src.api.core.ownership import Actor, Operation, authorize, can_access, ownership_filter
from src.api.core.pagination import paginate
from src.api.core.security import get_current_actor
from src.api.models.crop import Crop
from src.api.models.enums import RequestStatus
from src.api.models.purchase_request import PurchaseRequest
from src.api.schemas.purchase_request import (
    PurchaseRequestCreate,
    PurchaseRequestStatusUpdate,
    PurchaseRequestResponse,
    PurchaseRequestList,
    RequestStatusValue
)
from src.api.config import settings
from src.utils.errors import Conflict, NotFound, PermissionDenied, PersistenceError, ValidationError

router = APIRouter()
logger = logging.getLogger(__name__)

# Target status -> statuses it may be reached from
STATUS_TRANSITIONS = {
    RequestStatus.ACCEPTED.value: (RequestStatus.PENDING.value,),
    RequestStatus.REJECTED.value: (RequestStatus.PENDING.value,),
    RequestStatus.COMPLETED.value: (RequestStatus.ACCEPTED.value,),
    RequestStatus.PENDING.value: (),
}


async def get_visible_request(db: AsyncSession, actor: Actor, request_id: UUID) -> PurchaseRequest:
    """Fetch a request if the caller is the buying factory or the selling farmer"""
    result = await db.execute(
        select(PurchaseRequest)
        .where(
            and_(
                PurchaseRequest.id == request_id,
                ownership_filter(actor, Operation.SELECT, PurchaseRequest)
            )
        )
        .execution_options(populate_existing=True)
    )
    purchase_request = result.scalar_one_or_none()

    if not purchase_request:
        raise NotFound("Purchase request not found")

    return purchase_request


@router.post("/", response_model=PurchaseRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_request(
    request_data: PurchaseRequestCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Send a purchase request for an available crop

    Only factories can send requests. The selling farmer is always the
    crop's owner.
    """
    crop_result = await db.execute(
        select(Crop).where(
            and_(
                Crop.id == request_data.crop_id,
                Crop.available.is_(True)
            )
        )
    )
    crop = crop_result.scalar_one_or_none()

    if not crop:
        raise NotFound("Crop not found")

    if request_data.farmer_id is not None and request_data.farmer_id != crop.farmer_id:
        raise ValidationError("farmer_id does not match the crop's owner")

    if request_data.quantity > crop.quantity:
        raise ValidationError("Requested quantity exceeds the available quantity")

    purchase_request = PurchaseRequest(
        crop_id=crop.id,
        farmer_id=crop.farmer_id,
        factory_id=actor.id,
        quantity=request_data.quantity,
        offered_price=request_data.offered_price,
        message=request_data.message,
        status=RequestStatus.PENDING.value
    )
    authorize(actor, Operation.INSERT, purchase_request)

    db.add(purchase_request)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating purchase request: {e}")
        raise PersistenceError("Failed to send request") from e
    await db.refresh(purchase_request)

    await notifier.publish("INSERT", PurchaseRequest.__tablename__, row_to_dict(purchase_request))
    return purchase_request


@router.get("/", response_model=PurchaseRequestList)
async def list_purchase_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[RequestStatusValue] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    List requests the caller sent (factory) or received (farmer), newest first
    """
    filters = [ownership_filter(actor, Operation.SELECT, PurchaseRequest)]
    if status_filter:
        filters.append(PurchaseRequest.status == status_filter)

    requests, total = await paginate(
        db,
        select(PurchaseRequest).where(and_(*filters)),
        select(func.count()).select_from(PurchaseRequest).where(and_(*filters)),
        PurchaseRequest.created_at.desc(),
        page,
        page_size
    )

    return PurchaseRequestList(requests=requests, total=total, page=page, page_size=page_size)


@router.get("/{request_id}", response_model=PurchaseRequestResponse)
async def get_purchase_request(
    request_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await get_visible_request(db, actor, request_id)


@router.patch("/{request_id}/status", response_model=PurchaseRequestResponse)
async def update_purchase_request_status(
    request_id: UUID,
    status_data: PurchaseRequestStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Accept, reject or complete a request

    Only the selling farmer can change the status. Allowed transitions:
    pending -> accepted | rejected, accepted -> completed. Accepting marks
    the crop unavailable in the same transaction.
    """
    new_status = status_data.status

    result = await db.execute(
        update(PurchaseRequest)
        .where(
            and_(
                PurchaseRequest.id == request_id,
                ownership_filter(actor, Operation.UPDATE, PurchaseRequest),
                PurchaseRequest.status.in_(STATUS_TRANSITIONS[new_status])
            )
        )
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        await db.rollback()
        current = await get_visible_request(db, actor, request_id)
        if not can_access(actor, Operation.UPDATE, current):
            raise PermissionDenied("Only the selling farmer can change the status")
        raise Conflict(f"Cannot change status from {current.status} to {new_status}")

    purchase_request = await get_visible_request(db, actor, request_id)

    if new_status == RequestStatus.ACCEPTED.value:
        await db.execute(
            update(Crop)
            .where(
                and_(
                    Crop.id == purchase_request.crop_id,
                    ownership_filter(actor, Operation.UPDATE, Crop)
                )
            )
            .values(available=False)
            .execution_options(synchronize_session=False)
        )

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating purchase request {request_id}: {e}")
        raise PersistenceError("Failed to update request") from e

    logger.info(f"Purchase request {request_id} -> {new_status}")
    await notifier.publish("UPDATE", PurchaseRequest.__tablename__, row_to_dict(purchase_request))
    return purchase_request
