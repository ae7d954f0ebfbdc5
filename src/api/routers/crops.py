from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, or_, update, delete
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from uuid import UUID
import logging

from src.api.core.database import get_db
from src.api.core.events import ChangeNotifier, get_notifier, row_to_dict
from src.api.core.ownership import Actor, Operation, authorize, ownership_filter
from src.api.core.pagination import paginate
from src.api.core.security import get_current_actor
from src.api.models.crop import Crop
from src.api.models.enums import CropCategory
from src.api.schemas.crop import CropCreate, CropUpdate, CropResponse, CropList
from src.api.config import settings
from src.utils.errors import NotFound, PersistenceError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=CropList)
async def list_crops(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[CropCategory] = None,
    q: Optional[str] = Query(None, min_length=1),
    db: AsyncSession = Depends(get_db)
):
    """
    Browse the marketplace: available crops, newest first

    Filters:
    - category: exact crop category
    - q: substring match on crop name or description
    """
    filters = [Crop.available.is_(True)]
    if category:
        filters.append(Crop.category == category.value)
    if q:
        search_term = f"%{q}%"
        filters.append(or_(Crop.crop_name.ilike(search_term), Crop.description.ilike(search_term)))

    crops, total = await paginate(
        db,
        select(Crop).where(and_(*filters)),
        select(func.count()).select_from(Crop).where(and_(*filters)),
        Crop.created_at.desc(),
        page,
        page_size
    )

    return CropList(crops=crops, total=total, page=page, page_size=page_size)


@router.get("/mine", response_model=CropList)
async def list_my_crops(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's own listings, including unavailable ones
    """
    owner = ownership_filter(actor, Operation.UPDATE, Crop)
    crops, total = await paginate(
        db,
        select(Crop).where(owner),
        select(func.count()).select_from(Crop).where(owner),
        Crop.created_at.desc(),
        page,
        page_size
    )

    return CropList(crops=crops, total=total, page=page, page_size=page_size)


@router.get("/{crop_id}", response_model=CropResponse)
async def get_crop(
    crop_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """
    Get details for an available crop
    """
    result = await db.execute(
        select(Crop).where(
            and_(
                Crop.id == crop_id,
                ownership_filter(None, Operation.SELECT, Crop)
            )
        )
    )
    crop = result.scalar_one_or_none()

    if not crop:
        raise NotFound("Crop not found")

    return crop


@router.post("/", response_model=CropResponse, status_code=status.HTTP_201_CREATED)
async def create_crop(
    crop_data: CropCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    List a crop for sale

    Only farmers can list crops; the listing is owned by the caller.
    """
    crop = Crop(farmer_id=actor.id, available=True, **crop_data.model_dump())
    authorize(actor, Operation.INSERT, crop)

    db.add(crop)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating crop: {e}")
        raise PersistenceError("Failed to create crop") from e
    await db.refresh(crop)

    await notifier.publish("INSERT", Crop.__tablename__, row_to_dict(crop))
    return crop


@router.put("/{crop_id}", response_model=CropResponse)
async def update_crop(
    crop_id: UUID,
    crop_data: CropUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Update a crop listing

    Only the owning farmer can update; other callers get 404.
    """
    owner = ownership_filter(actor, Operation.UPDATE, Crop)
    update_data = crop_data.model_dump(exclude_unset=True)

    if update_data:
        result = await db.execute(
            update(Crop)
            .where(and_(Crop.id == crop_id, owner))
            .values(**update_data)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFound("Crop not found")
        await db.commit()

    result = await db.execute(
        select(Crop)
        .where(and_(Crop.id == crop_id, owner))
        .execution_options(populate_existing=True)
    )
    crop = result.scalar_one_or_none()

    if not crop:
        raise NotFound("Crop not found")

    await notifier.publish("UPDATE", Crop.__tablename__, row_to_dict(crop))
    return crop


@router.delete("/{crop_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_crop(
    crop_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Delete a crop listing

    Only the owning farmer can delete.
    """
    result = await db.execute(
        delete(Crop).where(
            and_(
                Crop.id == crop_id,
                ownership_filter(actor, Operation.DELETE, Crop)
            )
        )
    )

    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Crop not found")

    await db.commit()
    await notifier.publish("DELETE", Crop.__tablename__, {"id": crop_id})
