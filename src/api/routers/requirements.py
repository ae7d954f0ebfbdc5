from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_, update, delete
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from uuid import UUID
import logging

from src.api.core.database import get_db
from src.api.core.events import ChangeNotifier, get_notifier, row_to_dict
from src.api.core.ownership import Actor, Operation, authorize, ownership_filter
from src.api.core.pagination import paginate
from src.api.core.security import get_current_actor
from src.api.models.enums import CropCategory
from src.api.models.requirement import Requirement
from src.api.schemas.requirement import RequirementCreate, RequirementUpdate, RequirementResponse, RequirementList
from src.api.config import settings
from src.utils.errors import NotFound, PersistenceError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=RequirementList)
async def list_requirements(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[CropCategory] = None,
    urgent: Optional[bool] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Browse active requirements, newest first

    Optionally filter by category or urgency
    """
    filters = [Requirement.active.is_(True)]
    if category:
        filters.append(Requirement.category == category.value)
    if urgent is not None:
        filters.append(Requirement.urgent.is_(urgent))

    requirements, total = await paginate(
        db,
        select(Requirement).where(and_(*filters)),
        select(func.count()).select_from(Requirement).where(and_(*filters)),
        Requirement.created_at.desc(),
        page,
        page_size
    )

    return RequirementList(requirements=requirements, total=total, page=page, page_size=page_size)


@router.get("/mine", response_model=RequirementList)
async def list_my_requirements(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """List the caller's own requirements, including inactive ones"""
    owner = ownership_filter(actor, Operation.UPDATE, Requirement)
    requirements, total = await paginate(
        db,
        select(Requirement).where(owner),
        select(func.count()).select_from(Requirement).where(owner),
        Requirement.created_at.desc(),
        page,
        page_size
    )

    return RequirementList(requirements=requirements, total=total, page=page, page_size=page_size)


@router.get("/{requirement_id}", response_model=RequirementResponse)
async def get_requirement(
    requirement_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Requirement).where(
            and_(
                Requirement.id == requirement_id,
                ownership_filter(None, Operation.SELECT, Requirement)
            )
        )
    )
    requirement = result.scalar_one_or_none()

    if not requirement:
        raise NotFound("Requirement not found")

    return requirement


@router.post("/", response_model=RequirementResponse, status_code=status.HTTP_201_CREATED)
async def create_requirement(
    requirement_data: RequirementCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Post a material requirement

    Only factories can post requirements.
    """
    requirement = Requirement(factory_id=actor.id, active=True, **requirement_data.model_dump())
    authorize(actor, Operation.INSERT, requirement)

    db.add(requirement)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating requirement: {e}")
        raise PersistenceError("Failed to create requirement") from e
    await db.refresh(requirement)

    await notifier.publish("INSERT", Requirement.__tablename__, row_to_dict(requirement))
    return requirement


@router.put("/{requirement_id}", response_model=RequirementResponse)
async def update_requirement(
    requirement_id: UUID,
    requirement_data: RequirementUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """Update a requirement; only the owning factory can"""
    owner = ownership_filter(actor, Operation.UPDATE, Requirement)
    update_data = requirement_data.model_dump(exclude_unset=True)

    if update_data:
        result = await db.execute(
            update(Requirement)
            .where(and_(Requirement.id == requirement_id, owner))
            .values(**update_data)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFound("Requirement not found")
        await db.commit()

    result = await db.execute(
        select(Requirement)
        .where(and_(Requirement.id == requirement_id, owner))
        .execution_options(populate_existing=True)
    )
    requirement = result.scalar_one_or_none()

    if not requirement:
        raise NotFound("Requirement not found")

    await notifier.publish("UPDATE", Requirement.__tablename__, row_to_dict(requirement))
    return requirement


@router.delete("/{requirement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_requirement(
    requirement_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    result = await db.execute(
        delete(Requirement).where(
            and_(
                Requirement.id == requirement_id,
                ownership_filter(actor, Operation.DELETE, Requirement)
            )
        )
    )

    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Requirement not found")

    await db.commit()
    await notifier.publish("DELETE", Requirement.__tablename__, {"id": requirement_id})
