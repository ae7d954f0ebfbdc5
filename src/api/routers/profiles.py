from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from uuid import UUID
import logging

from src.api.core.database import get_db
from src.api.core.ownership import Actor, Operation, ownership_filter
from src.api.core.security import get_current_user_id, get_current_actor
from src.api.models.enums import UserType
from src.api.models.profile import Profile, Farmer, Factory
from src.api.schemas.profile import (
    ProfileCreate,
    ProfileUpdate,
    ProfileResponse,
    FarmerDetails,
    FactoryDetails
)
from src.utils.errors import Conflict, NotFound, PersistenceError

router = APIRouter()
logger = logging.getLogger(__name__)


async def load_profile(db: AsyncSession, profile_id: UUID) -> ProfileResponse:
    """Profile with its farmer or factory extension"""
    result = await db.execute(
        select(Profile)
        .where(Profile.id == profile_id)
        .execution_options(populate_existing=True)
    )
    profile = result.scalar_one_or_none()

    if not profile:
        raise NotFound("Profile not found")

    response = ProfileResponse.model_validate(profile)
    if profile.user_type == UserType.FARMER.value:
        farmer = await db.get(Farmer, profile_id, populate_existing=True)
        if farmer:
            response.farmer = FarmerDetails.model_validate(farmer)
    else:
        factory = await db.get(Factory, profile_id, populate_existing=True)
        if factory:
            response.factory = FactoryDetails.model_validate(factory)

    return response


@router.post("/", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def register_profile(
    profile_data: ProfileCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Register the caller as a farmer or a factory

    Creates the profile row and the matching role row in one transaction.
    A caller can register only once.
    """
    existing = await db.execute(select(Profile.id).where(Profile.id == user_id))
    if existing.scalar_one_or_none():
        raise Conflict("Profile already exists")

    db.add(Profile(
        id=user_id,
        full_name=profile_data.full_name,
        location=profile_data.location,
        phone=profile_data.phone,
        user_type=profile_data.user_type
    ))

    if profile_data.user_type == UserType.FARMER.value:
        db.add(Farmer(
            id=user_id,
            farm_size=profile_data.farm_size,
            primary_crops=profile_data.primary_crops
        ))
    else:
        db.add(Factory(
            id=user_id,
            company_name=profile_data.company_name,
            materials_needed=profile_data.materials_needed
        ))

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Profile already exists")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error registering profile: {e}")
        raise PersistenceError("Failed to register profile") from e

    logger.info(f"Registered {profile_data.user_type} profile {user_id}")
    return await load_profile(db, user_id)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's own profile"""
    return await load_profile(db, user_id)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Update the caller's name, location or phone"""
    update_data = profile_data.model_dump(exclude_unset=True)
    if update_data:
        result = await db.execute(
            update(Profile)
            .where(Profile.id == actor.id, ownership_filter(actor, Operation.UPDATE, Profile))
            .values(**update_data)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFound("Profile not found")
        await db.commit()

    return await load_profile(db, actor.id)


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """
    Get a public profile

    Profiles are readable by anyone, which lets buyers see who listed a crop.
    """
    return await load_profile(db, profile_id)
