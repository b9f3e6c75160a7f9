"""
Provider profile API routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.identity import Actor
from app.features.users.dependencies import get_current_actor, get_current_admin_actor
from app.features.providers.schemas import ProviderCreate, ProviderResponse
from app.features.providers import service

router = APIRouter()


@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
async def onboard_provider(
    provider_data: ProviderCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create the caller's provider profile (status pending)."""
    return await service.onboard_provider(db, actor, provider_data)


@router.get("/me", response_model=ProviderResponse)
async def get_my_provider_profile(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get the caller's provider profile."""
    return await service.get_provider_for_user(db, actor.user_id)


@router.post("/{provider_id}/approve", response_model=ProviderResponse)
async def approve_provider(
    provider_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Mark a provider active (admin of an affiliated company only)."""
    return await service.approve_provider(db, actor, provider_id)


@router.post("/{provider_id}/reject", response_model=ProviderResponse)
async def reject_provider(
    provider_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Mark a provider inactive (admin of an affiliated company only)."""
    return await service.reject_provider(db, actor, provider_id)
