"""
Affiliation ledger routes.

The join request itself is served from the companies router
(POST /companies/join); everything an admin does to a link lives here.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.identity import Actor
from app.features.users.dependencies import get_current_actor, get_current_admin_actor
from app.features.affiliations.models import LinkStatus
from app.features.affiliations.schemas import LinkResponse, RemoveProviderResponse
from app.features.affiliations import service
from app.features.providers.service import get_provider_for_user


router = APIRouter(tags=["affiliations"])


@router.get("/my", response_model=list[LinkResponse])
async def get_my_links(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """All affiliation requests made by the caller's provider profile."""
    provider = await get_provider_for_user(db, actor.user_id)
    return await service.list_provider_links(db, provider.id)


@router.get("/companies/{company_id}", response_model=list[LinkResponse])
async def get_company_links(
    company_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: LinkStatus | None = None
):
    """Affiliation requests for a company (company admin only)."""
    return await service.list_company_links(db, actor, company_id, status_filter)


@router.post("/{link_id}/approve", response_model=LinkResponse)
async def approve_request(
    link_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Approve a pending request; the provider becomes active."""
    return await service.approve_request(db, actor, link_id)


@router.post("/{link_id}/reject", response_model=LinkResponse)
async def reject_request(
    link_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Reject a pending request."""
    return await service.reject_request(db, actor, link_id)


@router.post("/{link_id}/revert", response_model=LinkResponse)
async def revert_approval(
    link_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Return an approved link to pending."""
    return await service.revert_approval(db, actor, link_id)


@router.delete("/{link_id}", response_model=RemoveProviderResponse)
async def remove_provider(
    link_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Remove an approved provider from the company."""
    await service.remove_provider(db, actor, link_id)
    return RemoveProviderResponse(link_id=link_id)
