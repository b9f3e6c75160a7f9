"""
Company feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db
from app.core.identity import Actor
from app.core.rate_limit import limiter
from app.features.users.dependencies import get_current_actor, get_current_admin_actor
from app.features.affiliations import service as affiliations
from app.features.affiliations.schemas import JoinRequestResponse, LinkResponse
from app.features.companies.schemas import (
    CompanyCreate,
    CompanyPublic,
    CompanyResponse,
    JoinRequestCreate,
)
from app.features.companies import service
from app.features.providers.service import get_provider_for_user


router = APIRouter(tags=["companies"])


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    company_data: CompanyCreate,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a new company with a generated enrollment code (admin only)."""
    return await service.create_company(db, actor, company_data.name)


@router.get("/my", response_model=list[CompanyResponse])
async def get_my_companies(
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Companies administered by the caller."""
    return await service.list_admin_companies(db, actor)


@router.post("/join", response_model=JoinRequestResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(config.JOIN_RATE_LIMIT)
async def join_company(
    request: Request,
    join_data: JoinRequestCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Request access to a company using its enrollment code."""
    provider = await get_provider_for_user(db, actor.user_id)
    link, company = await affiliations.request_join(
        db,
        provider_id=provider.id,
        enrollment_code=join_data.enrollment_code,
        note=join_data.request_note,
    )
    return JoinRequestResponse(
        **LinkResponse.model_validate(link).model_dump(),
        company=CompanyPublic.model_validate(company),
    )
