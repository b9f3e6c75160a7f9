"""
License routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.identity import Actor
from app.features.users.dependencies import get_current_actor, get_current_admin_actor
from app.features.licenses.schemas import LicenseCreate, LicenseResponse, VerifyLicenseResponse
from app.features.licenses.verifier import BoardVerifier, get_board_verifier
from app.features.licenses import service
from app.features.providers.service import get_provider_for_user


router = APIRouter(tags=["licenses"])


@router.post("", response_model=LicenseResponse, status_code=status.HTTP_201_CREATED)
async def add_license(
    license_data: LicenseCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Add a license to the caller's provider profile."""
    provider = await get_provider_for_user(db, actor.user_id)
    return await service.add_license(db, actor, provider, license_data)


@router.get("/my", response_model=list[LicenseResponse])
async def get_my_licenses(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    provider = await get_provider_for_user(db, actor.user_id)
    return await service.list_provider_licenses(db, provider.id)


@router.get("/companies/{company_id}", response_model=list[LicenseResponse])
async def get_company_licenses(
    company_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    return await service.list_company_licenses(db, actor, company_id)


@router.post("/{license_id}/verify", response_model=VerifyLicenseResponse)
async def verify_license(
    license_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    verifier: Annotated[BoardVerifier, Depends(get_board_verifier)]
):
    """Verify a license with the issuing board."""
    license, result = await service.verify_license(db, actor, license_id, verifier)
    return VerifyLicenseResponse(
        license=LicenseResponse.model_validate(license),
        verified=result.verified,
        message=result.message,
    )


@router.post("/{license_id}/revert", response_model=LicenseResponse)
async def revert_license(
    license_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Send a verified or failed license back to pending."""
    return await service.revert_license(db, actor, license_id)
