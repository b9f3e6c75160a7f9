"""
Audit log routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.identity import Actor
from app.features.users.dependencies import get_current_admin_actor
from app.features.audit.schemas import AdminActionLogResponse
from app.features.audit.service import list_admin_actions


router = APIRouter(tags=["audit"])


@router.get("/companies/{company_id}", response_model=list[AdminActionLogResponse])
async def get_company_audit_log(
    company_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = 100
):
    """Recent admin actions for a company (owner only)."""
    return await list_admin_actions(db, actor, company_id, limit=limit)
