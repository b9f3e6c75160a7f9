"""
Audit trail writes and owner-scoped reads.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.identity import Actor, require_admin
from app.features.audit.models import AdminActionLog
from app.features.companies.service import get_owned_company
from app.utils import get_logger


log = get_logger(__name__)

# Action types written by the workflows
APPROVE_REQUEST = "approve_request"
REJECT_REQUEST = "reject_request"
REVERT_APPROVAL = "revert_approval"
REMOVE_PROVIDER = "remove_provider"
APPROVE_PROVIDER = "approve_provider"
REJECT_PROVIDER = "reject_provider"
APPROVE_DOCUMENT = "approve_document"
REJECT_DOCUMENT = "reject_document"
REVERT_DOCUMENT = "revert_document"
VERIFY_LICENSE = "verify_license"
REVERT_LICENSE = "revert_license"


def record_admin_action(
    db: AsyncSession,
    admin_id: str,
    action_type: str,
    target_id: str,
    company_id: str | None = None,
    notes: str | None = None,
) -> AdminActionLog:
    """
    Stage an audit entry in the caller's transaction.

    The entry is committed together with the state change it describes, so
    a rolled back transition leaves no audit row behind.
    """
    entry = AdminActionLog(
        admin_id=admin_id,
        action_type=action_type,
        target_id=target_id,
        company_id=company_id,
        notes=notes,
    )
    db.add(entry)
    log.info(
        "Audit: admin=%s action=%s target=%s company=%s",
        admin_id, action_type, target_id, company_id
    )
    return entry


async def list_admin_actions(
    db: AsyncSession,
    actor: Actor,
    company_id: str,
    limit: int = 100,
) -> list[AdminActionLog]:
    """Most recent audit entries for a company the actor owns."""
    require_admin(actor)
    await get_owned_company(db, actor, company_id)
    result = await db.execute(
        select(AdminActionLog)
        .where(AdminActionLog.company_id == company_id)
        .order_by(AdminActionLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
