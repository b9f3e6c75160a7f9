"""
Provider onboarding, admin review, and company membership resolution.
"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import transaction
from app.core.errors import ConflictError, ForbiddenError, MissingFieldsError, NotFoundError
from app.core.events import events
from app.core.identity import Actor, require_admin
from app.features.affiliations.models import LinkStatus, ProviderCompanyLink
from app.features.audit import service as audit
from app.features.companies.models import Company
from app.features.providers.models import Provider, ProviderStatus
from app.features.providers.schemas import ProviderCreate
from app.features.users.models import UserRole
from app.utils import get_logger

log = get_logger(__name__)


async def get_provider(db: AsyncSession, provider_id: str) -> Provider:
    provider = await db.get(Provider, provider_id)
    if provider is None:
        raise NotFoundError("Provider")
    return provider


async def get_provider_for_user(db: AsyncSession, user_id: str) -> Provider:
    """The provider profile belonging to a user, or NOT_FOUND if not onboarded yet."""
    provider = await db.scalar(select(Provider).where(Provider.user_id == user_id))
    if provider is None:
        raise NotFoundError("Provider profile", "Complete onboarding to create your provider profile")
    return provider


async def onboard_provider(db: AsyncSession, actor: Actor, data: ProviderCreate) -> Provider:
    """Create the actor's provider profile in the pending state."""
    if actor.role != UserRole.PROVIDER:
        raise ForbiddenError("Only provider accounts can onboard")

    existing = await db.scalar(select(Provider.id).where(Provider.user_id == actor.user_id))
    if existing is not None:
        raise ConflictError("A provider profile already exists for this account")

    provider = Provider(user_id=actor.user_id, status=ProviderStatus.PENDING, **data.model_dump())
    async with transaction(db):
        db.add(provider)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ConflictError("A provider profile already exists for this account") from exc
    log.info("Provider %s onboarded for user %s", provider.id, actor.user_id)
    return provider


async def _require_reviewing_admin(db: AsyncSession, actor: Actor, provider_id: str) -> str:
    """
    The actor must administer a company the provider has asked to join.

    Returns that company's id for the audit entry.
    """
    require_admin(actor)
    company_id = await db.scalar(
        select(Company.id)
        .join(ProviderCompanyLink, ProviderCompanyLink.company_id == Company.id)
        .where(
            ProviderCompanyLink.provider_id == provider_id,
            Company.admin_id == actor.user_id,
        )
        .limit(1)
    )
    if company_id is None:
        raise ForbiddenError("This provider is not affiliated with your company")
    return company_id


async def _set_status(
    db: AsyncSession,
    actor: Actor,
    provider_id: str,
    status: ProviderStatus,
    action_type: str,
) -> Provider:
    provider = await get_provider(db, provider_id)
    company_id = await _require_reviewing_admin(db, actor, provider_id)

    async with transaction(db):
        provider.status = status
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=action_type,
            target_id=provider.id,
            company_id=company_id,
            notes=f"Set provider status to {status.value}",
        )
    await db.refresh(provider)
    events.emit(f"provider.{status.value}", provider.id, company_id)
    return provider


async def approve_provider(db: AsyncSession, actor: Actor, provider_id: str) -> Provider:
    return await _set_status(db, actor, provider_id, ProviderStatus.ACTIVE, audit.APPROVE_PROVIDER)


async def reject_provider(db: AsyncSession, actor: Actor, provider_id: str) -> Provider:
    return await _set_status(db, actor, provider_id, ProviderStatus.INACTIVE, audit.REJECT_PROVIDER)


async def approved_company_ids(db: AsyncSession, provider_id: str) -> list[str]:
    """Companies the provider currently has an approved affiliation with."""
    result = await db.execute(
        select(ProviderCompanyLink.company_id)
        .where(
            ProviderCompanyLink.provider_id == provider_id,
            ProviderCompanyLink.status == LinkStatus.APPROVED,
        )
        .order_by(ProviderCompanyLink.requested_at)
    )
    return list(result.scalars().all())


async def resolve_member_company(
    db: AsyncSession,
    provider_id: str,
    company_id: str | None = None,
) -> str:
    """
    Pick the company a new document or license is scoped to.

    A single approved membership is selected automatically; with several the
    caller has to choose one, and the choice must be an approved membership.
    """
    approved = await approved_company_ids(db, provider_id)
    if not approved:
        raise ForbiddenError("You must be approved by a company before adding credentials")
    if company_id:
        if company_id not in approved:
            raise ForbiddenError("You are not an approved member of this company")
        return company_id
    if len(approved) == 1:
        return approved[0]
    raise MissingFieldsError("Select which company this credential is for")
