"""
Affiliation ledger workflows.

Providers request to join a company with its enrollment code; the company's
admin approves, rejects, reverts or removes the link. Every admin operation
re-loads the company referenced by the link and checks its admin_id, and every
status change is a conditional update on the status the link had when it was
read, so two admins racing on the same link cannot both succeed.
"""
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import transaction
from app.core.errors import (
    ConflictError,
    DuplicateLinkError,
    ForbiddenError,
    InvalidFormatError,
    MissingFieldsError,
    NotFoundError,
)
from app.core.events import events
from app.core.identity import Actor, require_admin
from app.features.affiliations.models import LinkStatus, ProviderCompanyLink
from app.features.audit import service as audit
from app.features.companies.enrollment import ENROLLMENT_CODE_LENGTH, normalize_enrollment_code
from app.features.companies.models import Company
from app.features.companies.service import get_owned_company, lookup_company_by_code
from app.features.providers.models import Provider, ProviderStatus
from app.utils import get_logger, utcnow

log = get_logger(__name__)

DUPLICATE_MESSAGES = {
    LinkStatus.PENDING: "You have already requested access to this company",
    LinkStatus.APPROVED: "You are already linked to this company",
    LinkStatus.REJECTED: "Your previous request was rejected. Please contact the company admin.",
}

# Affiliation approval activates the provider only from these states;
# a suspended provider stays suspended.
ACTIVATABLE_PROVIDER_STATUSES = (ProviderStatus.PENDING, ProviderStatus.INACTIVE)


async def request_join(
    db: AsyncSession,
    provider_id: str | None,
    enrollment_code: str | None,
    note: str | None = None,
) -> tuple[ProviderCompanyLink, Company]:
    """
    Create a pending link between a provider and the company owning the code.

    Any existing link for the pair, whatever its status, blocks a new request.
    """
    code = normalize_enrollment_code(enrollment_code)
    if not code or not provider_id:
        raise MissingFieldsError("Enrollment code and provider ID are required")
    if len(code) != ENROLLMENT_CODE_LENGTH:
        raise InvalidFormatError(f"Enrollment code must be {ENROLLMENT_CODE_LENGTH} characters")

    provider = await db.get(Provider, provider_id)
    if provider is None:
        raise NotFoundError("Provider")

    log.debug("Looking up company with code %s", code)
    company = await lookup_company_by_code(db, code)
    if company is None:
        raise NotFoundError("Company", "Invalid enrollment code. Please check and try again.")

    existing = await db.scalar(
        select(ProviderCompanyLink).where(
            ProviderCompanyLink.provider_id == provider_id,
            ProviderCompanyLink.company_id == company.id,
        )
    )
    if existing is not None:
        raise DuplicateLinkError(DUPLICATE_MESSAGES[existing.status])

    link = ProviderCompanyLink(
        provider_id=provider_id,
        company_id=company.id,
        status=LinkStatus.PENDING,
        request_note=note or None,
        requested_at=utcnow(),
    )
    async with transaction(db):
        db.add(link)
        try:
            await db.flush()
        except IntegrityError as exc:
            # A concurrent request for the same pair won
            raise DuplicateLinkError(DUPLICATE_MESSAGES[LinkStatus.PENDING]) from exc

    log.info("Provider %s requested to join company %s (link %s)", provider_id, company.id, link.id)
    events.emit("affiliation.requested", link.id, company.id)
    return link, company


async def _load_owned_link(
    db: AsyncSession,
    actor: Actor,
    link_id: str,
) -> tuple[ProviderCompanyLink, Company]:
    require_admin(actor)
    link = await db.get(ProviderCompanyLink, link_id)
    if link is None:
        raise NotFoundError("Affiliation request")
    company = await db.get(Company, link.company_id)
    if company is None:
        raise NotFoundError("Company")
    if company.admin_id != actor.user_id:
        raise ForbiddenError("You are not the admin of this company")
    return link, company


def _require_status(link: ProviderCompanyLink, expected: LinkStatus, action: str) -> None:
    if link.status != expected:
        raise ConflictError(f"Only {expected.value} requests can be {action} (current status: {link.status.value})")


async def _transition(
    db: AsyncSession,
    link_id: str,
    expected: LinkStatus,
    **values,
) -> None:
    """Apply `values` only if the link still has status `expected`."""
    result = await db.execute(
        update(ProviderCompanyLink)
        .where(
            ProviderCompanyLink.id == link_id,
            ProviderCompanyLink.status == expected,
        )
        .values(**values)
    )
    if result.rowcount != 1:
        raise ConflictError("This request was changed by someone else. Please refresh and try again.")


async def approve_request(db: AsyncSession, actor: Actor, link_id: str) -> ProviderCompanyLink:
    """
    Approve a pending request and activate the provider in one transaction.
    """
    link, company = await _load_owned_link(db, actor, link_id)
    provider = await db.get(Provider, link.provider_id)
    if provider is None:
        raise NotFoundError("Provider")
    _require_status(link, LinkStatus.PENDING, "approved")

    async with transaction(db):
        await _transition(
            db,
            link.id,
            LinkStatus.PENDING,
            status=LinkStatus.APPROVED,
            approved_at=utcnow(),
            approved_by=actor.user_id,
        )
        await db.execute(
            update(Provider)
            .where(
                Provider.id == provider.id,
                Provider.status.in_(ACTIVATABLE_PROVIDER_STATUSES),
            )
            .values(status=ProviderStatus.ACTIVE)
        )
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=audit.APPROVE_REQUEST,
            target_id=provider.id,
            company_id=company.id,
            notes="Approved provider access request",
        )

    await db.refresh(link)
    await db.refresh(provider)
    log.info("Link %s approved by %s", link.id, actor.user_id)
    events.emit("affiliation.approved", link.id, company.id)
    return link


async def reject_request(db: AsyncSession, actor: Actor, link_id: str) -> ProviderCompanyLink:
    """Reject a pending request. The provider's status is left alone."""
    link, company = await _load_owned_link(db, actor, link_id)
    _require_status(link, LinkStatus.PENDING, "rejected")

    async with transaction(db):
        await _transition(
            db,
            link.id,
            LinkStatus.PENDING,
            status=LinkStatus.REJECTED,
            rejected_at=utcnow(),
            rejected_by=actor.user_id,
        )
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=audit.REJECT_REQUEST,
            target_id=link.provider_id,
            company_id=company.id,
            notes="Rejected provider access request",
        )

    await db.refresh(link)
    log.info("Link %s rejected by %s", link.id, actor.user_id)
    events.emit("affiliation.rejected", link.id, company.id)
    return link


async def revert_approval(db: AsyncSession, actor: Actor, link_id: str) -> ProviderCompanyLink:
    """Send an approved link back to pending, clearing the approval stamp."""
    link, company = await _load_owned_link(db, actor, link_id)
    _require_status(link, LinkStatus.APPROVED, "reverted")

    async with transaction(db):
        await _transition(
            db,
            link.id,
            LinkStatus.APPROVED,
            status=LinkStatus.PENDING,
            approved_at=None,
            approved_by=None,
        )
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=audit.REVERT_APPROVAL,
            target_id=link.provider_id,
            company_id=company.id,
            notes="Reverted provider approval back to pending",
        )

    await db.refresh(link)
    log.info("Link %s reverted to pending by %s", link.id, actor.user_id)
    events.emit("affiliation.reverted", link.id, company.id)
    return link


async def remove_provider(db: AsyncSession, actor: Actor, link_id: str) -> None:
    """
    Delete an approved link. The provider has to request access again to rejoin.
    """
    link, company = await _load_owned_link(db, actor, link_id)
    _require_status(link, LinkStatus.APPROVED, "removed")
    provider_id = link.provider_id

    async with transaction(db):
        result = await db.execute(
            delete(ProviderCompanyLink).where(
                ProviderCompanyLink.id == link.id,
                ProviderCompanyLink.status == LinkStatus.APPROVED,
            )
        )
        if result.rowcount != 1:
            raise ConflictError("This provider was changed by someone else. Please refresh and try again.")
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=audit.REMOVE_PROVIDER,
            target_id=provider_id,
            company_id=company.id,
            notes="Removed provider from company",
        )

    log.info("Link %s removed by %s", link_id, actor.user_id)
    events.emit("affiliation.removed", link_id, company.id)


async def list_company_links(
    db: AsyncSession,
    actor: Actor,
    company_id: str,
    status: LinkStatus | None = None,
) -> list[ProviderCompanyLink]:
    """Links of a company the actor administers, newest first."""
    require_admin(actor)
    await get_owned_company(db, actor, company_id)
    query = select(ProviderCompanyLink).where(ProviderCompanyLink.company_id == company_id)
    if status:
        query = query.where(ProviderCompanyLink.status == status)
    result = await db.execute(query.order_by(ProviderCompanyLink.requested_at.desc()))
    return list(result.scalars().all())


async def list_provider_links(db: AsyncSession, provider_id: str) -> list[ProviderCompanyLink]:
    result = await db.execute(
        select(ProviderCompanyLink)
        .where(ProviderCompanyLink.provider_id == provider_id)
        .order_by(ProviderCompanyLink.requested_at.desc())
    )
    return list(result.scalars().all())
