"""
License creation and the license verification state machine.

    verification_status: pending --verify--> verified | failed
                         verified | failed --revert--> pending

A verifier outage is reported as VerificationError and leaves the license
untouched; only a clean answer from the board is recorded.
"""
import asyncio

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import transaction
from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidFormatError,
    NotFoundError,
    VerificationError,
)
from app.core.events import events
from app.core.identity import Actor, require_admin
from app.features.audit import service as audit
from app.features.companies.service import get_owned_company
from app.features.licenses.models import License, LicenseStatus, VerificationStatus
from app.features.licenses.schemas import LicenseCreate
from app.features.licenses.verifier import BoardVerifier, VerificationResult
from app.features.providers.models import Provider
from app.features.providers.service import resolve_member_company
from app.utils import get_logger, utcnow

log = get_logger(__name__)

REVERTIBLE_STATUSES = (VerificationStatus.VERIFIED, VerificationStatus.FAILED)


async def add_license(
    db: AsyncSession,
    actor: Actor,
    provider: Provider,
    data: LicenseCreate,
) -> License:
    """Create an active, unverified license for one of the provider's approved companies."""
    if provider.user_id != actor.user_id:
        raise ForbiddenError("You can only add licenses to your own profile")
    if data.expiration_date < data.issue_date:
        raise InvalidFormatError("Expiration date cannot be before the issue date")

    company_id = await resolve_member_company(db, provider.id, data.company_id)
    license = License(
        provider_id=provider.id,
        company_id=company_id,
        license_number=data.license_number.strip(),
        license_type=data.license_type.strip(),
        issuing_state=data.issuing_state.upper(),
        issue_date=data.issue_date,
        expiration_date=data.expiration_date,
        status=LicenseStatus.ACTIVE,
        verification_status=VerificationStatus.PENDING,
    )
    async with transaction(db):
        db.add(license)

    log.info("License %s added by provider %s for company %s", license.id, provider.id, company_id)
    events.emit("license.added", license.id, company_id)
    return license


async def _load_reviewable(db: AsyncSession, actor: Actor, license_id: str) -> License:
    require_admin(actor)
    license = await db.get(License, license_id)
    if license is None:
        raise NotFoundError("License")
    if license.company_id is None:
        raise ForbiddenError("This license is not assigned to a company")
    await get_owned_company(db, actor, license.company_id)
    return license


async def _set_verification(
    db: AsyncSession,
    license: License,
    expected: VerificationStatus,
    **values,
) -> None:
    result = await db.execute(
        update(License)
        .where(License.id == license.id, License.verification_status == expected)
        .values(**values)
    )
    if result.rowcount != 1:
        raise ConflictError("This license was changed by someone else. Please refresh and try again.")


async def _check_with_board(verifier: BoardVerifier, license: License) -> VerificationResult:
    try:
        return await asyncio.wait_for(
            verifier.verify(license, utcnow()),
            timeout=config.VERIFICATION_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError as exc:
        log.warning("Board verification timed out for license %s", license.id)
        raise VerificationError("The licensing board did not respond in time. Please try again.") from exc
    except Exception as exc:
        log.exception("Board verification failed for license %s", license.id)
        raise VerificationError() from exc


async def verify_license(
    db: AsyncSession,
    actor: Actor,
    license_id: str,
    verifier: BoardVerifier,
) -> tuple[License, VerificationResult]:
    """
    Check the license with the board and record the outcome.

    Both outcomes stamp last_verified_at; only a positive one stamps
    verified_at and verified_by.
    """
    license = await _load_reviewable(db, actor, license_id)
    current = license.verification_status

    result = await _check_with_board(verifier, license)
    now = utcnow()
    if result.verified:
        values = dict(
            verification_status=VerificationStatus.VERIFIED,
            verified_at=now,
            verified_by=actor.user_id,
            last_verified_at=now,
        )
    else:
        values = dict(
            verification_status=VerificationStatus.FAILED,
            verified_at=None,
            verified_by=None,
            last_verified_at=now,
        )

    async with transaction(db):
        await _set_verification(db, license, current, **values)
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=audit.VERIFY_LICENSE,
            target_id=license.id,
            company_id=license.company_id,
            notes=result.message,
        )

    await db.refresh(license)
    log.info("License %s verification: %s (%s)", license.id, license.verification_status.value, result.message)
    events.emit(f"license.{license.verification_status.value}", license.id, license.company_id)
    return license, result


async def revert_license(db: AsyncSession, actor: Actor, license_id: str) -> License:
    """Return a verified or failed license to pending and clear the verifier stamp."""
    license = await _load_reviewable(db, actor, license_id)
    current = license.verification_status
    if current not in REVERTIBLE_STATUSES:
        raise ConflictError("Only verified or failed licenses can be reverted")

    async with transaction(db):
        await _set_verification(
            db,
            license,
            current,
            verification_status=VerificationStatus.PENDING,
            verified_at=None,
            verified_by=None,
        )
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=audit.REVERT_LICENSE,
            target_id=license.id,
            company_id=license.company_id,
            notes=f"Reverted {current.value} license to pending",
        )

    await db.refresh(license)
    log.info("License %s reverted from %s by %s", license.id, current.value, actor.user_id)
    events.emit("license.reverted", license.id, license.company_id)
    return license


async def list_company_licenses(db: AsyncSession, actor: Actor, company_id: str) -> list[License]:
    require_admin(actor)
    await get_owned_company(db, actor, company_id)
    result = await db.execute(
        select(License)
        .where(License.company_id == company_id)
        .order_by(License.expiration_date)
    )
    return list(result.scalars().all())


async def list_provider_licenses(db: AsyncSession, provider_id: str) -> list[License]:
    result = await db.execute(
        select(License)
        .where(License.provider_id == provider_id)
        .order_by(License.expiration_date)
    )
    return list(result.scalars().all())
