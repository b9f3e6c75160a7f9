"""
Scheduled expiration sweep.

Triggered by an external scheduler. Each run scans every license:
active licenses past their expiration date become expired, and licenses
sitting exactly on a notification mark produce a notice. Running it twice
leaves the same state as running it once; notices are delivered at least once.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database.engine import transaction
from app.core.errors import StorageError
from app.core.events import events
from app.features.alerts.engine import days_until_expiration, is_notification_boundary
from app.features.alerts.notifier import ExpirationNotice, Notifier
from app.features.licenses.models import License, LicenseStatus
from app.features.providers.models import Provider
from app.utils import get_logger, utcnow

log = get_logger(__name__)


class SweepResult(BaseModel):
    success: bool = True
    expired_license_ids: list[str]
    notifications_sent: int
    notifications: list[ExpirationNotice]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def build_notice(license: License, days: int) -> ExpirationNotice:
    user = license.provider.user if license.provider else None
    return ExpirationNotice(
        license_id=license.id,
        license_number=license.license_number,
        license_type=license.license_type,
        expiration_date=license.expiration_date,
        days_until_expiration=days,
        provider_email=user.email if user else None,
        provider_name=user.name if user else None,
    )


async def run_expiration_sweep(
    db: AsyncSession,
    notifier: Notifier,
    as_of: datetime | None = None,
) -> SweepResult:
    as_of = as_of or utcnow()
    result = await db.execute(
        select(License)
        .options(selectinload(License.provider).selectinload(Provider.user))
        .execution_options(populate_existing=True)
    )
    licenses = list(result.scalars().all())

    to_expire = []
    notices = []
    for license in licenses:
        days = days_until_expiration(license.expiration_date, as_of)
        if days < 0 and license.status == LicenseStatus.ACTIVE:
            to_expire.append((license.id, license.company_id))
        elif license.status == LicenseStatus.ACTIVE and is_notification_boundary(days):
            notices.append(build_notice(license, days))

    expired = []
    events_to_emit = []
    if to_expire:
        async with transaction(db):
            for license_id, company_id in to_expire:
                # Only licenses still active are moved; a concurrent sweep may have won
                outcome = await db.execute(
                    update(License)
                    .where(License.id == license_id, License.status == LicenseStatus.ACTIVE)
                    .values(status=LicenseStatus.EXPIRED)
                )
                if outcome.rowcount == 1:
                    expired.append(license_id)
                    events_to_emit.append((license_id, company_id))

    for license_id, company_id in events_to_emit:
        events.emit("license.expired", license_id, company_id)

    if notices:
        try:
            await notifier.send(notices)
        except Exception as exc:
            log.exception("Expiration notices could not be delivered (%d pending)", len(notices))
            raise StorageError("Expiration notices could not be delivered. Please run the sweep again.") from exc

    log.info(
        "Expiration sweep at %s: %d licenses scanned, %d expired, %d notifications",
        as_of.isoformat(), len(licenses), len(expired), len(notices),
    )
    return SweepResult(
        expired_license_ids=expired,
        notifications_sent=len(notices),
        notifications=notices,
    )
