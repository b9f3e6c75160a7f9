"""
Expiration alert routes.

`router` serves the admin dashboard; `cron_router` is the entry point for the
external scheduler and authenticates with the shared CRON_SECRET instead of a
user token.
"""
import hmac
from typing import Annotated
from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db
from app.core.errors import UnauthorizedError
from app.core.identity import Actor
from app.features.users.dependencies import get_current_admin_actor
from app.features.alerts.engine import ExpirationAlert, compute_alerts
from app.features.alerts.notifier import Notifier, get_notifier
from app.features.alerts.sweep import SweepResult, run_expiration_sweep
from app.features.companies.service import admin_company_ids
from app.features.licenses.models import License
from app.utils import get_logger, utcnow

log = get_logger(__name__)

router = APIRouter(tags=["alerts"])
cron_router = APIRouter(tags=["cron"])


class ExpiringLicensesResponse(BaseModel):
    alerts: list[ExpirationAlert]


@router.get("/expiring-licenses", response_model=ExpiringLicensesResponse)
async def get_expiring_licenses(
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Licenses of the admin's companies expiring within 90 days, soonest first."""
    company_ids = await admin_company_ids(db, actor.user_id)
    if not company_ids:
        return ExpiringLicensesResponse(alerts=[])
    result = await db.execute(select(License).where(License.company_id.in_(company_ids)))
    return ExpiringLicensesResponse(alerts=compute_alerts(result.scalars().all(), utcnow()))


def verify_cron_secret(authorization: Annotated[str | None, Header()] = None) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>`; an unset secret rejects every call."""
    secret = config.CRON_SECRET
    if not secret or not authorization:
        raise UnauthorizedError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.encode(), secret.encode()):
        log.warning("Rejected expiration sweep call with invalid secret")
        raise UnauthorizedError()


@cron_router.get(
    "/check-expirations",
    response_model=SweepResult,
    dependencies=[Depends(verify_cron_secret)]
)
async def check_expirations(
    db: Annotated[AsyncSession, Depends(get_db)],
    notifier: Annotated[Notifier, Depends(get_notifier)]
):
    """Expire stale licenses and send 90/60/30 day notices."""
    return await run_expiration_sweep(db, notifier)
