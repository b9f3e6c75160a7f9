"""
Expiration alert computation.

Two rules, used for different purposes:

- the dashboard shows every license expiring within the next 90 days
  (0 < days <= 90), bucketed by severity;
- the sweep notifies only on the exact 90, 60 and 30 day marks.

Everything here is pure; callers supply the licenses and the clock.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable
import enum

from pydantic import BaseModel

from app.features.licenses.models import License, LicenseStatus

ALERT_HORIZON_DAYS = 90
NOTIFICATION_DAYS = frozenset({90, 60, 30})


class AlertSeverity(str, enum.Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class ExpirationAlert(BaseModel):
    license_id: str
    provider_id: str
    company_id: str | None = None
    license_number: str
    license_type: str
    status: LicenseStatus
    expiration_date: date
    days_until_expiration: int
    severity: AlertSeverity


def days_until_expiration(expiration_date: date, as_of: datetime) -> int:
    """
    Whole days from `as_of` to the start of the expiration date (UTC), floored.

    A naive `as_of` is taken to be UTC. A license expiring today at 00:00 with
    `as_of` later that day gives -1.
    """
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    expires_at = datetime.combine(expiration_date, time.min, tzinfo=timezone.utc)
    return (expires_at - as_of) // timedelta(days=1)


def classify_severity(days: int) -> AlertSeverity | None:
    if days <= 30:
        return AlertSeverity.CRITICAL
    if days <= 60:
        return AlertSeverity.WARNING
    if days <= ALERT_HORIZON_DAYS:
        return AlertSeverity.INFO
    return None


def is_notification_boundary(days: int) -> bool:
    return days in NOTIFICATION_DAYS


def compute_alerts(licenses: Iterable[License], as_of: datetime) -> list[ExpirationAlert]:
    """Licenses expiring within the horizon, soonest first."""
    alerts = []
    for license in licenses:
        days = days_until_expiration(license.expiration_date, as_of)
        if not 0 < days <= ALERT_HORIZON_DAYS:
            continue
        alerts.append(
            ExpirationAlert(
                license_id=license.id,
                provider_id=license.provider_id,
                company_id=license.company_id,
                license_number=license.license_number,
                license_type=license.license_type,
                status=license.status,
                expiration_date=license.expiration_date,
                days_until_expiration=days,
                severity=classify_severity(days),
            )
        )
    alerts.sort(key=lambda alert: alert.days_until_expiration)
    return alerts
