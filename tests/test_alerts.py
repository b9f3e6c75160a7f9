"""Tests for the expiration alerting engine and the expiration sweep."""
from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.errors import StorageError
from app.features.alerts.engine import (
    AlertSeverity,
    classify_severity,
    compute_alerts,
    days_until_expiration,
    is_notification_boundary,
)
from app.features.alerts.notifier import ExpirationNotice, Notifier
from app.features.alerts.sweep import run_expiration_sweep
from app.features.licenses.models import License, LicenseStatus, VerificationStatus
from tests.factories import create_admin, create_company, create_license, create_provider, create_user

AS_OF = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


def make_license(days_ahead: int, license_id: str = "lic", status=LicenseStatus.ACTIVE) -> License:
    expiration = AS_OF.date() + timedelta(days=days_ahead)
    return License(
        id=license_id,
        provider_id="prov",
        company_id="comp",
        license_number=f"N-{license_id}",
        license_type="MD",
        issuing_state="CA",
        issue_date=expiration - timedelta(days=365),
        expiration_date=expiration,
        status=status,
        verification_status=VerificationStatus.PENDING,
    )


class RecordingNotifier(Notifier):
    def __init__(self):
        self.batches: list[list[ExpirationNotice]] = []

    async def send(self, notices):
        self.batches.append(list(notices))



class DownNotifier(Notifier):
    async def send(self, notices):
        raise ConnectionError("mail relay unreachable")


@pytest.mark.unit
class TestDaysUntilExpiration:
    def test_whole_days_at_midnight(self):
        assert days_until_expiration(date(2025, 4, 1), AS_OF) == 90

    def test_partial_day_is_truncated(self):
        as_of = AS_OF.replace(hour=10)
        assert days_until_expiration(date(2025, 4, 1), as_of) == 89

    def test_naive_datetime_is_utc(self):
        assert days_until_expiration(date(2025, 4, 1), AS_OF.replace(tzinfo=None)) == 90

    def test_other_timezone_is_converted(self):
        # 2025-01-01 02:00 in UTC+2 is midnight UTC
        as_of = datetime(2025, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert days_until_expiration(date(2025, 4, 1), as_of) == 90

    def test_expiring_later_today_is_negative(self):
        assert days_until_expiration(date(2025, 1, 1), AS_OF.replace(hour=12)) == -1

    def test_yesterday(self):
        assert days_until_expiration(date(2024, 12, 31), AS_OF) == -1


@pytest.mark.unit
class TestSeverity:
    @pytest.mark.parametrize("days, severity", [
        (1, AlertSeverity.CRITICAL),
        (30, AlertSeverity.CRITICAL),
        (31, AlertSeverity.WARNING),
        (60, AlertSeverity.WARNING),
        (61, AlertSeverity.INFO),
        (90, AlertSeverity.INFO),
    ])
    def test_buckets(self, days, severity):
        assert classify_severity(days) == severity

    def test_beyond_horizon(self):
        assert classify_severity(91) is None

    @pytest.mark.parametrize("days, expected", [
        (90, True), (60, True), (30, True),
        (89, False), (45, False), (31, False), (29, False), (0, False), (-30, False),
    ])
    def test_notification_boundaries(self, days, expected):
        assert is_notification_boundary(days) is expected


@pytest.mark.unit
class TestComputeAlerts:
    def test_window_edges(self):
        licenses = [
            make_license(90, "at-horizon"),
            make_license(91, "beyond"),
            make_license(-1, "expired"),
            make_license(0, "today"),
        ]

        alerts = compute_alerts(licenses, AS_OF)

        assert [a.license_id for a in alerts] == ["at-horizon"]
        assert alerts[0].severity == AlertSeverity.INFO
        assert alerts[0].days_until_expiration == 90

    def test_sorted_soonest_first(self):
        licenses = [make_license(75, "c"), make_license(5, "a"), make_license(40, "b")]

        alerts = compute_alerts(licenses, AS_OF)

        assert [a.license_id for a in alerts] == ["a", "b", "c"]
        assert [a.severity for a in alerts] == [
            AlertSeverity.CRITICAL, AlertSeverity.WARNING, AlertSeverity.INFO
        ]

    def test_dashboard_window_is_wider_than_notifications(self):
        alerts = compute_alerts([make_license(45, "mid")], AS_OF)

        assert len(alerts) == 1
        assert not is_notification_boundary(alerts[0].days_until_expiration)

    def test_empty(self):
        assert compute_alerts([], AS_OF) == []


async def _license(db, days_ahead, email=None, **kwargs):
    admin = await create_admin(db)
    company = await create_company(db, admin)
    user = await create_user(db, name="Dana Reyes", email=email)
    provider = await create_provider(db, user)
    return await create_license(
        db, provider, company, expiration_date=AS_OF.date() + timedelta(days=days_ahead), **kwargs
    )


@pytest.mark.integration
class TestExpirationSweep:
    async def test_expires_only_active_past_due_licenses(self, db_session, recorded_events):
        past_due = await _license(db_session, -1)
        revoked = await _license(db_session, -10, status=LicenseStatus.REVOKED)
        current = await _license(db_session, 10)

        result = await run_expiration_sweep(db_session, RecordingNotifier(), as_of=AS_OF)

        assert result.expired_license_ids == [past_due.id]
        for license in (past_due, revoked, current):
            await db_session.refresh(license)
        assert past_due.status == LicenseStatus.EXPIRED
        assert revoked.status == LicenseStatus.REVOKED
        assert current.status == LicenseStatus.ACTIVE
        assert [e.name for e in recorded_events] == ["license.expired"]

    async def test_notifies_on_exact_boundaries(self, db_session):
        at_90 = await _license(db_session, 90)
        at_60 = await _license(db_session, 60)
        at_30 = await _license(db_session, 30, email="dana@example.com")
        await _license(db_session, 45)
        await _license(db_session, 29)
        notifier = RecordingNotifier()

        result = await run_expiration_sweep(db_session, notifier, as_of=AS_OF)

        assert result.notifications_sent == 3
        notices = {n.license_id: n for n in notifier.batches[0]}
        assert set(notices) == {at_90.id, at_60.id, at_30.id}
        notice = notices[at_30.id]
        assert notice.days_until_expiration == 30
        assert notice.provider_email == "dana@example.com"
        assert notice.provider_name == "Dana Reyes"
        assert notice.license_number == at_30.license_number

    async def test_notice_uses_camel_case_keys(self, db_session):
        await _license(db_session, 60)

        result = await run_expiration_sweep(db_session, RecordingNotifier(), as_of=AS_OF)

        payload = result.model_dump(by_alias=True, mode="json")
        assert payload["notificationsSent"] == 1
        assert set(payload["notifications"][0]) == {
            "licenseId", "licenseNumber", "licenseType", "expirationDate",
            "daysUntilExpiration", "providerEmail", "providerName",
        }

    async def test_running_twice_changes_nothing_more(self, db_session):
        past_due = await _license(db_session, -5)
        await _license(db_session, 60)
        notifier = RecordingNotifier()

        first = await run_expiration_sweep(db_session, notifier, as_of=AS_OF)
        second = await run_expiration_sweep(db_session, notifier, as_of=AS_OF)

        assert first.expired_license_ids == [past_due.id]
        assert second.expired_license_ids == []
        await db_session.refresh(past_due)
        assert past_due.status == LicenseStatus.EXPIRED
        # Notices are at-least-once: a repeated run sends them again
        assert [len(batch) for batch in notifier.batches] == [1, 1]

    async def test_no_notifier_call_without_notices(self, db_session):
        await _license(db_session, 200)
        notifier = RecordingNotifier()

        result = await run_expiration_sweep(db_session, notifier, as_of=AS_OF)

        assert notifier.batches == []
        assert result.notifications_sent == 0

    async def test_notifier_failure_is_storage_error_after_expiry(self, db_session):
        past_due = await _license(db_session, -2)
        await _license(db_session, 30)

        with pytest.raises(StorageError):
            await run_expiration_sweep(db_session, DownNotifier(), as_of=AS_OF)

        await db_session.refresh(past_due)
        assert past_due.status == LicenseStatus.EXPIRED

    async def test_scenario_alert_then_expiry(self, db_session):
        """Scenario D: warning at 45 days, gone from alerts once expired."""
        license = await _license(db_session, 45)

        alerts = compute_alerts([license], AS_OF)
        assert [(a.license_id, a.severity) for a in alerts] == [(license.id, AlertSeverity.WARNING)]

        later = AS_OF + timedelta(days=46)
        await run_expiration_sweep(db_session, RecordingNotifier(), as_of=later)

        await db_session.refresh(license)
        assert license.status == LicenseStatus.EXPIRED
        assert compute_alerts([license], later) == []
