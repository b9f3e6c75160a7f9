"""HTTP-level tests: routing, error payloads and the scheduler entry point."""
from datetime import date, timedelta

import pytest

from app.core import config
from app.features.affiliations.models import LinkStatus
from app.features.licenses.verifier import BoardVerifier, VerificationResult, get_board_verifier
from app.main import app
from tests.factories import (
    actor_for,
    create_admin,
    create_company,
    create_document,
    create_license,
    create_link,
    create_provider,
    create_user,
)


@pytest.mark.api
class TestErrorPayloads:
    async def test_unauthenticated_request(self, client):
        response = await client.get("/companies/my")

        assert response.status_code == 401
        assert response.json() == {"error": {"message": "Authentication required", "code": "UNAUTHORIZED"}}

    async def test_provider_on_admin_route_is_forbidden(self, client, db_session, act_as):
        user = await create_user(db_session)
        act_as(actor_for(user))

        response = await client.post("/companies", json={"name": "Clinic"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    async def test_missing_body_field(self, client, db_session, act_as):
        user = await create_user(db_session)
        act_as(actor_for(user))

        response = await client.post("/licenses", json={"license_number": "A1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_FIELDS"

    async def test_malformed_body_field(self, client, db_session, act_as):
        user = await create_user(db_session)
        act_as(actor_for(user))

        response = await client.post("/licenses", json={
            "license_number": "A1",
            "license_type": "MD",
            "issuing_state": "California",
            "issue_date": "2024-01-01",
            "expiration_date": "2026-01-01",
        })

        assert response.status_code == 400
        body = response.json()["error"]
        assert body["code"] == "INVALID_FORMAT"
        assert "issuing_state" in body["fields"]

    async def test_not_found(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        act_as(actor_for(admin))

        response = await client.post("/affiliations/01HZZZZZZZZZZZZZZZZZZZZZZZ/approve")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.api
class TestAffiliationRoutes:
    async def test_join_and_approve(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin, enrollment_code="ABC12345")
        user = await create_user(db_session)
        await create_provider(db_session, user)

        act_as(actor_for(user))
        response = await client.post("/companies/join", json={"enrollment_code": "abc12345", "request_note": "Hi"})
        assert response.status_code == 201
        joined = response.json()
        assert joined["status"] == "pending"
        assert joined["company"] == {"id": company.id, "name": company.name, "enrollment_code": "ABC12345"}

        act_as(actor_for(admin))
        response = await client.post(f"/affiliations/{joined['id']}/approve")
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        response = await client.get(f"/audit/companies/{company.id}")
        assert [entry["action_type"] for entry in response.json()] == ["approve_request"]

    async def test_duplicate_join(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin, enrollment_code="ABC12345")
        user = await create_user(db_session)
        provider = await create_provider(db_session, user)
        await create_link(db_session, provider, company, status=LinkStatus.APPROVED)
        act_as(actor_for(user))

        response = await client.post("/companies/join", json={"enrollment_code": "ABC12345"})

        assert response.status_code == 400
        assert response.json()["error"] == {
            "message": "You are already linked to this company",
            "code": "DUPLICATE_LINK",
        }

    async def test_remove_provider(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin)
        provider = await create_provider(db_session)
        link = await create_link(db_session, provider, company, status=LinkStatus.APPROVED)
        act_as(actor_for(admin))

        response = await client.delete(f"/affiliations/{link.id}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "link_id": link.id}

    async def test_second_approve_is_conflict(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin)
        provider = await create_provider(db_session)
        link = await create_link(db_session, provider, company)
        act_as(actor_for(admin))

        first = await client.post(f"/affiliations/{link.id}/approve")
        second = await client.post(f"/affiliations/{link.id}/approve")

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "CONFLICT"


@pytest.mark.api
class TestDocumentRoutes:
    async def test_upload_and_reject(self, client, db_session, act_as, content_store):
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin)
        user = await create_user(db_session)
        provider = await create_provider(db_session, user)
        await create_link(db_session, provider, company, status=LinkStatus.APPROVED)

        act_as(actor_for(user))
        response = await client.post(
            "/documents",
            files={"file": ("board-cert.pdf", b"%PDF-1.4", "application/pdf")},
            data={"document_type": "board_certification"},
        )
        assert response.status_code == 201
        document = response.json()
        assert document["company_id"] == company.id
        assert document["mime_type"] == "application/pdf"
        assert document["file_path"] in content_store.blobs

        act_as(actor_for(admin))
        response = await client.post(f"/documents/{document['id']}/reject", json={"notes": "illegible scan"})
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert response.json()["notes"] == "illegible scan"

        response = await client.post(f"/documents/{document['id']}/revert")
        assert response.json()["status"] == "pending"
        assert response.json()["notes"] is None

    async def test_company_listing_is_owner_only(self, client, db_session, act_as):
        owner = await create_admin(db_session)
        intruder = await create_admin(db_session)
        company = await create_company(db_session, owner)
        provider = await create_provider(db_session)
        await create_document(db_session, provider, company)

        act_as(actor_for(intruder))
        response = await client.get(f"/documents/companies/{company.id}")
        assert response.status_code == 403

        act_as(actor_for(owner))
        response = await client.get(f"/documents/companies/{company.id}")
        assert response.status_code == 200
        assert len(response.json()) == 1


class _DownVerifier(BoardVerifier):
    async def verify(self, license, as_of):
        raise TimeoutError("board down")


@pytest.mark.api
class TestLicenseRoutes:
    async def test_verify_and_revert(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin)
        provider = await create_provider(db_session)
        license = await create_license(db_session, provider, company)
        act_as(actor_for(admin))

        response = await client.post(f"/licenses/{license.id}/verify")
        assert response.status_code == 200
        body = response.json()
        assert body["verified"] is True
        assert body["license"]["verification_status"] == "verified"

        response = await client.post(f"/licenses/{license.id}/revert")
        assert response.status_code == 200
        assert response.json()["verification_status"] == "pending"
        assert response.json()["verified_by"] is None

    async def test_verifier_outage_is_bad_gateway(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin)
        provider = await create_provider(db_session)
        license = await create_license(db_session, provider, company)
        act_as(actor_for(admin))
        app.dependency_overrides[get_board_verifier] = lambda: _DownVerifier()

        response = await client.post(f"/licenses/{license.id}/verify")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "VERIFICATION_ERROR"


@pytest.mark.api
class TestAlertRoutes:
    async def test_dashboard_is_scoped_to_admin_companies(self, client, db_session, act_as):
        admin = await create_admin(db_session)
        other_admin = await create_admin(db_session)
        mine = await create_company(db_session, admin)
        theirs = await create_company(db_session, other_admin)
        provider = await create_provider(db_session)
        soon = await create_license(db_session, provider, mine, expiration_date=date.today() + timedelta(days=20))
        await create_license(db_session, provider, mine, expiration_date=date.today() + timedelta(days=200))
        await create_license(db_session, provider, theirs, expiration_date=date.today() + timedelta(days=20))
        act_as(actor_for(admin))

        response = await client.get("/alerts/expiring-licenses")

        assert response.status_code == 200
        alerts = response.json()["alerts"]
        assert [a["license_id"] for a in alerts] == [soon.id]
        assert alerts[0]["severity"] == "critical"

    async def test_dashboard_requires_admin(self, client, db_session, act_as):
        user = await create_user(db_session)
        act_as(actor_for(user))

        response = await client.get("/alerts/expiring-licenses")

        assert response.status_code == 403


@pytest.mark.api
@pytest.mark.security
class TestCronRoute:
    async def test_valid_secret_runs_sweep(self, client, db_session, monkeypatch):
        monkeypatch.setattr(config, "CRON_SECRET", "s3cret")
        provider = await create_provider(db_session)
        admin = await create_admin(db_session)
        company = await create_company(db_session, admin)
        stale = await create_license(db_session, provider, company, expiration_date=date.today() - timedelta(days=2))

        response = await client.get("/cron/check-expirations", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["expiredLicenseIds"] == [stale.id]
        assert body["notificationsSent"] == 0

    @pytest.mark.parametrize("header", [None, "Bearer wrong", "s3cret", "Basic s3cret"])
    async def test_bad_secret_is_rejected(self, client, monkeypatch, header):
        monkeypatch.setattr(config, "CRON_SECRET", "s3cret")
        headers = {"Authorization": header} if header else {}

        response = await client.get("/cron/check-expirations", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_unset_secret_rejects_everything(self, client, monkeypatch):
        monkeypatch.setattr(config, "CRON_SECRET", None)

        response = await client.get("/cron/check-expirations", headers={"Authorization": "Bearer "})

        assert response.status_code == 401
