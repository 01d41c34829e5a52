"""Tests for entitlement checks and the admin grant/revoke endpoints."""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from app.domain.audit.repository import AuditRepository
from app.domain.entitlements.service import EntitlementService
from app.models import Entitlement, utcnow


@pytest.fixture
def service(db, catalog):
    return EntitlementService(db)


class TestEntitlementService:
    def test_active_entitlement(self, service):
        assert service.check_entitlement("org-one", "pack-tubes") is True

    def test_other_org_or_pack_is_not_entitled(self, service):
        assert service.check_entitlement("org-two", "pack-tubes") is False
        assert service.check_entitlement("org-one", "pack-fabric") is False

    def test_no_org_is_never_entitled(self, service):
        assert service.check_entitlement(None, "pack-tubes") is False
        assert service.entitled_playdate_ids(None, ["pd-tunnel"]) == set()

    def test_expired_entitlement_is_inactive(self, service, db):
        entitlement = db.query(Entitlement).filter(Entitlement.org_id == "org-one").one()
        entitlement.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()
        assert service.check_entitlement("org-one", "pack-tubes") is False

    def test_future_expiry_is_active(self, service, db):
        entitlement = db.query(Entitlement).filter(Entitlement.org_id == "org-one").one()
        entitlement.expires_at = utcnow() + timedelta(days=30)
        db.commit()
        assert service.check_entitlement("org-one", "pack-tubes") is True

    def test_entitled_playdate_ids(self, service):
        ids = service.entitled_playdate_ids("org-one", ["pd-fort", "pd-cape", "pd-tunnel", "pd-arch"])
        assert ids == {"pd-tunnel", "pd-arch"}

    def test_failed_pack_check_does_not_affect_other_packs(self, service, monkeypatch):
        original = service.repo.has_active_entitlement

        def flaky(db, org_id, pack_id, now):
            if pack_id == "pack-fabric":
                raise RuntimeError("timeout")
            return original(db, org_id, pack_id, now)

        monkeypatch.setattr(service.repo, "has_active_entitlement", flaky)
        assert service.entitled_pack_ids("org-one", ["pack-fabric", "pack-tubes"]) == {"pack-tubes"}

    def test_grant_creates_entitlement(self, service):
        entitlement = service.grant_entitlement("org-two", "pack-fabric", purchase_id="pi_456")
        assert entitlement.granted_at is not None
        assert entitlement.revoked_at is None
        assert service.check_entitlement("org-two", "pack-fabric") is True

    def test_revoke_then_regrant(self, service):
        assert service.revoke_entitlement("org-one", "pack-tubes") is True
        assert service.check_entitlement("org-one", "pack-tubes") is False
        assert service.revoke_entitlement("org-one", "pack-tubes") is False

        entitlement = service.grant_entitlement("org-one", "pack-tubes")
        assert entitlement.revoked_at is None
        assert entitlement.purchase_id == "pi_123"
        assert entitlement.granted_at == datetime(2026, 1, 1) - timedelta(days=1)
        assert service.check_entitlement("org-one", "pack-tubes") is True

    def test_revoke_unknown_is_false(self, service):
        assert service.revoke_entitlement("org-two", "pack-tubes") is False

    def test_grant_unknown_pack_or_org_is_404(self, service):
        with pytest.raises(HTTPException) as exc_info:
            service.grant_entitlement("org-one", "pack-missing")
        assert exc_info.value.status_code == 404

        with pytest.raises(HTTPException) as exc_info:
            service.grant_entitlement("org-missing", "pack-tubes")
        assert exc_info.value.status_code == 404

    def test_list_org_entitlements(self, service):
        [entry] = service.list_org_entitlements("org-one")
        assert entry["pack_slug"] == "tubes-pack"
        assert service.list_org_entitlements("org-two") == []


class TestEntitlementRoutes:
    def test_my_entitlements_requires_session(self, client, catalog):
        assert client.get("/entitlements").status_code == 401

    def test_my_entitlements(self, client, catalog, auth_headers):
        response = client.get("/entitlements", headers=auth_headers(catalog["users"]["member"]))
        assert response.status_code == 200
        assert [e["pack_slug"] for e in response.json()["entitlements"]] == ["tubes-pack"]

    def test_user_without_org_has_no_entitlements(self, client, catalog, auth_headers):
        response = client.get("/entitlements", headers=auth_headers(catalog["users"]["staff"]))
        assert response.json() == {"entitlements": []}

    def test_admin_routes_reject_non_admins(self, client, catalog, auth_headers):
        body = {"orgId": "org-two", "packId": "pack-fabric"}
        assert client.post("/admin/entitlements", json=body).status_code == 401

        headers = auth_headers(catalog["users"]["member"])
        assert client.post("/admin/entitlements", json=body, headers=headers).status_code == 403
        assert client.get("/admin/entitlements", headers=headers).status_code == 403
        assert client.delete("/admin/entitlements/org-one/pack-tubes", headers=headers).status_code == 403

    def test_admin_grant_is_audited(self, client, catalog, db, auth_headers):
        response = client.post(
            "/admin/entitlements",
            json={"orgId": "org-two", "packId": "pack-fabric", "expiresAt": "2030-01-01T00:00:00+02:00"},
            headers=auth_headers(catalog["users"]["admin"]),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["org_id"] == "org-two"
        assert body["pack_cache_id"] == "pack-fabric"
        assert body["expires_at"] == "2029-12-31T22:00:00"

        [log] = AuditRepository.get_logs_for_user(db, "user-admin", action="admin_grant_entitlement")
        assert log.pack_id == "pack-fabric"
        assert log.fields_accessed[-1] == 'meta:{"target_org": "org-two"}'

    def test_admin_grant_rejects_blank_ids(self, client, catalog, auth_headers):
        response = client.post(
            "/admin/entitlements",
            json={"orgId": "  ", "packId": "pack-fabric"},
            headers=auth_headers(catalog["users"]["admin"]),
        )
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail[0]["loc"] == ["body", "orgId"]
        assert "must not be blank" in detail[0]["msg"]

    def test_admin_grant_unknown_pack(self, client, catalog, auth_headers):
        response = client.post(
            "/admin/entitlements",
            json={"orgId": "org-two", "packId": "pack-missing"},
            headers=auth_headers(catalog["users"]["admin"]),
        )
        assert response.status_code == 404

    def test_admin_revoke(self, client, catalog, db, auth_headers):
        headers = auth_headers(catalog["users"]["admin"])
        response = client.delete("/admin/entitlements/org-one/pack-tubes", headers=headers)
        assert response.status_code == 200
        assert client.delete("/admin/entitlements/org-one/pack-tubes", headers=headers).status_code == 404

        [log] = AuditRepository.get_logs_for_user(db, "user-admin", action="admin_revoke_entitlement")
        assert log.fields_accessed == ["revoked_at", 'meta:{"target_org": "org-one"}']

    def test_admin_list(self, client, catalog, auth_headers):
        response = client.get("/admin/entitlements", headers=auth_headers(catalog["users"]["admin"]))
        assert response.status_code == 200
        [entry] = response.json()["entitlements"]
        assert entry["org_name"] == "Org One"
        assert entry["pack_title"] == "Tubes Pack"

    def test_revoked_org_loses_matcher_enrichment(self, client, catalog, auth_headers):
        admin = auth_headers(catalog["users"]["admin"])
        client.delete("/admin/entitlements/org-one/pack-tubes", headers=admin)

        response = client.post(
            "/matcher", json={"forms": ["tube"]}, headers=auth_headers(catalog["users"]["member"])
        )
        assert all(not r["is_entitled"] for r in response.json()["ranked"])
