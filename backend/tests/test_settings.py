"""
System settings tests: direct super-admin edits and the admin proposal
workflow (submit, update in place, approve or reject).
"""

import pytest

from vendofy.services import settings_service
from vendofy.services.settings_service import SettingsError


class TestSettings:
    def test_defaults_created_on_first_read(self, db_session):
        settings = settings_service.get_settings()
        assert settings.jwt_session_duration == 3600
        assert settings.field_requirements == {"admin": {}, "distributor": {}, "customer": {}}
        assert settings_service.get_settings().id == settings.id

    def test_admin_gets_public_subset(self, client, headers_for, admin, super_admin):
        resp = client.get("/api/system-settings", headers=headers_for(admin))
        assert resp.status_code == 200
        assert "smtp_status" not in resp.json["settings"]
        assert set(resp.json["settings"]["field_requirements"]) == {"distributor", "customer"}

        resp = client.get("/api/system-settings", headers=headers_for(super_admin))
        assert "smtp_status" in resp.json["settings"]

    def test_super_admin_update(self, client, headers_for, super_admin):
        resp = client.put(
            "/api/system-settings",
            json={
                "password_min_length": 10,
                "password_require_numbers": True,
                "field_requirements": {"distributor": {"business_name": True}},
            },
            headers=headers_for(super_admin),
        )
        assert resp.status_code == 200
        settings = resp.json["settings"]
        assert settings["password_min_length"] == 10
        assert settings["password_require_numbers"] is True
        assert settings["field_requirements"]["distributor"] == {"business_name": True}
        assert settings["field_requirements"]["customer"] == {}

    @pytest.mark.parametrize("payload", [
        {"password_min_length": 2},
        {"password_require_numbers": "yes"},
        {"smtp_status": "paused"},
        {"field_requirements": {"customer": {"favourite_colour": True}}},
        {"field_requirements": {"super-admin": {}}},
        {"feature_toggles": {"beta": 1}},
    ])
    def test_invalid_updates(self, db_session, payload):
        with pytest.raises(settings_service.ValidationError):
            settings_service.update_settings(payload)


class TestPendingChanges:
    proposal = {"field_requirements": {"customer": {"mobile_no": True}}}

    def test_submit_then_update_in_place(self, client, headers_for, admin):
        resp = client.post("/api/system-settings/pending", json=self.proposal, headers=headers_for(admin))
        assert resp.status_code == 201
        change_id = resp.json["change"]["id"]

        resp = client.post(
            "/api/system-settings/pending",
            json={"field_requirements": {"distributor": {"address": True}}},
            headers=headers_for(admin),
        )
        assert resp.status_code == 200
        assert resp.json["change"]["id"] == change_id
        assert resp.json["change"]["field_requirements"] == {"distributor": {"address": True}}

        resp = client.get("/api/system-settings/pending/my", headers=headers_for(admin))
        assert resp.json["change"]["id"] == change_id

    def test_admin_rows_are_not_proposable(self, client, headers_for, admin):
        resp = client.post(
            "/api/system-settings/pending",
            json={"field_requirements": {"admin": {"mobile_no": True}}},
            headers=headers_for(admin),
        )
        assert resp.status_code == 400

    def test_approve_merges_into_settings(self, client, headers_for, admin, super_admin):
        change, _ = settings_service.submit_pending_change(admin.id, self.proposal["field_requirements"])

        resp = client.get("/api/system-settings/pending", headers=headers_for(super_admin))
        assert resp.json["count"] == 1

        resp = client.post(f"/api/system-settings/pending/{change.id}/approve", headers=headers_for(super_admin))
        assert resp.status_code == 200
        assert resp.json["change"]["status"] == "approved"
        assert resp.json["settings"]["field_requirements"]["customer"] == {"mobile_no": True}
        assert settings_service.get_settings().requirements_for("customer") == {"mobile_no": True}

    def test_reject_keeps_settings(self, client, headers_for, admin, super_admin):
        change, _ = settings_service.submit_pending_change(admin.id, self.proposal["field_requirements"])

        resp = client.post(
            f"/api/system-settings/pending/{change.id}/reject",
            json={"reason": "  "},
            headers=headers_for(super_admin),
        )
        assert resp.status_code == 200
        assert resp.json["change"]["status"] == "rejected"
        assert resp.json["change"]["rejection_reason"] == "Rejected by super admin"
        assert settings_service.get_settings().requirements_for("customer") == {}

    def test_processed_change_is_final(self, admin, super_admin):
        change, _ = settings_service.submit_pending_change(admin.id, self.proposal["field_requirements"])
        settings_service.reject_change(change.id, super_admin.id, "no")

        with pytest.raises(SettingsError):
            settings_service.approve_change(change.id, super_admin.id)

    def test_new_proposal_after_review(self, admin, super_admin):
        first, _ = settings_service.submit_pending_change(admin.id, self.proposal["field_requirements"])
        settings_service.reject_change(first.id, super_admin.id)

        second, created = settings_service.submit_pending_change(admin.id, self.proposal["field_requirements"])
        assert created is True
        assert second.id != first.id

    def test_missing_change(self, client, headers_for, super_admin):
        resp = client.post("/api/system-settings/pending/9999/approve", headers=headers_for(super_admin))
        assert resp.status_code == 404
