"""
Authentication tests.

Covers login rules per role, the super-admin's admin sign-in, logout
revocation, email verification with a temporary password and the
forgot-password code flow.
"""

import re
from datetime import timedelta
from html import unescape

import pytest

from vendofy.extensions import db
from vendofy.models import User
from vendofy.services import auth_service, session_service, settings_service, user_service
from vendofy.services.mail_service import outbox

from conftest import PASSWORD, auth_headers

_TOKEN_RE = re.compile(r"verify-email\?token=([A-Za-z0-9_\-]+)")
_TEMP_PASSWORD_RE = re.compile(r'font-size:18px;font-weight:bold">([^<]+)</p>')
_RESET_CODE_RE = re.compile(r'letter-spacing:4px;font-weight:bold">(\d{6})</p>')


def _login(client, email, password=PASSWORD, role="customer"):
    return client.post("/api/auth/login", json={"email": email, "password": password, "role": role})


def _last_mail(pattern):
    match = pattern.search(outbox()[-1]["html"])
    assert match, outbox()[-1]["subject"]
    return unescape(match.group(1))


class TestLogin:
    def test_login_returns_token(self, client, customer):
        resp = _login(client, customer.email.upper())
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "customer"
        assert resp.json["user"]["expires_at"].endswith("Z")

        me = client.get("/api/auth/me", headers=auth_headers(resp.json["token"]))
        assert me.status_code == 200
        assert me.json["user"]["id"] == customer.id

    def test_wrong_password(self, client, customer):
        resp = _login(client, customer.email, password="Nope12345!")
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid credentials."

    def test_unknown_email_looks_like_wrong_password(self, client, db_session):
        resp = _login(client, "ghost@vendofy.test")
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid credentials."

    def test_role_must_match(self, client, distributor):
        resp = _login(client, distributor.email, role="customer")
        assert resp.status_code == 403

    def test_unverified_email(self, client, make_user, distributor):
        user = make_user("customer", parent=distributor, email_verified=False)
        resp = _login(client, user.email)
        assert resp.status_code == 403
        assert "verify your email" in resp.json["error"]

    def test_inactive_account(self, client, make_user, distributor):
        user = make_user("customer", parent=distributor, is_active=False)
        assert _login(client, user.email).status_code == 403

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "a@vendofy.test"})
        assert resp.status_code == 400

    def test_super_admin_signs_in_as_admin(self, client, super_admin):
        assert _login(client, super_admin.email, role="customer").status_code == 401

        resp = _login(client, super_admin.email, role="admin")
        assert resp.status_code == 200
        assert resp.json["user"]["is_super_admin"] is True

        me = client.get("/api/auth/me", headers=auth_headers(resp.json["token"]))
        assert me.json["user"]["session_role"] == "super-admin"

    def test_owner_of_super_admin_email_is_super_admin(self, client, make_user):
        owner = make_user("admin", email="root@vendofy.test")
        resp = _login(client, owner.email, role="admin")
        assert resp.json["user"]["is_super_admin"] is True

    def test_session_duration_from_settings(self, client, customer):
        settings_service.update_settings({"jwt_session_duration": 2})
        assert session_service.session_ttl_seconds() == 7200

        settings_service.update_settings({"jwt_session_duration": 900})
        assert session_service.session_ttl_seconds() == 900


class TestTokens:
    def test_missing_token(self, client, db_session):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json["error"] == "Access token required"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-jwt"))
        assert resp.status_code == 401

    def test_expired_token(self, client, customer):
        token, _ = session_service.issue_token(customer, role="customer", super_admin=False, ttl_seconds=-10)
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_logout_revokes(self, client, customer):
        token = _login(client, customer.email).json["token"]
        headers = auth_headers(token)

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

        fresh = _login(client, customer.email).json["token"]
        assert client.get("/api/auth/me", headers=auth_headers(fresh)).status_code == 200

    def test_purge_expired_revocations(self, customer):
        token, expires_at = session_service.issue_token(customer, role="customer", super_admin=False, ttl_seconds=5)
        session_service.revoke_token(token, expires_at)

        assert session_service.purge_expired_revocations(now=expires_at) == 0
        assert session_service.purge_expired_revocations(now=expires_at + timedelta(seconds=1)) == 1


class TestVerification:
    def test_verify_issues_temporary_password(self, client, ctx_for, distributor):
        user_service.create_user(ctx_for(distributor), {
            "name": "Corner Shop", "email": "corner@vendofy.test", "role": "customer", "password": PASSWORD,
        })
        token = _last_mail(_TOKEN_RE)

        assert _login(client, "corner@vendofy.test").status_code == 403

        resp = client.get(f"/api/auth/verify-email?token={token}")
        assert resp.status_code == 200
        temporary = _last_mail(_TEMP_PASSWORD_RE)

        assert _login(client, "corner@vendofy.test").status_code == 401
        resp = _login(client, "corner@vendofy.test", password=temporary)
        assert resp.status_code == 200
        assert resp.json["user"]["must_change_password"] is True

        again = client.get(f"/api/auth/verify-email?token={token}")
        assert again.status_code == 400

    def test_unknown_token(self, client, db_session):
        assert client.get("/api/auth/verify-email?token=nope").status_code == 400
        assert client.get("/api/auth/verify-email").status_code == 400

    def test_temporary_password_meets_default_classes(self):
        password = auth_service.generate_temporary_password()
        assert len(password) == auth_service.TEMPORARY_PASSWORD_LENGTH
        assert re.search(r"[A-Z]", password)
        assert re.search(r"[a-z]", password)
        assert re.search(r"\d", password)


class TestPasswordReset:
    def test_code_flow(self, client, customer):
        resp = client.post("/api/auth/forgot-password/request", json={"email": customer.email})
        assert resp.status_code == 200
        code = _last_mail(_RESET_CODE_RE)

        resp = client.post("/api/auth/forgot-password/reset", json={
            "email": customer.email, "code": code, "new_password": "BrandNew123!",
        })
        assert resp.status_code == 200
        assert _login(client, customer.email, password="BrandNew123!").status_code == 200

        reused = client.post("/api/auth/forgot-password/reset", json={
            "email": customer.email, "code": code, "new_password": "Another123!",
        })
        assert reused.status_code == 400

    def test_unknown_email_is_silent(self, client, db_session):
        resp = client.post("/api/auth/forgot-password/request", json={"email": "ghost@vendofy.test"})
        assert resp.status_code == 200
        assert outbox() == []

    def test_wrong_code(self, client, customer):
        client.post("/api/auth/forgot-password/request", json={"email": customer.email})
        code = _last_mail(_RESET_CODE_RE)
        wrong = "000000" if code != "000000" else "111111"

        resp = client.post("/api/auth/forgot-password/reset", json={
            "email": customer.email, "code": wrong, "new_password": "BrandNew123!",
        })
        assert resp.status_code == 400

    @pytest.mark.parametrize("code", ["12345", "abcdef", "1234567"])
    def test_code_format(self, client, customer, code):
        resp = client.post("/api/auth/forgot-password/reset", json={
            "email": customer.email, "code": code, "new_password": "BrandNew123!",
        })
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid code format."


class TestChangePassword:
    def test_change_clears_flag(self, client, headers_for, db_session, customer):
        customer.must_change_password = True
        db_session.commit()

        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "Changed123!"},
            headers=headers_for(customer),
        )
        assert resp.status_code == 200
        user = db.session.get(User, customer.id)
        assert user.must_change_password is False
        assert auth_service.verify_password("Changed123!", user.password_hash)

    def test_wrong_current_password(self, client, headers_for, customer):
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": "wrong", "new_password": "Changed123!"},
            headers=headers_for(customer),
        )
        assert resp.status_code == 400

    def test_policy_applies(self, client, headers_for, customer):
        settings_service.update_settings({"password_require_special_chars": True})
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "NoSpecial123"},
            headers=headers_for(customer),
        )
        assert resp.status_code == 400
