"""
Authorization tests for Vendofy.

Verifies:
- Unauthenticated requests return 401
- Each role is kept out of the other roles' endpoints (403)
- The super-admin passes every role check
- Super-admin-only endpoints reject regular admins
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("GET", "/api/admin/stats/revenue-orders"),
            ("GET", "/api/system-settings"),
            ("GET", "/api/products"),
            ("GET", "/api/admin/products/used"),
            ("GET", "/api/distributor/orders"),
            ("GET", "/api/customer/products"),
            ("POST", "/api/customer/orders"),
            ("GET", "/api/orders"),
            ("PUT", "/api/user/name"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# ROLE BOUNDARIES - 403
# =============================================================================


class TestCustomerDenied:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/users"),
            ("GET", "/api/distributor/orders"),
            ("POST", "/api/distributor/orders/mark-for-today"),
            ("GET", "/api/admin/orders/notifications"),
            ("POST", "/api/products"),
            ("GET", "/api/system-settings"),
        ],
    )
    def test_forbidden(self, client, headers_for, customer, method, path):
        resp = getattr(client, method.lower())(path, headers=headers_for(customer), json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestDistributorDenied:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/customer/orders"),
            ("GET", "/api/admin/distributors"),
            ("GET", "/api/admin/products/available"),
            ("POST", "/api/products"),
            ("POST", "/api/system-settings/pending"),
        ],
    )
    def test_forbidden(self, client, headers_for, distributor, method, path):
        resp = getattr(client, method.lower())(path, headers=headers_for(distributor), json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestAdminDenied:
    """Regular admins cannot reach super-admin endpoints."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("PUT", "/api/system-settings"),
            ("GET", "/api/system-settings/pending"),
            ("GET", "/api/products/pending"),
            ("POST", "/api/products/1/approve"),
            ("DELETE", "/api/products/1"),
        ],
    )
    def test_forbidden(self, client, headers_for, admin, method, path):
        resp = getattr(client, method.lower())(path, headers=headers_for(admin), json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.json["error"] == "Super admin access required"

    def test_customer_endpoints(self, client, headers_for, admin):
        resp = client.get("/api/customer/orders", headers=headers_for(admin))
        assert resp.status_code == 403


class TestSuperAdminAccess:
    def test_passes_role_checks(self, client, headers_for, super_admin):
        headers = headers_for(super_admin)
        assert client.get("/api/admin/users", headers=headers).status_code == 200
        assert client.get("/api/admin/distributors", headers=headers).status_code == 200
        assert client.get("/api/products/pending", headers=headers).status_code == 200
        assert client.get("/api/system-settings/pending", headers=headers).status_code == 200

    def test_cannot_propose_settings(self, client, headers_for, super_admin):
        resp = client.post(
            "/api/system-settings/pending",
            json={"field_requirements": {"customer": {"mobile_no": True}}},
            headers=headers_for(super_admin),
        )
        assert resp.status_code == 403


class TestSystem:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json == {"status": "ok", "database": "up"}

    def test_unknown_route_is_json(self, client, db_session):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert "error" in resp.json

    def test_method_not_allowed_is_json(self, client, db_session):
        resp = client.patch("/api/health")
        assert resp.status_code == 405
        assert "error" in resp.json
