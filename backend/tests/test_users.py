"""
User management tests.

Verifies:
- who may create which role, and where new accounts attach in the hierarchy
- onboarding field requirements from system settings
- targets outside the caller's scope are invisible (404)
- the super-admin account cannot be modified
- delete refuses accounts that still have dependents
"""

import pytest

from vendofy.extensions import db
from vendofy.models import User
from vendofy.services import order_service, settings_service, user_service
from vendofy.services.mail_service import outbox
from vendofy.services.user_service import UID_MAX_LENGTH, UserManagementError, generate_uid


def _payload(role, email, **extra):
    data = {"name": "New Account", "email": email, "role": role}
    data.update(extra)
    return data


class TestCreateUser:
    def test_admin_creates_distributor_under_itself(self, client, headers_for, admin):
        resp = client.post(
            "/api/admin/users",
            json=_payload("distributor", "New.Dist@Vendofy.test"),
            headers=headers_for(admin),
        )
        assert resp.status_code == 201
        user = resp.json["user"]
        assert user["email"] == "new.dist@vendofy.test"
        assert user["parent_id"] == admin.id
        assert user["email_verified"] is False
        assert user["uid"].startswith("DIS")

        messages = outbox()
        assert [m["to"] for m in messages] == ["new.dist@vendofy.test"]
        assert "verify-email" in messages[0]["html"]

    def test_distributor_creates_customer(self, ctx_for, distributor):
        user = user_service.create_user(ctx_for(distributor), _payload("customer", "shop@vendofy.test"))
        assert user.parent_id == distributor.id
        assert user.created_by_id == distributor.id

    def test_super_admin_creates_admin_without_parent(self, ctx_for, super_admin):
        user = user_service.create_user(ctx_for(super_admin), _payload("admin", "boss@vendofy.test"))
        assert user.parent_id is None
        assert user.role == "admin"

    @pytest.mark.parametrize("creator,role", [
        ("admin", "admin"),
        ("admin", "customer"),
        ("distributor", "distributor"),
        ("distributor", "admin"),
    ])
    def test_hierarchy_rules(self, request, ctx_for, creator, role):
        caller = request.getfixturevalue(creator)
        with pytest.raises(user_service.AccessDeniedError):
            user_service.create_user(ctx_for(caller), _payload(role, "nope@vendofy.test"))
        assert db.session.query(User).filter_by(email="nope@vendofy.test").count() == 0

    def test_customer_cannot_reach_user_endpoints(self, client, headers_for, customer):
        resp = client.post(
            "/api/admin/users", json=_payload("customer", "x@vendofy.test"), headers=headers_for(customer)
        )
        assert resp.status_code == 403

    def test_duplicate_email(self, client, headers_for, admin, distributor):
        resp = client.post(
            "/api/admin/users",
            json=_payload("distributor", distributor.email.upper()),
            headers=headers_for(admin),
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Email already exists."

    def test_duplicate_uid(self, ctx_for, admin, distributor):
        with pytest.raises(UserManagementError) as exc:
            user_service.create_user(ctx_for(admin), _payload("distributor", "d2@vendofy.test", uid=distributor.uid))
        assert str(exc.value) == "UID already exists."

    @pytest.mark.parametrize("payload", [
        {"email": "a@vendofy.test", "role": "distributor"},
        {"name": "A", "role": "distributor"},
        {"name": "A", "email": "a@vendofy.test"},
    ])
    def test_required_fields(self, ctx_for, admin, payload):
        with pytest.raises(user_service.ValidationError) as exc:
            user_service.create_user(ctx_for(admin), payload)
        assert str(exc.value) == "Name, email, and role are required."

    def test_invalid_role(self, ctx_for, super_admin):
        with pytest.raises(user_service.ValidationError):
            user_service.create_user(ctx_for(super_admin), _payload("super-admin", "x@vendofy.test"))

    def test_weak_password_rejected_when_given(self, ctx_for, admin):
        settings_service.update_settings({"password_min_length": 12})
        with pytest.raises(user_service.ValidationError):
            user_service.create_user(ctx_for(admin), _payload("distributor", "d@vendofy.test", password="short"))


class TestFieldRequirements:
    @pytest.fixture
    def strict_customers(self, db_session):
        settings_service.update_settings({
            "field_requirements": {
                "customer": {
                    "mobile_no": True,
                    "business_name": True,
                    "address": True,
                    "registration_no": True,
                },
            },
        })

    def test_missing_mobile(self, ctx_for, distributor, strict_customers):
        with pytest.raises(user_service.ValidationError) as exc:
            user_service.create_user(ctx_for(distributor), _payload("customer", "c@vendofy.test"))
        assert str(exc.value) == "Mobile number is required for this role."

    def test_incomplete_address(self, ctx_for, distributor, strict_customers):
        payload = _payload(
            "customer", "c@vendofy.test",
            mobile_no="555-0100", business_name="Corner Shop",
            address={"address1": "1 Main St", "city": "Springfield"},
        )
        with pytest.raises(user_service.ValidationError) as exc:
            user_service.create_user(ctx_for(distributor), payload)
        assert str(exc.value) == "Complete address is required for this role."

    def test_registration_copy_satisfies_registration(self, ctx_for, distributor, strict_customers):
        payload = _payload(
            "customer", "c@vendofy.test",
            mobile_no="555-0100", business_name="Corner Shop",
            address={"address1": "1 Main St", "city": "Springfield", "state": "IL", "country": "US"},
            registration_copy_url="https://files.vendofy.test/reg.pdf",
        )
        user = user_service.create_user(ctx_for(distributor), payload)
        assert user.city == "Springfield"
        assert user.uid.startswith("CUSCORNER")

    def test_requirements_are_per_role(self, ctx_for, admin, strict_customers):
        user = user_service.create_user(ctx_for(admin), _payload("distributor", "d@vendofy.test"))
        assert user.role == "distributor"


class TestScopedChanges:
    def test_foreign_user_is_not_found(self, client, headers_for, admin, other_branch):
        resp = client.put(
            f"/api/admin/users/{other_branch['distributor'].id}",
            json={"name": "Hijacked"},
            headers=headers_for(admin),
        )
        assert resp.status_code == 404
        assert db.session.get(User, other_branch["distributor"].id).name == "Other Distributor"

    def test_admin_reaches_customers_of_own_distributors(self, ctx_for, admin, customer):
        user = user_service.update_user(ctx_for(admin), customer.id, {"business_name": "Renamed Ltd"})
        assert user.business_name == "Renamed Ltd"

    def test_distributor_cannot_touch_siblings(self, ctx_for, make_user, admin, distributor):
        sibling = make_user("distributor", parent=admin)
        with pytest.raises(user_service.NotFoundError):
            user_service.set_status(ctx_for(distributor), sibling.id, False)

    def test_super_admin_is_immutable(self, client, headers_for, super_admin, make_user):
        second_root = make_user("super-admin", email="other-root@vendofy.test")
        resp = client.put(
            f"/api/admin/users/{second_root.id}/status",
            json={"is_active": False},
            headers=headers_for(super_admin),
        )
        assert resp.status_code == 403

    def test_update_email_conflict(self, ctx_for, admin, distributor, make_user):
        other = make_user("distributor", parent=admin)
        with pytest.raises(UserManagementError):
            user_service.update_user(ctx_for(admin), distributor.id, {"email": other.email})

    def test_only_super_admin_changes_roles(self, client, headers_for, super_admin, admin, distributor):
        url = f"/api/admin/users/{distributor.id}/role"
        assert client.put(url, json={"role": "customer"}, headers=headers_for(admin)).status_code == 403

        resp = client.put(url, json={"role": "customer"}, headers=headers_for(super_admin))
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "customer"

    def test_status_requires_boolean(self, ctx_for, admin, distributor):
        with pytest.raises(user_service.ValidationError):
            user_service.set_status(ctx_for(admin), distributor.id, "no")

    def test_deactivated_user_loses_session(self, client, headers_for, admin, distributor):
        headers = headers_for(distributor)
        assert client.get("/api/auth/me", headers=headers).status_code == 200

        resp = client.put(
            f"/api/admin/users/{distributor.id}/status", json={"is_active": False}, headers=headers_for(admin)
        )
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_force_password_reset(self, client, headers_for, admin, distributor):
        resp = client.post(f"/api/admin/users/{distributor.id}/force-password-reset", headers=headers_for(admin))
        assert resp.status_code == 200
        assert db.session.get(User, distributor.id).must_change_password is True
        assert [m["to"] for m in outbox()] == [distributor.email]
        assert outbox()[0]["subject"] == "Password reset required"


class TestDeleteUser:
    def test_delete_leaf_account(self, client, headers_for, distributor, customer):
        resp = client.delete(f"/api/admin/users/{customer.id}", headers=headers_for(distributor))
        assert resp.status_code == 200
        assert db.session.get(User, customer.id) is None

    def test_refuses_account_with_children(self, ctx_for, admin, distributor, customer):
        with pytest.raises(UserManagementError):
            user_service.delete_user(ctx_for(admin), distributor.id)

    def test_refuses_account_with_orders(self, ctx_for, distributor, customer, make_product):
        product = make_product()
        order_service.create_order(customer, [{"product_id": product.id, "quantity": 1}], "2026-11-02")
        with pytest.raises(UserManagementError):
            user_service.delete_user(ctx_for(distributor), customer.id)


class TestUid:
    def test_generated_shape(self):
        uid = generate_uid("distributor", "Fresh & Co. Foods", "Jo Ann")
        assert uid.startswith("DISFRESHCJOAN")
        assert uid[-4:].isdigit()
        assert len(uid) <= UID_MAX_LENGTH

    def test_check_and_suggest_endpoints(self, client, headers_for, admin, distributor):
        resp = client.get(f"/api/admin/users/check-uid/{distributor.uid}", headers=headers_for(admin))
        assert resp.json == {"uid": distributor.uid, "exists": True, "available": False}

        resp = client.get(
            "/api/admin/users/suggest-uid?role=customer&business_name=Acme&name=Bob", headers=headers_for(admin)
        )
        assert resp.status_code == 200
        assert resp.json["uid"].startswith("CUSACMEBOB")

        resp = client.get("/api/admin/users/suggest-uid?role=wizard", headers=headers_for(admin))
        assert resp.status_code == 400


class TestProfile:
    def test_update_own_name(self, client, headers_for, customer):
        resp = client.put("/api/user/name", json={"name": "  Corner Shop  "}, headers=headers_for(customer))
        assert resp.status_code == 200
        assert resp.json["user"]["name"] == "Corner Shop"

    def test_super_admin_name_is_fixed(self, client, headers_for, super_admin):
        resp = client.put("/api/user/name", json={"name": "Someone"}, headers=headers_for(super_admin))
        assert resp.status_code == 403

    def test_avatar_set_and_remove(self, client, headers_for, customer):
        headers = headers_for(customer)
        resp = client.post("/api/user/profile-photo", json={"avatar_url": "https://cdn.test/a.png"}, headers=headers)
        assert resp.json["avatar_url"] == "https://cdn.test/a.png"

        client.post("/api/user/profile-photo/remove", headers=headers)
        assert db.session.get(User, customer.id).avatar_url is None
