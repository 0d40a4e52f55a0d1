"""
Visibility tests across the account hierarchy.

A distributor searching its customers must never see accounts of another
branch, whatever the search text matches. The same holds for admins one
level up.
"""

import pytest

from vendofy.services import user_service
from vendofy.services.scoping import user_list_filter, user_visibility
from vendofy.filters import MATCH_ALL, MATCH_NONE, matches


@pytest.fixture
def shared_name(make_user, distributor, other_branch):
    """Two customers in different branches whose names both match "acme"."""
    mine = make_user("customer", parent=distributor, name="Acme North")
    theirs = make_user("customer", parent=other_branch["distributor"], name="Acme South")
    return mine, theirs


class TestDistributorSearch:
    def test_search_stays_inside_subtree(self, client, headers_for, distributor, shared_name):
        mine, theirs = shared_name
        resp = client.get("/api/admin/users?search=acme", headers=headers_for(distributor))
        assert resp.status_code == 200
        assert [u["id"] for u in resp.json["users"]] == [mine.id]

    def test_search_on_email_of_foreign_customer(self, client, headers_for, distributor, shared_name):
        _, theirs = shared_name
        resp = client.get(f"/api/admin/users?search={theirs.email}", headers=headers_for(distributor))
        assert resp.json["users"] == []

    def test_role_filter_cannot_widen(self, ctx_for, distributor, admin, customer):
        users = user_service.list_users(ctx_for(distributor), role="admin")
        assert users == []

    def test_search_by_uid_and_mobile(self, ctx_for, make_user, distributor):
        target = make_user("customer", parent=distributor, uid="CUSSHOP0042", mobile_no="555-0199")
        make_user("customer", parent=distributor)

        assert [u.id for u in user_service.list_users(ctx_for(distributor), search="shop0042")] == [target.id]
        assert [u.id for u in user_service.list_users(ctx_for(distributor), search="0199")] == [target.id]


class TestAdminScope:
    def test_admin_sees_two_levels(self, ctx_for, admin, distributor, customer, other_branch):
        ids = {u.id for u in user_service.list_users(ctx_for(admin))}
        assert ids == {distributor.id, customer.id}

    def test_admin_search_does_not_leak(self, ctx_for, admin, shared_name):
        mine, _ = shared_name
        assert [u.id for u in user_service.list_users(ctx_for(admin), search="acme")] == [mine.id]

    def test_status_filter(self, ctx_for, make_user, admin, distributor):
        inactive = make_user("distributor", parent=admin, is_active=False)
        active_ids = {u.id for u in user_service.list_users(ctx_for(admin), status="active")}
        inactive_ids = {u.id for u in user_service.list_users(ctx_for(admin), status="inactive")}
        assert distributor.id in active_ids
        assert inactive_ids == {inactive.id}

    def test_invalid_filters(self, ctx_for, admin):
        with pytest.raises(user_service.ValidationError):
            user_service.list_users(ctx_for(admin), role="owner")
        with pytest.raises(user_service.ValidationError):
            user_service.list_users(ctx_for(admin), status="sleeping")

    def test_stats_are_scoped(self, client, headers_for, admin, distributor, customer, other_branch):
        resp = client.get("/api/admin/users/stats", headers=headers_for(admin))
        assert resp.json == {"admin": 0, "distributor": 1, "customer": 1, "total": 2}


class TestVisibilityRules:
    def test_super_admin_sees_all(self, ctx_for, super_admin):
        assert user_visibility(ctx_for(super_admin)) is MATCH_ALL

    def test_customer_sees_no_users(self, ctx_for, customer):
        assert user_visibility(ctx_for(customer)) is MATCH_NONE
        assert user_list_filter(ctx_for(customer), search="anything") is MATCH_NONE

    def test_filter_and_rows_agree(self, ctx_for, distributor, customer, other_branch):
        expr = user_list_filter(ctx_for(distributor), search="customer")
        assert matches(expr, customer)
        assert not matches(expr, other_branch["customer"])
