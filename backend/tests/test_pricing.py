"""
Price resolution tests.

Precedence: customer override > active admin override > base price.
Unsellable products never get a price.
"""

import pytest

from vendofy.models import AdminProductPricing, CustomerPricing
from vendofy.models.catalog import PRODUCT_STATUS_PENDING, PRODUCT_STATUS_REJECTED
from vendofy.services import pricing_service
from vendofy.services.pricing_service import (
    PRICE_SOURCE_ADMIN,
    PRICE_SOURCE_BASE,
    PRICE_SOURCE_CUSTOMER,
    PriceBook,
    ProductUnavailableError,
    quote_unit_price,
)


def _admin_price(db_session, admin, distributor, product, cents, active=True):
    row = AdminProductPricing(
        admin_id=admin.id, distributor_id=distributor.id, product_id=product.id,
        custom_price_cents=cents, is_active=active,
    )
    db_session.add(row)
    db_session.commit()
    return row


def _customer_price(db_session, distributor, customer, product, cents):
    row = CustomerPricing(
        distributor_id=distributor.id, customer_id=customer.id, product_id=product.id,
        custom_price_cents=cents,
    )
    db_session.add(row)
    db_session.commit()
    return row


class TestResolution:
    def test_base_price_without_overrides(self, admin, distributor, customer, make_product):
        product = make_product(1000)
        assert pricing_service.resolve_price(product.id, customer.id, distributor.id, admin.id) == 1000

    def test_active_admin_override_beats_base(self, db_session, admin, distributor, customer, make_product):
        product = make_product(1000)
        _admin_price(db_session, admin, distributor, product, 800)
        assert pricing_service.resolve_price(product.id, customer.id, distributor.id, admin.id) == 800

    def test_inactive_admin_override_is_ignored(self, db_session, admin, distributor, customer, make_product):
        product = make_product(1000)
        _admin_price(db_session, admin, distributor, product, 800, active=False)
        assert pricing_service.resolve_price(product.id, customer.id, distributor.id, admin.id) == 1000

    def test_customer_override_beats_admin_override(self, db_session, admin, distributor, customer, make_product):
        product = make_product(1000)
        _admin_price(db_session, admin, distributor, product, 800)
        _customer_price(db_session, distributor, customer, product, 650)
        assert pricing_service.resolve_price(product.id, customer.id, distributor.id, admin.id) == 650

    def test_zero_override_is_a_real_price(self, db_session, admin, distributor, customer, make_product):
        product = make_product(1000)
        _customer_price(db_session, distributor, customer, product, 0)
        assert pricing_service.resolve_price(product.id, customer.id, distributor.id, admin.id) == 0

    def test_overrides_of_other_tuples_do_not_leak(self, db_session, admin, distributor, customer,
                                                   other_branch, make_product):
        product = make_product(1000)
        _admin_price(db_session, other_branch["admin"], other_branch["distributor"], product, 10)
        _customer_price(db_session, other_branch["distributor"], other_branch["customer"], product, 5)
        assert pricing_service.resolve_price(product.id, customer.id, distributor.id, admin.id) == 1000

    @pytest.mark.parametrize("fields", [
        {"status": PRODUCT_STATUS_PENDING},
        {"status": PRODUCT_STATUS_REJECTED},
        {"is_active": False},
    ])
    def test_unsellable_product_fails_fast(self, db_session, admin, distributor, customer, make_product, fields):
        product = make_product(1000, name="Widget", **fields)
        _customer_price(db_session, distributor, customer, product, 500)

        with pytest.raises(ProductUnavailableError) as exc:
            pricing_service.resolve_price(product.id, customer.id, distributor.id, admin.id)
        assert "Widget" in str(exc.value)
        assert exc.value.status_code == 400

    def test_missing_product(self, admin, distributor, customer):
        with pytest.raises(ProductUnavailableError):
            pricing_service.resolve_price(999999, customer.id, distributor.id, admin.id)

    def test_quote_reports_source(self, make_product):
        product = make_product(1000)
        assert quote_unit_price(product, PriceBook()).source == PRICE_SOURCE_BASE
        assert quote_unit_price(product, PriceBook(admin_overrides={product.id: 900})).source == PRICE_SOURCE_ADMIN
        book = PriceBook(customer_overrides={product.id: 700}, admin_overrides={product.id: 900})
        assert quote_unit_price(product, book) == pricing_service.PriceQuote(700, PRICE_SOURCE_CUSTOMER)


class TestCustomerPricing:
    def test_upsert_creates_then_updates(self, distributor, customer, make_product):
        product = make_product(1000)
        row, created = pricing_service.upsert_customer_pricing(distributor.id, customer.id, product.id, 900)
        assert created is True

        again, created = pricing_service.upsert_customer_pricing(distributor.id, customer.id, product.id, 850)
        assert created is False
        assert again.id == row.id
        assert again.custom_price_cents == 850

    def test_cannot_price_someone_elses_customer(self, distributor, other_branch, make_product):
        product = make_product(1000)
        with pytest.raises(pricing_service.NotFoundError):
            pricing_service.upsert_customer_pricing(distributor.id, other_branch["customer"].id, product.id, 900)

    def test_delete_only_own_rows(self, db_session, distributor, customer, other_branch, make_product):
        product = make_product(1000)
        row = _customer_price(db_session, distributor, customer, product, 900)

        with pytest.raises(pricing_service.NotFoundError):
            pricing_service.delete_customer_pricing(other_branch["distributor"].id, row.id)
        pricing_service.delete_customer_pricing(distributor.id, row.id)
        assert pricing_service.list_customer_pricing(distributor.id) == []

    def test_endpoint_roundtrip(self, client, headers_for, distributor, customer, make_product):
        product = make_product(1000)
        resp = client.post(
            "/api/distributor/customer-pricing",
            json={"customer_id": customer.id, "product_id": product.id, "custom_price_cents": 750},
            headers=headers_for(distributor),
        )
        assert resp.status_code == 201
        assert resp.json["pricing"]["custom_price_cents"] == 750

        resp = client.get("/api/distributor/customer-pricing", headers=headers_for(distributor))
        assert [p["custom_price_cents"] for p in resp.json["pricing"]] == [750]

    def test_negative_price_rejected(self, client, headers_for, distributor, customer, make_product):
        product = make_product(1000)
        resp = client.post(
            "/api/distributor/customer-pricing",
            json={"customer_id": customer.id, "product_id": product.id, "custom_price_cents": -1},
            headers=headers_for(distributor),
        )
        assert resp.status_code == 400


class TestAdminProductUsage:
    def test_use_product_for_own_distributors(self, admin, distributor, make_product):
        product = make_product(1000)
        rows = pricing_service.use_product(
            admin.id, product.id, [{"distributor_id": distributor.id, "custom_price_cents": 1200}]
        )
        assert len(rows) == 1
        used = pricing_service.used_products(admin.id)
        assert used[0]["product"]["id"] == product.id
        assert used[0]["distributors"][0]["custom_price_cents"] == 1200

    def test_foreign_distributor_rejected_and_nothing_written(self, admin, distributor, other_branch, make_product):
        product = make_product(1000)
        with pytest.raises(pricing_service.AccessDeniedError):
            pricing_service.use_product(admin.id, product.id, [
                {"distributor_id": distributor.id, "custom_price_cents": 1200},
                {"distributor_id": other_branch["distributor"].id, "custom_price_cents": 1100},
            ])
        assert pricing_service.used_products(admin.id) == []

    def test_deactivate_hides_from_catalogs(self, admin, distributor, customer, make_product):
        product = make_product(1000)
        row = pricing_service.use_product(
            admin.id, product.id, [{"distributor_id": distributor.id, "custom_price_cents": 1200}]
        )[0]
        assert [p["id"] for p in pricing_service.distributor_products(distributor)] == [product.id]

        pricing_service.deactivate_admin_pricing(admin.id, row.id)
        assert pricing_service.distributor_products(distributor) == []
        assert pricing_service.customer_products(customer) == []

    def test_customer_catalog_applies_full_resolution(self, db_session, admin, distributor, customer, make_product):
        first = make_product(1000, name="A")
        second = make_product(2000, name="B")
        pricing_service.use_product(admin.id, first.id, [{"distributor_id": distributor.id, "custom_price_cents": 900}])
        pricing_service.use_product(admin.id, second.id, [{"distributor_id": distributor.id, "custom_price_cents": 1800}])
        _customer_price(db_session, distributor, customer, second, 1500)

        catalog = {p["id"]: p for p in pricing_service.customer_products(customer)}
        assert catalog[first.id]["price_cents"] == 900
        assert catalog[first.id]["has_custom_price"] is False
        assert catalog[second.id]["price_cents"] == 1500
        assert catalog[second.id]["has_custom_price"] is True
