# Overview: Service-layer operations for price resolution, distributor customer pricing and admin product usage.

"""
Pricing Service

Unit price precedence, highest first:
1. CustomerPricing override for (distributor, customer, product)
2. AdminProductPricing override for (admin, distributor, product), if active
3. Product.price_cents (base)

An override is "present" when its row exists; a price of 0 is a real price.
A product that is not approved or not active has no price at all:
resolve_unit_price() raises instead of falling back, so an order can never
be built from an unsellable product.

All amounts are integer cents.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import AccessDeniedError, NotFoundError, ServiceError
from ..extensions import db
from ..filters import apply_filter
from ..models import AdminProductPricing, CustomerPricing, Product, User
from ..models.users import ROLE_CUSTOMER, ROLE_DISTRIBUTOR
from ..validation import ValidationError, parse_positive_int, parse_price_cents
from .scoping import sellable_products

PRICE_SOURCE_CUSTOMER = "customer"
PRICE_SOURCE_ADMIN = "admin"
PRICE_SOURCE_BASE = "base"


class PricingError(ServiceError):
    """Raised for pricing operation errors."""


class ProductUnavailableError(PricingError):
    """The product is missing, not approved, or inactive."""

    def __init__(self, product_name: str | None, product_id: int | None = None):
        label = product_name or (f"#{product_id}" if product_id is not None else "unknown")
        super().__init__(
            f"Product {label} not found or not available.",
            details={"product_id": product_id} if product_id is not None else None,
        )
        self.product_id = product_id


@dataclass(frozen=True)
class PriceQuote:
    unit_price_cents: int
    source: str


@dataclass(frozen=True)
class PriceBook:
    """Override prices for one (customer, distributor, admin) tuple, keyed by product id."""
    customer_overrides: dict = field(default_factory=dict)
    admin_overrides: dict = field(default_factory=dict)


def load_price_book(
    *,
    customer_id: int | None,
    distributor_id: int,
    admin_id: int | None,
    product_ids=None,
) -> PriceBook:
    """Fetch the override layers. Only active admin overrides are included."""
    customer_overrides: dict = {}
    if customer_id is not None:
        q = db.session.query(CustomerPricing).filter_by(distributor_id=distributor_id, customer_id=customer_id)
        if product_ids is not None:
            q = q.filter(CustomerPricing.product_id.in_(list(product_ids)))
        customer_overrides = {row.product_id: row.custom_price_cents for row in q.all()}

    admin_overrides: dict = {}
    if admin_id is not None:
        q = db.session.query(AdminProductPricing).filter_by(
            admin_id=admin_id, distributor_id=distributor_id, is_active=True
        )
        if product_ids is not None:
            q = q.filter(AdminProductPricing.product_id.in_(list(product_ids)))
        admin_overrides = {row.product_id: row.custom_price_cents for row in q.all()}

    return PriceBook(customer_overrides=customer_overrides, admin_overrides=admin_overrides)


def quote_unit_price(product: Product, book: PriceBook) -> PriceQuote:
    if product is None:
        raise ProductUnavailableError(None)
    if not product.is_sellable:
        raise ProductUnavailableError(product.name, product.id)

    customer_price = book.customer_overrides.get(product.id)
    if customer_price is not None:
        return PriceQuote(customer_price, PRICE_SOURCE_CUSTOMER)

    admin_price = book.admin_overrides.get(product.id)
    if admin_price is not None:
        return PriceQuote(admin_price, PRICE_SOURCE_ADMIN)

    return PriceQuote(product.price_cents, PRICE_SOURCE_BASE)


def resolve_unit_price(product: Product, book: PriceBook) -> int:
    return quote_unit_price(product, book).unit_price_cents


def resolve_price(product_id: int, customer_id: int, distributor_id: int, admin_id: int) -> int:
    """Effective unit price for one (customer, distributor, admin, product) tuple."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductUnavailableError(None, product_id)
    book = load_price_book(
        customer_id=customer_id,
        distributor_id=distributor_id,
        admin_id=admin_id,
        product_ids=[product_id],
    )
    return resolve_unit_price(product, book)


# =============================================================================
# Distributor -> customer overrides
# =============================================================================


def list_customer_pricing(distributor_id: int) -> list[CustomerPricing]:
    return (
        db.session.query(CustomerPricing)
        .filter_by(distributor_id=distributor_id)
        .order_by(CustomerPricing.customer_id, CustomerPricing.product_id)
        .all()
    )


def _own_customer(distributor_id: int, customer_id: int) -> User:
    customer = (
        db.session.query(User)
        .filter_by(id=customer_id, role=ROLE_CUSTOMER, parent_id=distributor_id)
        .first()
    )
    if not customer:
        raise NotFoundError("Customer not found or not assigned to you.")
    return customer


def upsert_customer_pricing(distributor_id: int, customer_id, product_id, custom_price_cents) -> tuple[CustomerPricing, bool]:
    """Create or update one override. Returns (row, created)."""
    if customer_id is None or product_id is None or custom_price_cents is None:
        raise ValidationError("customer_id, product_id and custom_price_cents are required.")
    customer_id = parse_positive_int(customer_id, "customer_id")
    product_id = parse_positive_int(product_id, "product_id")
    price = parse_price_cents(custom_price_cents, "custom_price_cents")

    _own_customer(distributor_id, customer_id)
    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found.")

    row = (
        db.session.query(CustomerPricing)
        .filter_by(distributor_id=distributor_id, customer_id=customer_id, product_id=product_id)
        .first()
    )
    created = row is None
    if created:
        row = CustomerPricing(
            distributor_id=distributor_id,
            customer_id=customer_id,
            product_id=product_id,
            custom_price_cents=price,
        )
        db.session.add(row)
    else:
        row.custom_price_cents = price
    db.session.commit()
    return row, created


def delete_customer_pricing(distributor_id: int, pricing_id: int) -> None:
    row = db.session.query(CustomerPricing).filter_by(id=pricing_id, distributor_id=distributor_id).first()
    if not row:
        raise NotFoundError("Custom price not found.")
    db.session.delete(row)
    db.session.commit()


# =============================================================================
# Admin -> distributor product usage
# =============================================================================


def available_products() -> list[Product]:
    q = apply_filter(db.session.query(Product), sellable_products(), Product)
    return q.order_by(Product.name).all()


def used_products(admin_id: int) -> list[dict]:
    """Active overrides of one admin, grouped by product."""
    rows = (
        db.session.query(AdminProductPricing)
        .filter_by(admin_id=admin_id, is_active=True)
        .order_by(AdminProductPricing.product_id, AdminProductPricing.distributor_id)
        .all()
    )
    grouped: dict[int, dict] = {}
    for row in rows:
        entry = grouped.setdefault(row.product_id, {"product": row.product.to_dict(), "distributors": []})
        entry["distributors"].append({
            "pricing_id": row.id,
            "distributor_id": row.distributor_id,
            "distributor_name": row.distributor.name if row.distributor else None,
            "distributor_email": row.distributor.email if row.distributor else None,
            "custom_price_cents": row.custom_price_cents,
        })
    return list(grouped.values())


def use_product(admin_id: int, product_id, distributor_pricing) -> list[AdminProductPricing]:
    """
    Offer a sellable product to some of the admin's distributors.

    distributor_pricing: [{"distributor_id": int, "custom_price_cents": int}, ...]
    Every distributor must belong to the admin; otherwise nothing is written.
    """
    if product_id is None or not isinstance(distributor_pricing, list) or not distributor_pricing:
        raise ValidationError("product_id and distributor_pricing array are required.")
    product_id = parse_positive_int(product_id, "product_id")

    product = db.session.get(Product, product_id)
    if not product or not product.is_sellable:
        raise NotFoundError("Product not found or not available.")

    prices: dict[int, int] = {}
    for entry in distributor_pricing:
        if not isinstance(entry, dict):
            raise ValidationError("distributor_pricing entries must be objects")
        distributor_id = parse_positive_int(entry.get("distributor_id"), "distributor_id")
        prices[distributor_id] = parse_price_cents(entry.get("custom_price_cents"), "custom_price_cents")

    owned = (
        db.session.query(User.id)
        .filter(User.id.in_(list(prices)), User.role == ROLE_DISTRIBUTOR, User.parent_id == admin_id)
        .count()
    )
    if owned != len(prices):
        raise AccessDeniedError("Some distributors not found or don't belong to you.")

    rows = []
    for distributor_id, price in prices.items():
        row = (
            db.session.query(AdminProductPricing)
            .filter_by(admin_id=admin_id, distributor_id=distributor_id, product_id=product_id)
            .first()
        )
        if row is None:
            row = AdminProductPricing(admin_id=admin_id, distributor_id=distributor_id, product_id=product_id)
            db.session.add(row)
        row.custom_price_cents = price
        row.is_active = True
        rows.append(row)
    db.session.commit()
    return rows


def _own_admin_pricing(admin_id: int, pricing_id: int) -> AdminProductPricing:
    row = db.session.query(AdminProductPricing).filter_by(id=pricing_id, admin_id=admin_id).first()
    if not row:
        raise NotFoundError("Pricing not found or doesn't belong to you.")
    return row


def update_admin_pricing(admin_id: int, pricing_id: int, custom_price_cents) -> AdminProductPricing:
    price = parse_price_cents(custom_price_cents, "custom_price_cents")
    row = _own_admin_pricing(admin_id, pricing_id)
    row.custom_price_cents = price
    db.session.commit()
    return row


def deactivate_admin_pricing(admin_id: int, pricing_id: int) -> AdminProductPricing:
    row = _own_admin_pricing(admin_id, pricing_id)
    row.is_active = False
    db.session.commit()
    return row


# =============================================================================
# Catalog views
# =============================================================================


def distributor_products(distributor: User) -> list[dict]:
    """Products the distributor's admin has made available to it, at the admin's price."""
    if not distributor.parent_id:
        return []
    rows = (
        db.session.query(AdminProductPricing)
        .join(Product, AdminProductPricing.product_id == Product.id)
        .filter(
            AdminProductPricing.admin_id == distributor.parent_id,
            AdminProductPricing.distributor_id == distributor.id,
            AdminProductPricing.is_active.is_(True),
        )
        .order_by(Product.name)
        .all()
    )
    result = []
    for row in rows:
        if not row.product.is_sellable:
            continue
        data = row.product.to_dict()
        data["base_price_cents"] = row.product.price_cents
        data["price_cents"] = row.custom_price_cents
        data["admin_pricing_id"] = row.id
        result.append(data)
    return result


def customer_products(customer: User) -> list[dict]:
    """The distributor's assortment, priced for this customer."""
    distributor = customer.parent
    if not distributor or distributor.role != ROLE_DISTRIBUTOR or not distributor.parent_id:
        return []

    admin_rows = (
        db.session.query(AdminProductPricing)
        .filter_by(admin_id=distributor.parent_id, distributor_id=distributor.id, is_active=True)
        .all()
    )
    product_ids = [row.product_id for row in admin_rows]
    if not product_ids:
        return []

    book = load_price_book(
        customer_id=customer.id,
        distributor_id=distributor.id,
        admin_id=distributor.parent_id,
        product_ids=product_ids,
    )
    products = (
        apply_filter(db.session.query(Product), sellable_products(), Product)
        .filter(Product.id.in_(product_ids))
        .order_by(Product.name)
        .all()
    )

    result = []
    for product in products:
        quote = quote_unit_price(product, book)
        data = product.to_dict()
        data["base_price_cents"] = product.price_cents
        data["distributor_price_cents"] = book.admin_overrides.get(product.id)
        data["price_cents"] = quote.unit_price_cents
        data["price_source"] = quote.source
        data["has_custom_price"] = quote.source == PRICE_SOURCE_CUSTOMER
        result.append(data)
    return result
