# Overview: Revenue and order-count reporting within the caller's order scope, with date filters and breakdowns.

"""
Revenue reporting.

revenue = sum of amount_paid_cents over orders with a positive payment
orders  = number of orders

Both are computed inside order_visibility(ctx), so an admin asking for
another admin's distributors simply gets zeros.

Date filters apply to Order.created_at:
    all | today | this_month | this_year | month (month, year) | year (year)
    | custom (start_date, end_date; both inclusive days)

Breakdown levels:
    admin        super-admin: one row per admin; admin: one row per own distributor
    distributor  rows per distributor of parent_id (an admin)
    customer     rows per customer of parent_id (a distributor)
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import case, func

from ..extensions import db
from ..filters import all_of, apply_filter, eq
from ..models import Order, User
from ..models.users import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DISTRIBUTOR
from ..time_utils import end_of_day, start_of_day, utcnow
from ..validation import ValidationError, parse_datetime, parse_int, parse_positive_int
from .scoping import order_visibility, user_visibility

DATE_FILTERS = ("all", "today", "this_month", "this_year", "month", "year", "custom")
LEVELS = ("admin", "distributor", "customer")

# Range end is exclusive, so the following year must still be representable
MAX_YEAR = 9998


def date_range(date_filter: str | None, *, month=None, year=None, start_date=None, end_date=None, now: datetime | None = None):
    """Return (start, end) with end exclusive, or (None, None) for no restriction."""
    date_filter = date_filter or "all"
    if date_filter not in DATE_FILTERS:
        raise ValidationError(f"Invalid date_filter: {date_filter}")
    now = now or utcnow()

    if date_filter == "all":
        return None, None
    if date_filter == "today":
        start = start_of_day(now)
        return start, _add_days(start, 1)
    if date_filter == "this_month":
        start = datetime(now.year, now.month, 1)
        return start, _next_month(start)
    if date_filter == "this_year":
        return datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1)
    if date_filter == "month":
        if month in (None, "") or year in (None, ""):
            raise ValidationError("month and year are required for the month filter.")
        m = parse_int(month, "month")
        y = _parse_year(year)
        if not 1 <= m <= 12:
            raise ValidationError("month must be between 1 and 12")
        start = datetime(y, m, 1)
        return start, _next_month(start)
    if date_filter == "year":
        if year in (None, ""):
            raise ValidationError("year is required for the year filter.")
        y = _parse_year(year)
        return datetime(y, 1, 1), datetime(y + 1, 1, 1)

    if start_date in (None, "") or end_date in (None, ""):
        raise ValidationError("start_date and end_date are required for the custom filter.")
    start = start_of_day(parse_datetime(start_date, "start_date"))
    last = parse_datetime(end_date, "end_date")
    if last.year > MAX_YEAR:
        raise ValidationError(f"end_date must be before the year {MAX_YEAR + 1}")
    end = end_of_day(last)
    if end < start:
        raise ValidationError("end_date must not be before start_date")
    return start, _add_days(start_of_day(end), 1)


def _parse_year(value) -> int:
    year = parse_positive_int(value, "year")
    if year > MAX_YEAR:
        raise ValidationError(f"year must be between 1 and {MAX_YEAR}")
    return year


def _add_days(dt: datetime, days: int) -> datetime:
    return dt + timedelta(days=days)


def _next_month(dt: datetime) -> datetime:
    if dt.month == 12:
        return datetime(dt.year + 1, 1, 1)
    return datetime(dt.year, dt.month + 1, 1)


def _revenue_column():
    return func.coalesce(
        func.sum(case((Order.amount_paid_cents > 0, Order.amount_paid_cents), else_=0)), 0
    )


def _aggregate(ctx, expr, start, end, group_column=None):
    columns = [_revenue_column(), func.count(Order.id)]
    if group_column is not None:
        columns.insert(0, group_column)
    q = apply_filter(db.session.query(*columns), all_of(order_visibility(ctx), expr), Order)
    if start is not None:
        q = q.filter(Order.created_at >= start, Order.created_at < end)
    if group_column is not None:
        return {row[0]: (int(row[1] or 0), int(row[2] or 0)) for row in q.group_by(group_column).all()}
    revenue, count = q.one()
    return int(revenue or 0), int(count or 0)


def _breakdown_target(ctx, level: str, parent_id):
    """(entities, group column, order filter) for the requested level."""
    if level == "admin":
        if ctx.is_super_admin:
            people = db.session.query(User).filter(User.role == ROLE_ADMIN)
            return people, Order.admin_id, None
        people = db.session.query(User).filter(User.role == ROLE_DISTRIBUTOR, User.parent_id == ctx.user_id)
        return people, Order.distributor_id, None

    if parent_id in (None, ""):
        raise ValidationError("parent_id is required for this level.")
    parent_id = parse_positive_int(parent_id, "parent_id")

    if level == "distributor":
        people = db.session.query(User).filter(User.role == ROLE_DISTRIBUTOR, User.parent_id == parent_id)
        return people, Order.distributor_id, eq("admin_id", parent_id)

    people = db.session.query(User).filter(User.role == ROLE_CUSTOMER, User.parent_id == parent_id)
    return people, Order.customer_id, eq("distributor_id", parent_id)


def revenue_and_orders(ctx, *, level: str | None = None, parent_id=None, date_filter: str | None = None,
                       month=None, year=None, start_date=None, end_date=None) -> dict:
    level = level or "admin"
    if level not in LEVELS:
        raise ValidationError(f"Invalid level: {level}")
    start, end = date_range(date_filter, month=month, year=year, start_date=start_date, end_date=end_date)

    people, group_column, order_filter = _breakdown_target(ctx, level, parent_id)

    total_revenue, total_orders = _aggregate(ctx, order_filter, start, end)
    per_entity = _aggregate(ctx, order_filter, start, end, group_column=group_column)

    visible_people = apply_filter(people, user_visibility(ctx), User).order_by(User.name, User.id).all()
    breakdown = []
    for person in visible_people:
        revenue, orders = per_entity.get(person.id, (0, 0))
        breakdown.append({
            "id": person.id,
            "name": person.name,
            "email": person.email,
            "revenue_cents": revenue,
            "orders": orders,
        })

    return {
        "total_revenue_cents": total_revenue,
        "total_orders": total_orders,
        "breakdown": breakdown,
    }
