# Overview: Small tagged-expression tree for row filters, compiled to SQLAlchemy or evaluated in Python.

"""
Row filter expressions.

Visibility rules, search text and list filters are built as plain values
(Eq, In, Contains, IsNull, AllOf, AnyOf) and only turned into SQL at the
edge by compile_filter(). Composition goes through all_of()/any_of(), so a
caller cannot accidentally OR a search term next to a role restriction:
anything passed to all_of() can only narrow the result.

MATCH_ALL / MATCH_NONE are the identities used for "unrestricted" and
"nothing visible" scopes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Union

from sqlalchemy import and_, false, or_, true


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: tuple


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match."""
    field: str
    text: str


@dataclass(frozen=True)
class IsNull:
    field: str


@dataclass(frozen=True)
class AllOf:
    terms: tuple


@dataclass(frozen=True)
class AnyOf:
    terms: tuple


@dataclass(frozen=True)
class _Constant:
    value: bool

    def __repr__(self) -> str:
        return "MATCH_ALL" if self.value else "MATCH_NONE"


MATCH_ALL = _Constant(True)
MATCH_NONE = _Constant(False)

Expr = Union[Eq, In, Contains, IsNull, AllOf, AnyOf, _Constant]


def eq(field: str, value: Any) -> Expr:
    return Eq(field, value)


def in_(field: str, values: Iterable[Any]) -> Expr:
    values = tuple(values)
    if not values:
        return MATCH_NONE
    return In(field, values)


def contains(field: str, text: str) -> Expr:
    return Contains(field, text)


def is_null(field: str) -> Expr:
    return IsNull(field)


def all_of(*terms: Expr) -> Expr:
    """Conjunction. Drops MATCH_ALL, short-circuits on MATCH_NONE, flattens nested AllOf."""
    flat: list = []
    for term in terms:
        if term is None or term == MATCH_ALL:
            continue
        if term == MATCH_NONE:
            return MATCH_NONE
        if isinstance(term, AllOf):
            flat.extend(term.terms)
        else:
            flat.append(term)
    if not flat:
        return MATCH_ALL
    if len(flat) == 1:
        return flat[0]
    return AllOf(tuple(flat))


def any_of(*terms: Expr) -> Expr:
    """Disjunction. Drops MATCH_NONE, short-circuits on MATCH_ALL, flattens nested AnyOf."""
    flat: list = []
    for term in terms:
        if term is None or term == MATCH_NONE:
            continue
        if term == MATCH_ALL:
            return MATCH_ALL
        if isinstance(term, AnyOf):
            flat.extend(term.terms)
        else:
            flat.append(term)
    if not flat:
        return MATCH_NONE
    if len(flat) == 1:
        return flat[0]
    return AnyOf(tuple(flat))


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _column(model, field: str):
    column = getattr(model, field, None)
    if column is None:
        raise ValueError(f"{model.__name__} has no field {field!r}")
    return column


def compile_filter(expr: Expr, model):
    """Translate an expression into a SQLAlchemy clause against model's columns."""
    if isinstance(expr, _Constant):
        return true() if expr.value else false()
    if isinstance(expr, Eq):
        return _column(model, expr.field) == expr.value
    if isinstance(expr, In):
        return _column(model, expr.field).in_(expr.values)
    if isinstance(expr, Contains):
        pattern = f"%{_escape_like(expr.text)}%"
        return _column(model, expr.field).ilike(pattern, escape="\\")
    if isinstance(expr, IsNull):
        return _column(model, expr.field).is_(None)
    if isinstance(expr, AllOf):
        return and_(*(compile_filter(term, model) for term in expr.terms))
    if isinstance(expr, AnyOf):
        return or_(*(compile_filter(term, model) for term in expr.terms))
    raise TypeError(f"Unsupported filter expression: {expr!r}")


def matches(expr: Expr, obj) -> bool:
    """Evaluate an expression against a loaded object (or anything with attributes)."""
    if isinstance(expr, _Constant):
        return expr.value
    if isinstance(expr, Eq):
        return getattr(obj, expr.field) == expr.value
    if isinstance(expr, In):
        return getattr(obj, expr.field) in expr.values
    if isinstance(expr, Contains):
        value = getattr(obj, expr.field)
        return value is not None and expr.text.lower() in str(value).lower()
    if isinstance(expr, IsNull):
        return getattr(obj, expr.field) is None
    if isinstance(expr, AllOf):
        return all(matches(term, obj) for term in expr.terms)
    if isinstance(expr, AnyOf):
        return any(matches(term, obj) for term in expr.terms)
    raise TypeError(f"Unsupported filter expression: {expr!r}")


def apply_filter(query, expr: Expr, model):
    """query.filter() with the compiled expression; MATCH_ALL leaves the query untouched."""
    if expr == MATCH_ALL:
        return query
    return query.filter(compile_filter(expr, model))
