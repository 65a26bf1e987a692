# File: crudgen/runtime/pagination.py
"""
crudgen - Pagination capability
================================
Offset/limit arithmetic for any query-parameter type exposing optional
integer ``page`` and ``limit`` attributes.

``@paginable`` attaches ``limit_sql``, ``offset_sql`` and ``is_paged`` to an
existing class; generated params models carry the same three methods inline.
``Paginable`` is the structural capability the pagination metadata builder
and ``apply_pagination`` accept.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, List, Optional, Protocol, Set, TypeVar, runtime_checkable

from sqlalchemy import Select

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.runtime.pagination")

DEFAULT_PAGE: int = 1
DEFAULT_PAGE_LIMIT: int = 10

T = TypeVar("T")


@runtime_checkable
class Paginable(Protocol):
    """Anything with optional unsigned integer ``page`` and ``limit`` attributes."""

    page: Optional[int]
    limit: Optional[int]


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def limit_sql(params: Paginable, default: int) -> int:
    """``limit`` when set, otherwise *default*."""
    return int(params.limit if params.limit is not None else default)


def offset_sql(params: Paginable, default_page: int, default_limit: int) -> int:
    """
    Row offset of the requested page.

    Unset ``page``/``limit`` take their defaults; a page of zero (or below)
    yields offset 0, otherwise ``(page - 1) * limit``.
    """
    page: int = params.page if params.page is not None else default_page
    limit: int = params.limit if params.limit is not None else default_limit
    if page > 0:
        return int((page - 1) * limit)
    return 0


def is_paged(params: Paginable) -> bool:
    """True iff ``page`` or ``limit`` is set."""
    return params.page is not None or params.limit is not None


def apply_pagination(
    stmt: Select,
    params: Paginable,
    *,
    default_page: int = DEFAULT_PAGE,
    default_limit: int = DEFAULT_PAGE_LIMIT,
) -> Select:
    """Apply LIMIT/OFFSET to a SQLAlchemy select when *params* asks for a page."""
    if not is_paged(params):
        return stmt
    return stmt.limit(limit_sql(params, default_limit)).offset(
        offset_sql(params, default_page, default_limit)
    )


# ---------------------------------------------------------------------------
# Class decorator
# ---------------------------------------------------------------------------


def declared_fields(cls: type) -> Set[str]:
    """Field names of a pydantic model, dataclass or annotated plain class."""
    model_fields: Any = getattr(cls, "model_fields", None)
    if isinstance(model_fields, dict):
        return set(model_fields)
    if dataclasses.is_dataclass(cls):
        return {f.name for f in dataclasses.fields(cls)}
    names: Set[str] = set()
    for klass in reversed(cls.__mro__):
        names.update(getattr(klass, "__annotations__", {}))
    return names


def _limit_sql(self: Any, default: int) -> int:
    return limit_sql(self, default)


def _offset_sql(self: Any, default_page: int, default_limit: int) -> int:
    return offset_sql(self, default_page, default_limit)


def _is_paged(self: Any) -> bool:
    return is_paged(self)


def paginable(cls: type[T]) -> type[T]:
    """
    Give *cls* the pagination helpers.

    The decorator does not constrain values: declare ``page`` and ``limit``
    as ``Field(default=None, ge=0)`` so a negative value is refused when the
    query string is parsed, as it is for generated models.

    Raises:
        TypeError: if the class does not declare ``page`` and ``limit``.
    """
    missing: List[str] = [
        name for name in ("page", "limit") if name not in declared_fields(cls)
    ]
    if missing:
        raise TypeError(
            f"{cls.__name__} cannot be paginable: missing field(s) {missing}."
        )

    setattr(cls, "limit_sql", _limit_sql)
    setattr(cls, "offset_sql", _offset_sql)
    setattr(cls, "is_paged", _is_paged)
    logger.debug("Attached pagination helpers to %s.", cls.__name__)
    return cls


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_PAGE",
    "DEFAULT_PAGE_LIMIT",
    "Paginable",
    "limit_sql",
    "offset_sql",
    "is_paged",
    "apply_pagination",
    "declared_fields",
    "paginable",
]

logger.debug("crudgen.runtime.pagination loaded.")
