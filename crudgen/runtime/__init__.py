# File: crudgen/runtime/__init__.py
"""
crudgen runtime support
========================
Everything generated handler modules import at run time: the response
envelope, the shared ``AppState`` context, the pagination capability and
the application factory.

The runtime router builder lives in ``crudgen.runtime.router`` and is not
imported here, since it depends on the generator's validators.
"""

from __future__ import annotations

from typing import List

from crudgen.runtime.app import create_app, health_router
from crudgen.runtime.pagination import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_LIMIT,
    Paginable,
    apply_pagination,
    is_paged,
    limit_sql,
    offset_sql,
    paginable,
)
from crudgen.runtime.quadlet import Quadlet, QuadletType
from crudgen.runtime.response import (
    ApiResponse,
    BackendOperationError,
    ErrorKind,
    PagedResponse,
    Pagination,
    api_response,
    error_response,
    paged_response,
)
from crudgen.runtime.state import AppState, Settings, get_app_state, get_settings

__all__: List[str] = [
    "create_app",
    "health_router",
    "DEFAULT_PAGE",
    "DEFAULT_PAGE_LIMIT",
    "Paginable",
    "apply_pagination",
    "is_paged",
    "limit_sql",
    "offset_sql",
    "paginable",
    "Quadlet",
    "QuadletType",
    "ApiResponse",
    "BackendOperationError",
    "ErrorKind",
    "PagedResponse",
    "Pagination",
    "api_response",
    "error_response",
    "paged_response",
    "AppState",
    "Settings",
    "get_app_state",
    "get_settings",
]
