# File: crudgen/runtime/response.py
"""
crudgen - Response envelope
============================
Every handler answers with the same JSON envelope::

    {"status": 200, "message": "...", "data": ...}

Paged reads add ``{"pagination": {"page", "limit", "total", "route_path"}}``.

Error outcomes are named by ``ErrorKind``; ``ERROR_STATUS`` is the single
table mapping a kind to its HTTP status.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from crudgen.runtime.pagination import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, Paginable

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.runtime.response")


# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    """Failure categories a handler can report."""

    BACKEND = "backend"
    NOT_FOUND = "not_found"
    MISSING_ID = "missing_id"


ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.BACKEND: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.MISSING_ID: 400,
}

ERROR_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.BACKEND: "Error",
    ErrorKind.NOT_FOUND: "No encontrado",
    ErrorKind.MISSING_ID: "ID requerido",
}


class BackendOperationError(Exception):
    """
    Raised by a collaborator to report a failure with an explicit kind.

    Any other exception raised by a collaborator is treated as
    ``ErrorKind.BACKEND``.
    """

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.BACKEND) -> None:
        super().__init__(message)
        self.kind: ErrorKind = kind


# ---------------------------------------------------------------------------
# Envelope models
# ---------------------------------------------------------------------------


class Pagination(BaseModel):
    """Pagination metadata attached to paged reads."""

    page: int
    limit: int
    total: int = Field(..., ge=0)
    route_path: str

    @classmethod
    def from_params(
        cls,
        params: Paginable,
        total: int,
        route_path: str,
        *,
        default_page: int = DEFAULT_PAGE,
        default_limit: int = DEFAULT_PAGE_LIMIT,
    ) -> "Pagination":
        return cls(
            page=params.page if params.page is not None else default_page,
            limit=params.limit if params.limit is not None else default_limit,
            total=total,
            route_path=route_path,
        )


class ApiResponse(BaseModel):
    """Simple envelope."""

    status: int
    message: str
    data: Any = None


class PagedResponse(ApiResponse):
    """Envelope for paged reads."""

    pagination: Pagination


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------


def api_response(status: int, message: str, data: Any = None) -> JSONResponse:
    envelope: ApiResponse = ApiResponse(
        status=status, message=message, data=jsonable_encoder(data)
    )
    return JSONResponse(status_code=status, content=envelope.model_dump())


def paged_response(
    status: int, message: str, data: Any, pagination: Pagination
) -> JSONResponse:
    envelope: PagedResponse = PagedResponse(
        status=status,
        message=message,
        data=jsonable_encoder(data),
        pagination=pagination,
    )
    return JSONResponse(status_code=status, content=envelope.model_dump())


def error_response(
    error: Union[BaseException, ErrorKind], message: Optional[str] = None
) -> JSONResponse:
    """
    Envelope for a failed operation.

    *error* is either an ``ErrorKind`` or the exception a collaborator
    raised; the message defaults to the kind's canonical text or the
    exception's text.
    """
    if isinstance(error, ErrorKind):
        kind: ErrorKind = error
        text: str = message if message is not None else ERROR_MESSAGES[kind]
    else:
        kind = getattr(error, "kind", ErrorKind.BACKEND)
        if not isinstance(kind, ErrorKind):
            kind = ErrorKind.BACKEND
        text = message if message is not None else str(error)
    return api_response(ERROR_STATUS[kind], text)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ErrorKind",
    "ERROR_STATUS",
    "ERROR_MESSAGES",
    "BackendOperationError",
    "Pagination",
    "ApiResponse",
    "PagedResponse",
    "api_response",
    "paged_response",
    "error_response",
]

logger.debug("crudgen.runtime.response loaded.")
