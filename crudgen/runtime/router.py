# File: crudgen/runtime/router.py
"""
crudgen - Runtime router builder
=================================
Builds the four CRUD handlers and their router from live classes, without
a generation pass::

    from crudgen.runtime.router import crud_router

    router = crud_router(Unit, 'path = "/units", new = NewUnit, params = UnitParams')
    app = create_app(state, {"/units": router})

The handlers behave exactly like the ones ``crudgen.templates`` emits.
Handler signatures are assembled at build time by assigning
``__annotations__``; annotations in this module are evaluated eagerly.
"""

import asyncio
import logging
import sys
from typing import Annotated, Any, Callable, Dict, List, Mapping, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crudgen.attributes import parse_crud_attributes
from crudgen.errors import TypeBindingError
from crudgen.models import CrudConfig
from crudgen.runtime.response import (
    ErrorKind,
    Pagination,
    api_response,
    error_response,
    paged_response,
)
from crudgen.runtime.state import AppState, get_app_state
from crudgen.validators import (
    missing_collaborators,
    missing_param_fields,
    synthesize_identifier,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.runtime.router")

AppStateDep = Annotated[AppState, Depends(get_app_state)]


# ---------------------------------------------------------------------------
# Binding resolution
# ---------------------------------------------------------------------------


def _lookup(scope: Mapping[str, Any], role: str, symbol: str) -> type:
    obj: Any = scope.get(symbol)
    if obj is None:
        raise TypeBindingError(role, symbol, "not defined in the resolution scope")
    if not isinstance(obj, type):
        raise TypeBindingError(role, symbol, "is not a class")
    return obj


def _check_entity(entity: type) -> None:
    missing: List[str] = missing_collaborators(entity)
    if missing:
        raise TypeBindingError(
            "entity",
            entity.__name__,
            f"lacks async collaborator(s): {', '.join(missing)}",
        )


def _check_params(params_type: type) -> None:
    if not issubclass(params_type, BaseModel):
        raise TypeBindingError(
            "params",
            params_type.__name__,
            "must be a pydantic model to be read from the query string",
        )
    missing: List[str] = missing_param_fields(params_type)
    if missing:
        raise TypeBindingError(
            "params",
            params_type.__name__,
            f"lacks field(s): {', '.join(missing)}",
        )


# ---------------------------------------------------------------------------
# Handler factories
# ---------------------------------------------------------------------------


def _make_create(entity: type, new_type: type) -> Callable[..., Any]:
    name: str = entity.__name__

    async def create(payload: Any, app_state: Any) -> JSONResponse:
        logger.debug("Creating %s: %r", name, payload)
        try:
            item: Any = await entity.create(app_state, payload)
        except Exception as exc:
            logger.error("Failed to create %s: %s", name, exc)
            return error_response(exc)
        return api_response(201, f"{name} creado con éxito", item)

    create.__annotations__ = {
        "payload": new_type,
        "app_state": AppStateDep,
        "return": JSONResponse,
    }
    return create


def _make_update(entity: type) -> Callable[..., Any]:
    name: str = entity.__name__

    async def update(payload: Any, app_state: Any) -> JSONResponse:
        logger.debug("Updating %s: %r", name, payload)
        try:
            item: Any = await entity.update(app_state, payload)
        except Exception as exc:
            logger.error("Failed to update %s: %s", name, exc)
            return error_response(exc)
        return api_response(200, f"{name} actualizado", item)

    update.__annotations__ = {
        "payload": entity,
        "app_state": AppStateDep,
        "return": JSONResponse,
    }
    return update


def _make_read(entity: type, params_type: type, route_path: str) -> Callable[..., Any]:
    name: str = entity.__name__

    async def read(params: Any, app_state: Any) -> JSONResponse:
        if params.id is not None:
            logger.debug("Reading %s by id %r", name, params.id)
            try:
                found: Optional[Any] = await entity.read_by_id(app_state, params.id)
            except Exception as exc:
                logger.error("Failed to read %s %r: %s", name, params.id, exc)
                return error_response(exc)
            if found is None:
                return error_response(ErrorKind.NOT_FOUND)
            return api_response(200, "Encontrado", found)

        if params.page is not None:
            logger.debug("Reading %s page %r", name, params.page)
            items, total = await asyncio.gather(
                entity.read_paged(app_state, params),
                entity.count_paged(app_state, params),
                return_exceptions=True,
            )
            if isinstance(items, BaseException) or isinstance(total, BaseException):
                failure: Any = items if isinstance(items, BaseException) else total
                logger.warning(
                    "Paged read of %s failed, listing everything: %s", name, failure
                )
            else:
                return paged_response(
                    200,
                    "Resultados paginados",
                    items,
                    Pagination.from_params(params, total, route_path),
                )

        logger.debug("Reading all %s", name)
        try:
            everything: Any = await entity.read_all(app_state)
        except Exception as exc:
            logger.error("Failed to list %s: %s", name, exc)
            return error_response(exc)
        return api_response(200, "Lista completa", everything)

    read.__annotations__ = {
        "params": Annotated[params_type, Query()],
        "app_state": AppStateDep,
        "return": JSONResponse,
    }
    return read


def _make_delete(entity: type, params_type: type) -> Callable[..., Any]:
    name: str = entity.__name__

    async def delete(params: Any, app_state: Any) -> JSONResponse:
        if params.id is None:
            return error_response(ErrorKind.MISSING_ID)
        logger.debug("Deleting %s %r", name, params.id)
        try:
            item: Any = await entity.delete(app_state, params.id)
        except Exception as exc:
            logger.error("Failed to delete %s %r: %s", name, params.id, exc)
            return error_response(exc)
        return api_response(200, "Eliminado", item)

    delete.__annotations__ = {
        "params": Annotated[params_type, Query()],
        "app_state": AppStateDep,
        "return": JSONResponse,
    }
    return delete


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def crud_router(
    entity: type,
    attributes: str = "",
    *,
    scope: Optional[Mapping[str, Any]] = None,
    strict: bool = True,
) -> APIRouter:
    """
    Build the CRUD router for *entity*.

    Args:
        entity: Class exposing the seven collaborator coroutines.
        attributes: Configuration string (``path``, ``new``, ``params``).
        scope: Namespace the ``new`` and ``params`` names are looked up in;
            defaults to the globals of the module defining *entity*.
        strict: Exact-key attribute parsing.

    Returns:
        An ``APIRouter`` with ``POST``, ``PATCH``, ``GET`` and ``DELETE``
        bound at ``/``.

    Raises:
        ConfigParseError: malformed attribute string or invalid identifier.
        TypeBindingError: a name does not resolve or a class is malformed.
    """
    config: CrudConfig = parse_crud_attributes(attributes, strict=strict)
    new_name: str = synthesize_identifier(config.new_type_name, "new")
    params_name: str = synthesize_identifier(config.params_type_name, "params")

    if scope is None:
        scope = vars(sys.modules[entity.__module__])

    _check_entity(entity)
    new_type: type = _lookup(scope, "new", new_name)
    params_type: type = _lookup(scope, "params", params_name)
    _check_params(params_type)

    handlers: Dict[str, Callable[..., Any]] = {
        "POST": _make_create(entity, new_type),
        "PATCH": _make_update(entity),
        "GET": _make_read(entity, params_type, config.route_path),
        "DELETE": _make_delete(entity, params_type),
    }

    router: APIRouter = APIRouter(tags=[entity.__name__])
    for method, handler in handlers.items():
        router.add_api_route(
            "/",
            handler,
            methods=[method],
            status_code=201 if method == "POST" else 200,
        )

    logger.info(
        "Built runtime router for %s (new=%s, params=%s, path=%s).",
        entity.__name__,
        new_name,
        params_name,
        config.route_path,
    )
    return router


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = ["crud_router"]

logger.debug("crudgen.runtime.router loaded.")
