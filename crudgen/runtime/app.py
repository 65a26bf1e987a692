# File: crudgen/runtime/app.py
"""
crudgen - Application factory
==============================
Mounts entity routers (generated or built at runtime) under the API
prefix, adds the health route, permissive CORS and the static front-end.

Each entity router binds its handlers at ``/``; ``create_app`` is the
caller that nests it at ``api_prefix + route_path``.  The bare prefix
(``/api/v1/units``) answers as well as the trailing-slash form, without a
redirect.  Paths matching neither a route nor a static file get
``index.html``.
"""


from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Mapping

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from crudgen.runtime.response import api_response
from crudgen.runtime.state import AppState
from crudgen.utils import normalise_route_prefix

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.runtime.app")

SPA_INDEX: str = "index.html"


async def check_health() -> JSONResponse:
    return api_response(200, "Up and running")


def health_router() -> APIRouter:
    router: APIRouter = APIRouter(tags=["Health"])
    router.add_api_route("/", check_health, methods=["GET"])
    return router


class SpaStaticFiles(StaticFiles):
    """Static files with ``index.html`` served for every unknown path."""

    async def get_response(self, path: str, scope: Any) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
            return await super().get_response(SPA_INDEX, scope)


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Log method, path, status and duration of every request."""
    started: float = time.perf_counter()
    response: Response = await call_next(request)
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


def mount_router(app: FastAPI, router: APIRouter, prefix: str) -> None:
    """
    Nest *router* at *prefix*.

    Routes bound at ``/`` are also registered at the bare prefix, hidden
    from the schema, so neither form redirects.
    """
    app.include_router(router, prefix=prefix)
    if not prefix:
        return
    for route in router.routes:
        if isinstance(route, APIRoute) and route.path == "/":
            app.add_api_route(
                prefix,
                route.endpoint,
                methods=sorted(route.methods),
                status_code=route.status_code,
                tags=list(route.tags),
                include_in_schema=False,
            )


def create_app(
    state: AppState,
    routers: Mapping[str, APIRouter],
    *,
    api_prefix: str = "/api/v1",
    title: str = "crudgen",
    cors: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        state: Shared context, exposed to handlers through ``get_app_state``.
        routers: ``route_path → router`` for every entity.
        api_prefix: Prefix all API routes are nested under.
        title: OpenAPI title.
        cors: Add a permissive CORS middleware.
    """
    app: FastAPI = FastAPI(title=title)
    app.state.app_state = state
    app.middleware("http")(log_requests)

    if cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    base: str = normalise_route_prefix(api_prefix)
    for route_path, router in routers.items():
        prefix: str = base + normalise_route_prefix(route_path)
        mount_router(app, router, prefix)
        logger.info("Mounted entity router at %s.", prefix or "/")

    mount_router(app, health_router(), f"{base}/health")

    static_dir: Path = Path(state.static_dir)
    if static_dir.is_dir():
        app.mount(
            "/", SpaStaticFiles(directory=static_dir, html=True), name="static"
        )
        logger.info("Serving static files from %s.", static_dir)
    else:
        logger.debug("Static directory %s not found; not mounted.", static_dir)

    return app


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SPA_INDEX",
    "SpaStaticFiles",
    "check_health",
    "health_router",
    "log_requests",
    "mount_router",
    "create_app",
]

logger.debug("crudgen.runtime.app loaded.")
