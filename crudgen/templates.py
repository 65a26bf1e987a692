# File: crudgen/templates.py
"""
crudgen - Code Template Engine
===============================
Transforms ``ResolvedEntity`` and ``PaginationParamsDescriptor`` records
into Python source strings:

    1. pydantic query-parameter models with the pagination helpers
    2. one FastAPI handler module per entity (``create`` / ``update`` /
       ``read`` / ``delete`` plus ``router()``)
    3. the application entry point (main.py)
    4. package ``__init__`` files

**Contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.
    - Template methods are stateless, safe for concurrent use.
    - Generated handlers behave exactly like ``crudgen.runtime.router``.
    - Every generated file is self-contained and importable.

Handler modules do not use postponed annotations: FastAPI reads the
handler signatures, and the binding block must evaluate at import.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from crudgen.models import (
    PYTHON_TYPE_IMPORTS,
    UNSIGNED_PARAM_FIELDS,
    FieldInfo,
    GenerationConfig,
    PaginationParamsDescriptor,
    ResolvedEntity,
    SchemaDefinition,
)
from crudgen.utils import build_import_sections, make_docstring

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GENERATED_BY: str = "Auto-generated by crudgen. Do not edit by hand."

# (verb, handler, status code) in binding order
_ROUTES: Tuple[Tuple[str, str, int], ...] = (
    ("POST", "create", 201),
    ("PATCH", "update", 200),
    ("GET", "read", 200),
    ("DELETE", "delete", 200),
)


def _header(title: str) -> List[str]:
    return ['"""', title, _GENERATED_BY, '"""', ""]


class TemplateGenerator:
    """
    Stateless code-generation engine.

    Accepts resolved entities and params descriptors and produces Python
    source strings.  Each ``generate_*`` method returns a complete file.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._indent: str = " " * config.indent_size
        self._double_indent: str = self._indent * 2
        self._triple_indent: str = self._indent * 3
        self._quad_indent: str = self._indent * 4
        logger.debug(
            "TemplateGenerator initialised (package=%s, indent=%d).",
            config.package_name,
            config.indent_size,
        )

    # ===================================================================
    # 1. Query-parameter model
    # ===================================================================

    def generate_params_model(self, params: PaginationParamsDescriptor) -> str:
        """
        Generate a pydantic model for one params type.

        Every field is an optional query parameter.  The model carries
        ``limit_sql``, ``offset_sql`` and ``is_paged``; importing the module
        checks an empty instance against ``Paginable``.
        """
        i1: str = self._indent
        i2: str = self._double_indent
        lines: List[str] = _header(f"Query parameters: {params.name}")

        stdlib: Dict[str, Set[str]] = {"typing": {"Optional"}}
        for f in params.fields:
            extra = PYTHON_TYPE_IMPORTS.get(f.python_type_hint)
            if extra is not None:
                stdlib.setdefault(extra[0], set()).add(extra[1])

        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append(
            build_import_sections(
                [
                    stdlib,
                    {"pydantic": {"BaseModel", "Field"}},
                    {"crudgen.runtime.pagination": {"Paginable"}},
                ]
            )
        )
        lines.append("")
        lines.append("")

        lines.append(f"class {params.name}(BaseModel):")
        if self._config.generate_docstrings:
            doc: str = params.description or (
                f"Query parameters for {params.name}; every field is optional."
            )
            lines.append(make_docstring(doc, 1, self._config.indent_size))
            lines.append("")

        for f in params.fields:
            lines.append(f"{i1}{self._params_field_line(f)}")
        lines.append("")

        # limit_sql
        lines.append(f"{i1}def limit_sql(self, default: int) -> int:")
        if self._config.generate_docstrings:
            lines.append(f'{i2}"""``limit`` when set, otherwise *default*."""')
        lines.append(
            f"{i2}return int(self.limit if self.limit is not None else default)"
        )
        lines.append("")

        # offset_sql
        lines.append(
            f"{i1}def offset_sql(self, default_page: int, default_limit: int) -> int:"
        )
        if self._config.generate_docstrings:
            lines.append(f'{i2}"""Row offset of the requested page, 0 for page <= 0."""')
        lines.append(
            f"{i2}page: int = self.page if self.page is not None else default_page"
        )
        lines.append(
            f"{i2}limit: int = self.limit if self.limit is not None else default_limit"
        )
        lines.append(f"{i2}if page > 0:")
        lines.append(f"{self._triple_indent}return int((page - 1) * limit)")
        lines.append(f"{i2}return 0")
        lines.append("")

        # is_paged
        lines.append(f"{i1}def is_paged(self) -> bool:")
        if self._config.generate_docstrings:
            lines.append(f'{i2}"""True iff ``page`` or ``limit`` is set."""')
        lines.append(f"{i2}return self.page is not None or self.limit is not None")
        lines.append("")
        lines.append("")

        lines.append(f"if not isinstance({params.name}(), Paginable):")
        lines.append(
            f'{i1}raise TypeError("{params.name} does not satisfy Paginable")'
        )
        lines.append("")

        content: str = "\n".join(lines)
        logger.debug(
            "Generated params model %s: %d lines.",
            params.name,
            content.count("\n") + 1,
        )
        return content

    @staticmethod
    def _params_field_line(f: FieldInfo) -> str:
        args: List[str] = ["default=None"]
        if f.name in UNSIGNED_PARAM_FIELDS:
            args.append("ge=0")
        if f.description:
            args.append(f"description={f.description!r}")
        return f"{f.name}: Optional[{f.python_type_hint}] = Field({', '.join(args)})"

    # ===================================================================
    # 2. Entity handler module
    # ===================================================================

    def generate_crud_module(self, resolved: ResolvedEntity) -> str:
        """
        Generate the handler module for one entity.

        Layout: imports, binding block, ``router()``, then the four handlers.
        """
        i1: str = self._indent
        lines: List[str] = _header(f"CRUD handlers for entity: {resolved.name}")

        local: Dict[str, Set[str]] = {
            "crudgen.runtime.response": {
                "ErrorKind",
                "Pagination",
                "api_response",
                "error_response",
                "paged_response",
            },
            "crudgen.runtime.state": {"get_app_state"},
        }
        for binding in resolved.bindings():
            local.setdefault(binding.module, set()).add(binding.symbol)

        lines.append(
            build_import_sections(
                [
                    {"asyncio": set(), "logging": set(), "typing": {"Annotated"}},
                    {
                        "fastapi": {"APIRouter", "Depends", "Query"},
                        "fastapi.responses": {"JSONResponse"},
                    },
                    local,
                ]
            )
        )
        lines.append("")
        lines.append("logger = logging.getLogger(__name__)")
        lines.append("")
        lines.append(f"ENTITY_NAME = {resolved.name!r}")
        lines.append(f"ROUTE_PATH = {resolved.config.route_path!r}")
        lines.append("")

        # Binding block
        lines.append("# Bound names; a name that stops resolving fails here, at import.")
        lines.append(f"_ValidateEntity: type = {resolved.entity.symbol}")
        lines.append(f"_ValidateNew: type = {resolved.new.symbol}")
        lines.append(f"_ValidateParams: type = {resolved.params.symbol}")
        lines.append(f"_ValidateState: type = {resolved.context.symbol}")
        lines.append("")
        lines.append("")

        # Router
        lines.append("def router() -> APIRouter:")
        if self._config.generate_docstrings:
            lines.append(
                f'{i1}"""Router for {resolved.name}; all four verbs bound at \'/\'."""'
            )
        lines.append(f"{i1}api_router = APIRouter(tags=[ENTITY_NAME])")
        for verb, handler, status in _ROUTES:
            lines.append(
                f'{i1}api_router.add_api_route("/", {handler}, '
                f'methods=["{verb}"], status_code={status})'
            )
        lines.append(f"{i1}return api_router")
        lines.append("")
        lines.append("")

        lines.extend(self._gen_create_handler(resolved))
        lines.extend(self._gen_update_handler(resolved))
        lines.extend(self._gen_read_handler(resolved))
        lines.extend(self._gen_delete_handler(resolved))

        content: str = "\n".join(lines).rstrip("\n") + "\n"
        logger.debug(
            "Generated CRUD module for %s: %d lines.",
            resolved.name,
            content.count("\n") + 1,
        )
        return content

    def _state_param(self, resolved: ResolvedEntity) -> str:
        return (
            f"{self._indent}app_state: Annotated"
            f"[{resolved.context.symbol}, Depends(get_app_state)],"
        )

    def _gen_create_handler(self, resolved: ResolvedEntity) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        entity: str = resolved.entity.symbol
        lines: List[str] = []
        lines.append("async def create(")
        lines.append(f"{i1}payload: {resolved.new.symbol},")
        lines.append(self._state_param(resolved))
        lines.append(") -> JSONResponse:")
        if self._config.generate_docstrings:
            lines.append(f'{i1}"""Create a {resolved.name}."""')
        lines.append(f'{i1}logger.debug("Creating %s: %r", ENTITY_NAME, payload)')
        lines.append(f"{i1}try:")
        lines.append(f"{i2}item = await {entity}.create(app_state, payload)")
        lines.append(f"{i1}except Exception as exc:")
        lines.append(
            f'{i2}logger.error("Failed to create %s: %s", ENTITY_NAME, exc)'
        )
        lines.append(f"{i2}return error_response(exc)")
        lines.append(
            f'{i1}return api_response(201, f"{{ENTITY_NAME}} creado con éxito", item)'
        )
        lines.append("")
        lines.append("")
        return lines

    def _gen_update_handler(self, resolved: ResolvedEntity) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        entity: str = resolved.entity.symbol
        lines: List[str] = []
        lines.append("async def update(")
        lines.append(f"{i1}payload: {entity},")
        lines.append(self._state_param(resolved))
        lines.append(") -> JSONResponse:")
        if self._config.generate_docstrings:
            lines.append(f'{i1}"""Replace a {resolved.name} with the full payload."""')
        lines.append(f'{i1}logger.debug("Updating %s: %r", ENTITY_NAME, payload)')
        lines.append(f"{i1}try:")
        lines.append(f"{i2}item = await {entity}.update(app_state, payload)")
        lines.append(f"{i1}except Exception as exc:")
        lines.append(
            f'{i2}logger.error("Failed to update %s: %s", ENTITY_NAME, exc)'
        )
        lines.append(f"{i2}return error_response(exc)")
        lines.append(
            f'{i1}return api_response(200, f"{{ENTITY_NAME}} actualizado", item)'
        )
        lines.append("")
        lines.append("")
        return lines

    def _gen_read_handler(self, resolved: ResolvedEntity) -> List[str]:
        """
        ``read`` dispatches on the first matching tier:
        id → read_by_id, page → read_paged + count_paged, else read_all.
        A failed paged read falls through to read_all.
        """
        i1, i2 = self._indent, self._double_indent
        i3, i4 = self._triple_indent, self._quad_indent
        entity: str = resolved.entity.symbol
        lines: List[str] = []
        lines.append("async def read(")
        lines.append(f"{i1}params: Annotated[{resolved.params.symbol}, Query()],")
        lines.append(self._state_param(resolved))
        lines.append(") -> JSONResponse:")
        if self._config.generate_docstrings:
            lines.append(
                make_docstring(
                    f"Read {resolved.name} items.\n\n"
                    "``id`` selects one item; ``page`` a page with its total;\n"
                    "otherwise (or when the paged read fails) the full list.",
                    1,
                    self._config.indent_size,
                )
            )

        # Tier 1: by id
        lines.append(f"{i1}if params.id is not None:")
        lines.append(
            f'{i2}logger.debug("Reading %s by id %r", ENTITY_NAME, params.id)'
        )
        lines.append(f"{i2}try:")
        lines.append(f"{i3}found = await {entity}.read_by_id(app_state, params.id)")
        lines.append(f"{i2}except Exception as exc:")
        lines.append(
            f'{i3}logger.error("Failed to read %s %r: %s", ENTITY_NAME, params.id, exc)'
        )
        lines.append(f"{i3}return error_response(exc)")
        lines.append(f"{i2}if found is None:")
        lines.append(f"{i3}return error_response(ErrorKind.NOT_FOUND)")
        lines.append(f'{i2}return api_response(200, "Encontrado", found)')
        lines.append("")

        # Tier 2: paged
        lines.append(f"{i1}if params.page is not None:")
        lines.append(
            f'{i2}logger.debug("Reading %s page %r", ENTITY_NAME, params.page)'
        )
        lines.append(f"{i2}items, total = await asyncio.gather(")
        lines.append(f"{i3}{entity}.read_paged(app_state, params),")
        lines.append(f"{i3}{entity}.count_paged(app_state, params),")
        lines.append(f"{i3}return_exceptions=True,")
        lines.append(f"{i2})")
        lines.append(
            f"{i2}if isinstance(items, BaseException) or isinstance(total, BaseException):"
        )
        lines.append(
            f"{i3}failure = items if isinstance(items, BaseException) else total"
        )
        lines.append(f"{i3}logger.warning(")
        lines.append(
            f'{i4}"Paged read of %s failed, listing everything: %s", ENTITY_NAME, failure'
        )
        lines.append(f"{i3})")
        lines.append(f"{i2}else:")
        lines.append(f"{i3}return paged_response(")
        lines.append(f"{i4}200,")
        lines.append(f'{i4}"Resultados paginados",')
        lines.append(f"{i4}items,")
        lines.append(f"{i4}Pagination.from_params(params, total, ROUTE_PATH),")
        lines.append(f"{i3})")
        lines.append("")

        # Tier 3: everything
        lines.append(f'{i1}logger.debug("Reading all %s", ENTITY_NAME)')
        lines.append(f"{i1}try:")
        lines.append(f"{i2}everything = await {entity}.read_all(app_state)")
        lines.append(f"{i1}except Exception as exc:")
        lines.append(f'{i2}logger.error("Failed to list %s: %s", ENTITY_NAME, exc)')
        lines.append(f"{i2}return error_response(exc)")
        lines.append(f'{i1}return api_response(200, "Lista completa", everything)')
        lines.append("")
        lines.append("")
        return lines

    def _gen_delete_handler(self, resolved: ResolvedEntity) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        entity: str = resolved.entity.symbol
        lines: List[str] = []
        lines.append("async def delete(")
        lines.append(f"{i1}params: Annotated[{resolved.params.symbol}, Query()],")
        lines.append(self._state_param(resolved))
        lines.append(") -> JSONResponse:")
        if self._config.generate_docstrings:
            lines.append(f'{i1}"""Delete the {resolved.name} named by ``id``."""')
        lines.append(f"{i1}if params.id is None:")
        lines.append(f"{i2}return error_response(ErrorKind.MISSING_ID)")
        lines.append(f'{i1}logger.debug("Deleting %s %r", ENTITY_NAME, params.id)')
        lines.append(f"{i1}try:")
        lines.append(f"{i2}item = await {entity}.delete(app_state, params.id)")
        lines.append(f"{i1}except Exception as exc:")
        lines.append(
            f'{i2}logger.error("Failed to delete %s %r: %s", ENTITY_NAME, params.id, exc)'
        )
        lines.append(f"{i2}return error_response(exc)")
        lines.append(f'{i1}return api_response(200, "Eliminado", item)')
        lines.append("")
        return lines

    # ===================================================================
    # 3. Application entry point
    # ===================================================================

    def generate_main_app(self, resolved: Sequence[ResolvedEntity]) -> str:
        """Generate main.py: ``build_app()`` plus a uvicorn runner."""
        i1, i2 = self._indent, self._double_indent
        pkg: str = self._config.package_name
        lines: List[str] = _header(f"{self._config.project_name} - FastAPI application")

        local: Dict[str, Set[str]] = {
            "crudgen.runtime.app": {"create_app"},
            "crudgen.runtime.state": {"AppState", "get_settings"},
        }
        crud_imports: List[str] = [
            f"from {pkg}.crud import {item.module_name} as {item.module_name}_crud"
            for item in resolved
        ]

        lines.append(
            build_import_sections(
                [
                    {"logging": set(), "typing": {"Dict", "Optional"}},
                    {"uvicorn": set(), "fastapi": {"APIRouter", "FastAPI"}},
                    local,
                ]
            )
        )
        lines.extend(crud_imports)
        lines.append("")
        lines.append("logger = logging.getLogger(__name__)")
        lines.append("")
        lines.append(f"API_PREFIX = {self._config.api_prefix!r}")
        lines.append(f"HOST = {self._config.host!r}")
        lines.append(f"PORT = {self._config.port}")
        lines.append("")
        lines.append("")

        lines.append("def routers() -> Dict[str, APIRouter]:")
        if self._config.generate_docstrings:
            lines.append(f'{i1}"""Entity routers keyed by the route path they mount at."""')
        lines.append(f"{i1}return {{")
        for item in resolved:
            lines.append(
                f"{i2}{item.module_name}_crud.ROUTE_PATH: "
                f"{item.module_name}_crud.router(),"
            )
        lines.append(f"{i1}}}")
        lines.append("")
        lines.append("")

        lines.append("def build_app(state: Optional[AppState] = None) -> FastAPI:")
        if self._config.generate_docstrings:
            lines.append(
                f'{i1}"""Application with every entity nested under API_PREFIX."""'
            )
        lines.append(f"{i1}if state is None:")
        lines.append(f"{i2}state = AppState.from_settings(get_settings())")
        lines.append(
            f"{i1}return create_app(state, routers(), api_prefix=API_PREFIX, "
            f"title={self._config.project_name!r})"
        )
        lines.append("")
        lines.append("")

        lines.append('if __name__ == "__main__":')
        lines.append(f"{i1}logging.basicConfig(level=logging.INFO)")
        lines.append(f'{i1}logger.info("Starting on %s:%d", HOST, PORT)')
        lines.append(f"{i1}uvicorn.run(build_app(), host=HOST, port=PORT)")
        lines.append("")

        content: str = "\n".join(lines)
        logger.debug("Generated main.py: %d lines.", content.count("\n") + 1)
        return content

    # ===================================================================
    # 4. Package files
    # ===================================================================

    def generate_init_file(
        self,
        module_name: str,
        imports: Optional[List[str]] = None,
    ) -> str:
        """Generate an __init__.py file with optional re-exports."""
        lines: List[str] = _header(f"{module_name} package.")
        if imports:
            lines.extend(imports)
            lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 5. Aggregate generation
    # ===================================================================

    def generate_all(
        self,
        schema: SchemaDefinition,
        resolved: Sequence[ResolvedEntity],
    ) -> Dict[str, str]:
        """
        Generate every file of the package.

        Returns a dict of path (relative to the package directory) → content.
        """
        result: Dict[str, str] = {}

        result["__init__.py"] = self.generate_init_file(self._config.project_name)

        if schema.params:
            params_exports: List[str] = []
            for params in schema.params:
                result[f"params/{params.module_name}.py"] = self.generate_params_model(
                    params
                )
                params_exports.append(f"from .{params.module_name} import {params.name}")
            result["params/__init__.py"] = self.generate_init_file(
                "params", params_exports
            )

        for item in resolved:
            result[f"crud/{item.module_name}.py"] = self.generate_crud_module(item)
        result["crud/__init__.py"] = self.generate_init_file("crud")

        if self._config.generate_main:
            result["main.py"] = self.generate_main_app(resolved)

        total_lines: int = sum(
            content.count("\n") + 1 for content in result.values()
        )
        logger.info(
            "Full generation complete: %d files, ~%d lines.",
            len(result),
            total_lines,
        )
        return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TemplateGenerator",
]

logger.debug("crudgen.templates loaded.")
