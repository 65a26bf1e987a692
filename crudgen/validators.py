# File: crudgen/validators.py
"""
crudgen - Identifier & Type-Binding Validators
================================================
Generation-time checks that run before any code is rendered:

* configuration strings parse (``crudgen.attributes``);
* configured names are usable Python identifiers (``synthesize_identifier``);
* the entity, new-payload, params and context types resolve in the scope
  generated modules will import from (``TypeScope``);
* resolved types are well formed: the entity exposes the seven collaborator
  coroutines, params types expose ``id``, ``page`` and ``limit``.

All checks accumulate into a ``ValidationResult`` so one run reports every
problem.  A result with errors aborts generation as a whole.

Usage by downstream modules:
    from crudgen.validators import resolve_entities
    resolved, result = resolve_entities(schema_def, generation_config)
    if result.has_errors:
        raise GenerationAborted(result)
"""

from __future__ import annotations

import importlib
import inspect
import keyword
import logging
from types import ModuleType
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel

from crudgen.attributes import parse_crud_attributes
from crudgen.errors import ConfigParseError, IdentifierError, TypeBindingError
from crudgen.models import (
    REQUIRED_PARAM_FIELDS,
    BindingRole,
    CrudConfig,
    EntityDescriptor,
    GenerationConfig,
    ParamType,
    ResolvedEntity,
    SchemaDefinition,
    TypeBinding,
)
from crudgen.runtime.pagination import declared_fields
from crudgen.utils import normalise_route_prefix

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Identifier synthesis
# ---------------------------------------------------------------------------


def synthesize_identifier(value: str, field: str) -> str:
    """
    Return *value* as a Python identifier for the configuration *field*.

    Raises:
        IdentifierError: empty, starts with a digit, contains characters
            not allowed in identifiers, or is a reserved keyword.
    """
    if not value:
        raise IdentifierError(field, value, "empty")
    if value[0].isdigit():
        raise IdentifierError(field, value, "starts with a digit")
    if not value.isidentifier():
        raise IdentifierError(field, value, "contains characters not allowed in identifiers")
    if keyword.iskeyword(value):
        raise IdentifierError(field, value, "is a reserved keyword")
    return value


# ---------------------------------------------------------------------------
# Contract checks on live classes
# ---------------------------------------------------------------------------

# Coroutines every entity must expose, called as Entity.op(app_state, ...)
COLLABORATORS: Tuple[str, ...] = (
    "create",
    "update",
    "read_by_id",
    "read_paged",
    "count_paged",
    "read_all",
    "delete",
)

# Names the generated params model defines or imports
_RESERVED_PARAM_FIELDS: Set[str] = {
    "limit_sql",
    "offset_sql",
    "is_paged",
    "model_config",
    "Optional",
    "Field",
    "BaseModel",
    "Paginable",
    "UUID",
    "date",
    "datetime",
}

# Names every generated CRUD module imports or defines at top level
GENERATED_MODULE_NAMES: Set[str] = {
    "asyncio",
    "logging",
    "Annotated",
    "APIRouter",
    "Depends",
    "Query",
    "JSONResponse",
    "ErrorKind",
    "Pagination",
    "api_response",
    "error_response",
    "paged_response",
    "AppState",
    "get_app_state",
    "logger",
    "ENTITY_NAME",
    "ROUTE_PATH",
    "router",
    "create",
    "update",
    "read",
    "delete",
}


def missing_collaborators(entity_cls: Any) -> List[str]:
    """Collaborators absent from *entity_cls* or not declared ``async``."""
    missing: List[str] = []
    for name in COLLABORATORS:
        member: Any = getattr(entity_cls, name, None)
        if member is None or not inspect.iscoroutinefunction(member):
            missing.append(name)
    return missing


def missing_param_fields(params_cls: Any) -> List[str]:
    """Required fields (``id``, ``page``, ``limit``) *params_cls* lacks."""
    fields: Set[str] = declared_fields(params_cls)
    return [name for name in REQUIRED_PARAM_FIELDS if name not in fields]


# ---------------------------------------------------------------------------
# Type scope
# ---------------------------------------------------------------------------


class TypeScope:
    """
    Names visible to the generated modules.

    Lookup order for a symbol bound to an entity:
        1. params types generated by this run (``<package>.params.<module>``);
        2. the entity module's declared ``exports``, when given;
        3. the entity module itself, imported when ``resolve_imports`` is on.

    With imports disabled and no exports declared a binding is accepted
    unverified; the import-time binding block of the generated module is
    then the only check.
    """

    CONTEXT_SYMBOL: str = "AppState"
    CONTEXT_MODULE: str = "crudgen.runtime.state"

    def __init__(self, schema: SchemaDefinition, config: GenerationConfig) -> None:
        self._generated: Dict[str, str] = {
            p.name: f"{config.package_name}.params.{p.module_name}"
            for p in schema.params
        }
        self._resolve_imports: bool = config.resolve_imports
        self._modules: Dict[str, ModuleType] = {}

    def is_verifiable(self, entity: EntityDescriptor) -> bool:
        return entity.exports is None and self._resolve_imports

    def is_generated(self, symbol: str) -> bool:
        return symbol in self._generated

    def context_binding(self) -> TypeBinding:
        return TypeBinding(
            role="context", symbol=self.CONTEXT_SYMBOL, module=self.CONTEXT_MODULE
        )

    def bind(
        self, role: BindingRole, symbol: str, entity: EntityDescriptor
    ) -> TypeBinding:
        """
        Resolve *symbol* for *entity*.

        Raises:
            TypeBindingError: when the symbol is not exported by, or not
                found in, the entity module, or the module cannot be imported.
        """
        if role == "params" and symbol in self._generated:
            return TypeBinding(
                role=role,
                symbol=symbol,
                module=self._generated[symbol],
                generated=True,
            )

        if entity.exports is not None:
            if symbol not in entity.exports:
                raise TypeBindingError(
                    role, symbol, f"not exported by module '{entity.module}'"
                )
            return TypeBinding(role=role, symbol=symbol, module=entity.module)

        if self._resolve_imports:
            module: ModuleType = self._import(entity.module, role, symbol)
            if not hasattr(module, symbol):
                raise TypeBindingError(
                    role, symbol, f"module '{entity.module}' defines no '{symbol}'"
                )

        return TypeBinding(role=role, symbol=symbol, module=entity.module)

    def load(self, binding: TypeBinding) -> Optional[Any]:
        """The live object behind *binding*, if its module was imported."""
        module: Optional[ModuleType] = self._modules.get(binding.module)
        if binding.generated or module is None:
            return None
        return getattr(module, binding.symbol, None)

    def _import(self, module_name: str, role: str, symbol: str) -> ModuleType:
        cached: Optional[ModuleType] = self._modules.get(module_name)
        if cached is not None:
            return cached
        try:
            module: ModuleType = importlib.import_module(module_name)
        except Exception as exc:
            raise TypeBindingError(
                role,
                symbol,
                f"cannot import module '{module_name}': "
                f"{type(exc).__name__}: {exc}",
            ) from exc
        self._modules[module_name] = module
        logger.debug("Imported %s for binding checks.", module_name)
        return module


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_generation_config(config: GenerationConfig) -> ValidationResult:
    """Semantic checks beyond the pydantic field constraints."""
    result: ValidationResult = ValidationResult()

    if not config.api_prefix.startswith("/"):
        result.add_warning(
            "API_PREFIX_NO_SLASH",
            f"api_prefix '{config.api_prefix}' should start with '/'.",
            {"api_prefix": config.api_prefix},
        )

    if config.package_name == "crudgen":
        result.add_error(
            "PACKAGE_NAME_RESERVED",
            "package_name 'crudgen' would shadow the runtime package.",
            {"package_name": config.package_name},
        )

    return result


def validate_params_descriptors(schema: SchemaDefinition) -> ValidationResult:
    """
    Check every params type to generate:
    - class and field names are identifiers, fields unique;
    - ``id``, ``page`` and ``limit`` are present;
    - ``page`` and ``limit`` are integers;
    - no field shadows a pagination helper;
    - no two params types share a module name.
    """
    result: ValidationResult = ValidationResult()
    modules_seen: Dict[str, str] = {}

    for params in schema.params:
        ctx: Dict[str, Any] = {"params": params.name}

        try:
            synthesize_identifier(params.name, "params")
        except IdentifierError as exc:
            result.add_error("INVALID_IDENTIFIER", str(exc), ctx)
            continue

        other: Optional[str] = modules_seen.get(params.module_name)
        if other is not None:
            result.add_error(
                "DUPLICATE_PARAMS_MODULE",
                f"Params types '{other}' and '{params.name}' would both be "
                f"written to params/{params.module_name}.py.",
                ctx,
            )
        modules_seen[params.module_name] = params.name

        names_seen: Set[str] = set()
        for f in params.fields:
            field_ctx: Dict[str, Any] = {**ctx, "field": f.name}
            if f.name in names_seen:
                result.add_error(
                    "DUPLICATE_PARAM_FIELD",
                    f"Field '{f.name}' is duplicated in '{params.name}'.",
                    field_ctx,
                )
            names_seen.add(f.name)

            try:
                synthesize_identifier(f.name, f"{params.name}.{f.name}")
            except IdentifierError as exc:
                result.add_error("INVALID_IDENTIFIER", str(exc), field_ctx)
                continue

            if f.name in _RESERVED_PARAM_FIELDS:
                result.add_error(
                    "RESERVED_FIELD_NAME",
                    f"Field '{f.name}' in '{params.name}' shadows a name the "
                    f"generated model defines or imports.",
                    field_ctx,
                )

        for required in REQUIRED_PARAM_FIELDS:
            descriptor_field = params.get_field(required)
            if descriptor_field is None:
                result.add_error(
                    "MISSING_PARAM_FIELD",
                    f"Params type '{params.name}' has no '{required}' field.",
                    {**ctx, "field": required},
                )
            elif required in ("page", "limit") and (
                ParamType(descriptor_field.param_type) is not ParamType.INT
            ):
                result.add_error(
                    "PAGINATION_FIELD_NOT_INT",
                    f"Field '{required}' of '{params.name}' must be of type int, "
                    f"got '{ParamType(descriptor_field.param_type).value}'.",
                    {**ctx, "field": required},
                )

    return result


def validate_entity_modules(schema: SchemaDefinition) -> ValidationResult:
    """Module paths are importable names and generated modules don't collide."""
    result: ValidationResult = ValidationResult()
    modules_seen: Dict[str, str] = {}

    for entity in schema.entities:
        ctx: Dict[str, Any] = {"entity": entity.name, "module": entity.module}

        if not all(
            part.isidentifier() and not keyword.iskeyword(part)
            for part in entity.module.split(".")
        ):
            result.add_error(
                "INVALID_MODULE_PATH",
                f"Module '{entity.module}' of entity '{entity.name}' is not a "
                f"valid dotted import path.",
                ctx,
            )

        other: Optional[str] = modules_seen.get(entity.module_name)
        if other is not None:
            result.add_error(
                "DUPLICATE_ENTITY_MODULE",
                f"Entities '{other}' and '{entity.name}' would both be written "
                f"to crud/{entity.module_name}.py.",
                ctx,
            )
        modules_seen[entity.module_name] = entity.name

    return result


def validate_type_bindings(
    entity: EntityDescriptor,
    crud_config: CrudConfig,
    scope: TypeScope,
) -> Tuple[Optional[ResolvedEntity], ValidationResult]:
    """
    Synthesize identifiers for one entity and resolve its four bindings.

    Returns the resolved entity (None on any error) and the issues found.
    """
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"entity": entity.name}

    # -- Identifiers --------------------------------------------------------
    symbols: Dict[BindingRole, str] = {}
    for role, value in (
        ("entity", entity.name),
        ("new", crud_config.new_type_name),
        ("params", crud_config.params_type_name),
    ):
        try:
            symbols[role] = synthesize_identifier(value, role)
        except IdentifierError as exc:
            result.add_error(
                "INVALID_IDENTIFIER",
                str(exc),
                {**ctx, "field": exc.field, "value": exc.value},
            )
            continue
        if value in GENERATED_MODULE_NAMES:
            result.add_error(
                "RESERVED_SYMBOL",
                f"'{value}' ({role}) clashes with a name the generated "
                f"handler module defines or imports.",
                {**ctx, "field": role, "value": value},
            )
    if result.has_errors:
        return None, result

    # -- Resolution ---------------------------------------------------------
    bindings: Dict[BindingRole, TypeBinding] = {}
    for role, symbol in symbols.items():
        try:
            bindings[role] = scope.bind(role, symbol, entity)
        except TypeBindingError as exc:
            result.add_error(
                "UNRESOLVED_TYPE",
                str(exc),
                {**ctx, "field": exc.field, "symbol": exc.symbol},
            )
    if result.has_errors:
        return None, result
    bindings["context"] = scope.context_binding()

    if not scope.is_verifiable(entity):
        result.add_info(
            "BINDINGS_NOT_IMPORTED",
            f"Bindings of '{entity.name}' were accepted without importing "
            f"'{entity.module}'; the generated binding block checks them at import.",
            ctx,
        )

    # -- Well-formedness ----------------------------------------------------
    entity_obj: Optional[Any] = scope.load(bindings["entity"])
    if entity_obj is not None:
        missing: List[str] = missing_collaborators(entity_obj)
        if missing:
            result.add_error(
                "ENTITY_CONTRACT",
                f"Entity '{entity.name}' lacks async collaborator(s): "
                f"{', '.join(missing)}.",
                {**ctx, "field": "entity", "missing": missing},
            )

    new_obj: Optional[Any] = scope.load(bindings["new"])
    if new_obj is not None and not isinstance(new_obj, type):
        result.add_error(
            "NOT_A_TYPE",
            f"'{symbols['new']}' in '{entity.module}' is not a class.",
            {**ctx, "field": "new"},
        )

    params_obj: Optional[Any] = scope.load(bindings["params"])
    if params_obj is not None:
        if not isinstance(params_obj, type):
            result.add_error(
                "NOT_A_TYPE",
                f"'{symbols['params']}' in '{entity.module}' is not a class.",
                {**ctx, "field": "params"},
            )
        elif not issubclass(params_obj, BaseModel):
            result.add_error(
                "PARAMS_NOT_MODEL",
                f"Params type '{symbols['params']}' must be a pydantic model "
                f"to be read from the query string.",
                {**ctx, "field": "params"},
            )
        else:
            missing_fields: List[str] = missing_param_fields(params_obj)
            if missing_fields:
                result.add_error(
                    "PARAMS_CONTRACT",
                    f"Params type '{symbols['params']}' lacks field(s): "
                    f"{', '.join(missing_fields)}.",
                    {**ctx, "field": "params", "missing": missing_fields},
                )

    if result.has_errors:
        return None, result

    resolved: ResolvedEntity = ResolvedEntity(
        descriptor=entity,
        config=crud_config,
        entity=bindings["entity"],
        new=bindings["new"],
        params=bindings["params"],
        context=bindings["context"],
    )
    logger.debug("Resolved %r.", resolved)
    return resolved, result


# ---------------------------------------------------------------------------
# Composite validation orchestrators
# ---------------------------------------------------------------------------


def resolve_entities(
    schema: SchemaDefinition,
    config: GenerationConfig,
) -> Tuple[List[ResolvedEntity], ValidationResult]:
    """
    **Master validation entry point.**

    Parses every entity's configuration string, resolves its bindings and
    runs the structural checks.  The returned list only holds entities that
    resolved cleanly; callers must refuse to generate when the result has
    errors.
    """
    logger.info(
        "Starting validation: %d entities, %d params types.",
        len(schema.entities),
        len(schema.params),
    )

    result: ValidationResult = ValidationResult()
    result.merge(validate_generation_config(config))
    result.merge(validate_params_descriptors(schema))
    result.merge(validate_entity_modules(schema))

    scope: TypeScope = TypeScope(schema, config)
    resolved: List[ResolvedEntity] = []

    for entity in schema.entities:
        try:
            crud_config: CrudConfig = parse_crud_attributes(
                entity.crud, strict=config.strict_attributes
            )
        except ConfigParseError as exc:
            result.add_error(
                "CONFIG_PARSE_ERROR",
                f"Entity '{entity.name}': {exc}",
                {"entity": entity.name, "segment": exc.segment},
            )
            continue

        entity_resolved, sub_result = validate_type_bindings(entity, crud_config, scope)
        result.merge(sub_result)
        if entity_resolved is not None:
            resolved.append(entity_resolved)

    # Routers are mounted by route_path, so two entities cannot share one
    paths_seen: Dict[str, str] = {}
    for item in resolved:
        path: str = normalise_route_prefix(item.config.route_path) or "/"
        other: Optional[str] = paths_seen.get(path)
        if other is not None:
            result.add_error(
                "DUPLICATE_ROUTE_PATH",
                f"Entities '{other}' and '{item.name}' share route path '{path}'.",
                {"entity": item.name, "route_path": path},
            )
        paths_seen[path] = item.name

    used_params: Set[str] = {item.params.symbol for item in resolved}
    for params in schema.params:
        if params.name not in used_params:
            result.add_info(
                "UNUSED_PARAMS",
                f"Params type '{params.name}' is generated but no entity uses it.",
                {"params": params.name},
            )

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return resolved, result


def validate_full(
    schema: SchemaDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """Run every check and return only the accumulated result."""
    _, result = resolve_entities(schema, config)
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "synthesize_identifier",
    "COLLABORATORS",
    "GENERATED_MODULE_NAMES",
    "missing_collaborators",
    "missing_param_fields",
    "TypeScope",
    "validate_generation_config",
    "validate_params_descriptors",
    "validate_entity_modules",
    "validate_type_bindings",
    "resolve_entities",
    "validate_full",
]

logger.debug("crudgen.validators loaded - %d public symbols.", len(__all__))
