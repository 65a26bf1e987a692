# File: crudgen/models.py
"""
crudgen - Core Data Models
===========================
Pydantic V2 models for every input and intermediate record of the
generation pipeline:

    Schema file → EntityDescriptor / PaginationParamsDescriptor
                → CrudConfig (attribute parser)
                → TypeBinding / ResolvedEntity (validator)
                → generated source (templates)

The models are the single source of truth shared by the validators, the
template engine and the CLI.
"""

from __future__ import annotations

import keyword
import logging
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from crudgen.utils import to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ParamType(str, Enum):
    """Scalar types a query-parameter field may declare."""

    INT = "int"
    STR = "str"
    BOOL = "bool"
    FLOAT = "float"
    UUID = "uuid"
    DATE = "date"
    DATETIME = "datetime"


# Python annotation and the import it needs, per ParamType value
_PYTHON_TYPE_MAP: Dict[str, str] = {
    "int": "int",
    "str": "str",
    "bool": "bool",
    "float": "float",
    "uuid": "UUID",
    "date": "date",
    "datetime": "datetime",
}

PYTHON_TYPE_IMPORTS: Dict[str, Tuple[str, str]] = {
    "UUID": ("uuid", "UUID"),
    "date": ("datetime", "date"),
    "datetime": ("datetime", "datetime"),
}

# Field names every params type must expose
REQUIRED_PARAM_FIELDS: Tuple[str, ...] = ("id", "page", "limit")
UNSIGNED_PARAM_FIELDS: Tuple[str, ...] = ("page", "limit")

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Configuration record produced by the attribute parser
# ---------------------------------------------------------------------------


class CrudConfig(BaseModel):
    """
    Parsed form of an entity's configuration string.

    Every field is always populated; keys absent from the string take the
    defaults below.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    route_path: str = Field(
        default="/", description="Path used in pagination link metadata."
    )
    new_type_name: str = Field(
        default="NewItem", description="Name of the create-payload type."
    )
    params_type_name: str = Field(
        default="Params", description="Name of the query-parameter type."
    )


# ---------------------------------------------------------------------------
# Schema inputs
# ---------------------------------------------------------------------------


class FieldInfo(BaseModel):
    """One optional query-parameter field."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Field name.")
    param_type: ParamType = Field(
        default=ParamType.STR, alias="type", description="Scalar type."
    )
    description: Optional[str] = Field(default=None, description="Field docs.")

    @computed_field  # type: ignore[misc]
    @property
    def python_type_hint(self) -> str:
        return _PYTHON_TYPE_MAP[ParamType(self.param_type).value]

    def __repr__(self) -> str:
        return f"<FieldInfo {self.name}: {self.param_type}>"


class PaginationParamsDescriptor(BaseModel):
    """
    Describes a query-parameter type to generate.

    The generated type exposes every field as an optional query parameter
    and receives the pagination helpers (``limit_sql``, ``offset_sql``,
    ``is_paged``).
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Class name.")
    fields: List[FieldInfo] = Field(
        ..., min_length=1, description="Query-parameter fields."
    )
    description: Optional[str] = Field(default=None, description="Class docs.")

    @computed_field  # type: ignore[misc]
    @property
    def module_name(self) -> str:
        return to_snake_case(self.name)

    def get_field(self, name: str) -> Optional[FieldInfo]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def __repr__(self) -> str:
        return f"<PaginationParamsDescriptor {self.name} ({len(self.fields)} fields)>"


class EntityDescriptor(BaseModel):
    """An entity that gets a CRUD API surface."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Entity class name.")
    module: str = Field(
        ...,
        min_length=1,
        description="Dotted module defining the entity and its payload types.",
    )
    exports: Optional[List[str]] = Field(
        default=None,
        description="Names the module is declared to export (skips importing it).",
    )
    crud: str = Field(
        default="", description="Raw configuration string, e.g. 'path = \"/units\"'."
    )
    description: Optional[str] = Field(default=None, description="Entity docs.")

    @computed_field  # type: ignore[misc]
    @property
    def module_name(self) -> str:
        return to_snake_case(self.name)

    def __repr__(self) -> str:
        return f"<EntityDescriptor {self.module}.{self.name}>"


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """Project-level settings that control code generation."""

    model_config = _SHARED_CONFIG

    project_name: str = Field(
        default="crud_api", min_length=1, max_length=128, description="Project name."
    )
    package_name: str = Field(
        default="generated_api",
        min_length=1,
        description="Import package the generated modules live in.",
    )
    api_prefix: str = Field(
        default="/api/v1", description="Prefix every entity router is nested under."
    )
    resolve_imports: bool = Field(
        default=True,
        description="Import entity modules at generation time to check bindings.",
    )
    strict_attributes: bool = Field(
        default=True,
        description="Exact-key attribute parsing; False selects substring matching.",
    )
    generate_main: bool = Field(
        default=True, description="Emit a main.py application entry point."
    )
    generate_docstrings: bool = Field(
        default=True, description="Add docstrings to generated code."
    )
    indent_size: int = Field(default=4, ge=2, le=8, description="Indentation width.")
    host: str = Field(default="0.0.0.0", description="Host the generated app binds.")
    port: int = Field(default=3000, ge=1, le=65535, description="Port the generated app binds.")

    @field_validator("package_name")
    @classmethod
    def _package_is_identifier(cls, v: str) -> str:
        if not v.isidentifier() or keyword.iskeyword(v):
            raise ValueError(f"package_name '{v}' is not a valid Python identifier.")
        return v


# ---------------------------------------------------------------------------
# Schema Definition - top-level container
# ---------------------------------------------------------------------------


class SchemaDefinition(BaseModel):
    """All entities and params types of one generation run."""

    model_config = _SHARED_CONFIG

    entities: List[EntityDescriptor] = Field(
        ..., min_length=1, description="Entities to generate handlers for."
    )
    params: List[PaginationParamsDescriptor] = Field(
        default_factory=list, description="Query-parameter types to generate."
    )
    source_file: Optional[str] = Field(
        default=None, description="Original schema file path."
    )

    @model_validator(mode="after")
    def _validate_unique_names(self) -> "SchemaDefinition":
        for label, names in (
            ("entity", [e.name for e in self.entities]),
            ("params", [p.name for p in self.params]),
        ):
            if len(names) != len(set(names)):
                dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
                raise ValueError(f"Duplicate {label} names: {dupes}")
        return self

    @computed_field  # type: ignore[misc]
    @property
    def entity_count(self) -> int:
        return len(self.entities)

    def __repr__(self) -> str:
        return (
            f"<SchemaDefinition {len(self.entities)} entities, "
            f"{len(self.params)} params types>"
        )


# ---------------------------------------------------------------------------
# Resolution results
# ---------------------------------------------------------------------------

BindingRole = Literal["entity", "new", "params", "context"]


class TypeBinding(BaseModel):
    """A symbol a generated module imports, and where it comes from."""

    model_config = _SHARED_CONFIG

    role: BindingRole
    symbol: str = Field(..., min_length=1)
    module: str = Field(..., min_length=1)
    generated: bool = Field(
        default=False, description="True when the symbol is produced by this run."
    )

    def __repr__(self) -> str:
        return f"<TypeBinding {self.role}: {self.module}.{self.symbol}>"


class ResolvedEntity(BaseModel):
    """An entity whose configuration parsed and whose bindings resolved."""

    model_config = _SHARED_CONFIG

    descriptor: EntityDescriptor
    config: CrudConfig
    entity: TypeBinding
    new: TypeBinding
    params: TypeBinding
    context: TypeBinding

    @computed_field  # type: ignore[misc]
    @property
    def name(self) -> str:
        return self.descriptor.name

    @computed_field  # type: ignore[misc]
    @property
    def module_name(self) -> str:
        return self.descriptor.module_name

    def bindings(self) -> List[TypeBinding]:
        return [self.entity, self.new, self.params, self.context]

    def __repr__(self) -> str:
        return f"<ResolvedEntity {self.name} at {self.config.route_path}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ParamType",
    "PYTHON_TYPE_IMPORTS",
    "REQUIRED_PARAM_FIELDS",
    "UNSIGNED_PARAM_FIELDS",
    "CrudConfig",
    "FieldInfo",
    "PaginationParamsDescriptor",
    "EntityDescriptor",
    "GenerationConfig",
    "SchemaDefinition",
    "BindingRole",
    "TypeBinding",
    "ResolvedEntity",
]

logger.debug("crudgen.models loaded - %d public symbols.", len(__all__))
