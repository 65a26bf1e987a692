# File: crudgen/__init__.py
"""
crudgen - CRUD-to-HTTP Binding Generator
==========================================

Turns a minimal entity description and a compact configuration string
(``path = "/units", new = NewUnit, params = UnitParams``) into a complete
set of FastAPI handlers (create / read / update / delete, including paged
and by-id reads) plus their router, and derives the offset/limit
arithmetic for any query-parameter type exposing ``page`` and ``limit``.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ CrudGenerator │────▶│ TemplateGenerator│
    │   (cli.py)   │     │ (generator.py)│     │  (templates.py)  │
    └──────────────┘     └───────┬───────┘     └──────────────────┘
                                 │
                    ┌────────────┼────────────┐
                    ▼            ▼            ▼
             ┌──────────┐ ┌───────────┐ ┌───────────┐
             │validators│ │attributes │ │ exporters │
             │  (.py)   │ │  (.py)    │ │  (.py)    │
             └──────────┘ └───────────┘ └───────────┘

    Generated modules and ``crud_router`` both run on ``crudgen.runtime``.

Usage::

    # Generation pass
    from crudgen import CrudGenerator
    files = CrudGenerator().render(schema, config)

    # Runtime, no generation pass
    from crudgen import crud_router
    router = crud_router(Unit, 'path = "/units", new = NewUnit, params = UnitParams')

    # From the command line
    python -m crudgen --schema schema.yaml --output ./out -v
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from crudgen.attributes import extract_attr, parse_crud_attributes
from crudgen.errors import (
    ConfigParseError,
    CrudGenError,
    GenerationAborted,
    IdentifierError,
    TypeBindingError,
)
from crudgen.models import (
    CrudConfig,
    EntityDescriptor,
    FieldInfo,
    GenerationConfig,
    PaginationParamsDescriptor,
    ParamType,
    ResolvedEntity,
    SchemaDefinition,
    TypeBinding,
)
from crudgen.validators import (
    TypeScope,
    ValidationResult,
    resolve_entities,
    synthesize_identifier,
    validate_full,
    validate_type_bindings,
)
from crudgen.templates import TemplateGenerator
from crudgen.exporters import ExportManifest, ExportResult, ProjectExporter
from crudgen.generator import CrudGenerator, GenerationReport
from crudgen.runtime.pagination import Paginable, paginable
from crudgen.runtime.router import crud_router

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Core orchestrator
    "CrudGenerator",
    "GenerationReport",
    # Attribute parsing
    "parse_crud_attributes",
    "extract_attr",
    # Errors
    "CrudGenError",
    "ConfigParseError",
    "IdentifierError",
    "TypeBindingError",
    "GenerationAborted",
    # Models
    "CrudConfig",
    "EntityDescriptor",
    "FieldInfo",
    "GenerationConfig",
    "PaginationParamsDescriptor",
    "ParamType",
    "ResolvedEntity",
    "SchemaDefinition",
    "TypeBinding",
    # Validation
    "TypeScope",
    "ValidationResult",
    "resolve_entities",
    "synthesize_identifier",
    "validate_full",
    "validate_type_bindings",
    # Templates
    "TemplateGenerator",
    # Exporters
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    # Runtime
    "Paginable",
    "paginable",
    "crud_router",
]
