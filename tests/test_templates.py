"""
tests/test_templates.py
Unit tests for crudgen.templates.TemplateGenerator.

Every generated source string is parsed with ``ast`` to prove it is
syntactically valid Python; structure is then checked on the tree.

Tests cover:
    - params model: optional fields, unsigned page/limit, capability check
    - generated pagination helpers executed on an imported model
    - handler module: binding block, router(), the four handlers
    - docstring and indentation settings
    - main.py and package layout from generate_all
"""

from __future__ import annotations

import ast
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Set

import pytest
from pydantic import ValidationError

from crudgen.models import (
    GenerationConfig,
    PaginationParamsDescriptor,
    ResolvedEntity,
    SchemaDefinition,
)
from crudgen.runtime.pagination import Paginable, offset_sql
from crudgen.templates import TemplateGenerator
from crudgen.validators import resolve_entities


def _resolve(schema: SchemaDefinition, config: GenerationConfig) -> List[ResolvedEntity]:
    resolved, result = resolve_entities(schema, config)
    assert result.is_valid, result.format_report()
    return resolved


def _top_level_functions(source: str) -> Set[str]:
    tree: ast.Module = ast.parse(source)
    return {
        node.name
        for node in tree.body
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
    }


def _async_functions(source: str) -> Dict[str, ast.AsyncFunctionDef]:
    tree: ast.Module = ast.parse(source)
    return {n.name: n for n in tree.body if isinstance(n, ast.AsyncFunctionDef)}


# ===========================================================================
# Tests for params models
# ===========================================================================


class TestParamsModel:
    """generate_params_model."""

    def test_valid_python(
        self, gen_config: GenerationConfig, unit_query: PaginationParamsDescriptor
    ) -> None:
        source: str = TemplateGenerator(gen_config).generate_params_model(unit_query)
        tree: ast.Module = ast.parse(source)
        classes = [n for n in tree.body if isinstance(n, ast.ClassDef)]
        assert [c.name for c in classes] == ["UnitQuery"]
        methods = {n.name for n in classes[0].body if isinstance(n, ast.FunctionDef)}
        assert methods == {"limit_sql", "offset_sql", "is_paged"}

    def test_fields_are_optional(
        self, gen_config: GenerationConfig, unit_query: PaginationParamsDescriptor
    ) -> None:
        source: str = TemplateGenerator(gen_config).generate_params_model(unit_query)
        assert "id: Optional[int] = Field(default=None, description='Select one unit.')" in source
        assert "name: Optional[str] = Field(default=None)" in source

    def test_capability_check(
        self, gen_config: GenerationConfig, unit_query: PaginationParamsDescriptor
    ) -> None:
        source: str = TemplateGenerator(gen_config).generate_params_model(unit_query)
        assert "from crudgen.runtime.pagination import Paginable" in source
        assert "if not isinstance(UnitQuery(), Paginable):" in source

    def test_page_and_limit_unsigned(
        self, gen_config: GenerationConfig, unit_query: PaginationParamsDescriptor
    ) -> None:
        source: str = TemplateGenerator(gen_config).generate_params_model(unit_query)
        assert "page: Optional[int] = Field(default=None, ge=0)" in source
        assert "limit: Optional[int] = Field(default=None, ge=0)" in source
        assert "id: Optional[int] = Field(default=None, description=" in source

    def test_extra_type_imports(self, gen_config: GenerationConfig) -> None:
        params = PaginationParamsDescriptor.model_validate(
            {
                "name": "EventQuery",
                "fields": [
                    {"name": "id", "type": "uuid"},
                    {"name": "page", "type": "int"},
                    {"name": "limit", "type": "int"},
                    {"name": "since", "type": "datetime"},
                    {"name": "day", "type": "date"},
                ],
            }
        )
        source: str = TemplateGenerator(gen_config).generate_params_model(params)
        ast.parse(source)
        assert "from uuid import UUID" in source
        assert "from datetime import date, datetime" in source
        assert "id: Optional[UUID]" in source


class TestGeneratedParamsBehaviour:
    """The pagination helpers of an imported generated params model."""

    @pytest.fixture()
    def unit_query_cls(
        self,
        generated_params_schema: SchemaDefinition,
        gen_config: GenerationConfig,
        import_generated: Callable[..., Dict[str, ModuleType]],
    ) -> Any:
        modules = import_generated(generated_params_schema, gen_config)
        return modules["params.unit_query"].UnitQuery

    @pytest.mark.parametrize(
        "page,limit,expected",
        [
            (None, None, 0),
            (1, None, 0),
            (3, None, 20),
            (3, 5, 10),
            (None, 5, 0),
            (0, 5, 0),
        ],
    )
    def test_offset(
        self, unit_query_cls: Any, page: Optional[int], limit: Optional[int], expected: int
    ) -> None:
        params = unit_query_cls(page=page, limit=limit)
        assert params.offset_sql(1, 10) == expected
        assert offset_sql(params, 1, 10) == expected, "Generated and runtime forms disagree"

    def test_limit(self, unit_query_cls: Any) -> None:
        assert unit_query_cls().limit_sql(20) == 20
        assert unit_query_cls(limit=3).limit_sql(20) == 3
        assert unit_query_cls(limit=0).limit_sql(20) == 0

    @pytest.mark.parametrize(
        "page,limit,expected",
        [(None, None, False), (1, None, True), (None, 3, True), (0, 0, True)],
    )
    def test_is_paged(
        self, unit_query_cls: Any, page: Optional[int], limit: Optional[int], expected: bool
    ) -> None:
        assert unit_query_cls(page=page, limit=limit).is_paged() is expected

    def test_is_paginable(self, unit_query_cls: Any) -> None:
        assert isinstance(unit_query_cls(id=4), Paginable)
        assert not unit_query_cls(id=4).is_paged()

    @pytest.mark.parametrize("field", ["page", "limit"])
    def test_negative_values_rejected(self, unit_query_cls: Any, field: str) -> None:
        with pytest.raises(ValidationError):
            unit_query_cls(**{field: -1})


# ===========================================================================
# Tests for handler modules
# ===========================================================================


class TestCrudModule:
    """generate_crud_module."""

    def test_structure(
        self, unit_schema: SchemaDefinition, gen_config: GenerationConfig
    ) -> None:
        resolved = _resolve(unit_schema, gen_config)[0]
        source: str = TemplateGenerator(gen_config).generate_crud_module(resolved)
        assert _top_level_functions(source) == {
            "router",
            "create",
            "update",
            "read",
            "delete",
        }
        assert set(_async_functions(source)) == {"create", "update", "read", "delete"}

    def test_imports_and_binding_block(
        self, unit_schema: SchemaDefinition, gen_config: GenerationConfig
    ) -> None:
        resolved = _resolve(unit_schema, gen_config)[0]
        source: str = TemplateGenerator(gen_config).generate_crud_module(resolved)
        assert "from sample_entities import NewUnit, Unit, UnitParams" in source
        assert "from crudgen.runtime.state import AppState, get_app_state" in source
        for line in (
            "_ValidateEntity: type = Unit",
            "_ValidateNew: type = NewUnit",
            "_ValidateParams: type = UnitParams",
            "_ValidateState: type = AppState",
            "ENTITY_NAME = 'Unit'",
            "ROUTE_PATH = '/units'",
        ):
            assert line in source, f"Missing line: {line}"

    def test_no_postponed_annotations(
        self, unit_schema: SchemaDefinition, gen_config: GenerationConfig
    ) -> None:
        resolved = _resolve(unit_schema, gen_config)[0]
        source: str = TemplateGenerator(gen_config).generate_crud_module(resolved)
        assert "from __future__" not in source

    def test_route_table(
        self, unit_schema: SchemaDefinition, gen_config: GenerationConfig
    ) -> None:
        resolved = _resolve(unit_schema, gen_config)[0]
        source: str = TemplateGenerator(gen_config).generate_crud_module(resolved)
        assert 'add_api_route("/", create, methods=["POST"], status_code=201)' in source
        assert 'add_api_route("/", update, methods=["PATCH"], status_code=200)' in source
        assert 'add_api_route("/", read, methods=["GET"], status_code=200)' in source
        assert 'add_api_route("/", delete, methods=["DELETE"], status_code=200)' in source

    def test_generated_params_import(
        self, generated_params_schema: SchemaDefinition, gen_config: GenerationConfig
    ) -> None:
        resolved = _resolve(generated_params_schema, gen_config)[0]
        source: str = TemplateGenerator(gen_config).generate_crud_module(resolved)
        assert f"from {gen_config.package_name}.params.unit_query import UnitQuery" in source
        assert "from sample_entities import NewUnit, Unit" in source

    def test_handlers_without_docstrings(self, unit_schema: SchemaDefinition) -> None:
        config = GenerationConfig(generate_docstrings=False)
        resolved = _resolve(unit_schema, config)[0]
        source: str = TemplateGenerator(config).generate_crud_module(resolved)
        for name, node in _async_functions(source).items():
            assert ast.get_docstring(node) is None, f"{name} has a docstring"

    @pytest.mark.parametrize("indent", [2, 8])
    def test_indent_size(self, unit_schema: SchemaDefinition, indent: int) -> None:
        config = GenerationConfig(indent_size=indent)
        resolved = _resolve(unit_schema, config)[0]
        source: str = TemplateGenerator(config).generate_crud_module(resolved)
        ast.parse(source)
        assert f"\n{' ' * indent}api_router = APIRouter(tags=[ENTITY_NAME])" in source


# ===========================================================================
# Tests for main.py and generate_all
# ===========================================================================


class TestPackageLayout:
    """generate_main_app and generate_all."""

    def test_main(self, unit_schema: SchemaDefinition) -> None:
        config = GenerationConfig(package_name="units_api", port=8080, api_prefix="/api")
        resolved = _resolve(unit_schema, config)
        source: str = TemplateGenerator(config).generate_main_app(resolved)
        assert _top_level_functions(source) == {"routers", "build_app"}
        assert "from units_api.crud import unit as unit_crud" in source
        assert "API_PREFIX = '/api'" in source
        assert "PORT = 8080" in source
        assert "uvicorn.run(build_app(), host=HOST, port=PORT)" in source

    def test_generate_all_layout(
        self, generated_params_schema: SchemaDefinition, gen_config: GenerationConfig
    ) -> None:
        resolved = _resolve(generated_params_schema, gen_config)
        files: Dict[str, str] = TemplateGenerator(gen_config).generate_all(
            generated_params_schema, resolved
        )
        assert sorted(files) == [
            "__init__.py",
            "crud/__init__.py",
            "crud/unit.py",
            "main.py",
            "params/__init__.py",
            "params/unit_query.py",
        ]
        assert "from .unit_query import UnitQuery" in files["params/__init__.py"]
        for rel_path, content in files.items():
            ast.parse(content, filename=rel_path)

    def test_without_params_or_main(self, unit_schema: SchemaDefinition) -> None:
        config = GenerationConfig(generate_main=False)
        resolved = _resolve(unit_schema, config)
        files: Dict[str, str] = TemplateGenerator(config).generate_all(unit_schema, resolved)
        assert sorted(files) == ["__init__.py", "crud/__init__.py", "crud/unit.py"]
