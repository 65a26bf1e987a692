"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

No external mocking libraries are used; generated packages are written to
pytest's ``tmp_path`` and imported from there.
"""

from __future__ import annotations

import importlib
import logging
import pathlib
import uuid
from types import ModuleType
from typing import Any, Callable, Dict, Iterator, List

import pytest
import yaml

import sample_entities
from crudgen.exporters import ProjectExporter
from crudgen.generator import CrudGenerator
from crudgen.models import (
    EntityDescriptor,
    GenerationConfig,
    PaginationParamsDescriptor,
    SchemaDefinition,
)

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"

UNIT_CRUD: str = 'path = "/units", new = NewUnit, params = UnitParams'
UNIT_QUERY_CRUD: str = 'path = "/units", new = NewUnit, params = UnitQuery'


# ---------------------------------------------------------------------------
# Global state resets
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_store() -> Iterator[None]:
    sample_entities.reset()
    yield
    sample_entities.reset()


@pytest.fixture(autouse=True)
def restore_crudgen_logger() -> Iterator[None]:
    """Undo the handler/level changes the CLI makes to the crudgen logger."""
    yield
    crudgen_logger: logging.Logger = logging.getLogger("crudgen")
    crudgen_logger.handlers.clear()
    crudgen_logger.setLevel(logging.NOTSET)
    crudgen_logger.propagate = True


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


def unique_package() -> str:
    return f"gen_{uuid.uuid4().hex[:10]}"


@pytest.fixture()
def unit_entity() -> EntityDescriptor:
    return EntityDescriptor(name="Unit", module="sample_entities", crud=UNIT_CRUD)


@pytest.fixture()
def unit_query() -> PaginationParamsDescriptor:
    return PaginationParamsDescriptor.model_validate(
        {
            "name": "UnitQuery",
            "fields": [
                {"name": "id", "type": "int", "description": "Select one unit."},
                {"name": "page", "type": "int"},
                {"name": "limit", "type": "int"},
                {"name": "name", "type": "str"},
            ],
        }
    )


@pytest.fixture()
def unit_schema(unit_entity: EntityDescriptor) -> SchemaDefinition:
    return SchemaDefinition(entities=[unit_entity])


@pytest.fixture()
def generated_params_schema(unit_query: PaginationParamsDescriptor) -> SchemaDefinition:
    return SchemaDefinition(
        entities=[
            EntityDescriptor(name="Unit", module="sample_entities", crud=UNIT_QUERY_CRUD)
        ],
        params=[unit_query],
    )


@pytest.fixture()
def gen_config() -> GenerationConfig:
    return GenerationConfig(package_name=unique_package())


# ---------------------------------------------------------------------------
# Schema file fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def schema_example_path() -> pathlib.Path:
    return SCHEMA_EXAMPLE_PATH


@pytest.fixture()
def unit_schema_dict() -> Dict[str, Any]:
    return {
        "config": {"project_name": "units", "package_name": unique_package()},
        "entities": [
            {"name": "Unit", "module": "sample_entities", "crud": UNIT_CRUD},
        ],
    }


@pytest.fixture()
def write_schema(tmp_path: pathlib.Path) -> Callable[..., pathlib.Path]:
    """Return a helper that dumps a dict to YAML (or JSON) under tmp_path."""

    def _write(data: Any, name: str = "schema.yaml") -> pathlib.Path:
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as fh:
            yaml.safe_dump(data, fh, default_flow_style=False, allow_unicode=True)
        return path

    return _write


# ---------------------------------------------------------------------------
# Generated package import helper
# ---------------------------------------------------------------------------


@pytest.fixture()
def import_generated(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> Callable[[SchemaDefinition, GenerationConfig], Dict[str, ModuleType]]:
    """
    Render, export and import a generated package.

    Returns the imported ``main`` module and each ``crud`` module by name.
    """

    def _import(
        schema: SchemaDefinition, config: GenerationConfig
    ) -> Dict[str, ModuleType]:
        out_dir: pathlib.Path = tmp_path / "out"
        files: Dict[str, str] = CrudGenerator().render(schema, config)
        result = ProjectExporter(config, out_dir).export(files)
        assert result.success, result.errors
        monkeypatch.syspath_prepend(str(out_dir))

        modules: Dict[str, ModuleType] = {}
        names: List[str] = [
            rel[: -len(".py")].replace("/", ".")
            for rel in files
            if rel.endswith(".py") and not rel.endswith("__init__.py")
        ]
        for name in names:
            modules[name] = importlib.import_module(f"{config.package_name}.{name}")
        return modules

    return _import
