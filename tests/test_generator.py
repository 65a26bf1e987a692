"""
tests/test_generator.py
Integration tests for crudgen.generator and crudgen.exporters.

Tests cover:
    - schema loading from YAML / JSON and the error paths
    - parse_raw_schema layouts
    - render() refusing to produce partial output
    - generate(): export layout, manifest checksums, dry run, validate-only
    - generate_from_file() with config overrides
    - the shipped schema_example.yaml
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable, Dict

import pytest

from crudgen.errors import GenerationAborted
from crudgen.exporters import MANIFEST_FILENAME, ProjectExporter
from crudgen.generator import (
    CrudGenerator,
    GenerationReport,
    load_schema_file,
    parse_raw_schema,
)
from crudgen.models import EntityDescriptor, GenerationConfig, SchemaDefinition
from crudgen.utils import sha256_hex


# ===========================================================================
# Tests for schema loading
# ===========================================================================


class TestLoadSchema:
    """load_schema_file and parse_raw_schema."""

    def test_yaml(
        self, write_schema: Callable[..., pathlib.Path], unit_schema_dict: Dict[str, Any]
    ) -> None:
        raw = load_schema_file(write_schema(unit_schema_dict))
        assert raw["entities"][0]["name"] == "Unit"

    def test_json(self, tmp_path: pathlib.Path, unit_schema_dict: Dict[str, Any]) -> None:
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(unit_schema_dict), encoding="utf-8")
        assert load_schema_file(path) == unit_schema_dict

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_schema_file(tmp_path / "nope.yaml")

    def test_invalid_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_schema_file(path)

    def test_top_level_list(self, write_schema: Callable[..., pathlib.Path]) -> None:
        with pytest.raises(ValueError, match="mapping"):
            load_schema_file(write_schema([1, 2, 3]))

    def test_unknown_extension_parsed_as_yaml(
        self, write_schema: Callable[..., pathlib.Path], unit_schema_dict: Dict[str, Any]
    ) -> None:
        raw = load_schema_file(write_schema(unit_schema_dict, name="schema.crud"))
        assert "entities" in raw

    def test_nested_schema_key(self) -> None:
        schema, config = parse_raw_schema(
            {
                "schema": {"entities": [{"name": "Unit", "module": "sample_entities"}]},
                "config": {"api_prefix": "/api/v2"},
            }
        )
        assert schema.entity_count == 1
        assert config.api_prefix == "/api/v2"

    def test_missing_entities(self) -> None:
        with pytest.raises(ValueError, match="entities"):
            parse_raw_schema({"params": []})

    def test_invalid_config(self) -> None:
        with pytest.raises(ValueError, match="Config validation failed"):
            parse_raw_schema(
                {
                    "entities": [{"name": "Unit", "module": "sample_entities"}],
                    "config": {"package_name": "not-valid"},
                }
            )

    def test_unknown_entity_key(self) -> None:
        with pytest.raises(ValueError, match="Schema validation failed"):
            parse_raw_schema(
                {"entities": [{"name": "Unit", "module": "m", "colour": "red"}]}
            )


# ===========================================================================
# Tests for render()
# ===========================================================================


class TestRender:
    """In-memory rendering."""

    def test_render(self, unit_schema: SchemaDefinition, gen_config: GenerationConfig) -> None:
        files: Dict[str, str] = CrudGenerator().render(unit_schema, gen_config)
        assert "crud/unit.py" in files
        assert "main.py" in files

    def test_any_error_aborts(self, gen_config: GenerationConfig) -> None:
        schema = SchemaDefinition(
            entities=[
                EntityDescriptor(
                    name="Unit",
                    module="sample_entities",
                    crud='path = "/units", new = NewUnit, params = UnitParams',
                ),
                EntityDescriptor(name="Gadget", module="sample_entities"),
            ]
        )
        with pytest.raises(GenerationAborted) as exc_info:
            CrudGenerator().render(schema, gen_config)
        assert exc_info.value.result.has_errors
        assert "Gadget" in str(exc_info.value)

    def test_warnings_abort_when_requested(self, unit_schema: SchemaDefinition) -> None:
        config = GenerationConfig(api_prefix="api")
        assert CrudGenerator().render(unit_schema, config)
        with pytest.raises(GenerationAborted):
            CrudGenerator(fail_on_warnings=True).render(unit_schema, config)


# ===========================================================================
# Tests for the full pipeline
# ===========================================================================


class TestGenerate:
    """generate() and generate_from_file()."""

    def test_export_layout(
        self,
        tmp_path: pathlib.Path,
        unit_schema: SchemaDefinition,
        gen_config: GenerationConfig,
    ) -> None:
        report: GenerationReport = CrudGenerator().generate(unit_schema, gen_config, tmp_path)
        assert report.success, report.summary()
        pkg: pathlib.Path = tmp_path / gen_config.package_name
        for rel in ("__init__.py", "crud/__init__.py", "crud/unit.py", "main.py"):
            assert (pkg / rel).is_file(), f"{rel} not written"
        assert (tmp_path / MANIFEST_FILENAME).is_file()
        assert report.total_entities_processed == 1

    def test_manifest_checksums(
        self,
        tmp_path: pathlib.Path,
        unit_schema: SchemaDefinition,
        gen_config: GenerationConfig,
    ) -> None:
        CrudGenerator().generate(unit_schema, gen_config, tmp_path)
        manifest = json.loads((tmp_path / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert manifest["package_name"] == gen_config.package_name
        assert manifest["total_files"] == 4
        for record in manifest["files"]:
            content = (tmp_path / record["relative_path"]).read_text(encoding="utf-8")
            assert sha256_hex(content) == record["sha256"], record["relative_path"]

    def test_validation_failure_writes_nothing(
        self, tmp_path: pathlib.Path, gen_config: GenerationConfig
    ) -> None:
        schema = SchemaDefinition(
            entities=[EntityDescriptor(name="Unit", module="sample_entities", crud="new = Nope")]
        )
        report = CrudGenerator().generate(schema, gen_config, tmp_path / "out")
        assert not report.success
        assert report.validation_errors
        assert not (tmp_path / "out").exists()

    def test_dry_run(
        self,
        tmp_path: pathlib.Path,
        unit_schema: SchemaDefinition,
        gen_config: GenerationConfig,
    ) -> None:
        report = CrudGenerator().generate(
            unit_schema, gen_config, tmp_path / "out", dry_run=True
        )
        assert report.success
        assert "crud/unit.py" in report.generated_files
        assert report.total_files == len(report.generated_files)
        assert not (tmp_path / "out").exists()

    def test_validate_only(
        self,
        tmp_path: pathlib.Path,
        unit_schema: SchemaDefinition,
        gen_config: GenerationConfig,
    ) -> None:
        report = CrudGenerator().generate(
            unit_schema, gen_config, tmp_path / "out", validate_only=True
        )
        assert report.success
        assert report.generated_files == {}
        assert not (tmp_path / "out").exists()

    def test_clean_output(
        self,
        tmp_path: pathlib.Path,
        unit_schema: SchemaDefinition,
        gen_config: GenerationConfig,
    ) -> None:
        stale: pathlib.Path = tmp_path / "stale.txt"
        stale.write_text("old", encoding="utf-8")
        (tmp_path / ".gitkeep").write_text("", encoding="utf-8")
        CrudGenerator(clean_output=True).generate(unit_schema, gen_config, tmp_path)
        assert not stale.exists()
        assert (tmp_path / ".gitkeep").exists()

    def test_from_file_with_overrides(
        self,
        tmp_path: pathlib.Path,
        write_schema: Callable[..., pathlib.Path],
        unit_schema_dict: Dict[str, Any],
    ) -> None:
        report = CrudGenerator().generate_from_file(
            write_schema(unit_schema_dict),
            tmp_path / "out",
            config_overrides={"package_name": "overridden_api"},
        )
        assert report.success, report.summary()
        assert (tmp_path / "out" / "overridden_api" / "crud" / "unit.py").is_file()

    def test_from_file_input_error(self, tmp_path: pathlib.Path) -> None:
        report = CrudGenerator().generate_from_file(tmp_path / "missing.yaml", tmp_path)
        assert not report.success
        assert report.input_errors
        assert "FAILED" in report.summary()

    def test_schema_example_validates(
        self, tmp_path: pathlib.Path, schema_example_path: pathlib.Path
    ) -> None:
        report = CrudGenerator().generate_from_file(
            schema_example_path, tmp_path, dry_run=True
        )
        assert report.success, report.summary()
        assert any(p.startswith("params/") for p in report.generated_files)


class TestExporter:
    """ProjectExporter on its own."""

    def test_write_failure_is_reported(
        self, tmp_path: pathlib.Path, gen_config: GenerationConfig
    ) -> None:
        # A file where the package directory should be makes every write fail
        (tmp_path / gen_config.package_name).write_text("", encoding="utf-8")
        result = ProjectExporter(gen_config, tmp_path).export({"main.py": "x = 1\n"})
        assert not result.success
        assert result.errors
        assert not (tmp_path / MANIFEST_FILENAME).exists()

    def test_relative_paths_include_package(
        self, tmp_path: pathlib.Path, gen_config: GenerationConfig
    ) -> None:
        result = ProjectExporter(gen_config, tmp_path, generate_manifest=False).export(
            {"main.py": "x = 1\n"}
        )
        assert [r.relative_path for r in result.manifest.files] == [
            f"{gen_config.package_name}/main.py"
        ]
        assert result.manifest.total_lines == 1
