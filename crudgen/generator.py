# File: crudgen/generator.py
"""
crudgen - Master Generation Pipeline (Orchestrator)
=====================================================

Connects every phase together:

    Schema file → Attribute parsing & binding validation → Templates → Export

The ``CrudGenerator`` class provides both a programmatic API and the
backend for the CLI.

Workflow::

    1. Load schema from JSON/YAML file (or accept in-memory objects).
    2. Parse into ``SchemaDefinition`` + ``GenerationConfig`` (models.py).
    3. Parse configuration strings and resolve bindings (validators.py).
    4. Render the params models, handler modules and main.py (templates.py).
    5. Hand off to ``ProjectExporter`` (exporters.py).
    6. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Validation errors are collected and surfaced, not swallowed.
    - Any validation error aborts the run before rendering: generation
      never produces partial output.
    - Export errors are recorded in the report.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from crudgen.errors import GenerationAborted
from crudgen.exporters import ExportManifest, ExportResult, ProjectExporter
from crudgen.models import GenerationConfig, ResolvedEntity, SchemaDefinition
from crudgen.templates import TemplateGenerator
from crudgen.utils import Timer, count_lines
from crudgen.validators import ValidationResult, resolve_entities

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.generator")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``CrudGenerator.generate()``.

    Contains timing information, file counts, validation results,
    and any errors/warnings encountered.
    """

    success: bool = False
    project_name: str = ""
    output_directory: str = ""

    # Metrics
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_entities_processed: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)

    # Rendered files (kept for dry runs) and export manifest
    generated_files: Dict[str, str] = field(default_factory=dict)
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  crudgen - Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:             {status}")
        lines.append(f"  Project:            {self.project_name}")
        lines.append(f"  Output:             {self.output_directory}")
        lines.append(f"  Entities processed: {self.total_entities_processed}")
        lines.append(f"  Files generated:    {self.total_files}")
        lines.append(f"  Total lines:        {self.total_lines:,}")
        lines.append(f"  Total bytes:        {self.total_bytes:,}")
        lines.append(f"  Total time:         {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        for title, items, mark in (
            ("Input Errors", self.input_errors, "✗"),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
        ):
            if items:
                lines.append(f"{'─'*60}")
                lines.append(f"  {title} ({len(items)}):")
                for item in items:
                    lines.append(f"    {mark} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Schema loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema file (JSON or YAML), dispatching on the extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    # YAML is a superset of JSON
    logger.info("Unknown extension '%s', parsing as YAML.", suffix)
    return _load_yaml_file(path)


def parse_raw_schema(
    raw: Dict[str, Any],
    source_file: Optional[str] = None,
) -> Tuple[SchemaDefinition, GenerationConfig]:
    """
    Parse a raw dictionary (from JSON/YAML) into validated models.

    Expected top-level keys:
        - "entities" (required) and "params", either at top level or under
          "schema"
        - "config": the generation settings (optional)

    Raises:
        ValueError: If required keys are missing or validation fails.
    """
    schema_data: Any = raw.get("schema", raw)
    if not isinstance(schema_data, dict) or "entities" not in schema_data:
        raise ValueError(
            "Cannot find entity definitions in input. "
            "Expected a top-level 'entities' list (or 'schema.entities')."
        )

    config_data: Any = raw.get("config")
    if config_data is None:
        logger.info("No generation config found in input, using defaults.")
        config_data = {}

    try:
        schema: SchemaDefinition = SchemaDefinition.model_validate(
            {
                "entities": schema_data.get("entities"),
                "params": schema_data.get("params") or [],
                "source_file": source_file,
            }
        )
    except PydanticValidationError as exc:
        raise ValueError(f"Schema validation failed: {exc}") from exc

    try:
        config: GenerationConfig = GenerationConfig.model_validate(config_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc

    return schema, config


# ---------------------------------------------------------------------------
# CrudGenerator - Master orchestrator
# ---------------------------------------------------------------------------


class CrudGenerator:
    """
    Pipeline orchestrator.

    Usage::

        generator = CrudGenerator()

        # From a file
        report = generator.generate_from_file(
            schema_path=Path("schema.yaml"),
            output_dir=Path("./output"),
        )

        # From in-memory objects
        files = generator.render(schema_def, gen_config)

    The generator is reusable: create once, call generate() many times.
    """

    def __init__(
        self,
        *,
        fail_on_warnings: bool = False,
        clean_output: bool = False,
    ) -> None:
        """
        Args:
            fail_on_warnings: Treat validation warnings as errors.
            clean_output: Wipe the output directory before writing.
        """
        self._fail_on_warnings: bool = fail_on_warnings
        self._clean_output: bool = clean_output

        logger.debug(
            "CrudGenerator initialised: fail_on_warnings=%s, clean=%s.",
            fail_on_warnings,
            clean_output,
        )

    # -----------------------------------------------------------------
    # Public: render in memory
    # -----------------------------------------------------------------

    def render(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
    ) -> Dict[str, str]:
        """
        Validate and render without touching the filesystem.

        Returns:
            Mapping of package-relative path → file content.

        Raises:
            GenerationAborted: if validation reports errors (or warnings,
                with ``fail_on_warnings``).
        """
        resolved, result = resolve_entities(schema, config)
        if self._rejects(result):
            raise GenerationAborted(result)
        return TemplateGenerator(config).generate_all(schema, resolved)

    # -----------------------------------------------------------------
    # Public: generate from file
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        schema_path: Path,
        output_dir: Path,
        *,
        config_overrides: Optional[Dict[str, Any]] = None,
        validate_only: bool = False,
        dry_run: bool = False,
    ) -> GenerationReport:
        """
        Full pipeline: load file → validate → generate → export.

        Args:
            schema_path: Path to JSON/YAML schema file.
            output_dir: Directory the package and manifest are written to.
            config_overrides: Values replacing the file's ``config`` entries.
            validate_only: Stop after validation.
            dry_run: Render but do not write anything.
        """
        report: GenerationReport = GenerationReport()
        report.output_directory = str(output_dir.resolve())

        # Step 1: Load file
        with Timer("load_schema") as t_load:
            try:
                raw_data: Dict[str, Any] = load_schema_file(schema_path)
            except (FileNotFoundError, ValueError) as exc:
                raw_data = {}
                load_error: Optional[str] = str(exc)
            else:
                load_error = None

        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Schema File",
            success=load_error is None,
            elapsed_seconds=t_load.elapsed,
            detail=load_error or f"from {schema_path.name}",
        ))
        if load_error is not None:
            logger.error("Could not load %s: %s", schema_path, load_error)
            report.input_errors.append(load_error)
            return self._finalise_report(report, t_load.elapsed)

        logger.info(
            "Loaded schema file: %s (%d top-level keys).",
            schema_path,
            len(raw_data),
        )

        # Step 2: Parse raw data
        with Timer("parse_schema") as t_parse:
            if config_overrides:
                config_section: Any = raw_data.get("config")
                if not isinstance(config_section, dict):
                    config_section = {}
                raw_data["config"] = {**config_section, **config_overrides}
            try:
                schema, config = parse_raw_schema(raw_data, str(schema_path))
            except ValueError as exc:
                parse_error: Optional[str] = str(exc)
            else:
                parse_error = None

        report.step_metrics.append(GenerationStepMetric(
            step_name="Parse Schema",
            success=parse_error is None,
            elapsed_seconds=t_parse.elapsed,
            detail=parse_error or "schema and config parsed",
        ))
        if parse_error is not None:
            logger.error("Could not parse %s: %s", schema_path, parse_error)
            report.input_errors.append(parse_error)
            return self._finalise_report(report, t_load.elapsed + t_parse.elapsed)

        report.project_name = config.project_name
        logger.info(
            "Parsed schema: %d entities, %d params types, project %s.",
            len(schema.entities),
            len(schema.params),
            config.project_name,
        )

        return self._run_pipeline(
            schema,
            config,
            output_dir,
            report,
            validate_only=validate_only,
            dry_run=dry_run,
        )

    # -----------------------------------------------------------------
    # Public: generate from in-memory objects
    # -----------------------------------------------------------------

    def generate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        output_dir: Path,
        *,
        validate_only: bool = False,
        dry_run: bool = False,
    ) -> GenerationReport:
        """Full pipeline from pre-parsed schema and config objects."""
        report: GenerationReport = GenerationReport()
        report.project_name = config.project_name
        report.output_directory = str(output_dir.resolve())

        return self._run_pipeline(
            schema,
            config,
            output_dir,
            report,
            validate_only=validate_only,
            dry_run=dry_run,
        )

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        output_dir: Path,
        report: GenerationReport,
        *,
        validate_only: bool,
        dry_run: bool,
    ) -> GenerationReport:
        pipeline_start: float = time.perf_counter()

        resolved: Optional[List[ResolvedEntity]] = self._step_validate(
            schema, config, report
        )
        if resolved is None or validate_only:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        generated_files: Dict[str, str] = self._step_generate(
            schema, config, resolved, report
        )
        if report.generation_errors:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        if dry_run:
            report.generated_files = generated_files
            report.total_files = len(generated_files)
            report.total_lines = sum(count_lines(c) for c in generated_files.values())
            report.total_bytes = sum(
                len(c.encode("utf-8")) for c in generated_files.values()
            )
            logger.info("Dry run: %d files rendered, nothing written.", len(generated_files))
        else:
            self._step_export(generated_files, config, output_dir, report)

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    def _rejects(self, result: ValidationResult) -> bool:
        return result.has_errors or (self._fail_on_warnings and result.has_warnings)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> Optional[List[ResolvedEntity]]:
        """
        Parse configuration strings and resolve bindings.

        Returns the resolved entities, or None when generation must not run.
        """
        with Timer("validation") as t:
            resolved, result = resolve_entities(schema, config)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        rejected: bool = self._rejects(result)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Bindings",
            success=not rejected,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        for err in result.errors:
            logger.error("  ✗ %s", err)
        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)

        if rejected:
            if not result.has_errors:
                report.validation_errors.append(
                    f"{result.warning_count} warning(s) treated as errors."
                )
            logger.error("Validation rejected the schema in %.3fs.", t.elapsed)
            return None

        logger.info(
            "Validation passed: %d entities resolved in %.3fs.",
            len(resolved),
            t.elapsed,
        )
        return resolved

    # -----------------------------------------------------------------
    # Pipeline step: Code generation
    # -----------------------------------------------------------------

    def _step_generate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        resolved: List[ResolvedEntity],
        report: GenerationReport,
    ) -> Dict[str, str]:
        generated_files: Dict[str, str] = {}

        with Timer("code_generation") as t:
            try:
                generated_files = TemplateGenerator(config).generate_all(
                    schema, resolved
                )
            except (KeyError, ValueError, TypeError) as exc:
                error_msg: str = f"Fatal generation error: {type(exc).__name__}: {exc}"
                report.generation_errors.append(error_msg)
                logger.error(error_msg, exc_info=True)

        report.total_entities_processed = len(resolved)
        detail_str: str = (
            f"{len(generated_files)} files, {len(resolved)} entities, "
            f"{len(schema.params)} params types"
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Code Generation",
            success=not report.generation_errors,
            elapsed_seconds=t.elapsed,
            detail=detail_str,
        ))
        logger.info("Code generation complete: %s in %.3fs.", detail_str, t.elapsed)
        return generated_files

    # -----------------------------------------------------------------
    # Pipeline step: Export
    # -----------------------------------------------------------------

    def _step_export(
        self,
        generated_files: Dict[str, str],
        config: GenerationConfig,
        output_dir: Path,
        report: GenerationReport,
    ) -> None:
        with Timer("export") as t:
            exporter: ProjectExporter = ProjectExporter(
                config=config,
                output_dir=output_dir,
                clean_before_export=self._clean_output,
                atomic_writes=True,
                generate_manifest=True,
            )
            export_result: ExportResult = exporter.export(generated_files)

        report.total_files = export_result.manifest.total_files
        report.total_bytes = export_result.manifest.total_bytes
        report.total_lines = export_result.manifest.total_lines
        report.export_errors.extend(export_result.errors)
        report.manifest = export_result.manifest

        report.step_metrics.append(GenerationStepMetric(
            step_name="Export to Filesystem",
            success=export_result.success,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{export_result.manifest.total_files} files, "
                f"{export_result.manifest.total_bytes:,} bytes"
            ),
        ))

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(
        self,
        report: GenerationReport,
        total_elapsed: float,
    ) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = not (
            report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.export_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CrudGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_schema_file",
    "parse_raw_schema",
]

logger.debug("crudgen.generator loaded.")
