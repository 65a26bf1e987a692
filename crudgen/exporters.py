# File: crudgen/exporters.py
"""
crudgen - Project Exporter
===========================

Responsible for:
    1. Writing the generated package under ``<output>/<package_name>/``.
    2. Writing every file atomically (write-to-temp then rename).
    3. Producing ``crudgen_manifest.json`` with checksums at the output root.

If a write fails mid-batch, previously written files remain intact; each
individual file is atomic.  Failures are reported in the ``ExportResult``,
never silently replaced by a non-atomic write.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from crudgen.models import GenerationConfig
from crudgen.utils import Timer, clean_directory, count_lines, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.exporters")

MANIFEST_FILENAME: str = "crudgen_manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Manifest of all exported files, serialisable to JSON."""

    project_name: str = ""
    package_name: str = ""
    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_name": self.project_name,
            "package_name": self.package_name,
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Result returned by ``ProjectExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Writes a generated package to the filesystem.

    Usage::

        exporter = ProjectExporter(config, output_dir=Path("./out"))
        result = exporter.export(generated_files)
        print(result.manifest.to_json())

    Not thread-safe.  Use one exporter per output directory.
    """

    def __init__(
        self,
        config: GenerationConfig,
        output_dir: Path,
        *,
        clean_before_export: bool = False,
        atomic_writes: bool = True,
        generate_manifest: bool = True,
    ) -> None:
        self._config: GenerationConfig = config
        self._output_dir: Path = output_dir.resolve()
        self._clean_before_export: bool = clean_before_export
        self._atomic_writes: bool = atomic_writes
        self._generate_manifest: bool = generate_manifest

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "ProjectExporter initialised: output_dir=%s, atomic=%s.",
            self._output_dir,
            self._atomic_writes,
        )

    @property
    def package_root(self) -> Path:
        return self._output_dir / self._config.package_name

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, generated_files: Dict[str, str]) -> ExportResult:
        """
        Export generated files (package-relative path → content).

        Returns:
            ExportResult with success flag, manifest, and error details.
        """
        with Timer("export") as timer:
            self._pre_export_cleanup()
            self._write_generated_files(generated_files)
            if self._generate_manifest and not self._errors:
                self._write_manifest_file()

        manifest: ExportManifest = self._build_manifest()
        success: bool = len(self._errors) == 0

        result: ExportResult = ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
        )

        if success:
            logger.info(
                "Export completed successfully: %d files, %d bytes, %.3fs.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error(
                "Export completed with %d error(s) in %.3fs.",
                len(self._errors),
                timer.elapsed,
            )

        return result

    # -----------------------------------------------------------------
    # Internal: directory management
    # -----------------------------------------------------------------

    def _pre_export_cleanup(self) -> None:
        if not self._clean_before_export:
            return
        logger.info("Cleaning output directory: %s", self._output_dir)
        try:
            clean_directory(self._output_dir, keep=(".git", ".gitignore", ".gitkeep"))
        except OSError as exc:
            warning_msg: str = f"Could not clean {self._output_dir}: {exc}"
            self._warnings.append(warning_msg)
            logger.warning(warning_msg)

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _write_generated_files(self, generated_files: Dict[str, str]) -> None:
        pkg_root: Path = self.package_root
        package_prefix: str = self._config.package_name

        for rel_path, content in generated_files.items():
            try:
                record: FileRecord = self._write_single_file(
                    pkg_root / rel_path, content, f"{package_prefix}/{rel_path}"
                )
            except OSError as exc:
                error_msg: str = f"Failed to write {rel_path}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg)
                continue
            self._file_records.append(record)

        logger.info(
            "Wrote %d generated files to %s.",
            len(self._file_records),
            pkg_root,
        )

    def _write_single_file(
        self,
        full_path: Path,
        content: str,
        rel_path: str,
    ) -> FileRecord:
        size_bytes: int = write_file(full_path, content, atomic=self._atomic_writes)
        line_count: int = count_lines(content)

        logger.debug(
            "Wrote file: %s (%d bytes, %d lines).",
            rel_path,
            size_bytes,
            line_count,
        )

        return FileRecord(
            relative_path=rel_path,
            size_bytes=size_bytes,
            line_count=line_count,
            sha256=sha256_hex(content),
        )

    # -----------------------------------------------------------------
    # Internal: manifest
    # -----------------------------------------------------------------

    def _build_manifest(self) -> ExportManifest:
        import crudgen

        total_bytes: int = sum(r.size_bytes for r in self._file_records)
        total_lines: int = sum(r.line_count for r in self._file_records)

        return ExportManifest(
            project_name=self._config.project_name,
            package_name=self._config.package_name,
            generator_version=crudgen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            total_files=len(self._file_records),
            total_bytes=total_bytes,
            total_lines=total_lines,
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        """Write the manifest next to the package; failure is only a warning."""
        manifest: ExportManifest = self._build_manifest()
        manifest_path: Path = self._output_dir / MANIFEST_FILENAME

        try:
            record: FileRecord = self._write_single_file(
                manifest_path, manifest.to_json(), MANIFEST_FILENAME
            )
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)
            return
        self._file_records.append(record)
        logger.debug("Wrote manifest to %s.", manifest_path)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MANIFEST_FILENAME",
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
]

logger.debug("crudgen.exporters loaded.")
