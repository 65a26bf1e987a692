# File: crudgen/cli.py
"""
crudgen - Command-Line Interface
==================================

Usage examples::

    # Basic generation
    python -m crudgen --schema schema.yaml --output ./out

    # Verbose output with clean directory
    python -m crudgen -s schema.yaml -o ./out -v --clean

    # Validate bindings only (no file output)
    python -m crudgen -s schema.yaml --validate-only

    # Render in memory and list the files
    python -m crudgen -s schema.yaml --dry-run

Exit codes:
    0 - success
    1 - validation error
    2 - generation error
    3 - export error
    4 - input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, NoReturn, Optional, Sequence

if TYPE_CHECKING:
    from crudgen.generator import GenerationReport

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the crudgen logger.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity < 0:
        level = logging.CRITICAL + 1
    elif verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("crudgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from crudgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="crudgen",
        description=(
            "crudgen - CRUD-to-HTTP binding generator.\n\n"
            "Turns entity descriptions and compact configuration strings "
            "(JSON/YAML) into FastAPI handler modules, routers and "
            "paginable query-parameter models."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml -o ./out\n"
            "  %(prog)s -s schema.yaml -o ./out -v --clean\n"
            "  %(prog)s -s schema.yaml --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"crudgen v{__version__}",
    )

    # --- Required arguments ---
    parser.add_argument(
        "-s", "--schema",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the schema file (JSON or YAML).",
    )

    # --- Output ---
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Directory the generated package is written to. "
            "Required unless --validate-only or --dry-run is set."
        ),
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Parse configuration strings and check bindings, generate nothing.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Render every file but write nothing.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--project-name",
        type=str,
        default=None,
        metavar="NAME",
        help="Override the project name.",
    )
    config_group.add_argument(
        "--package-name",
        type=str,
        default=None,
        metavar="PKG",
        help="Override the generated import package.",
    )
    config_group.add_argument(
        "--api-prefix",
        type=str,
        default=None,
        metavar="PREFIX",
        help="Override API URL prefix (e.g. '/api/v1').",
    )
    config_group.add_argument(
        "--no-import-check",
        action="store_true",
        default=False,
        help="Do not import entity modules; bindings are checked at import time.",
    )
    config_group.add_argument(
        "--legacy-attributes",
        action="store_true",
        default=False,
        help="Parse configuration strings by substring match instead of exact keys.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Clean output directory before generation.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, object] = {}

    if args.project_name is not None:
        overrides["project_name"] = args.project_name

    if args.package_name is not None:
        overrides["package_name"] = args.package_name

    if args.api_prefix is not None:
        overrides["api_prefix"] = args.api_prefix

    if args.no_import_check:
        overrides["resolve_imports"] = False

    if args.legacy_attributes:
        overrides["strict_attributes"] = False

    return overrides


# ---------------------------------------------------------------------------
# Pipeline run
# ---------------------------------------------------------------------------


def _exit_code_for(report: GenerationReport) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.input_errors:
        return EXIT_INPUT_ERROR
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.export_errors:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


def _run(
    schema_path: Path,
    output_dir: Path,
    args: argparse.Namespace,
) -> int:
    """Run the pipeline and return the exit code."""
    from crudgen.generator import CrudGenerator

    config_overrides = _build_config_overrides(args)

    generator: CrudGenerator = CrudGenerator(
        fail_on_warnings=args.fail_on_warnings,
        clean_output=args.clean,
    )

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = generator.generate_from_file(
        schema_path=schema_path,
        output_dir=output_dir,
        config_overrides=config_overrides or None,
        validate_only=args.validate_only,
        dry_run=args.dry_run,
    )

    print(report.summary())
    if args.dry_run and report.generated_files:
        print("  Rendered files:")
        for rel_path in sorted(report.generated_files):
            print(f"    • {rel_path}")

    return _exit_code_for(report)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    schema_path: Path = Path(args.schema).resolve()

    if not schema_path.exists():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not schema_path.is_file():
        logger.error("Schema path is not a file: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.output is None and not (args.validate_only or args.dry_run):
        logger.error(
            "Output directory is required for generation. "
            "Use -o/--output, --validate-only or --dry-run."
        )
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    output_dir: Path = Path(args.output or ".").resolve()

    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", output_dir)
    logger.info("Clean:   %s", args.clean)

    exit_code: int = _run(schema_path, output_dir, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("crudgen completed successfully.")
    else:
        logger.error("crudgen failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("crudgen.cli loaded.")
