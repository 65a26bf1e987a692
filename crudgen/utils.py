# File: crudgen/utils.py
"""
crudgen - Utility Functions & Helpers
======================================
String transformation, file I/O and code-formatting helpers used
throughout the generation pipeline.

- Naming conversions are cached with ``functools.lru_cache`` because the
  same entity names are converted for every generated file.
- File writes go through a temporary file and ``os.replace`` so a crash
  never leaves a half-written module behind.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("UnitParams")
        'unit_params'
        >>> to_snake_case("HTTPHeader")
        'http_header'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


def normalise_route_prefix(path: str) -> str:
    """
    Turn a configured path into an ``include_router`` prefix.

    ``"/"`` and ``""`` become ``""``; anything else gains a leading slash
    and loses its trailing ones.
    """
    stripped: str = path.strip().strip("/")
    return f"/{stripped}" if stripped else ""


# ---------------------------------------------------------------------------
# Code formatting helpers
# ---------------------------------------------------------------------------


def make_docstring(text: str, indent_level: int = 1, size: int = 4) -> str:
    """
    Create a properly formatted Python docstring.

    Single-line docstrings stay on one line; multi-line use triple-quote blocks.
    """
    prefix: str = " " * (indent_level * size)
    stripped: str = text.strip()

    if "\n" not in stripped and len(stripped) + len(prefix) + 6 <= 99:
        return f'{prefix}"""{stripped}"""'

    doc_lines: List[str] = stripped.split("\n")
    parts: List[str] = [f'{prefix}"""']
    parts.extend(f"{prefix}{line}" if line else "" for line in doc_lines)
    parts.append(f'{prefix}"""')
    return "\n".join(parts)


def build_import_block(imports: Dict[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated import block from a mapping of
    module → set of names.  An empty set produces a plain ``import``.

    Example:
        >>> build_import_block({"typing": {"Optional", "Annotated"}, "asyncio": set()})
        'import asyncio\\nfrom typing import Annotated, Optional'
    """
    lines: List[str] = []
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        if names:
            names_str: str = ", ".join(names)
            lines.append(f"from {module} import {names_str}")
        else:
            lines.append(f"import {module}")
    return "\n".join(lines)


def build_import_sections(sections: Sequence[Dict[str, Set[str]]]) -> str:
    """Join several import blocks (stdlib, third-party, local) with blank lines."""
    blocks: List[str] = [build_import_block(s) for s in sections if s]
    return "\n\n".join(blocks)


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file in the same directory
    and renames it over the target.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    byte_count: int = len(encoded)

    if atomic:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, str(path))
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


def clean_directory(path: Path, keep: Iterable[str] = (".git", ".gitignore")) -> None:
    """Remove all contents of a directory without removing the directory itself."""
    if not path.exists():
        return

    kept: Set[str] = set(keep)
    for item in path.iterdir():
        if item.name in kept:
            continue
        if item.is_dir():
            shutil.rmtree(item)
        else:
            item.unlink()

    logger.debug("Cleaned directory: %s", path)


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("render") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "normalise_route_prefix",
    "make_docstring",
    "build_import_block",
    "build_import_sections",
    "ensure_directory",
    "write_file",
    "clean_directory",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("crudgen.utils loaded - %d public symbols.", len(__all__))
