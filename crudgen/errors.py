# File: crudgen/errors.py
"""
crudgen - Generation-time exceptions
=====================================
Every failure raised while turning an entity description into handler code
derives from ``CrudGenError``.  Configuration problems are reported as
``ConfigParseError`` (or its ``IdentifierError`` refinement), unresolved or
malformed bound types as ``TypeBindingError``.  ``GenerationAborted`` wraps
the accumulated validation result when a run is refused as a whole.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.errors")


class CrudGenError(Exception):
    """Base class for all generator errors."""


class ConfigParseError(CrudGenError):
    """The configuration string is malformed or uses an unrecognised key."""

    def __init__(self, message: str, *, segment: Optional[str] = None) -> None:
        super().__init__(message)
        self.segment: Optional[str] = segment


class IdentifierError(ConfigParseError):
    """A configuration value cannot be used as a Python identifier."""

    def __init__(self, field: str, value: str, reason: str) -> None:
        super().__init__(
            f"Invalid identifier for '{field}': {value!r} ({reason})."
        )
        self.field: str = field
        self.value: str = value
        self.reason: str = reason


class TypeBindingError(CrudGenError):
    """A bound type does not resolve or does not satisfy its contract."""

    def __init__(self, field: str, symbol: str, message: str) -> None:
        super().__init__(f"Type binding '{field}' -> '{symbol}': {message}")
        self.field: str = field
        self.symbol: str = symbol


class GenerationAborted(CrudGenError):
    """
    Raised when validation refuses a generation run.

    ``result`` is the ``ValidationResult`` that caused the abort.
    """

    def __init__(self, result: Any) -> None:
        self.result: Any = result
        messages: List[str] = [str(err) for err in result.errors]
        super().__init__(
            f"Generation aborted with {len(messages)} error(s): "
            + "; ".join(messages)
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CrudGenError",
    "ConfigParseError",
    "IdentifierError",
    "TypeBindingError",
    "GenerationAborted",
]

logger.debug("crudgen.errors loaded.")
