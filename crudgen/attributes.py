# File: crudgen/attributes.py
"""
crudgen - Attribute Parser
===========================
Turns the compact configuration string attached to an entity, e.g.::

    path = "/units", new = "NewUnit", params = "UnitParams"

into a ``CrudConfig`` record.  Recognised keys are ``path``, ``new`` and
``params``; absent keys fall back to ``"/"``, ``"NewItem"`` and ``"Params"``.

Two matching modes exist:

* **strict** (default): keys must match exactly.  Unknown keys, duplicate
  keys, empty values and segments without ``=`` raise ``ConfigParseError``.
* **legacy** (``strict=False``): for each key the first comma-separated
  segment *containing* the key name wins, and its value is whatever follows
  the last ``=``.  Unknown keys are ignored.  ``path = "/news"`` therefore
  also answers the ``new`` key in this mode.

Neither mode supports escaping: a value cannot contain a comma.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from crudgen.errors import ConfigParseError
from crudgen.models import CrudConfig

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.attributes")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Configuration key → CrudConfig field
ATTRIBUTE_KEYS: Dict[str, str] = {
    "path": "route_path",
    "new": "new_type_name",
    "params": "params_type_name",
}

_QUOTE_CHARS: str = "\"'()"
_STRICT_TRIM_CHARS: str = " \t\r\n" + _QUOTE_CHARS


def _legacy_trim(value: str) -> str:
    return value.strip().strip(_QUOTE_CHARS)


def _strict_trim(value: str) -> str:
    return value.strip(_STRICT_TRIM_CHARS)


# ---------------------------------------------------------------------------
# Legacy substring matching
# ---------------------------------------------------------------------------


def extract_attr(raw: str, key: str) -> Optional[str]:
    """
    Return the value for *key* using substring matching, or None.

    The first segment that contains *key* anywhere is used; its value is the
    text after the last ``=`` (the whole segment if there is none), trimmed
    of whitespace and then of quotes and parentheses.
    """
    for segment in raw.split(","):
        if key in segment:
            return _legacy_trim(segment.split("=")[-1])
    return None


def _parse_legacy(raw: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for key, field_name in ATTRIBUTE_KEYS.items():
        value: Optional[str] = extract_attr(raw, key)
        if value is not None:
            values[field_name] = value
    return values


# ---------------------------------------------------------------------------
# Strict exact-key matching
# ---------------------------------------------------------------------------


def _unwrap_parentheses(text: str) -> str:
    if text.startswith("(") and text.endswith(")"):
        return text[1:-1].strip()
    return text


def _parse_strict(raw: str) -> Dict[str, str]:
    text: str = _unwrap_parentheses(raw.strip())
    values: Dict[str, str] = {}
    seen: Dict[str, str] = {}

    for segment in text.split(","):
        stripped: str = segment.strip()
        if not stripped:
            continue  # trailing comma or empty input

        if "=" not in stripped:
            raise ConfigParseError(
                f"Expected 'key = value', got {stripped!r}.", segment=stripped
            )

        raw_key, _, raw_value = stripped.partition("=")
        key: str = _strict_trim(raw_key)
        value: str = _strict_trim(raw_value)

        if key not in ATTRIBUTE_KEYS:
            raise ConfigParseError(
                f"Unknown configuration key {key!r} in {stripped!r}. "
                f"Expected one of: {', '.join(ATTRIBUTE_KEYS)}.",
                segment=stripped,
            )
        if key in seen:
            raise ConfigParseError(
                f"Configuration key {key!r} given twice "
                f"({seen[key]!r} and {stripped!r}).",
                segment=stripped,
            )
        if not value:
            raise ConfigParseError(
                f"Configuration key {key!r} has an empty value.", segment=stripped
            )

        seen[key] = stripped
        values[ATTRIBUTE_KEYS[key]] = value

    return values


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def parse_crud_attributes(raw: Optional[str], *, strict: bool = True) -> CrudConfig:
    """
    Parse a configuration string into a ``CrudConfig``.

    Empty or whitespace-only input yields all defaults in both modes.

    Raises:
        ConfigParseError: strict mode only, on malformed input.
    """
    if raw is None or not raw.strip():
        return CrudConfig()

    values: Dict[str, str] = _parse_strict(raw) if strict else _parse_legacy(raw)
    config: CrudConfig = CrudConfig(**values)
    logger.debug(
        "Parsed attributes %r (strict=%s) -> %s", raw, strict, config
    )
    return config


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ATTRIBUTE_KEYS",
    "extract_attr",
    "parse_crud_attributes",
]

logger.debug("crudgen.attributes loaded.")
