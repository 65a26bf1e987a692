# File: crudgen/runtime/quadlet.py
"""Podman quadlet unit files, the entity a quadlet management server exposes."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

logger: logging.Logger = logging.getLogger("crudgen.runtime.quadlet")


class QuadletType(str, Enum):
    """Supported quadlet unit kinds."""

    CONTAINER = "container"
    NETWORK = "network"
    VOLUME = "volume"
    KUBE = "kube"
    POD = "pod"
    IMAGE = "image"

    def extension(self) -> str:
        return f".{self.value}"

    @classmethod
    def from_extension(cls, ext: str) -> Optional["QuadletType"]:
        return _BY_EXTENSION.get(ext)

    def as_str(self) -> str:
        return self.value


_BY_EXTENSION: Dict[str, QuadletType] = {kind.extension(): kind for kind in QuadletType}


class Quadlet(BaseModel):
    """A quadlet file: name without extension, kind, body and location."""

    name: str = Field(..., min_length=1)
    kind: QuadletType
    content: str = ""
    path: Path

    def full_name(self) -> str:
        return f"{self.name}{self.kind.extension()}"


__all__: List[str] = ["QuadletType", "Quadlet"]
