"""Normalized records produced by manifest extraction."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class DependencyType(str, Enum):
    """When or why a dependency is needed."""

    PRODUCTION = "production"
    DEV = "dev"
    PEER = "peer"
    OPTIONAL = "optional"


class ParseError(ValueError):
    """Manifest content is not valid for the structured format it claims."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(message)
        self.filename = filename

    def __str__(self) -> str:
        message = super().__str__()
        if self.filename:
            return f"{self.filename}: {message}"
        return message


@dataclass(frozen=True)
class ExtractedDependency:
    """A single declared dependency."""

    name: str
    version: str | None = None
    type: DependencyType = DependencyType.PRODUCTION

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.version is not None:
            data["version"] = self.version
        data["type"] = self.type.value
        return data


@dataclass(frozen=True)
class ProjectMeta:
    """Version and license declared by a project manifest."""

    version: str | None = None
    license: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.version is None and self.license is None

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "license": self.license}
