"""Manifest filename -> extractor registry."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from .extractors import (
    CargoTomlExtractor,
    ComposerJsonExtractor,
    Extractor,
    GemfileExtractor,
    GoModExtractor,
    GradleExtractor,
    PackageJsonExtractor,
    PackageSwiftExtractor,
    PipfileExtractor,
    PomXmlExtractor,
    PubspecYamlExtractor,
    PyprojectTomlExtractor,
    RequirementsTxtExtractor,
)
from .records import ExtractedDependency, ParseError

logger = logging.getLogger(__name__)

_gradle = GradleExtractor()

# Exact basenames only; built once at import and never mutated.
EXTRACTORS: Mapping[str, Extractor] = MappingProxyType({
    "package.json": PackageJsonExtractor(),
    "requirements.txt": RequirementsTxtExtractor(),
    "composer.json": ComposerJsonExtractor(),
    "Gemfile": GemfileExtractor(),
    "go.mod": GoModExtractor(),
    "Cargo.toml": CargoTomlExtractor(),
    "pom.xml": PomXmlExtractor(),
    "build.gradle": _gradle,
    "build.gradle.kts": _gradle,
    "pubspec.yaml": PubspecYamlExtractor(),
    "Pipfile": PipfileExtractor(),
    "pyproject.toml": PyprojectTomlExtractor(),
    "Package.swift": PackageSwiftExtractor(),
})


def get_extractor(filename: str) -> Extractor | None:
    """Return the extractor registered for a manifest basename, if any."""
    return EXTRACTORS.get(filename)


def supported_manifests() -> list[str]:
    return list(EXTRACTORS)


def extract_dependencies_from_file(filename: str, content: str) -> list[ExtractedDependency]:
    """Extract dependency records from one manifest.

    Unrecognized filenames yield an empty list. A ParseError raised by a
    structured-format extractor propagates, tagged with the filename.
    """
    extractor = get_extractor(filename)
    if extractor is None:
        logger.debug("No extractor registered for %s", filename)
        return []

    try:
        dependencies = extractor.extract(content)
    except ParseError as e:
        if e.filename is None:
            e.filename = filename
        raise

    logger.debug("Extracted %d dependencies from %s", len(dependencies), filename)
    return dependencies
