"""Project version / license extraction from manifests.

Metadata is supplementary: a manifest that cannot be read yields an empty
ProjectMeta instead of an error.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Callable, Mapping

from .extractors import load_json_object
from .records import ProjectMeta
from .scanning import iter_content_lines, section_header

logger = logging.getLogger(__name__)

MetaExtractor = Callable[[str], ProjectMeta]

_TOML_VERSION = re.compile(r'^version\s*=\s*"([^"]+)"')
_TOML_LICENSE = re.compile(r'^license\s*=\s*"([^"]+)"')
_TOML_LICENSE_TABLE = re.compile(r'^license\s*=\s*\{[^}]*\btext\s*=\s*"([^"]+)"')
_PUBSPEC_VERSION = re.compile(r"^version:\s*(.+)")


def _toml_fields(
    content: str, sections: frozenset[str], patterns: dict[str, tuple[re.Pattern[str], ...]]
) -> dict[str, str]:
    """First match per field, looking only inside the given sections."""
    found: dict[str, str] = {}
    section: str | None = None

    for line in iter_content_lines(content):
        header = section_header(line)
        if header is not None:
            section = header
            continue
        if section not in sections:
            continue
        for field, candidates in patterns.items():
            if field in found:
                continue
            for pattern in candidates:
                match = pattern.match(line)
                if match:
                    found[field] = match.group(1)
                    break

    return found


def _string_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None


def meta_from_package_json(content: str) -> ProjectMeta:
    data = load_json_object(content)
    return ProjectMeta(
        version=_string_or_none(data.get("version")),
        license=_string_or_none(data.get("license")),
    )


def meta_from_composer_json(content: str) -> ProjectMeta:
    data = load_json_object(content)
    license_value = data.get("license")
    # Composer allows a list of alternative licenses
    if isinstance(license_value, list):
        license_value = next((item for item in license_value if isinstance(item, str)), None)
    return ProjectMeta(
        version=_string_or_none(data.get("version")),
        license=_string_or_none(license_value),
    )


def meta_from_cargo_toml(content: str) -> ProjectMeta:
    fields = _toml_fields(
        content,
        frozenset({"package"}),
        {"version": (_TOML_VERSION,), "license": (_TOML_LICENSE,)},
    )
    return ProjectMeta(version=fields.get("version"), license=fields.get("license"))


def meta_from_pyproject_toml(content: str) -> ProjectMeta:
    fields = _toml_fields(
        content,
        frozenset({"project", "tool.poetry"}),
        {
            "version": (_TOML_VERSION,),
            "license": (_TOML_LICENSE, _TOML_LICENSE_TABLE),
        },
    )
    return ProjectMeta(version=fields.get("version"), license=fields.get("license"))


def meta_from_pubspec_yaml(content: str) -> ProjectMeta:
    for raw in content.split("\n"):
        match = _PUBSPEC_VERSION.match(raw)
        if match:
            return ProjectMeta(version=match.group(1).strip() or None)
    return ProjectMeta()


META_EXTRACTORS: Mapping[str, MetaExtractor] = MappingProxyType({
    "package.json": meta_from_package_json,
    "composer.json": meta_from_composer_json,
    "Cargo.toml": meta_from_cargo_toml,
    "pyproject.toml": meta_from_pyproject_toml,
    "pubspec.yaml": meta_from_pubspec_yaml,
})


def extract_project_meta(filename: str, content: str) -> ProjectMeta | None:
    """Return (version, license) for a recognized manifest, or None.

    Never raises: malformed content gives ProjectMeta(None, None).
    """
    extractor = META_EXTRACTORS.get(filename)
    if extractor is None:
        return None
    try:
        return extractor(content)
    except Exception as e:
        logger.debug("Could not read project metadata from %s: %s", filename, e)
        return ProjectMeta()
