"""Repository analysis - language, package manager, structure, dependencies.

Works on a flat listing of RepoFile entries, whether it came from a local
directory walk or a remote repository listing. Manifest parsing is
delegated to the extractor registry.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from .config import DEFAULT_MAX_FILE_BYTES
from .metadata import META_EXTRACTORS, extract_project_meta
from .records import DependencyType, ExtractedDependency, ParseError, ProjectMeta
from .registry import extract_dependencies_from_file

logger = logging.getLogger(__name__)


@dataclass
class RepoFile:
    """One entry of a repository listing."""

    name: str
    type: str  # "file" or "dir"
    path: str
    content: str | None = None

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepoFile:
        return cls(
            name=data["name"],
            type=data["type"],
            path=data["path"],
            content=data.get("content"),
        )


@dataclass
class DependencyFile:
    """Dependencies declared by one manifest in the listing."""

    file: str
    path: str
    packages: list[ExtractedDependency] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "path": self.path,
            "packages": [p.to_dict() for p in self.packages],
        }


@dataclass
class Structure:
    directories: list[str] = field(default_factory=list)
    key_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"directories": self.directories, "keyFiles": self.key_files}


@dataclass
class AnalysisResult:
    """Complete analysis of a repository listing."""

    language: str
    package_manager: str | None
    dependencies: list[DependencyFile] = field(default_factory=list)
    structure: Structure = field(default_factory=Structure)
    version: str | None = None
    license: str | None = None

    def packages_of_type(self, dep_type: DependencyType) -> list[ExtractedDependency]:
        """All packages of one type, across manifests, in listing order."""
        return [p for d in self.dependencies for p in d.packages if p.type is dep_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "packageManager": self.package_manager,
            "dependencies": [d.to_dict() for d in self.dependencies],
            "structure": self.structure.to_dict(),
            "version": self.version,
            "license": self.license,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisResult:
        """Rebuild a result from its to_dict() form (already validated)."""
        dependencies = [
            DependencyFile(
                file=d["file"],
                path=d["path"],
                packages=[
                    ExtractedDependency(
                        name=p["name"],
                        version=p.get("version"),
                        type=DependencyType(p["type"]),
                    )
                    for p in d.get("packages", [])
                ],
            )
            for d in data.get("dependencies", [])
        ]
        structure = data.get("structure") or {}
        return cls(
            language=data["language"],
            package_manager=data.get("packageManager"),
            dependencies=dependencies,
            structure=Structure(
                directories=list(structure.get("directories", [])),
                key_files=list(structure.get("keyFiles", [])),
            ),
            version=data.get("version"),
            license=data.get("license"),
        )


# --- Lookup tables ---

IGNORE_DIRS = {
    ".git", "node_modules", "__pycache__", ".venv", "venv", "env",
    ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache",
    "target", "build", "dist", ".next", ".nuxt", ".output",
    "vendor", "Pods", ".build", ".swiftpm", "DerivedData",
    "coverage", ".coverage", "htmlcov", ".nyc_output",
    ".idea", ".vscode", ".vs", ".gradle", ".settings",
}

# Extension -> Language mapping
EXT_LANG = {
    ".ts": "TypeScript", ".tsx": "TypeScript",
    ".js": "JavaScript", ".jsx": "JavaScript",
    ".py": "Python",
    ".java": "Java",
    ".go": "Go",
    ".rb": "Ruby",
    ".php": "PHP",
    ".rs": "Rust",
    ".cs": "C#",
    ".cpp": "C++", ".cc": "C++",
    ".c": "C",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".scala": "Scala",
    ".dart": "Dart",
    ".vue": "Vue",
    ".svelte": "Svelte",
}

# Manifest / lock file -> package manager
DEPENDENCY_FILES = {
    "package.json": "npm",
    "yarn.lock": "yarn",
    "pnpm-lock.yaml": "pnpm",
    "requirements.txt": "pip",
    "Pipfile": "pip",
    "pyproject.toml": "pip",
    "composer.json": "composer",
    "Gemfile": "bundler",
    "go.mod": "go modules",
    "Cargo.toml": "cargo",
    "pom.xml": "maven",
    "build.gradle": "gradle",
    "build.gradle.kts": "gradle",
    "pubspec.yaml": "pub",
    "Package.swift": "swift package manager",
}

# Lock files name the package manager more precisely than manifests
LOCK_FILE_PRIORITY = ("yarn.lock", "pnpm-lock.yaml")

KEY_DIRECTORIES = {
    "src", "lib", "app", "components", "api", "test", "tests", "spec",
    "docs", "public", "static", "config", "utils", "helpers", "scripts",
    "assets", "styles", "pages", "routes", "middleware", "models", "views",
    "controllers", "services",
}

KEY_FILES = {
    "README.md", "README", "LICENSE", "LICENSE.md", ".gitignore",
    "Dockerfile", "docker-compose.yml", "docker-compose.yaml", "Makefile",
    ".env.example", "tsconfig.json", ".eslintrc.js", ".prettierrc",
}


# --- Detection ---


def analyze(files: Iterable[RepoFile]) -> AnalysisResult:
    """Run the full analysis on a repository listing."""
    files = list(files)
    dependencies = detect_dependencies(files)
    meta = detect_project_meta(files)

    return AnalysisResult(
        language=detect_language(files),
        package_manager=detect_package_manager(dependencies),
        dependencies=dependencies,
        structure=detect_structure(files),
        version=meta.version,
        license=meta.license,
    )


def detect_language(files: Iterable[RepoFile]) -> str:
    """Most common language by file extension, or "Unknown"."""
    counts: Counter = Counter()
    for f in files:
        if not f.is_file:
            continue
        ext = os.path.splitext(f.name)[1].lower()
        lang = EXT_LANG.get(ext)
        if lang:
            counts[lang] += 1

    dominant = "Unknown"
    best = 0
    # first language to reach the highest count wins ties
    for lang, count in counts.items():
        if count > best:
            dominant, best = lang, count
    return dominant


def detect_dependencies(files: Iterable[RepoFile]) -> list[DependencyFile]:
    """One DependencyFile per manifest or lock file, in listing order."""
    found: list[DependencyFile] = []
    for f in files:
        if not f.is_file or f.name not in DEPENDENCY_FILES:
            continue
        packages = _extract_packages(f) if f.content else []
        found.append(DependencyFile(file=f.name, path=f.path, packages=packages))
    return found


def _extract_packages(f: RepoFile) -> list[ExtractedDependency]:
    try:
        return extract_dependencies_from_file(f.name, f.content or "")
    except ParseError as e:
        logger.warning("Skipping unparseable manifest %s: %s", f.path, e)
        return []


def detect_package_manager(dependencies: list[DependencyFile]) -> str | None:
    for lock_file in LOCK_FILE_PRIORITY:
        if any(d.file == lock_file for d in dependencies):
            return DEPENDENCY_FILES[lock_file]
    if dependencies:
        return DEPENDENCY_FILES.get(dependencies[0].file)
    return None


def detect_structure(files: Iterable[RepoFile]) -> Structure:
    """Well-known top-level directories and files."""
    structure = Structure()
    for f in files:
        if "/" in f.path.strip("/"):
            continue
        if f.type == "dir" and f.name in KEY_DIRECTORIES:
            structure.directories.append(f.path)
        elif f.is_file and f.name in KEY_FILES:
            structure.key_files.append(f.path)
    return structure


def detect_project_meta(files: Iterable[RepoFile]) -> ProjectMeta:
    """Version and license from the first manifest that declares either."""
    for f in files:
        if not f.is_file or not f.content or f.name not in META_EXTRACTORS:
            continue
        meta = extract_project_meta(f.name, f.content)
        if meta is not None and not meta.is_empty:
            return meta
    return ProjectMeta()


# --- Local directories ---


def scan_directory(root: str | Path, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> list[RepoFile]:
    """Walk a local tree into a listing, reading manifest contents only."""
    root = Path(root)
    files: list[RepoFile] = []

    for dirpath, dirnames, filenames in os.walk(root):
        # Skip ignored directories; sort for a stable listing
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORE_DIRS)
        rel_dir = Path(dirpath).relative_to(root)

        for d in dirnames:
            files.append(RepoFile(name=d, type="dir", path=(rel_dir / d).as_posix()))

        for fname in sorted(filenames):
            content = None
            if fname in DEPENDENCY_FILES:
                content = _read_manifest(Path(dirpath) / fname, max_file_bytes)
            files.append(
                RepoFile(name=fname, type="file", path=(rel_dir / fname).as_posix(), content=content)
            )

    return files


def _read_manifest(path: Path, max_file_bytes: int) -> str | None:
    try:
        return path.read_text(errors="replace")[:max_file_bytes]
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return None


def analyze_repo(path: str | Path, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> AnalysisResult:
    """Run full analysis on a local repository."""
    path = Path(path).resolve()
    if not path.is_dir():
        raise ValueError(f"Not a directory: {path}")

    files = scan_directory(path, max_file_bytes=max_file_bytes)
    logger.debug("Scanned %d entries under %s", len(files), path)
    return analyze(files)
