"""Per-format dependency extractors.

Each extractor turns the raw text of one manifest dialect into a list of
ExtractedDependency records, in the order they appear in the file.
Line-oriented extractors walk the text as a small state machine and skip
anything they do not recognize; JSON-based extractors raise ParseError
when the document itself is invalid.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from .records import DependencyType, ExtractedDependency, ParseError
from .scanning import (
    BracketScanner,
    CRATE_ASSIGNMENT,
    LEADING_IDENTIFIER,
    QUOTED_ASSIGNMENT,
    Token,
    TokenKind,
    iter_content_lines,
    iter_elements,
    iter_lines,
    quoted_assignment,
    section_header,
    split_outside_quotes,
    strip_extras,
    strip_trailing_comment,
    tokenize,
    unquote,
)

PRODUCTION = DependencyType.PRODUCTION
DEV = DependencyType.DEV
PEER = DependencyType.PEER
OPTIONAL = DependencyType.OPTIONAL


@runtime_checkable
class Extractor(Protocol):
    """Converts one manifest format's text into dependency records."""

    def extract(self, content: str) -> list[ExtractedDependency]:
        ...


def load_json_object(content: str) -> dict[str, Any]:
    """Parse content as a JSON document whose top level is an object."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e.msg} at line {e.lineno} column {e.colno}") from e
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _version_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _mapping_records(
    section: Any,
    dep_type: DependencyType,
    exclude: frozenset[str] = frozenset(),
) -> list[ExtractedDependency]:
    if not isinstance(section, dict):
        return []
    return [
        ExtractedDependency(name=name, version=_version_text(version), type=dep_type)
        for name, version in section.items()
        if name and name not in exclude
    ]


def _optional_version(spec: str) -> str | None:
    return None if spec == "*" else spec


# --- JSON manifests ---


class PackageJsonExtractor:
    """npm / yarn / pnpm ``package.json``."""

    SECTIONS = (
        ("dependencies", PRODUCTION),
        ("devDependencies", DEV),
        ("peerDependencies", PEER),
        ("optionalDependencies", OPTIONAL),
    )

    def extract(self, content: str) -> list[ExtractedDependency]:
        data = load_json_object(content)
        result: list[ExtractedDependency] = []
        for key, dep_type in self.SECTIONS:
            result.extend(_mapping_records(data.get(key), dep_type))
        return result


class ComposerJsonExtractor:
    """PHP Composer ``composer.json``. The ``php`` runtime entry is not a package."""

    RUNTIME = frozenset({"php"})

    def extract(self, content: str) -> list[ExtractedDependency]:
        data = load_json_object(content)
        return _mapping_records(data.get("require"), PRODUCTION, self.RUNTIME) + _mapping_records(
            data.get("require-dev"), DEV
        )


# --- Pinned lists ---

_DIRECT_REFERENCE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_INLINE_COMMENT = re.compile(r"\s+#.*$")


class RequirementsTxtExtractor:
    """pip ``requirements.txt``: one requirement per line."""

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        for line in iter_content_lines(content):
            # Option lines (-r, -e, --index-url) and bare URLs name no package
            if line.startswith("-") or _DIRECT_REFERENCE.match(line):
                continue
            match = LEADING_IDENTIFIER.match(_INLINE_COMMENT.sub("", line))
            if not match:
                continue
            spec = strip_extras(match.group(2).strip())
            version = spec.lstrip("=<>!~").strip() or None
            result.append(ExtractedDependency(name=match.group(1), version=version, type=PRODUCTION))
        return result


# --- Gemfile ---

_GEM = re.compile(r"""^gem\s+['"]([^'"]+)['"](?:\s*,\s*['"]([^'"]+)['"])?""")
_GROUP = re.compile(r"^group\b")
_END = re.compile(r"^end\b")
_TRAILING_END = re.compile(r"[;\s]end\s*$")
_DO_BLOCK = re.compile(r"\bdo\s*(?:\|[^|]*\|)?$")
_KEYWORD_BLOCK = re.compile(r"^(?:if|unless|case|begin|def|while|until|for|class|module)\b")


class GemBlock(Enum):
    DEV_GROUP = "dev_group"
    GROUP = "group"
    OTHER = "other"


class GemfileExtractor:
    """Bundler ``Gemfile``.

    Open blocks are kept on a stack so that an ``end`` closes the block it
    belongs to. A gem is ``dev`` while any enclosing group names
    ``:development`` or ``:test``.
    """

    DEV_MARKERS = (":development", ":test")

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        blocks: list[GemBlock] = []
        dev_depth = 0

        for line in iter_content_lines(content):
            # a block opened and closed on one line leaves nothing to track
            closes_itself = bool(_TRAILING_END.search(line))
            if _GROUP.match(line):
                is_dev = any(marker in line for marker in self.DEV_MARKERS)
                if not closes_itself:
                    blocks.append(GemBlock.DEV_GROUP if is_dev else GemBlock.GROUP)
                    dev_depth += is_dev
                continue
            if _END.match(line):
                if blocks and blocks.pop() is GemBlock.DEV_GROUP:
                    dev_depth -= 1
                continue

            match = _GEM.match(line)
            if match:
                dep_type = DEV if dev_depth else PRODUCTION
                result.append(
                    ExtractedDependency(name=match.group(1), version=match.group(2) or None, type=dep_type)
                )
            elif (_DO_BLOCK.search(line) or _KEYWORD_BLOCK.match(line)) and not closes_itself:
                blocks.append(GemBlock.OTHER)

        return result


# --- go.mod ---

_REQUIRE_BLOCK_START = re.compile(r"^require\s*\(")
_REQUIRE_SINGLE = re.compile(r"^require\s+(\S+)\s+(\S+)")
_BLOCK_ENTRY = re.compile(r"^(\S+)\s+(\S+)")


class GoModState(Enum):
    OUTSIDE = "outside"
    IN_REQUIRE_BLOCK = "in_require_block"


class GoModExtractor:
    """Go modules ``go.mod``: ``require ( ... )`` blocks and single-line requires."""

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        state = GoModState.OUTSIDE

        for line in iter_lines(content):
            if state is GoModState.IN_REQUIRE_BLOCK:
                if line == ")":
                    state = GoModState.OUTSIDE
                    continue
                if not line or line.startswith("//"):
                    continue
                match = _BLOCK_ENTRY.match(line)
            elif _REQUIRE_BLOCK_START.match(line):
                state = GoModState.IN_REQUIRE_BLOCK
                continue
            else:
                match = _REQUIRE_SINGLE.match(line)

            if match:
                result.append(ExtractedDependency(name=match.group(1), version=match.group(2), type=PRODUCTION))

        return result


# --- TOML section manifests ---

_CRATE_TABLE = re.compile(r'^([a-zA-Z0-9_-]+)\s*=\s*\{.*version\s*=\s*"([^"]+)"')
_PACKAGE_TABLE = re.compile(r'^([a-zA-Z0-9_.-]+)\s*=\s*\{.*version\s*=\s*"([^"]+)"')


def _assignment_or_table(
    line: str,
    assignment: re.Pattern[str] = QUOTED_ASSIGNMENT,
    table: re.Pattern[str] = _PACKAGE_TABLE,
) -> tuple[str, str] | None:
    """Match ``name = "spec"`` or ``name = { ..., version = "spec" }``."""
    pair = quoted_assignment(line, assignment)
    if pair:
        return pair
    match = table.match(line)
    return (match.group(1), match.group(2)) if match else None


class CargoSection(Enum):
    OTHER = "other"
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "dev-dependencies"
    BUILD_DEPENDENCIES = "build-dependencies"

    @property
    def dependency_type(self) -> DependencyType | None:
        if self is CargoSection.DEPENDENCIES:
            return PRODUCTION
        if self is CargoSection.OTHER:
            return None
        # build-time crates never ship with the binary
        return DEV

    @classmethod
    def from_header(cls, header: str) -> CargoSection:
        try:
            return cls(header)
        except ValueError:
            return cls.OTHER


class CargoTomlExtractor:
    """Rust ``Cargo.toml``."""

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        section = CargoSection.OTHER

        for line in iter_content_lines(content):
            header = section_header(line)
            if header is not None:
                section = CargoSection.from_header(header)
                continue

            dep_type = section.dependency_type
            if dep_type is None:
                continue
            pair = _assignment_or_table(line, CRATE_ASSIGNMENT, _CRATE_TABLE)
            if pair:
                result.append(ExtractedDependency(name=pair[0], version=pair[1], type=dep_type))

        return result


class PipfileSection(Enum):
    OTHER = "other"
    PACKAGES = "packages"
    DEV_PACKAGES = "dev-packages"


class PipfileExtractor:
    """pipenv ``Pipfile``: ``[packages]`` and ``[dev-packages]`` tables."""

    HEADERS = {
        "packages": PipfileSection.PACKAGES,
        "dev-packages": PipfileSection.DEV_PACKAGES,
    }

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        section = PipfileSection.OTHER

        for line in iter_content_lines(content):
            # any bracketed line closes the current table, even a malformed one
            if line.startswith("["):
                section = self.HEADERS.get(section_header(line) or "", PipfileSection.OTHER)
                continue
            if section is PipfileSection.OTHER:
                continue

            pair = _assignment_or_table(line)
            if pair:
                dep_type = PRODUCTION if section is PipfileSection.PACKAGES else DEV
                result.append(
                    ExtractedDependency(name=pair[0], version=_optional_version(pair[1]), type=dep_type)
                )

        return result


_PROJECT_DEPENDENCIES = re.compile(r"^dependencies\s*=")
_LIST_ASSIGNMENT = re.compile(r"^[a-zA-Z0-9_.-]+\s*=")
_POETRY_GROUP = re.compile(r"^tool\.poetry\.group\.[^.]+\.dependencies$")


class PyprojectState(Enum):
    SCANNING = "scanning"
    IN_LIST = "in_list"


class PyprojectTomlExtractor:
    """Python ``pyproject.toml``: PEP 621 lists and Poetry tables.

    ``[project]`` dependencies are production and
    ``[project.optional-dependencies]`` lists optional. Poetry's main table
    is production (minus the ``python`` runtime) and every other Poetry
    group is dev. List literals may span several lines.
    """

    RUNTIME = "python"

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        state = PyprojectState.SCANNING
        section: str | None = None
        pending: list[str] = []
        brackets = BracketScanner()
        list_type = PRODUCTION

        for line in iter_lines(content):
            if state is PyprojectState.IN_LIST:
                if line.startswith("#"):
                    continue
                if section_header(line) is None:
                    chunk = strip_trailing_comment(line)
                    close = brackets.feed(chunk)
                    if close == -1:
                        pending.append(chunk)
                    else:
                        pending.append(chunk[:close])
                        self._emit_list("\n".join(pending)[1:], list_type, result)
                        state = PyprojectState.SCANNING
                    continue
                # unterminated list: drop it and treat the header normally
                state = PyprojectState.SCANNING

            if not line or line.startswith("#"):
                continue
            header = section_header(line)
            if header is not None:
                section = header
                continue

            dep_type = self._list_type(section, line)
            if dep_type is not None:
                value = strip_trailing_comment(line.split("=", 1)[1].strip())
                if not value.startswith("["):
                    continue
                brackets = BracketScanner()
                close = brackets.feed(value)
                if close != -1:
                    self._emit_list(value[1:close], dep_type, result)
                else:
                    state = PyprojectState.IN_LIST
                    pending = [value]
                    list_type = dep_type
                continue

            dep_type = self._table_type(section)
            if dep_type is None:
                continue
            pair = _assignment_or_table(line)
            if pair and not (dep_type is PRODUCTION and pair[0] == self.RUNTIME):
                result.append(
                    ExtractedDependency(name=pair[0], version=_optional_version(pair[1]), type=dep_type)
                )

        return result

    @staticmethod
    def _list_type(section: str | None, line: str) -> DependencyType | None:
        if section == "project" and _PROJECT_DEPENDENCIES.match(line):
            return PRODUCTION
        if section == "project.optional-dependencies" and _LIST_ASSIGNMENT.match(line):
            return OPTIONAL
        return None

    @staticmethod
    def _table_type(section: str | None) -> DependencyType | None:
        if section == "tool.poetry.dependencies":
            return PRODUCTION
        if section == "tool.poetry.dev-dependencies" or (section and _POETRY_GROUP.match(section)):
            return DEV
        return None

    @staticmethod
    def _emit_list(inner: str, dep_type: DependencyType, result: list[ExtractedDependency]) -> None:
        for raw in split_outside_quotes(inner):
            item = unquote(raw)
            if not item:
                continue
            match = LEADING_IDENTIFIER.match(item)
            if match:
                version = strip_extras(match.group(2).strip()) or None
                result.append(ExtractedDependency(name=match.group(1), version=version, type=dep_type))


# --- pubspec.yaml ---

_PUBSPEC_DEPENDENCY = re.compile(r"^\s{2}([a-zA-Z0-9_]+):\s*(.*)")
_TOP_LEVEL = re.compile(r"^\S")


class PubspecSection(Enum):
    NONE = "none"
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "dev_dependencies"


class PubspecYamlExtractor:
    """Dart / Flutter ``pubspec.yaml``."""

    SDK_PACKAGES = frozenset({"flutter", "flutter_test"})
    HEADERS = {
        "dependencies": PubspecSection.DEPENDENCIES,
        "dev_dependencies": PubspecSection.DEV_DEPENDENCIES,
    }

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        section = PubspecSection.NONE

        # Indentation matters here, so lines are not trimmed
        for raw in content.split("\n"):
            if _TOP_LEVEL.match(raw):
                if raw.startswith("#"):
                    continue
                key, colon, rest = raw.partition(":")
                header = self.HEADERS.get(key) if colon and not rest.strip() else None
                section = header or PubspecSection.NONE
                continue
            if section is PubspecSection.NONE:
                continue

            match = _PUBSPEC_DEPENDENCY.match(raw)
            if not match or match.group(1) in self.SDK_PACKAGES:
                continue
            dep_type = PRODUCTION if section is PubspecSection.DEPENDENCIES else DEV
            result.append(
                ExtractedDependency(name=match.group(1), version=match.group(2).strip() or None, type=dep_type)
            )

        return result


# --- pom.xml ---


class PomXmlExtractor:
    """Maven ``pom.xml``: every ``<dependency>`` element, wherever it sits."""

    SCOPE_TYPES = {
        "test": DEV,
        "provided": DEV,
        "optional": OPTIONAL,
    }

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        for element in iter_elements(content, "dependency"):
            group = element.get("groupId")
            artifact = element.get("artifactId")
            if not group or not artifact:
                continue
            dep_type = self.SCOPE_TYPES.get(element.get("scope", ""), PRODUCTION)
            result.append(
                ExtractedDependency(
                    name=f"{group}:{artifact}",
                    version=element.get("version") or None,
                    type=dep_type,
                )
            )
        return result


# --- Call-style DSLs ---


def _is_punct(tokens: list[Token], index: int, value: str) -> bool:
    return index < len(tokens) and tokens[index].kind is TokenKind.PUNCT and tokens[index].value == value


def _string_at(tokens: list[Token], index: int) -> str | None:
    if index < len(tokens) and tokens[index].kind is TokenKind.STRING:
        return tokens[index].value
    return None


class GradleExtractor:
    """Gradle ``build.gradle`` and ``build.gradle.kts``.

    Recognizes ``implementation 'g:a:v'`` and ``implementation("g:a:v")``.
    Calls whose argument is not a coordinate string (project references,
    version catalogs, platform() wrappers) are skipped.
    """

    CONFIGURATIONS = frozenset({
        "implementation",
        "api",
        "compileOnly",
        "runtimeOnly",
        "testImplementation",
        "testRuntimeOnly",
        "annotationProcessor",
    })
    DEV_CONFIGURATIONS = frozenset({
        "testImplementation",
        "testRuntimeOnly",
        "compileOnly",
        "annotationProcessor",
    })

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        tokens = list(tokenize(content))

        for index, token in enumerate(tokens):
            if token.kind is not TokenKind.IDENT or token.value not in self.CONFIGURATIONS:
                continue
            coordinate = _string_at(tokens, index + 1)
            if coordinate is None and _is_punct(tokens, index + 1, "("):
                coordinate = _string_at(tokens, index + 2)
            if coordinate is None:
                continue

            parts = coordinate.strip().split(":")
            if len(parts) < 2:
                continue
            version = parts[2] if len(parts) > 2 and parts[2] else None
            dep_type = DEV if token.value in self.DEV_CONFIGURATIONS else PRODUCTION
            result.append(ExtractedDependency(name=f"{parts[0]}:{parts[1]}", version=version, type=dep_type))

        return result


class PackageSwiftExtractor:
    """Swift Package Manager ``Package.swift``.

    The package name is the last segment of the ``url:`` argument. The
    version is the first ``from:``/``exact:`` string in the call, or the
    lower bound of a ``"a"..."b"`` / ``"a"..<"b"`` range.
    """

    VERSION_LABELS = frozenset({"from", "exact"})
    RANGE_OPERATORS = frozenset({"...", "..<"})

    def extract(self, content: str) -> list[ExtractedDependency]:
        result: list[ExtractedDependency] = []
        tokens = list(tokenize(content))
        index = 0

        while index < len(tokens):
            if not (
                _is_punct(tokens, index, ".")
                and index + 1 < len(tokens)
                and tokens[index + 1].kind is TokenKind.IDENT
                and tokens[index + 1].value == "package"
                and _is_punct(tokens, index + 2, "(")
            ):
                index += 1
                continue

            close = self._matching_paren(tokens, index + 2)
            dependency = self._from_arguments(tokens[index + 3 : close])
            if dependency is not None:
                result.append(dependency)
            index = close + 1

        return result

    @staticmethod
    def _matching_paren(tokens: list[Token], open_index: int) -> int:
        depth = 0
        for index in range(open_index, len(tokens)):
            if _is_punct(tokens, index, "("):
                depth += 1
            elif _is_punct(tokens, index, ")"):
                depth -= 1
                if depth == 0:
                    return index
        return len(tokens)

    def _from_arguments(self, args: list[Token]) -> ExtractedDependency | None:
        url: str | None = None
        version: str | None = None

        for index, token in enumerate(args):
            if token.kind is TokenKind.IDENT and _is_punct(args, index + 1, ":"):
                value = _string_at(args, index + 2)
                if token.value == "url" and url is None:
                    url = value
                elif token.value in self.VERSION_LABELS and version is None:
                    version = value
            elif (
                token.kind is TokenKind.STRING
                and version is None
                and index + 1 < len(args)
                and args[index + 1].kind is TokenKind.PUNCT
                and args[index + 1].value in self.RANGE_OPERATORS
                and _string_at(args, index + 2) is not None
            ):
                version = token.value

        if not url:
            return None
        name = url.removesuffix(".git").split("/")[-1]
        if not name:
            return None
        return ExtractedDependency(name=name, version=version or None, type=PRODUCTION)
