"""Line and token scanners shared by the manifest extractors.

Most helpers are stateless: they take text and return plain values, so
extractors can combine them into small state machines.
"""

from __future__ import annotations

import html
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, NamedTuple

# --- Line helpers ---

SECTION_HEADER = re.compile(r"^\[(.+)]$")
QUOTED_ASSIGNMENT = re.compile(r'^([a-zA-Z0-9_.-]+)\s*=\s*"([^"]+)"')
CRATE_ASSIGNMENT = re.compile(r'^([a-zA-Z0-9_-]+)\s*=\s*"([^"]+)"')
LEADING_IDENTIFIER = re.compile(r"^([a-zA-Z0-9_.-]+)\s*(.*)$", re.DOTALL)


def iter_lines(content: str) -> Iterator[str]:
    """Yield every line of content with surrounding whitespace removed."""
    for raw in content.split("\n"):
        yield raw.strip()


def iter_content_lines(content: str, comment: str = "#") -> Iterator[str]:
    """Yield trimmed lines that are neither blank nor comments."""
    for line in iter_lines(content):
        if not line or line.startswith(comment):
            continue
        yield line


def section_header(line: str) -> str | None:
    """Return the name inside a ``[section]`` header line, if it is one."""
    match = SECTION_HEADER.match(line)
    return match.group(1) if match else None


def quoted_assignment(
    line: str, pattern: re.Pattern[str] = QUOTED_ASSIGNMENT
) -> tuple[str, str] | None:
    """Match ``key = "value"`` at the start of a line."""
    match = pattern.match(line)
    if not match:
        return None
    return match.group(1), match.group(2)


def split_outside_quotes(text: str, sep: str = ",") -> list[str]:
    """Split text on sep, ignoring separators inside quoted strings."""
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    escaped = False

    for char in text:
        if quote:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
            current.append(char)
        elif char == sep:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)

    parts.append("".join(current))
    return parts


def strip_trailing_comment(line: str) -> str:
    """Remove a ``#`` comment that is not inside a quoted string."""
    quote: str | None = None
    escaped = False

    for index, char in enumerate(line):
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "#":
            return line[:index].rstrip()
    return line


class BracketScanner:
    """Finds the bracket closing an opened one across several chunks of text.

    Depth and quote state carry over between ``feed`` calls, so a list
    literal spread over many lines is scanned once, line by line.
    """

    def __init__(self, opening: str = "[", closing: str = "]"):
        self.opening = opening
        self.closing = closing
        self.depth = 0
        self.quote: str | None = None
        self.escaped = False

    def feed(self, text: str, start: int = 0) -> int:
        """Index in ``text`` where depth returns to zero, or -1 if still open.

        Brackets inside quoted strings are ignored.
        """
        for index in range(start, len(text)):
            char = text[index]
            if self.quote:
                if self.escaped:
                    self.escaped = False
                elif char == "\\":
                    self.escaped = True
                elif char == self.quote:
                    self.quote = None
                continue
            if char in "\"'":
                self.quote = char
            elif char == self.opening:
                self.depth += 1
            elif char == self.closing:
                self.depth -= 1
                if self.depth == 0:
                    return index
        return -1



def unquote(text: str) -> str:
    """Strip whitespace and one pair of matching surrounding quotes."""
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def strip_extras(spec: str) -> str:
    """Drop a leading ``[extra,...]`` marker from a requirement remainder."""
    if spec.startswith("["):
        end = spec.find("]")
        if end != -1:
            return spec[end + 1 :].strip()
    return spec


# --- Tokenizer for call-style DSLs (Gradle, Swift) ---


class TokenKind(str, Enum):
    IDENT = "ident"
    STRING = "string"
    PUNCT = "punct"
    OTHER = "other"


class Token(NamedTuple):
    kind: TokenKind
    value: str
    start: int


_WHITESPACE = re.compile(r"\s+")
_IDENT = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_NUMBER = re.compile(r"[0-9][0-9A-Za-z_.]*")
_MULTI_PUNCT = ("...", "..<")


def tokenize(source: str) -> Iterator[Token]:
    """Split C-family DSL source into identifiers, strings and punctuation.

    ``//`` and ``/* */`` comments are skipped. A single-quoted or
    double-quoted string may not span lines; an unterminated one yields its
    quote character as an ``OTHER`` token and scanning resumes right after
    it. Triple-quoted strings may span lines.
    """
    pos = 0
    length = len(source)

    while pos < length:
        char = source[pos]

        match = _WHITESPACE.match(source, pos)
        if match:
            pos = match.end()
            continue

        if source.startswith("//", pos):
            newline = source.find("\n", pos)
            pos = length if newline == -1 else newline + 1
            continue

        if source.startswith("/*", pos):
            end = source.find("*/", pos + 2)
            pos = length if end == -1 else end + 2
            continue

        if char in "\"'":
            token, pos = _read_string(source, pos)
            yield token
            continue

        match = _IDENT.match(source, pos)
        if match:
            yield Token(TokenKind.IDENT, match.group(), pos)
            pos = match.end()
            continue

        match = _NUMBER.match(source, pos)
        if match:
            yield Token(TokenKind.OTHER, match.group(), pos)
            pos = match.end()
            continue

        for punct in _MULTI_PUNCT:
            if source.startswith(punct, pos):
                yield Token(TokenKind.PUNCT, punct, pos)
                pos += len(punct)
                break
        else:
            yield Token(TokenKind.PUNCT, char, pos)
            pos += 1


def _read_string(source: str, start: int) -> tuple[Token, int]:
    quote = source[start]
    triple = source.startswith(quote * 3, start)
    delimiter = quote * 3 if triple else quote
    pos = start + len(delimiter)
    value: list[str] = []

    while pos < len(source):
        if source.startswith(delimiter, pos):
            return Token(TokenKind.STRING, "".join(value), start), pos + len(delimiter)
        char = source[pos]
        if char == "\n" and not triple:
            break
        if char == "\\" and pos + 1 < len(source):
            value.append(source[pos + 1])
            pos += 2
            continue
        value.append(char)
        pos += 1

    return Token(TokenKind.OTHER, quote, start), start + 1


# --- Markup scanner (pom.xml) ---

_MARKUP_TOKEN = re.compile(
    r"<!--.*?(?:-->|\Z)"
    r"|<!\[CDATA\[(?P<cdata>.*?)]]>"
    r"|<[?!][^>]*>"
    r"|<(?P<close>/)?(?P<name>[A-Za-z_][\w.:-]*)[^>]*?(?P<empty>/)?>"
    r"|(?P<text>[^<]+)"
    r"|<",
    re.DOTALL,
)


@dataclass
class _Frame:
    name: str
    text: list[str] = field(default_factory=list)
    children: dict[str, str] | None = None


def _local_name(name: str) -> str:
    return name.rsplit(":", 1)[-1]


def iter_elements(markup: str, tag: str) -> Iterator[dict[str, str]]:
    """Yield the direct child texts of every ``tag`` element in markup.

    Each yielded dict maps a child element's local name to its trimmed text;
    the first occurrence of a child wins. Comments and processing
    instructions are skipped, namespace prefixes dropped, and unbalanced
    closing tags tolerated.
    """
    stack: list[_Frame] = []
    open_counts: Counter[str] = Counter()

    for match in _MARKUP_TOKEN.finditer(markup):
        if match.group("text") is not None:
            if stack:
                stack[-1].text.append(html.unescape(match.group("text")))
            continue
        if match.group("cdata") is not None:
            if stack:
                stack[-1].text.append(match.group("cdata"))
            continue

        name = match.group("name")
        if name is None:
            continue
        name = _local_name(name)

        if match.group("close"):
            if not open_counts[name]:
                continue
            while stack:
                frame = stack.pop()
                open_counts[frame.name] -= 1
                done = _close_frame(frame, stack)
                if done is not None:
                    yield done
                if frame.name == name:
                    break
            continue

        frame = _Frame(name=name, children={} if name == tag else None)
        if match.group("empty"):
            done = _close_frame(frame, stack)
            if done is not None:
                yield done
        else:
            stack.append(frame)
            open_counts[name] += 1


def _close_frame(frame: _Frame, stack: list[_Frame]) -> dict[str, str] | None:
    if stack and stack[-1].children is not None:
        stack[-1].children.setdefault(frame.name, "".join(frame.text).strip())
    return frame.children
