"""Lightweight source scanning for declared compilation units.

This is not a parser. It strips comments and string literals, tracks brace
and parenthesis depth and records top-level type declarations so callers know which class
files a successful compile must produce.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from ktbuilder.models import CLASS_FILE_SUFFIX, SourceFile

_COMMENT_OR_STRING = re.compile(
    r'//[^\n]*|/\*.*?\*/|"""(?:.|\n)*?"""|"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'',
    re.DOTALL,
)
_PACKAGE = re.compile(r"^\s*package\s+([A-Za-z_][\w.]*)\s*;?", re.MULTILINE)
_TOKEN = re.compile(
    r"[{}()]"
    r"|\b(?:enum\s+class|class|interface|object|record|enum)\s+([A-Za-z_]\w*)"
    r"|@interface\s+([A-Za-z_]\w*)"
    r"|\b(?:fun(?!\s+interface)|val|var|typealias)\b"
)
_TOP_LEVEL_MEMBER = ("fun", "val", "var", "typealias")


@dataclass(frozen=True, slots=True)
class ScannedSource:
    package: str
    units: tuple[str, ...]
    balanced: bool

    def class_paths(self) -> tuple[str, ...]:
        package_path = PurePosixPath(*self.package.split(".")) if self.package else None
        paths: list[str] = []
        for unit in self.units:
            name = f"{unit}{CLASS_FILE_SUFFIX}"
            paths.append(str(package_path / name) if package_path else name)
        return tuple(paths)


def scan_source(source: SourceFile) -> ScannedSource:
    text = _COMMENT_OR_STRING.sub(" ", source.content)
    package_match = _PACKAGE.search(text)
    package = package_match.group(1) if package_match else ""

    depth = 0
    parens = 0
    balanced = True
    units: list[str] = []
    has_top_level_members = False
    for match in _TOKEN.finditer(text):
        token = match.group(0)
        if token == "{":
            depth += 1
            continue
        if token == "}":
            depth -= 1
            if depth < 0:
                balanced = False
                depth = 0
            continue
        if token == "(":
            parens += 1
            continue
        if token == ")":
            parens -= 1
            if parens < 0:
                balanced = False
                parens = 0
            continue
        # Constructor parameters and default values are not top-level members.
        if depth != 0 or parens != 0:
            continue
        name = match.group(1) or match.group(2)
        if name:
            if name not in units:
                units.append(name)
        elif token in _TOP_LEVEL_MEMBER:
            has_top_level_members = True
    if depth != 0 or parens != 0:
        balanced = False

    # Kotlin compiles top-level functions and properties into a <File>Kt facade class.
    if source.language == "kotlin" and has_top_level_members:
        stem = PurePosixPath(source.path).stem
        facade = f"{stem[:1].upper()}{stem[1:]}Kt"
        if facade not in units:
            units.append(facade)

    return ScannedSource(package=package, units=tuple(units), balanced=balanced)


def expected_class_files(sources: tuple[SourceFile, ...]) -> tuple[str, ...]:
    """Relative class file paths every successful compile of *sources* must emit."""
    expected: list[str] = []
    for source in sources:
        for path in scan_source(source).class_paths():
            if path not in expected:
                expected.append(path)
    return tuple(expected)
