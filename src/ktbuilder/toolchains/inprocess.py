"""In-process toolchain for testing and development.

Produces deterministic placeholder class files without invoking kotlinc or
javac. Each top-level declaration found in a staged source becomes one
``<package>/<Unit>.class`` file, which makes it suitable for:
- Unit tests that exercise the executor, archive and manifest pipeline
- Development environments without a JDK or Kotlin compiler
- Simulating slow or failing compiles (``delay_seconds``, syntax errors)
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ktbuilder.models import SourceFile
from ktbuilder.sources import scan_source
from ktbuilder.toolchains.base import StagedSource, ToolchainOutput, ToolchainRequest

if TYPE_CHECKING:
    from ktbuilder.runner import CancellationToken

_IMPORT = re.compile(r"^\s*import\s+(?:static\s+)?([A-Za-z_][\w.]*)", re.MULTILINE)

# Java class file magic, so the output at least looks like bytecode to tools.
CLASS_MAGIC = b"\xca\xfe\xba\xbe"


@dataclass(slots=True)
class InProcessToolchain:
    """Toolchain that emits deterministic class placeholders in-process."""

    name: str = "inprocess"
    delay_seconds: float = 0.0

    def compile(self, request: ToolchainRequest, token: CancellationToken) -> ToolchainOutput:
        if self.delay_seconds > 0 and token.wait(self.delay_seconds):
            return ToolchainOutput(ok=False, diagnostics=("compilation cancelled",), cancelled=True)

        scanned: list[tuple[StagedSource, list[str], str]] = []
        diagnostics: list[str] = []
        for staged in request.sources:
            content = staged.path.read_text(encoding="utf-8")
            result = scan_source(
                SourceFile(path=staged.relative_path, language=staged.language, content=content)
            )
            if not result.balanced:
                diagnostics.append(
                    f"error: {staged.relative_path}: unbalanced braces or parentheses"
                )
                continue
            if not result.units:
                diagnostics.append(
                    f"error: {staged.relative_path}: no class, interface or object declaration"
                )
                continue
            scanned.append((staged, list(result.class_paths()), content))

        if diagnostics:
            return ToolchainOutput(ok=False, diagnostics=tuple(diagnostics))

        # Kotlin first, then Java against the Kotlin output.
        ordered = [item for item in scanned if item[0].language == "kotlin"] + [
            item for item in scanned if item[0].language == "java"
        ]
        imports: set[str] = set()
        for staged, class_paths, content in ordered:
            token.raise_if_cancelled()
            imports.update(_IMPORT.findall(content))
            for class_path in class_paths:
                target = request.classes_dir / class_path
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(_class_bytes(staged, class_path, content, request.jvm_target))

        return ToolchainOutput(
            ok=True,
            diagnostics=tuple(
                f"info: {staged.relative_path}: {len(paths)} unit(s)"
                for staged, paths, _ in ordered
            ),
            used_classpath=_used_classpath(request.classpath, imports),
        )


def _class_bytes(staged: StagedSource, class_path: str, content: str, jvm_target: str) -> bytes:
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    body = (
        f"unit={class_path}\n"
        f"source={staged.relative_path}\n"
        f"language={staged.language}\n"
        f"jvm_target={jvm_target}\n"
        f"source_sha256={digest}\n"
    )
    return CLASS_MAGIC + body.encode("utf-8")


def _used_classpath(classpath: tuple[Path, ...], imports: set[str]) -> frozenset[Path]:
    """A jar counts as used when an import mentions its file stem as a package segment."""
    segments = {segment for name in imports for segment in name.split(".")}
    return frozenset(jar for jar in classpath if _jar_stem(jar) in segments)


def _jar_stem(jar: Path) -> str:
    stem = jar.stem
    for prefix in ("lib", "header_"):
        if stem.startswith(prefix) and len(stem) > len(prefix):
            stem = stem[len(prefix):]
    return stem.replace("-", "_")
