"""Typed interfaces for compiler toolchains."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ktbuilder.models import Language

if TYPE_CHECKING:
    from ktbuilder.runner import CancellationToken


@dataclass(frozen=True, slots=True)
class StagedSource:
    path: Path
    relative_path: str
    language: Language


@dataclass(frozen=True, slots=True)
class ToolchainRequest:
    staging_dir: Path
    sources: tuple[StagedSource, ...]
    classes_dir: Path
    classpath: tuple[Path, ...] = ()
    module_name: str = "main"
    jvm_target: str = "11"

    def sources_for(self, language: Language) -> tuple[StagedSource, ...]:
        return tuple(source for source in self.sources if source.language == language)


@dataclass(frozen=True, slots=True)
class ToolchainOutput:
    ok: bool
    diagnostics: tuple[str, ...] = ()
    # None means the toolchain cannot tell which classpath entries were used.
    used_classpath: frozenset[Path] | None = None
    cancelled: bool = False


class Toolchain(Protocol):
    name: str

    def compile(self, request: ToolchainRequest, token: CancellationToken) -> ToolchainOutput:
        """Compile staged sources into ``request.classes_dir``."""
