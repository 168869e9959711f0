"""Core typed dataclasses for build commands and compilation results."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Literal

from ktbuilder.errors import InvalidCommandError

if TYPE_CHECKING:
    from ktbuilder.manifest.model import DependencyManifest

Language = Literal["kotlin", "java"]

LANGUAGE_EXTENSIONS: dict[Language, str] = {
    "kotlin": ".kt",
    "java": ".java",
}

CLASS_FILE_SUFFIX = ".class"


@dataclass(frozen=True, slots=True)
class SourceFile:
    path: str
    language: Language
    content: str


@dataclass(frozen=True, slots=True)
class OutputPaths:
    classes_dir: Path
    archive: Path
    manifest: Path

    def as_tuple(self) -> tuple[Path, Path, Path]:
        return (self.classes_dir, self.archive, self.manifest)

    @property
    def staging_dir(self) -> Path:
        return self.classes_dir.with_name(f"{self.classes_dir.name}.staging")


@dataclass(frozen=True, slots=True)
class BuildCommand:
    """One compilation unit: sources in, three declared outputs out.

    Validation runs at construction; an instance that exists is well formed.
    """

    target_label: str
    sources: tuple[SourceFile, ...]
    outputs: OutputPaths
    classpath: tuple[Path, ...] = ()
    direct_dependencies: tuple[Path, ...] = ()
    module_name: str = ""
    repository: str = ""

    def __post_init__(self) -> None:
        _validate_label(self.target_label)
        _validate_sources(self.sources)
        _validate_outputs(self.outputs)
        _validate_dependencies(self.classpath, self.direct_dependencies)
        if not self.module_name:
            object.__setattr__(self, "module_name", default_module_name(self.target_label))

    @classmethod
    def create(
        cls,
        *,
        target_label: str,
        sources: Iterable[SourceFile | tuple[str, Language, str]],
        classes_dir: str | Path,
        archive: str | Path,
        manifest: str | Path,
        classpath: Sequence[str | Path] = (),
        direct_dependencies: Sequence[str | Path] = (),
        module_name: str = "",
        repository: str = "",
    ) -> BuildCommand:
        normalized = tuple(
            item if isinstance(item, SourceFile) else SourceFile(*item) for item in sources
        )
        return cls(
            target_label=target_label,
            sources=normalized,
            outputs=OutputPaths(
                classes_dir=Path(classes_dir),
                archive=Path(archive),
                manifest=Path(manifest),
            ),
            classpath=tuple(Path(p) for p in classpath),
            direct_dependencies=tuple(Path(p) for p in direct_dependencies),
            module_name=module_name,
            repository=repository,
        )

    @property
    def rule_label(self) -> str:
        """Label recorded in the dependency manifest for this command."""
        return qualified_label(self.target_label, repository=self.repository)

    def sources_for(self, language: Language) -> tuple[SourceFile, ...]:
        return tuple(source for source in self.sources if source.language == language)


@dataclass(frozen=True, slots=True)
class CompilationResult:
    completed: bool
    produced_class_files: frozenset[str] = frozenset()
    diagnostics: tuple[str, ...] = ()
    manifest: DependencyManifest | None = field(default=None, compare=False)


def qualified_label(target_label: str, *, repository: str = "") -> str:
    if not repository or target_label.startswith("@"):
        return target_label
    repo = repository if repository.startswith("@") else f"@{repository}"
    return f"{repo}{target_label}"


def default_module_name(target_label: str) -> str:
    name = target_label.rsplit(":", 1)[-1].rsplit("/", 1)[-1]
    return name or "main"


def _validate_label(label: str) -> None:
    if not label or not label.strip():
        raise InvalidCommandError(
            "Build command requires a non-empty target label.",
            hint="Pass the owning target's label, e.g. //pkg:lib.",
        )


def _validate_sources(sources: tuple[SourceFile, ...]) -> None:
    if not sources:
        raise InvalidCommandError("Build command requires at least one source file.")

    seen: set[str] = set()
    for source in sources:
        if source.language not in LANGUAGE_EXTENSIONS:
            raise InvalidCommandError(
                f"Unsupported source language: {source.language}",
                context={"path": source.path},
            )
        rel = PurePosixPath(source.path)
        if not source.path or rel.is_absolute() or ".." in rel.parts:
            raise InvalidCommandError(
                "Source paths must be relative and stay inside the staging root.",
                context={"path": source.path},
            )
        expected_suffix = LANGUAGE_EXTENSIONS[source.language]
        if rel.suffix != expected_suffix:
            raise InvalidCommandError(
                "Source extension does not match its language.",
                hint=f"{source.language} sources must end with {expected_suffix}.",
                context={"path": source.path, "language": source.language},
            )
        key = rel.as_posix()
        if key in seen:
            raise InvalidCommandError(
                "Duplicate source path in build command.",
                context={"path": source.path},
            )
        seen.add(key)


def _validate_outputs(outputs: OutputPaths) -> None:
    resolved = [path.resolve() for path in outputs.as_tuple()]
    if len(set(resolved)) != len(resolved):
        raise InvalidCommandError(
            "Declared output paths must be distinct.",
            context={
                "classes_dir": str(outputs.classes_dir),
                "archive": str(outputs.archive),
                "manifest": str(outputs.manifest),
            },
        )


def _validate_dependencies(classpath: tuple[Path, ...], direct: tuple[Path, ...]) -> None:
    on_classpath = set(classpath)
    for dep in direct:
        if dep not in on_classpath:
            raise InvalidCommandError(
                "Direct dependency is not on the classpath.",
                context={"dependency": str(dep)},
            )
