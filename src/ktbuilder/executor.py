"""Compilation executor: stage sources, drive the toolchain, write outputs."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from ktbuilder.archive import write_jar
from ktbuilder.errors import CancelledError, CompilationError
from ktbuilder.manifest import (
    DependencyEntry,
    DependencyKind,
    DependencyManifest,
    write_manifest,
)
from ktbuilder.models import CLASS_FILE_SUFFIX, BuildCommand, CompilationResult
from ktbuilder.observability import StructuredLogger
from ktbuilder.runner import CancellationToken
from ktbuilder.settings import Settings
from ktbuilder.toolchains.base import StagedSource, Toolchain, ToolchainRequest


@dataclass(slots=True)
class CompilationExecutor:
    toolchain: Toolchain
    settings: Settings = field(default_factory=Settings)
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def compile(
        self,
        command: BuildCommand,
        token: CancellationToken | None = None,
    ) -> CompilationResult:
        token = token or CancellationToken()
        outputs = command.outputs
        self._log(
            command, "compile.start", "prepare", f"Compiling {len(command.sources)} source(s)."
        )

        staging_dir = outputs.staging_dir
        try:
            staged = _stage_sources(command, staging_dir)
            _reset_dir(outputs.classes_dir)
            for stale in (outputs.archive, outputs.manifest):
                stale.unlink(missing_ok=True)
            if token.cancelled:
                return self._incomplete(command, "before toolchain")

            request = ToolchainRequest(
                staging_dir=staging_dir,
                sources=staged,
                classes_dir=outputs.classes_dir,
                classpath=command.classpath,
                module_name=command.module_name,
                jvm_target=self.settings.jvm_target,
            )
            try:
                output = self.toolchain.compile(request, token)
            except CancelledError:
                return self._incomplete(command, "during toolchain")
            if output.cancelled:
                return self._incomplete(command, "during toolchain")
            if not output.ok:
                self._log(
                    command,
                    "compile.toolchain",
                    "compile",
                    "Toolchain rejected sources.",
                    level="error",
                    extra={"diagnostics": list(output.diagnostics)},
                )
                raise CompilationError(
                    f"Compilation of {command.target_label} failed.",
                    diagnostics=output.diagnostics,
                    hint="Fix the reported source errors and rebuild.",
                    context={"target": command.target_label, "toolchain": self.toolchain.name},
                )
            produced = _collect_class_files(outputs.classes_dir)
            self._log(
                command,
                "compile.toolchain",
                "compile",
                f"Toolchain produced {len(produced)} class file(s).",
            )

            if token.cancelled:
                return self._incomplete(command, "before archive", produced)
            entries = write_jar(
                classes_dir=outputs.classes_dir,
                archive=outputs.archive,
                target_label=command.rule_label,
                reproducible=self.settings.reproducible,
            )
            self._log(
                command,
                "compile.archive",
                "package",
                f"Wrote {outputs.archive.name} with {len(entries)} entries.",
            )

            if token.cancelled:
                return self._incomplete(command, "before manifest", produced)
            manifest = DependencyManifest(
                rule_label=command.rule_label,
                entries=classify_dependencies(
                    classpath=command.classpath,
                    direct=command.direct_dependencies,
                    used=output.used_classpath,
                ),
                success=True,
            )
            write_manifest(manifest, outputs.manifest)
            self._log(
                command,
                "compile.manifest",
                "package",
                f"Wrote dependency manifest with {len(manifest.entries)} entries.",
            )
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

        self._log(command, "compile.done", "done", "Compilation completed.")
        return CompilationResult(
            completed=True,
            produced_class_files=produced,
            diagnostics=output.diagnostics,
            manifest=manifest,
        )

    def _incomplete(
        self,
        command: BuildCommand,
        where: str,
        produced: frozenset[str] = frozenset(),
    ) -> CompilationResult:
        self._log(
            command,
            "compile.cancelled",
            "cancel",
            f"Compilation cancelled {where}.",
            level="warning",
        )
        return CompilationResult(completed=False, produced_class_files=produced)

    def _log(
        self,
        command: BuildCommand,
        operation: str,
        phase: str,
        message: str,
        *,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation=operation,
            target=command.target_label,
            phase=phase,
            toolchain=self.toolchain.name,
            message=message,
            level=level,
            extra=extra,
        )


def classify_dependencies(
    *,
    classpath: tuple[Path, ...],
    direct: tuple[Path, ...],
    used: frozenset[Path] | None,
) -> tuple[DependencyEntry, ...]:
    """Classify classpath jars for the manifest, in classpath order.

    Without usage information, direct deps are explicit and the rest implicit.
    With it, used direct deps are explicit, used transitive deps implicit and
    unused direct deps unused; unused transitive deps are left out.
    """
    direct_set = set(direct)
    entries: list[DependencyEntry] = []
    for jar in classpath:
        is_direct = jar in direct_set
        kind: DependencyKind
        if used is None or jar in used:
            kind = "explicit" if is_direct else "implicit"
        elif is_direct:
            kind = "unused"
        else:
            continue
        entries.append(DependencyEntry(path=jar.as_posix(), kind=kind))
    return tuple(entries)


def _stage_sources(command: BuildCommand, staging_dir: Path) -> tuple[StagedSource, ...]:
    _reset_dir(staging_dir)
    staged: list[StagedSource] = []
    for source in command.sources:
        path = staging_dir / source.path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source.content, encoding="utf-8")
        staged.append(
            StagedSource(path=path, relative_path=source.path, language=source.language)
        )
    return tuple(staged)


def _reset_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def _collect_class_files(classes_dir: Path) -> frozenset[str]:
    return frozenset(
        path.relative_to(classes_dir).as_posix()
        for path in classes_dir.rglob(f"*{CLASS_FILE_SUFFIX}")
        if path.is_file()
    )
