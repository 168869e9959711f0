"""Post-execution output verification.

Checks run in a fixed order and stop at the first failure:

1. the compilation completed,
2. every expected class file exists under the class directory,
3. the archive exists,
4. the dependency manifest exists and decodes,
5. the manifest's rule label ends with the command's target label.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ktbuilder.errors import (
    IncompleteExecutionError,
    LabelMismatchError,
    MissingArtifactError,
)
from ktbuilder.manifest import DependencyManifest, DependencyManifestCodec
from ktbuilder.models import BuildCommand, CompilationResult
from ktbuilder.sources import expected_class_files


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    class_files: tuple[Path, ...]
    archive: Path
    manifest: DependencyManifest


@dataclass(slots=True)
class OutputVerifier:
    codec: DependencyManifestCodec = field(default_factory=DependencyManifestCodec)

    def verify(
        self,
        command: BuildCommand,
        result: CompilationResult,
        expected: Sequence[str] | None = None,
    ) -> VerificationOutcome:
        outputs = command.outputs
        if not result.completed:
            raise IncompleteExecutionError(
                "Compilation did not complete; outputs are untrusted.",
                hint="Rerun the build; a cancelled or timed-out run cannot be verified.",
                context={"target": command.target_label},
            )

        class_files: list[Path] = []
        for rel in expected if expected is not None else expected_class_files(command.sources):
            path = outputs.classes_dir / rel
            if not path.is_file():
                raise MissingArtifactError(
                    f"Expected class file {rel} was not produced.",
                    path=str(path),
                    context={"target": command.target_label, "unit": rel},
                )
            class_files.append(path)

        if not outputs.archive.is_file():
            raise MissingArtifactError(
                "Archive was not produced.",
                path=str(outputs.archive),
                context={"target": command.target_label},
            )

        if not outputs.manifest.is_file():
            raise MissingArtifactError(
                "Dependency manifest was not produced.",
                path=str(outputs.manifest),
                context={"target": command.target_label},
            )
        manifest = self.codec.decode(outputs.manifest.read_bytes())

        if not manifest.matches_label(command.target_label):
            raise LabelMismatchError(
                "Dependency manifest rule label does not match the build target.",
                expected=command.target_label,
                actual=manifest.rule_label,
                hint="The manifest's rule label must end with the target label.",
            )

        return VerificationOutcome(
            class_files=tuple(class_files),
            archive=outputs.archive,
            manifest=manifest,
        )
