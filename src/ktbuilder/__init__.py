"""Public package entrypoint for the Kotlin/JVM build-step executor."""

from .errors import (
    CompilationError,
    DeadlineExceededError,
    IncompleteExecutionError,
    InvalidCommandError,
    KtBuilderError,
    LabelMismatchError,
    MalformedManifestError,
    MissingArtifactError,
    ToolchainUnavailableError,
    VerificationError,
)
from .executor import CompilationExecutor
from .manifest import DependencyEntry, DependencyManifest, DependencyManifestCodec
from .models import BuildCommand, CompilationResult, OutputPaths, SourceFile
from .observability import StructuredLogger
from .pipeline import build_and_verify
from .runner import CancellationToken, TimeBoundedRunner
from .settings import Settings
from .toolchains import InProcessToolchain, KotlinJvmToolchain
from .verify import OutputVerifier, VerificationOutcome

__all__ = [
    "BuildCommand",
    "CancellationToken",
    "CompilationError",
    "CompilationExecutor",
    "CompilationResult",
    "DeadlineExceededError",
    "DependencyEntry",
    "DependencyManifest",
    "DependencyManifestCodec",
    "IncompleteExecutionError",
    "InProcessToolchain",
    "InvalidCommandError",
    "KotlinJvmToolchain",
    "KtBuilderError",
    "LabelMismatchError",
    "MalformedManifestError",
    "MissingArtifactError",
    "OutputPaths",
    "OutputVerifier",
    "Settings",
    "SourceFile",
    "StructuredLogger",
    "TimeBoundedRunner",
    "ToolchainUnavailableError",
    "VerificationError",
    "VerificationOutcome",
    "build_and_verify",
]
