"""Typed builder error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across API surfaces."""

    INVALID_COMMAND = "E_INVALID_COMMAND"
    COMPILATION = "E_COMPILATION"
    DEADLINE_EXCEEDED = "E_DEADLINE_EXCEEDED"
    TOOLCHAIN_UNAVAILABLE = "E_TOOLCHAIN_UNAVAILABLE"
    INCOMPLETE_EXECUTION = "E_INCOMPLETE_EXECUTION"
    MISSING_ARTIFACT = "E_MISSING_ARTIFACT"
    MALFORMED_MANIFEST = "E_MALFORMED_MANIFEST"
    LABEL_MISMATCH = "E_LABEL_MISMATCH"
    CANCELLED = "E_CANCELLED"


class KtBuilderError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class InvalidCommandError(KtBuilderError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INVALID_COMMAND, hint=hint, context=context)


class CompilationError(KtBuilderError):
    """Toolchain rejected the sources; ``diagnostics`` holds its output lines."""

    diagnostics: tuple[str, ...]

    def __init__(
        self,
        message: str,
        *,
        diagnostics: Sequence[str] = (),
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = dict(context or {})
        if diagnostics:
            merged.setdefault("diagnostics", "\n".join(diagnostics)[:2000])
        super().__init__(message, code=ErrorCode.COMPILATION, hint=hint, context=merged)
        self.diagnostics = tuple(diagnostics)


class DeadlineExceededError(KtBuilderError):
    budget_seconds: float

    def __init__(
        self,
        message: str,
        *,
        budget_seconds: float,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"budget_seconds": f"{budget_seconds:g}", **dict(context or {})}
        super().__init__(message, code=ErrorCode.DEADLINE_EXCEEDED, hint=hint, context=merged)
        self.budget_seconds = budget_seconds


class ToolchainUnavailableError(KtBuilderError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.TOOLCHAIN_UNAVAILABLE, hint=hint, context=context
        )


class VerificationError(KtBuilderError):
    """Base class for post-execution contract violations."""


class IncompleteExecutionError(VerificationError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.INCOMPLETE_EXECUTION, hint=hint, context=context
        )


class MissingArtifactError(VerificationError):
    path: str

    def __init__(
        self,
        message: str,
        *,
        path: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"path": path, **dict(context or {})}
        super().__init__(message, code=ErrorCode.MISSING_ARTIFACT, hint=hint, context=merged)
        self.path = path


class MalformedManifestError(VerificationError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.MALFORMED_MANIFEST, hint=hint, context=context)


class LabelMismatchError(VerificationError):
    expected: str
    actual: str

    def __init__(
        self,
        message: str,
        *,
        expected: str,
        actual: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"expected": expected, "actual": actual, **dict(context or {})}
        super().__init__(message, code=ErrorCode.LABEL_MISMATCH, hint=hint, context=merged)
        self.expected = expected
        self.actual = actual


class CancelledError(KtBuilderError):
    """Raised inside a worker once its cancellation token has fired."""

    def __init__(
        self,
        message: str = "Operation was cancelled.",
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CANCELLED, hint=hint, context=context)


__all__ = [
    "CancelledError",
    "CompilationError",
    "DeadlineExceededError",
    "ErrorCode",
    "IncompleteExecutionError",
    "InvalidCommandError",
    "KtBuilderError",
    "LabelMismatchError",
    "MalformedManifestError",
    "MissingArtifactError",
    "ToolchainUnavailableError",
    "VerificationError",
]
