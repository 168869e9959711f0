"""Compile-and-verify entrypoint for a single build command."""

from __future__ import annotations

from functools import partial

from ktbuilder.executor import CompilationExecutor
from ktbuilder.models import BuildCommand
from ktbuilder.observability import StructuredLogger
from ktbuilder.runner import TimeBoundedRunner
from ktbuilder.settings import Settings, ensure_valid_settings
from ktbuilder.toolchains.base import Toolchain
from ktbuilder.toolchains.kotlin_jvm import KotlinJvmToolchain
from ktbuilder.verify import OutputVerifier, VerificationOutcome


def build_and_verify(
    command: BuildCommand,
    *,
    toolchain: Toolchain | None = None,
    settings: Settings | None = None,
    logger: StructuredLogger | None = None,
    verifier: OutputVerifier | None = None,
) -> VerificationOutcome:
    """Compile *command* under its deadline, then verify the declared outputs.

    Verification starts only after the runner has reported; a deadline
    expiry raises ``DeadlineExceededError`` and nothing is verified. Without an
    explicit *toolchain*, ``kotlinc``/``javac`` are driven as configured in
    *settings*.
    """
    settings = settings or Settings()
    ensure_valid_settings(settings)
    if toolchain is None:
        toolchain = KotlinJvmToolchain.from_settings(settings)
    logger = logger or StructuredLogger()

    executor = CompilationExecutor(toolchain=toolchain, settings=settings, logger=logger)
    runner = TimeBoundedRunner(logger=logger, label=command.target_label)
    result = runner.run_with_deadline(
        partial(executor.compile, command),
        settings.deadline_seconds,
    )

    outcome = (verifier or OutputVerifier()).verify(command, result)
    logger.log(
        operation="verify.done",
        target=command.target_label,
        phase="verify",
        toolchain=toolchain.name,
        message=f"Verified {len(outcome.class_files)} class file(s), archive and manifest.",
    )
    return outcome