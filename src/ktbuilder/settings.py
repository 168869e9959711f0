"""Executor configuration and validation helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ktbuilder.errors import InvalidCommandError

DEFAULT_DEADLINE_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class Settings:
    deadline_seconds: float = DEFAULT_DEADLINE_SECONDS
    reproducible: bool = True
    jvm_target: str = "11"
    kotlinc: str = "kotlinc"
    javac: str = "javac"
    extra_kotlinc_args: tuple[str, ...] = ()
    extra_javac_args: tuple[str, ...] = ()


def ensure_valid_settings(settings: Settings) -> None:
    if not math.isfinite(settings.deadline_seconds) or settings.deadline_seconds <= 0:
        raise InvalidCommandError(
            "Deadline must be a positive, finite number of seconds.",
            hint="Set Settings.deadline_seconds to a finite value greater than zero.",
            context={"deadline_seconds": str(settings.deadline_seconds)},
        )
    if not settings.jvm_target:
        raise InvalidCommandError("Settings.jvm_target must not be empty.")
