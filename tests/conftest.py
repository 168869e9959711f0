"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ktbuilder.models import BuildCommand, SourceFile
from ktbuilder.toolchains import InProcessToolchain

TARGET_LABEL = "//src/test/data:simple"

CommandFactory = Callable[..., BuildCommand]


@pytest.fixture
def inprocess_toolchain() -> InProcessToolchain:
    """Provide an in-process toolchain for tests that compile sources."""
    return InProcessToolchain()


@pytest.fixture
def make_command(tmp_path: Path) -> CommandFactory:
    """Build commands whose outputs live under a per-test ``out`` directory."""

    def _make(*sources: SourceFile, **overrides: object) -> BuildCommand:
        out = tmp_path / "out"
        kwargs: dict[str, object] = {
            "target_label": TARGET_LABEL,
            "sources": sources,
            "classes_dir": out / "classes",
            "archive": out / "simple.jar",
            "manifest": out / "simple.jdeps",
        }
        kwargs.update(overrides)
        return BuildCommand.create(**kwargs)  # type: ignore[arg-type]

    return _make


def kotlin(path: str, *lines: str) -> SourceFile:
    return SourceFile(path=path, language="kotlin", content="\n".join(lines))


def java(path: str, *lines: str) -> SourceFile:
    return SourceFile(path=path, language="java", content="\n".join(lines))
