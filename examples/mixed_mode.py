"""Compile a Kotlin + Java target and verify its declared outputs.

Uses the real ``kotlinc``/``javac`` toolchain when both are on PATH and
falls back to the in-process toolchain otherwise.
"""

from __future__ import annotations

import shutil
import sys
import tempfile
from pathlib import Path

from ktbuilder import (
    BuildCommand,
    InProcessToolchain,
    KotlinJvmToolchain,
    KtBuilderError,
    Settings,
    SourceFile,
    StructuredLogger,
    build_and_verify,
)
from ktbuilder.manifest import manifest_to_json


def main() -> int:
    out = Path(tempfile.mkdtemp(prefix="ktbuilder-example-"))
    command = BuildCommand.create(
        target_label="//examples/mixed:lib",
        sources=[
            SourceFile(
                path="something/AClass.kt",
                language="kotlin",
                content="package something\n\nclass AClass {\n    fun peer() = AnotherClass()\n}\n",
            ),
            SourceFile(
                path="something/AnotherClass.java",
                language="java",
                content="package something;\n\npublic class AnotherClass {}\n",
            ),
        ],
        classes_dir=out / "classes",
        archive=out / "lib.jar",
        manifest=out / "lib.jdeps",
    )

    settings = Settings(deadline_seconds=120.0)
    if shutil.which(settings.kotlinc) and shutil.which(settings.javac):
        toolchain = KotlinJvmToolchain.from_settings(settings)
    else:
        toolchain = InProcessToolchain()

    logger = StructuredLogger()
    try:
        outcome = build_and_verify(command, toolchain=toolchain, settings=settings, logger=logger)
    except KtBuilderError as exc:
        print(exc, file=sys.stderr)
        return 1
    finally:
        logger.to_json_lines(out / "build.jsonl")

    for path in outcome.class_files:
        print(path.relative_to(out))
    print(manifest_to_json(outcome.manifest), end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
