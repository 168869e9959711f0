"""Kotlin/JVM toolchain driving ``kotlinc`` and ``javac`` as subprocesses.

Mixed-mode compiles run in two coordinated passes:

1. ``kotlinc`` compiles every ``.kt`` source, with the ``.java`` sources on
   its command line so Kotlin code can resolve Java symbols.
2. ``javac`` compiles the ``.java`` sources with the Kotlin class output on
   its classpath.

Both passes poll the cancellation token; a cancelled pass kills its process.
Every path handed to a compiler is made absolute first.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ktbuilder.errors import ToolchainUnavailableError
from ktbuilder.toolchains.base import ToolchainOutput, ToolchainRequest

if TYPE_CHECKING:
    from ktbuilder.runner import CancellationToken
    from ktbuilder.settings import Settings

POLL_INTERVAL_SECONDS = 0.05


@dataclass(frozen=True, slots=True)
class _PassResult:
    returncode: int
    output: tuple[str, ...]
    cancelled: bool = False


@dataclass(slots=True)
class KotlinJvmToolchain:
    name: str = "kotlin_jvm"
    kotlinc: str = "kotlinc"
    javac: str = "javac"
    kotlinc_args: list[str] = field(default_factory=list)
    javac_args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> KotlinJvmToolchain:
        return cls(
            kotlinc=settings.kotlinc,
            javac=settings.javac,
            kotlinc_args=list(settings.extra_kotlinc_args),
            javac_args=list(settings.extra_javac_args),
        )

    def compile(self, request: ToolchainRequest, token: CancellationToken) -> ToolchainOutput:
        kotlin_sources = request.sources_for("kotlin")
        java_sources = request.sources_for("java")
        self._ensure_tools(need_kotlinc=bool(kotlin_sources), need_javac=bool(java_sources))
        request.classes_dir.mkdir(parents=True, exist_ok=True)

        diagnostics: list[str] = []
        if kotlin_sources:
            result = self._run(self.kotlinc_command(request), request, token)
            diagnostics.extend(result.output)
            if result.cancelled or result.returncode != 0:
                return ToolchainOutput(
                    ok=False, diagnostics=tuple(diagnostics), cancelled=result.cancelled
                )

        if java_sources:
            result = self._run(self.javac_command(request), request, token)
            diagnostics.extend(result.output)
            if result.cancelled or result.returncode != 0:
                return ToolchainOutput(
                    ok=False, diagnostics=tuple(diagnostics), cancelled=result.cancelled
                )

        return ToolchainOutput(ok=True, diagnostics=tuple(diagnostics))

    def kotlinc_command(self, request: ToolchainRequest) -> tuple[str, ...]:
        command = [
            self.kotlinc,
            "-d",
            _absolute(request.classes_dir),
            "-module-name",
            request.module_name,
            "-jvm-target",
            request.jvm_target,
        ]
        if request.classpath:
            command.extend(["-classpath", _join_classpath(request.classpath)])
        command.extend(self.kotlinc_args)
        command.extend(_absolute(source.path) for source in request.sources)
        return tuple(command)

    def javac_command(self, request: ToolchainRequest) -> tuple[str, ...]:
        command = [
            self.javac,
            "-d",
            _absolute(request.classes_dir),
            "-classpath",
            _join_classpath((request.classes_dir, *request.classpath)),
            "--release",
            _java_release(request.jvm_target),
            "-implicit:none",
        ]
        command.extend(self.javac_args)
        command.extend(_absolute(source.path) for source in request.sources_for("java"))
        return tuple(command)

    def _run(
        self,
        command: tuple[str, ...],
        request: ToolchainRequest,
        token: CancellationToken,
    ) -> _PassResult:
        env = dict(os.environ)
        env.update(self.env)
        process = subprocess.Popen(
            list(command),
            cwd=str(request.staging_dir),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
        while True:
            try:
                stdout, _ = process.communicate(timeout=POLL_INTERVAL_SECONDS)
            except subprocess.TimeoutExpired:
                if token.cancelled:
                    process.kill()
                    stdout, _ = process.communicate()
                    return _PassResult(
                        returncode=process.returncode,
                        output=_lines(stdout),
                        cancelled=True,
                    )
                continue
            return _PassResult(returncode=process.returncode, output=_lines(stdout))

    def _ensure_tools(self, *, need_kotlinc: bool, need_javac: bool) -> None:
        for tool, needed in ((self.kotlinc, need_kotlinc), (self.javac, need_javac)):
            if needed and shutil.which(tool) is None:
                raise ToolchainUnavailableError(
                    f"Kotlin/JVM toolchain requires `{tool}` in PATH.",
                    hint="Install the compiler or use the in-process toolchain for tests.",
                    context={"toolchain": self.name, "tool": tool},
                )


def _join_classpath(entries: tuple[Path, ...]) -> str:
    return os.pathsep.join(_absolute(entry) for entry in entries)


# The compilers run inside the staging directory, so relative paths would resolve there.
def _absolute(path: Path) -> str:
    return str(path.absolute())


def _java_release(jvm_target: str) -> str:
    return jvm_target[2:] if jvm_target.startswith("1.") else jvm_target


def _lines(output: str | None) -> tuple[str, ...]:
    if not output:
        return ()
    return tuple(line for line in output.splitlines() if line.strip())
