import os
import subprocess
from pathlib import Path
from typing import Any

import pytest

from conftest import TARGET_LABEL, CommandFactory, java, kotlin
from ktbuilder.errors import ToolchainUnavailableError
from ktbuilder.executor import CompilationExecutor
from ktbuilder.models import BuildCommand
from ktbuilder.runner import CancellationToken
from ktbuilder.settings import Settings
from ktbuilder.toolchains import KotlinJvmToolchain, StagedSource, ToolchainRequest


class _FakeProcess:
    """Popen stand-in that finishes immediately or hangs until killed."""

    def __init__(self, argv: list[str], *, hang: bool = False, returncode: int = 0) -> None:
        self.argv = argv
        self.hang = hang
        self.killed = False
        self.returncode: int | None = None
        self._final_returncode = returncode

    def communicate(self, timeout: float | None = None) -> tuple[str, None]:
        if self.killed:
            self.returncode = -9
            return ("", None)
        if self.hang:
            raise subprocess.TimeoutExpired(self.argv, timeout or 0)
        self.returncode = self._final_returncode
        return (f"warning: ran {Path(self.argv[0]).name}\n", None)

    def kill(self) -> None:
        self.killed = True


def _patch_popen(
    monkeypatch: pytest.MonkeyPatch,
    *,
    hang: bool = False,
    returncode: int = 0,
) -> list[_FakeProcess]:
    processes: list[_FakeProcess] = []

    def _popen(argv: list[str], **kwargs: Any) -> _FakeProcess:
        assert kwargs["stderr"] == subprocess.STDOUT
        process = _FakeProcess(argv, hang=hang, returncode=returncode)
        processes.append(process)
        return process

    monkeypatch.setattr("ktbuilder.toolchains.kotlin_jvm.subprocess.Popen", _popen)
    monkeypatch.setattr(
        "ktbuilder.toolchains.kotlin_jvm.shutil.which", lambda tool: f"/bin/{tool}"
    )
    return processes


def _request(tmp_path: Path, *languages: str) -> ToolchainRequest:
    sources = []
    for index, language in enumerate(languages):
        suffix = ".kt" if language == "kotlin" else ".java"
        rel = f"pkg/Unit{index}{suffix}"
        sources.append(
            StagedSource(
                path=tmp_path / "staging" / rel,
                relative_path=rel,
                language=language,  # type: ignore[arg-type]
            )
        )
    return ToolchainRequest(
        staging_dir=tmp_path / "staging",
        sources=tuple(sources),
        classes_dir=tmp_path / "classes",
        classpath=(tmp_path / "dep.jar",),
        module_name="simple",
        jvm_target="1.8",
    )


def test_kotlinc_command_includes_all_sources_and_module(tmp_path: Path) -> None:
    request = _request(tmp_path, "kotlin", "java")
    command = KotlinJvmToolchain(kotlinc_args=["-Werror"]).kotlinc_command(request)

    assert command[:7] == (
        "kotlinc",
        "-d",
        str(tmp_path / "classes"),
        "-module-name",
        "simple",
        "-jvm-target",
        "1.8",
    )
    assert "-Werror" in command
    assert command[-2:] == (
        str(tmp_path / "staging" / "pkg/Unit0.kt"),
        str(tmp_path / "staging" / "pkg/Unit1.java"),
    )


def test_javac_command_compiles_against_kotlin_output(tmp_path: Path) -> None:
    request = _request(tmp_path, "kotlin", "java")
    command = KotlinJvmToolchain().javac_command(request)

    classpath = command[command.index("-classpath") + 1].split(os.pathsep)
    assert classpath == [str(tmp_path / "classes"), str(tmp_path / "dep.jar")]
    assert command[command.index("--release") + 1] == "8"
    assert command[-1] == str(tmp_path / "staging" / "pkg/Unit1.java")


def test_mixed_sources_run_kotlinc_then_javac(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    processes = _patch_popen(monkeypatch)
    output = KotlinJvmToolchain().compile(_request(tmp_path, "kotlin", "java"), CancellationToken())

    assert output.ok
    assert [process.argv[0] for process in processes] == ["kotlinc", "javac"]
    assert output.diagnostics == ("warning: ran kotlinc", "warning: ran javac")
    assert output.used_classpath is None


def test_java_only_sources_skip_kotlinc(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    processes = _patch_popen(monkeypatch)
    KotlinJvmToolchain().compile(_request(tmp_path, "java"), CancellationToken())
    assert [process.argv[0] for process in processes] == ["javac"]


def test_failing_pass_stops_the_sequence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    processes = _patch_popen(monkeypatch, returncode=1)
    output = KotlinJvmToolchain().compile(_request(tmp_path, "kotlin", "java"), CancellationToken())

    assert not output.ok
    assert not output.cancelled
    assert len(processes) == 1


def test_cancellation_kills_the_compiler(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    processes = _patch_popen(monkeypatch, hang=True)
    token = CancellationToken()
    token.cancel()

    output = KotlinJvmToolchain().compile(_request(tmp_path, "kotlin"), token)

    assert output.cancelled
    assert not output.ok
    assert processes[0].killed


def test_missing_compiler_is_reported(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ktbuilder.toolchains.kotlin_jvm.shutil.which", lambda _: None)

    with pytest.raises(ToolchainUnavailableError) as excinfo:
        KotlinJvmToolchain().compile(_request(tmp_path, "kotlin"), CancellationToken())

    assert excinfo.value.context["tool"] == "kotlinc"
    assert excinfo.value.hint is not None


def test_toolchain_from_settings() -> None:
    settings = Settings(kotlinc="/opt/kotlin/bin/kotlinc", extra_javac_args=("-Xlint",))
    toolchain = KotlinJvmToolchain.from_settings(settings)
    assert toolchain.kotlinc == "/opt/kotlin/bin/kotlinc"
    assert toolchain.javac_args == ["-Xlint"]


def test_executor_reports_cancelled_subprocess_as_incomplete(
    make_command: CommandFactory,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_popen(monkeypatch, hang=True)
    command = make_command(
        kotlin("AClass.kt", "package something;class AClass{}"),
        java("AnotherClass.java", "package something;", "class AnotherClass{}"),
    )
    token = CancellationToken()

    def _cancel_on_popen(argv: list[str], **kwargs: Any) -> _FakeProcess:
        token.cancel()
        return _FakeProcess(argv, hang=True)

    monkeypatch.setattr("ktbuilder.toolchains.kotlin_jvm.subprocess.Popen", _cancel_on_popen)

    result = CompilationExecutor(toolchain=KotlinJvmToolchain()).compile(command, token)

    assert not result.completed
    assert not command.outputs.manifest.exists()


def test_relative_outputs_reach_the_compilers_as_absolute_paths(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)
    command = BuildCommand.create(
        target_label=TARGET_LABEL,
        sources=[
            kotlin("something/AClass.kt", "package something;class AClass{}"),
            java("something/AnotherClass.java", "package something;", "class AnotherClass{}"),
        ],
        classes_dir="out/classes",
        archive="out/simple.jar",
        manifest="out/simple.jdeps",
        classpath=["libs/dep.jar"],
    )
    calls: list[list[str]] = []

    def _popen(argv: list[str], **kwargs: Any) -> _FakeProcess:
        cwd = Path(kwargs["cwd"])
        for arg in argv:
            if arg.endswith((".kt", ".java")):
                assert (cwd / arg).is_file(), arg
        calls.append(argv)
        return _FakeProcess(argv)

    monkeypatch.setattr("ktbuilder.toolchains.kotlin_jvm.subprocess.Popen", _popen)
    monkeypatch.setattr(
        "ktbuilder.toolchains.kotlin_jvm.shutil.which", lambda tool: f"/bin/{tool}"
    )

    result = CompilationExecutor(toolchain=KotlinJvmToolchain()).compile(command)

    assert result.completed
    kotlinc_argv, javac_argv = calls
    classes_dir = str(tmp_path / "out" / "classes")
    assert kotlinc_argv[kotlinc_argv.index("-d") + 1] == classes_dir
    assert javac_argv[javac_argv.index("-d") + 1] == classes_dir
    assert javac_argv[javac_argv.index("-classpath") + 1].split(os.pathsep) == [
        classes_dir,
        str(tmp_path / "libs" / "dep.jar"),
    ]
    assert kotlinc_argv[-1] == str(
        tmp_path / "out" / "classes.staging" / "something" / "AnotherClass.java"
    )
