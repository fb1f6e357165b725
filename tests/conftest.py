"""
Shared pytest fixtures for strata tests.

This module provides:
- maven_stages: the base -> pom -> {dependency_check, source -> {test, package}}
  example pipeline, built from plain shell commands
- context_dir: a build context holding a tiny Maven-like project
- build_settings: settings pointing at the context and a per-test store
- RecordingRunner: a command runner that records what it was asked to run
  (recording_runner executes through /bin/sh, make_runner builds custom ones)
"""

import subprocess
import threading
from collections.abc import Callable
from pathlib import Path

import pytest

from strata.core.bootstrap import reset as reset_bootstrap
from strata.core.interfaces.execution import CommandOutcome
from strata.core.models import Stage
from strata.core.settings import StrataSettings, load_settings


class RecordingRunner:
    """
    Command runner that records what it was asked to run.

    Records every command with its working directory and environment.
    Commands containing one of ``fail_on`` return the mapped exit code.
    Otherwise the command is run through /bin/sh when ``execute`` is set,
    or reported as successful without spawning anything. An optional
    ``effect`` callback can write files into the working copy.
    """

    def __init__(
        self,
        fail_on: dict[str, int] | None = None,
        effect: Callable[[str, Path], None] | None = None,
        execute: bool = False,
    ) -> None:
        self.fail_on = fail_on or {}
        self.effect = effect
        self.execute = execute
        self.calls: list[tuple[str, Path, dict[str, str]]] = []
        self._lock = threading.Lock()

    def run(self, command: str, *, cwd: Path, env: dict[str, str]) -> CommandOutcome:
        with self._lock:
            self.calls.append((command, cwd, dict(env)))
        for needle, exit_code in self.fail_on.items():
            if needle in command:
                return CommandOutcome(exit_code=exit_code, duration=0.0, stderr=f"{needle} failed")
        if self.effect is not None:
            self.effect(command, cwd)
        if self.execute:
            result = subprocess.run(
                ["/bin/sh", "-c", command], cwd=cwd, env=env, capture_output=True, text=True
            )
            return CommandOutcome(
                exit_code=result.returncode, duration=0.0, stdout=result.stdout, stderr=result.stderr
            )
        return CommandOutcome(exit_code=0, duration=0.0)

    @property
    def commands(self) -> list[str]:
        with self._lock:
            return [command for command, _, _ in self.calls]


@pytest.fixture(autouse=True)
def reset_container():
    """Keep DI registrations from leaking between tests."""
    reset_bootstrap()
    yield
    reset_bootstrap()


@pytest.fixture(autouse=True)
def clean_strata_env(monkeypatch):
    """Ignore STRATA_* variables from the developer's shell."""
    import os

    for key in list(os.environ):
        if key.startswith("STRATA_"):
            monkeypatch.delenv(key)


@pytest.fixture
def context_dir(tmp_path: Path) -> Path:
    """Build context with a minimal Maven-style project."""
    ctx = tmp_path / "context"
    (ctx / "app" / "src" / "main").mkdir(parents=True)
    (ctx / "app" / "pom.xml").write_text("<project><artifactId>app</artifactId></project>\n")
    (ctx / "app" / "src" / "main" / "Main.java").write_text("class Main {}\n")
    (ctx / "maven-settings.xml").write_text("<settings/>\n")
    return ctx


@pytest.fixture
def build_settings(tmp_path: Path, context_dir: Path) -> StrataSettings:
    """Settings rooted at the test context, with an isolated artifact store."""
    return load_settings(
        start_dir=str(tmp_path),
        build={"context_dir": str(context_dir), "max_workers": 4},
        store={"path": str(tmp_path / "store")},
    )


@pytest.fixture
def maven_stages() -> list[Stage]:
    """The example pipeline: base -> pom -> {dependency_check, source -> {test, package}}."""
    return [
        Stage(
            name="base",
            base="scratch",
            commands=[
                "mkdir -p opt/jdk && echo 8 > opt/jdk/version",
                {"instruction": "ENV", "argument": "JAVA_HOME=/opt/jdk"},
            ],
        ),
        Stage(
            name="pom",
            parent="base",
            commands=[
                {"instruction": "COPY", "argument": "maven-settings.xml /root/.m2/settings.xml"},
                {"instruction": "WORKDIR", "argument": "/app"},
                {"instruction": "COPY", "argument": "app/pom.xml pom.xml"},
                {"instruction": "ENV", "argument": 'MAVEN_CLI_OPTS="--batch-mode --quiet"'},
            ],
        ),
        Stage(
            name="dependency_check",
            parent="pom",
            commands=["echo checked > dependency-check-report.txt"],
            outputs=["app/dependency-check-report.txt"],
        ),
        Stage(
            name="source",
            parent="pom",
            commands=[{"instruction": "COPY", "argument": "app/src src"}],
        ),
        Stage(
            name="test",
            parent="source",
            commands=["ls -R src > test-results.txt"],
        ),
        Stage(
            name="package",
            parent="source",
            commands=["mkdir -p target && cat src/main/Main.java > target/app.jar"],
            outputs=["app/target/app.jar"],
        ),
    ]


@pytest.fixture
def make_runner() -> type[RecordingRunner]:
    """Factory for RecordingRunner instances (``make_runner(fail_on={...})``)."""
    return RecordingRunner


@pytest.fixture
def recording_runner() -> RecordingRunner:
    """A runner that executes commands through /bin/sh and records them."""
    return RecordingRunner(execute=True)
