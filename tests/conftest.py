"""Shared fixtures for scriptflow tests."""

import shutil
import textwrap
from pathlib import Path

import pytest

from scriptflow.config import Config
from scriptflow.pipeline import StepOutcome

requires_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")


def write_script(scripts_dir: Path, name: str, body: str) -> Path:
    """Write a bash step script into the scripts directory."""
    scripts_dir.mkdir(parents=True, exist_ok=True)
    path = scripts_dir / f"{name}.sh"
    path.write_text("#!/usr/bin/env bash\n" + textwrap.dedent(body))
    return path


class FakeExecutor:
    """Step executor that writes the expected output file instead of running ffmpeg."""

    def __init__(self, fail=(), raise_on=(), write_outputs=True):
        self.fail = set(fail)
        self.raise_on = set(raise_on)
        self.write_outputs = write_outputs
        self.calls = []

    def execute(self, step_type, parameters, working_dir):
        self.calls.append((step_type, dict(parameters), working_dir))
        if step_type in self.raise_on:
            raise RuntimeError(f"{step_type} exploded")
        if step_type in self.fail:
            return StepOutcome(exit_code=1, stderr=f"{step_type}: boom")
        if self.write_outputs:
            output = parameters.get("output") or f"{step_type}.mp4"
            (Path(working_dir) / output).write_text(step_type)
        return StepOutcome(exit_code=0, stdout="ok")


@pytest.fixture
def config(tmp_path):
    return Config(
        scripts_dir=tmp_path / "js",
        temp_dir=tmp_path / "tmp",
        output_filename="output.mp4",
        tidy=False,
    )


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path
