"""Tests for the command line interface."""

import json

import pytest
from click.testing import CliRunner

import scriptflow.cli as cli_module
from scriptflow.cli import cli
from scriptflow.pipeline import Graph, RunDriver

from conftest import FakeExecutor


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_executor(monkeypatch, tmp_path):
    """Swap the script executor for a fake one in `scriptflow run`."""
    monkeypatch.setenv("SCRIPTFLOW_TIDY", "false")
    monkeypatch.setenv("SCRIPTFLOW_TEMP_DIR", str(tmp_path / "tmp"))
    executor = FakeExecutor()
    monkeypatch.setattr(cli_module, "RunDriver", lambda config: RunDriver(executor=executor, config=config))
    return executor


def _write_graph(path):
    graph = Graph()
    graph.add_node("input", {"filepath": "clip.mp4"}, node_id="src")
    graph.add_node("ff_scale", {"width": "640"}, node_id="scale")
    graph.connect("src", "scale")
    graph.save(path)
    return path


class TestSteps:
    def test_list(self, runner):
        result = runner.invoke(cli, ["steps", "list"])
        assert result.exit_code == 0
        assert "ff_scale" in result.output
        assert "ff_concat" in result.output

    def test_list_by_category(self, runner):
        result = runner.invoke(cli, ["steps", "list", "--category", "timing"])
        assert result.exit_code == 0
        assert "ff_fps" in result.output
        assert "ff_scale" not in result.output

    def test_show(self, runner):
        result = runner.invoke(cli, ["steps", "show", "ff_crop"])
        assert result.exit_code == 0
        assert "xpixels" in result.output
        assert "required" in result.output

    def test_show_unknown(self, runner):
        result = runner.invoke(cli, ["steps", "show", "ff_nope"])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestCreate:
    def test_create_json(self, runner, tmp_path):
        path = tmp_path / "flow.json"
        result = runner.invoke(cli, ["create", str(path), "-s", "ff_scale:input=in.mp4,width=1280,ff_flip"])

        assert result.exit_code == 0
        data = json.loads(path.read_text())
        assert list(data) == ["ff_scale", "ff_flip"]
        assert data["ff_scale"] == {"input": "in.mp4", "width": 1280}

    def test_create_unknown_step(self, runner, tmp_path):
        path = tmp_path / "flow.json"
        result = runner.invoke(cli, ["create", str(path), "-s", "ff_nope:input=a.mp4"])

        assert result.exit_code == 1
        assert not path.exists()


class TestExportAndValidate:
    def test_export_to_stdout(self, runner, tmp_path):
        graph_path = _write_graph(tmp_path / "graph.json")

        result = runner.invoke(cli, ["export", str(graph_path)])

        assert result.exit_code == 0
        config = json.loads(result.output)
        assert config["ff_scale"]["input"] == "clip.mp4"

    def test_export_to_file(self, runner, tmp_path):
        graph_path = _write_graph(tmp_path / "graph.json")
        out = tmp_path / "scriptflow.yaml"

        result = runner.invoke(cli, ["export", str(graph_path), "-o", str(out)])

        assert result.exit_code == 0
        assert "ff_scale:" in out.read_text()

    def test_validate_valid_graph(self, runner, tmp_path):
        graph_path = _write_graph(tmp_path / "graph.json")
        result = runner.invoke(cli, ["validate", str(graph_path)])
        assert result.exit_code == 0
        assert "Pipeline is valid" in result.output

    def test_validate_reports_problems(self, runner, tmp_path):
        path = tmp_path / "scriptflow.json"
        path.write_text(json.dumps({"ff_overlay": {"input": "a.mp4"}, "ff_nope": {}}))

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "missing required parameter: overlay" in result.output
        assert "Unknown step type: ff_nope" in result.output

    def test_validate_malformed_file(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestRun:
    def test_run_config(self, runner, fake_executor, tmp_path):
        path = tmp_path / "scriptflow.json"
        path.write_text(json.dumps({
            "ff_scale": {"input": "in.mp4", "output": "scaled.mp4"},
            "ff_flip": {"input": "scaled.mp4", "horizontal": True},
        }))

        result = runner.invoke(cli, ["run", str(path)])

        assert result.exit_code == 0, result.output
        assert "Pipeline complete!" in result.output
        assert (tmp_path / "output.mp4").read_text() == "ff_flip"
        assert [call[0] for call in fake_executor.calls] == ["ff_scale", "ff_flip"]

    def test_run_graph_file(self, runner, fake_executor, tmp_path):
        graph_path = _write_graph(tmp_path / "graph.json")

        result = runner.invoke(cli, ["run", str(graph_path), "-o", "final.mp4"])

        assert result.exit_code == 0, result.output
        assert fake_executor.calls[0][1]["input"] == "clip.mp4"
        assert (tmp_path / "final.mp4").exists()

    def test_run_inline_steps(self, runner, fake_executor, tmp_path):
        result = runner.invoke(cli, ["run", "--steps", "ff_fps:input=in.mp4,fps=25", "-b", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert fake_executor.calls[0][1] == {"input": "in.mp4", "fps": 25}

    def test_failed_step_exit_code(self, runner, fake_executor, tmp_path):
        fake_executor.fail.add("ff_scale")
        path = tmp_path / "scriptflow.json"
        path.write_text(json.dumps({
            "ff_scale": {"input": "in.mp4", "output": "scaled.mp4"},
            "ff_flip": {"input": "in.mp4"},
        }))

        result = runner.invoke(cli, ["run", str(path)])

        assert result.exit_code == cli_module.EXIT_STEP_FAILED
        assert "1 of 2 steps failed" in result.output

    def test_no_output_exit_code(self, runner, fake_executor, tmp_path):
        fake_executor.fail.add("ff_flip")
        path = tmp_path / "scriptflow.json"
        path.write_text(json.dumps({"ff_flip": {"input": "in.mp4"}}))

        result = runner.invoke(cli, ["run", str(path)])

        assert result.exit_code == cli_module.EXIT_NO_OUTPUT
        assert not (tmp_path / "output.mp4").exists()

    def test_invalid_graph_is_not_run(self, runner, fake_executor, tmp_path):
        graph = Graph()
        graph.add_node("ff_overlay", {}, node_id="lonely")
        graph_path = tmp_path / "graph.json"
        graph.save(graph_path)

        result = runner.invoke(cli, ["run", str(graph_path)])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert fake_executor.calls == []

    def test_unknown_step_in_config(self, runner, fake_executor, tmp_path):
        path = tmp_path / "scriptflow.json"
        path.write_text(json.dumps({"ff_nope": {"input": "in.mp4"}}))

        result = runner.invoke(cli, ["run", str(path)])

        assert result.exit_code == 1
        assert fake_executor.calls == []

    def test_nothing_to_run(self, runner, fake_executor):
        result = runner.invoke(cli, ["run"])
        assert result.exit_code == 1
        assert "Specify a config file or --steps" in result.output

    def test_summary(self, runner, fake_executor, tmp_path):
        path = tmp_path / "scriptflow.json"
        path.write_text(json.dumps({"ff_fps": {"input": "in.mp4"}}))

        result = runner.invoke(cli, ["run", str(path), "--summary"])

        assert result.exit_code == 0, result.output
        assert list(tmp_path.glob("run_scriptflow_*.json"))
