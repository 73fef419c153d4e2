"""Tests for graph export and validation."""

import json

import pytest

from scriptflow.pipeline import Graph, GraphExporter, StepRegistry
from scriptflow.utils import CircularDependencyError, ConfigurationError, ValidationError


@pytest.fixture
def exporter():
    return GraphExporter()


def _scale_chain(count: int) -> Graph:
    graph = Graph()
    graph.add_node("input", {"filepath": "clip.mp4"}, node_id="src")
    previous = "src"
    for i in range(count):
        node_id = f"scale{i}"
        graph.add_node("ff_scale", {"width": str(1000 - i * 100), "output": f"s{i}.mp4"}, node_id=node_id)
        graph.connect(previous, node_id)
        previous = node_id
    return graph


class TestExport:
    def test_input_nodes_are_folded_in(self, exporter):
        config = exporter.export_config(_scale_chain(1))
        assert list(config) == ["ff_scale"]
        assert config["ff_scale"]["input"] == "clip.mp4"

    def test_description_comes_first(self, exporter):
        entry = exporter.export_config(_scale_chain(1))["ff_scale"]
        assert list(entry)[0] == "description"
        assert entry["description"] == StepRegistry.get("ff_scale").description

    def test_duplicate_types_are_numbered(self, exporter):
        config = exporter.export_config(_scale_chain(3))
        assert list(config) == ["ff_scale", "ff_scale2", "ff_scale3"]
        assert config["ff_scale2"]["input"] == "s0.mp4"
        assert config["ff_scale3"]["input"] == "s1.mp4"

    def test_aliases_and_empty_values(self, exporter):
        graph = Graph()
        graph.add_node("ff_crop", {
            "input": "a.mp4",
            "xpixels": "10",
            "ypixels": "20",
            "grep": "",
            "width": None,
            "stray": "dropped",
        }, node_id="crop")

        entry = exporter.export_config(graph)["ff_crop"]

        assert entry["x"] == "10"
        assert entry["y"] == "20"
        assert "xpixels" not in entry
        assert "grep" not in entry
        assert "width" not in entry
        assert "stray" not in entry

    def test_dynamic_slots_follow_declared_in_numeric_order(self, exporter):
        graph = Graph()
        graph.add_node("ff_concat", {
            "input10": "j.mp4",
            "input1": "a.mp4",
            "input4": "d.mp4",
            "input2": "b.mp4",
            "output": "joined.mp4",
        }, node_id="concat")

        entry = exporter.export_config(graph)["ff_concat"]

        assert list(entry) == ["description", "input1", "input2", "output", "input4", "input10"]

    def test_export_is_deterministic(self, exporter):
        graph = _scale_chain(3)
        graph.add_node("ff_flip", {"horizontal": True}, node_id="flip")
        graph.connect("scale2", "flip")

        first = exporter.export_string(graph)
        second = exporter.export_string(graph)

        assert first == second
        assert list(json.loads(first)) == ["ff_scale", "ff_scale2", "ff_scale3", "ff_flip"]

    def test_unknown_step_type(self, exporter):
        graph = Graph()
        graph.add_node("ff_nope", {}, node_id="x")
        with pytest.raises(ConfigurationError):
            exporter.export(graph)

    def test_cycle(self, exporter):
        graph = Graph()
        graph.add_node("ff_flip", {}, node_id="a")
        graph.add_node("ff_flip", {}, node_id="b")
        graph.connect("a", "b")
        graph.connect("b", "a")
        with pytest.raises(CircularDependencyError):
            exporter.export(graph)

    def test_resolved_steps(self, exporter):
        steps = exporter.export(_scale_chain(2))
        assert [s.step_key for s in steps] == ["ff_scale", "ff_scale2"]
        assert all(s.step_type == "ff_scale" for s in steps)


class TestValidate:
    def test_valid_graph(self, exporter):
        report = exporter.validate(_scale_chain(2))
        assert report.is_valid
        assert report.errors == []
        report.raise_for_errors()

    def test_missing_required_parameter(self, exporter):
        graph = Graph()
        graph.add_node("ff_scale", {"width": "100"}, node_id="n2")

        report = exporter.validate(graph)

        assert not report.is_valid
        assert report.errors == ['Node "ff_scale" (n2) missing required parameter: input']

    def test_connected_required_input_is_satisfied(self, exporter):
        graph = Graph()
        graph.add_node("input", {"filepath": "a.mp4"}, node_id="a")
        graph.add_node("input", {"filepath": "b.mp4"}, node_id="b")
        graph.add_node("ff_append", {}, node_id="append")
        graph.connect("a", "append", to_input="first")
        graph.connect("b", "append", to_input="second")

        assert exporter.validate(graph).is_valid

    def test_unknown_type_reported(self, exporter):
        graph = Graph()
        graph.add_node("ff_nope", {}, node_id="x")
        assert exporter.validate(graph).errors == ["Unknown node type: ff_nope"]

    def test_invalid_value_reported(self, exporter):
        graph = Graph()
        graph.add_node("ff_convert", {"input": "a.mp4", "format": "gif"}, node_id="c")
        errors = exporter.validate(graph).errors
        assert len(errors) == 1
        assert "format must be one of" in errors[0]

    def test_cycle_reported(self, exporter):
        graph = Graph()
        graph.add_node("ff_flip", {}, node_id="a")
        graph.add_node("ff_flip", {}, node_id="b")
        graph.connect("a", "b")
        graph.connect("b", "a")

        errors = exporter.validate(graph).errors

        assert any("Circular dependency detected" in e for e in errors)

    def test_deep_chain_validates_and_exports(self, exporter):
        graph = Graph()
        for i in range(1199, 0, -1):
            graph.add_node("ff_flip", {"output": f"f{i}.mp4"}, node_id=f"n{i}")
        graph.add_node("input", {"filepath": "clip.mp4"}, node_id="n0")
        for i in range(1, 1200):
            graph.connect(f"n{i - 1}", f"n{i}")

        assert exporter.validate(graph).is_valid
        steps = exporter.export(graph)
        assert len(steps) == 1199
        assert steps[0].parameters["input"] == "clip.mp4"
        assert steps[-1].parameters["input"] == "f1198.mp4"

    def test_raise_for_errors(self, exporter):
        graph = Graph()
        graph.add_node("ff_scale", {}, node_id="n1")
        with pytest.raises(ValidationError) as excinfo:
            exporter.validate(graph).raise_for_errors()
        assert len(excinfo.value.errors) == 1
