"""Tests for execution-order resolution."""

import random

import pytest

from scriptflow.pipeline import Edge, Graph, resolve_order
from scriptflow.utils import CircularDependencyError, ConfigurationError


def _random_dag(seed: int, node_count: int = 50, edge_count: int = 100) -> Graph:
    rng = random.Random(seed)
    ids = [f"n{i}" for i in range(node_count)]
    rank = {node_id: r for r, node_id in enumerate(rng.sample(ids, node_count))}

    graph = Graph()
    for node_id in rng.sample(ids, node_count):
        graph.add_node("ff_concat", node_id=node_id)

    pairs = set()
    while len(pairs) < edge_count:
        a, b = rng.sample(ids, 2)
        if rank[a] > rank[b]:
            a, b = b, a
        pairs.add((a, b))

    for a, b in sorted(pairs):
        graph.connect(a, b, to_input=f"in_{a}")
    return graph


class TestResolveOrder:
    @pytest.mark.parametrize("seed", range(5))
    def test_random_dag_producers_come_first(self, seed):
        graph = _random_dag(seed)
        order = resolve_order(graph)

        assert sorted(order) == sorted(graph.nodes)
        position = {node_id: i for i, node_id in enumerate(order)}
        for edge in graph.edges:
            assert position[edge.from_node] < position[edge.to_node]

    def test_unconnected_nodes_keep_insertion_order(self):
        graph = Graph()
        for node_id in ("c", "a", "b"):
            graph.add_node("input", {"filepath": f"{node_id}.mp4"}, node_id=node_id)
        assert resolve_order(graph) == ["c", "a", "b"]

    def test_producer_added_after_consumer(self):
        graph = Graph()
        graph.add_node("ff_flip", node_id="flip")
        graph.add_node("input", {"filepath": "a.mp4"}, node_id="src")
        graph.connect("src", "flip")
        assert resolve_order(graph) == ["src", "flip"]

    def test_chain(self):
        graph = Graph()
        for node_id in ("a", "b", "c"):
            graph.add_node("ff_flip", node_id=node_id)
        graph.connect("b", "c")
        graph.connect("a", "b")
        assert resolve_order(graph) == ["a", "b", "c"]

    def test_cycle_detected(self):
        graph = Graph()
        for node_id in ("a", "b", "c"):
            graph.add_node("ff_concat", node_id=node_id)
        graph.connect("a", "b", to_input="input1")
        graph.connect("b", "c", to_input="input1")
        graph.connect("c", "b", to_input="input2")

        with pytest.raises(CircularDependencyError) as excinfo:
            resolve_order(graph)

        assert excinfo.value.node_id in ("b", "c")
        assert set(excinfo.value.cycle) == {"b", "c"}

    def test_self_loop(self):
        graph = Graph()
        graph.add_node("ff_concat", node_id="a")
        graph.connect("a", "a", to_input="input2")
        with pytest.raises(CircularDependencyError):
            resolve_order(graph)

    def test_edge_to_missing_node(self):
        graph = Graph()
        graph.add_node("ff_flip", node_id="a")
        graph.edges.append(Edge("ghost", "video", "a", "input"))
        with pytest.raises(ConfigurationError):
            resolve_order(graph)

    def test_empty_graph(self):
        assert resolve_order(Graph()) == []

    def test_deep_chain_added_consumer_first(self):
        graph = Graph()
        for i in range(1199, 0, -1):
            graph.add_node("ff_flip", node_id=f"n{i}")
        graph.add_node("input", {"filepath": "clip.mp4"}, node_id="n0")
        for i in range(1, 1200):
            graph.connect(f"n{i - 1}", f"n{i}")

        assert resolve_order(graph) == [f"n{i}" for i in range(1200)]

    def test_long_cycle_reports_path(self):
        graph = Graph()
        for i in range(1500):
            graph.add_node("ff_flip", node_id=f"n{i}")
        for i in range(1, 1500):
            graph.connect(f"n{i - 1}", f"n{i}")
        graph.connect("n1499", "n0")

        with pytest.raises(CircularDependencyError) as excinfo:
            resolve_order(graph)

        assert len(excinfo.value.cycle) == 1501
        assert excinfo.value.cycle[0] == excinfo.value.cycle[-1]
