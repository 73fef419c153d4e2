"""Execution-order resolution for pipeline graphs."""

import logging

from scriptflow.pipeline.graph import Graph
from scriptflow.utils import CircularDependencyError, ConfigurationError

logger = logging.getLogger(__name__)

_VISITING = 1
_DONE = 2


def resolve_order(graph: Graph) -> list[str]:
    """Resolve the order nodes must run in.

    Every node appears after all the nodes that feed it. Nodes are visited in
    insertion order and each node's producers in edge order, so unrelated
    nodes keep the order they were added in.

    Args:
        graph: Graph to order

    Returns:
        Node ids, producers first

    Raises:
        CircularDependencyError: If the connections form a cycle
        ConfigurationError: If an edge references a missing node
    """
    producers: dict[str, list[str]] = {node_id: [] for node_id in graph.nodes}
    for edge in graph.edges:
        for node_id in (edge.from_node, edge.to_node):
            if node_id not in graph.nodes:
                raise ConfigurationError(
                    f"Connection {edge.edge_id or '?'} references missing node {node_id}"
                )
        producers[edge.to_node].append(edge.from_node)

    marks: dict[str, int] = {}
    path: list[str] = []
    order: list[str] = []

    for root in graph.nodes:
        if marks.get(root) == _DONE:
            continue

        marks[root] = _VISITING
        path.append(root)
        stack = [(root, iter(producers[root]))]

        while stack:
            node_id, pending = stack[-1]
            producer = next(pending, None)

            if producer is None:
                stack.pop()
                path.pop()
                marks[node_id] = _DONE
                order.append(node_id)
                continue

            mark = marks.get(producer)
            if mark == _DONE:
                continue
            if mark == _VISITING:
                cycle = path[path.index(producer):] + [producer]
                raise CircularDependencyError(producer, cycle)

            marks[producer] = _VISITING
            path.append(producer)
            stack.append((producer, iter(producers[producer])))

    logger.debug(f"Resolved execution order: {' -> '.join(order)}")
    return order
