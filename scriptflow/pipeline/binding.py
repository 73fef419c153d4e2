"""Input binding: feed each step the file its upstream step produces."""

import logging
from typing import Any, Optional

from scriptflow.pipeline.base import OutputNaming, StepDefinition
from scriptflow.pipeline.graph import Graph
from scriptflow.pipeline.order import resolve_order
from scriptflow.pipeline.registry import StepRegistry
from scriptflow.utils import ConfigurationError, is_empty

logger = logging.getLogger(__name__)


def _own_output(definition: StepDefinition, parameters: dict[str, Any]) -> str:
    output = parameters.get("output")
    return str(output) if not is_empty(output) else f"{definition.step_id}.mp4"


def _pass_through(definition, parameters, index):
    filepath = parameters.get("filepath")
    return None if is_empty(filepath) else str(filepath)


def _indexed_prefix(definition, parameters, index):
    return f"{index}_{_own_output(definition, parameters)}"


def _default_output_field(definition, parameters, index):
    return _own_output(definition, parameters)


_NAMERS = {
    OutputNaming.PASS_THROUGH: _pass_through,
    OutputNaming.INDEXED_PREFIX: _indexed_prefix,
    OutputNaming.DEFAULT_OUTPUT_FIELD: _default_output_field,
}


def output_filename(
    definition: StepDefinition,
    parameters: dict[str, Any],
    index: int = 1,
) -> Optional[str]:
    """Name of the file a step produces.

    Args:
        definition: Step definition
        parameters: The step's parameter values
        index: Loop index for steps that prefix their output (ff_download)

    Returns:
        Filename, or None for a raw input with no filepath
    """
    return _NAMERS[definition.naming](definition, parameters, index)


def bind_inputs(
    graph: Graph,
    order: Optional[list[str]] = None,
    registry: type[StepRegistry] = StepRegistry,
) -> dict[str, dict[str, Any]]:
    """Compute every node's parameters with connected inputs filled in.

    A value the user typed into an input wins over a connection; the
    connection only fills inputs that are empty. Graph nodes are not
    modified.

    Args:
        graph: Graph to bind
        order: Execution order (resolved if None)
        registry: Step registry

    Returns:
        Mapping of node id to bound parameters

    Raises:
        ConfigurationError: If an edge names an unknown node, output or input
    """
    if order is None:
        order = resolve_order(graph)

    bound: dict[str, dict[str, Any]] = {}

    for node_id in order:
        node = graph.node(node_id)
        definition = registry.get(node.step_type)
        parameters = dict(node.parameters)

        for edge in graph.incoming(node_id):
            if edge.from_node not in graph.nodes:
                raise ConfigurationError(f"Connection into {node_id} from missing node {edge.from_node}")

            upstream = graph.nodes[edge.from_node]
            upstream_def = registry.get(upstream.step_type)
            if edge.from_output not in upstream_def.output_names:
                raise ConfigurationError(
                    f"Node {upstream.node_id} ({upstream.step_type}) has no output {edge.from_output!r}"
                )
            if not definition.accepts_input(edge.to_input):
                raise ConfigurationError(
                    f"Node {node_id} ({node.step_type}) has no input {edge.to_input!r}"
                )

            value = output_filename(upstream_def, bound.get(upstream.node_id, upstream.parameters))
            if value is None:
                continue

            if is_empty(parameters.get(edge.to_input)):
                parameters[edge.to_input] = value
            else:
                logger.debug(
                    f"Keeping explicit {node_id}.{edge.to_input}={parameters[edge.to_input]!r} "
                    f"over connection from {upstream.node_id}"
                )

        bound[node_id] = parameters

    return bound
