"""Materialize a pipeline graph into an ordered step config."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from scriptflow.pipeline.base import StepDefinition
from scriptflow.pipeline.binding import bind_inputs
from scriptflow.pipeline.graph import Graph
from scriptflow.pipeline.order import resolve_order
from scriptflow.pipeline.registry import StepRegistry
from scriptflow.pipeline.step import ResolvedStep
from scriptflow.utils import ConfigurationError, ValidationError, is_empty

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of validating a graph before export or run."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)

    def raise_for_errors(self) -> None:
        """Raise ValidationError if the graph is not valid."""
        if not self.is_valid:
            raise ValidationError(self.errors)


class GraphExporter:
    """Turns a graph into the flat, ordered step config the scripts consume.

        exporter = GraphExporter()
        exporter.validate(graph).raise_for_errors()
        print(exporter.export_string(graph))
    """

    def __init__(self, registry: type[StepRegistry] = StepRegistry):
        self.registry = registry

    def export(self, graph: Graph) -> list[ResolvedStep]:
        """Resolve the graph into executable steps.

        Raw file inputs are folded into their consumers and do not appear.
        Repeated step types get numbered keys: ff_scale, ff_scale2, ...

        Args:
            graph: Graph to export

        Returns:
            Steps in execution order

        Raises:
            ConfigurationError: On unknown step types, bad edges or cycles
        """
        for node in graph.nodes.values():
            self.registry.get(node.step_type)

        order = resolve_order(graph)
        bound = bind_inputs(graph, order, self.registry)

        counts: dict[str, int] = {}
        steps = []

        for node_id in order:
            node = graph.nodes[node_id]
            definition = self.registry.get(node.step_type)
            if not definition.executable:
                continue

            counts[node.step_type] = counts.get(node.step_type, 0) + 1
            count = counts[node.step_type]
            step_key = node.step_type if count == 1 else f"{node.step_type}{count}"

            steps.append(ResolvedStep(
                step_key=step_key,
                step_type=node.step_type,
                parameters=self._script_parameters(definition, bound[node_id]),
                description=definition.description,
            ))

        logger.debug(f"Exported {len(steps)} steps from {len(graph)} nodes")
        return steps

    def export_config(self, graph: Graph) -> dict[str, dict[str, Any]]:
        """Export graph as an ordered mapping of step key to parameters."""
        return {step.step_key: step.to_config_entry() for step in self.export(graph)}

    def export_string(self, graph: Graph) -> str:
        """Export graph as indented JSON text."""
        return json.dumps(self.export_config(graph), indent=2)

    def validate(self, graph: Graph) -> ValidationReport:
        """Check a graph for problems that would stop it from running.

        Reports unknown step types, required parameters with neither a value
        nor an incoming connection, values their kind rejects, bad
        connections and cycles.

        Args:
            graph: Graph to validate

        Returns:
            ValidationReport
        """
        errors: list[str] = []
        connected = {(e.to_node, e.to_input) for e in graph.edges}

        for node in graph.nodes.values():
            definition = self.registry.find(node.step_type)
            if definition is None:
                errors.append(f"Unknown node type: {node.step_type}")
                continue

            label = f'Node "{node.step_type}" ({node.node_id})'
            for spec in definition.parameters:
                value = node.parameters.get(spec.name)
                if is_empty(value):
                    if spec.required and (node.node_id, spec.name) not in connected:
                        errors.append(f"{label} missing required parameter: {spec.name}")
                    continue

                problem = spec.check(value)
                if problem:
                    errors.append(f"{label} invalid parameter: {problem}")

        try:
            order = resolve_order(graph)
            if not errors:
                bind_inputs(graph, order, self.registry)
        except ConfigurationError as e:
            errors.append(str(e))

        for error in errors:
            logger.debug(f"Validation: {error}")

        return ValidationReport(is_valid=not errors, errors=errors)

    @staticmethod
    def _script_parameters(definition: StepDefinition, values: dict[str, Any]) -> dict[str, Any]:
        """Declared parameters in definition order, then dynamic slots by number."""
        params = {}

        for spec in definition.parameters:
            value = values.get(spec.name)
            if not is_empty(value):
                params[spec.config_key] = value

        slots = []
        for name, value in values.items():
            base = definition.dynamic_base(name)
            if base is not None and not is_empty(value):
                slots.append((base.slot_number(name), name, value))

        for _, name, value in sorted(slots):
            params[name] = value

        return params
