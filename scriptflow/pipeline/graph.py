"""Node graph model for pipelines built in the node editor."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

import yaml

from scriptflow.utils import ConfigurationError

if TYPE_CHECKING:
    from scriptflow.pipeline.registry import StepRegistry


@dataclass
class GraphNode:
    """One instance of a step in a pipeline graph."""

    node_id: str
    step_type: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.node_id,
            "stepTypeId": self.step_type,
            "parameterValues": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GraphNode":
        """Create node from the editor export.

        Accepts both ``{id, stepTypeId, parameterValues}`` and the older
        ``{id, name, data}`` shape.
        """
        try:
            node_id = data["id"]
            step_type = data["stepTypeId"] if "stepTypeId" in data else data["name"]
        except (KeyError, TypeError):
            raise ConfigurationError(f"Malformed graph node: {data!r}")

        parameters = data.get("parameterValues", data.get("data")) or {}
        if not isinstance(parameters, dict):
            raise ConfigurationError(f"Malformed parameters for node {node_id}")

        return cls(node_id=str(node_id), step_type=step_type, parameters=dict(parameters))


@dataclass(frozen=True)
class Edge:
    """Connection from one node's output socket to another node's input socket."""

    from_node: str
    from_output: str
    to_node: str
    to_input: str
    edge_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = {
            "fromNodeId": self.from_node,
            "fromOutputName": self.from_output,
            "toNodeId": self.to_node,
            "toInputName": self.to_input,
        }
        if self.edge_id:
            data["id"] = self.edge_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Edge":
        """Create edge from the editor export.

        Accepts both ``{fromNodeId, fromOutputName, toNodeId, toInputName}``
        and the older ``{from, output, to, input}`` shape.
        """
        try:
            if "fromNodeId" in data:
                return cls(
                    from_node=str(data["fromNodeId"]),
                    from_output=data["fromOutputName"],
                    to_node=str(data["toNodeId"]),
                    to_input=data["toInputName"],
                    edge_id=data.get("id", ""),
                )
            return cls(
                from_node=str(data["from"]),
                from_output=data["output"],
                to_node=str(data["to"]),
                to_input=data["input"],
                edge_id=data.get("id", ""),
            )
        except (KeyError, TypeError):
            raise ConfigurationError(f"Malformed graph connection: {data!r}")


class Graph:
    """Editable node + edge model a pipeline is derived from.

    Nodes keep insertion order, which is also the tie-break order when the
    execution order is resolved.

        graph = Graph()
        src = graph.add_node("input", {"filepath": "a.mp4"})
        scale = graph.add_node("ff_scale", {"width": "1280"})
        graph.connect(src, scale)
    """

    def __init__(self):
        self.nodes: dict[str, GraphNode] = {}
        self.edges: list[Edge] = []
        self._next_node = 1
        self._next_edge = 1

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def node(self, node_id: str) -> GraphNode:
        """Get a node by id.

        Raises:
            ConfigurationError: If node not found
        """
        if node_id not in self.nodes:
            raise ConfigurationError(f"Unknown node: {node_id}")
        return self.nodes[node_id]

    def add_node(
        self,
        step_type: str,
        parameters: Optional[dict[str, Any]] = None,
        node_id: Optional[str] = None,
        registry: Optional[type["StepRegistry"]] = None,
    ) -> str:
        """Add a step instance to the graph.

        Args:
            step_type: Step type id
            parameters: Parameter values
            node_id: Explicit node id (generated if None)
            registry: When given, the step type is checked and its parameter
                defaults are filled in, as the node editor does

        Returns:
            The node id
        """
        values = dict(parameters or {})
        if registry is not None:
            values = {**registry.get(step_type).default_parameters(), **values}

        if node_id is None:
            while f"node_{self._next_node}" in self.nodes:
                self._next_node += 1
            node_id = f"node_{self._next_node}"
            self._next_node += 1
        elif node_id in self.nodes:
            raise ConfigurationError(f"Duplicate node id: {node_id}")

        self.nodes[node_id] = GraphNode(node_id=node_id, step_type=step_type, parameters=values)
        return node_id

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every connection touching it."""
        self.node(node_id)
        del self.nodes[node_id]
        self.edges = [e for e in self.edges if e.from_node != node_id and e.to_node != node_id]

    def set_parameter(self, node_id: str, name: str, value: Any) -> None:
        self.node(node_id).parameters[name] = value

    def connect(
        self,
        from_node: str,
        to_node: str,
        from_output: str = "video",
        to_input: str = "input",
        edge_id: Optional[str] = None,
    ) -> Edge:
        """Connect an output socket to an input socket.

        An input socket accepts a single producer; connecting the exact same
        sockets twice returns the existing edge.

        Returns:
            The edge

        Raises:
            ConfigurationError: If a node is missing or the input is taken
        """
        self.node(from_node)
        self.node(to_node)

        for edge in self.edges:
            if edge.to_node != to_node or edge.to_input != to_input:
                continue
            if edge.from_node == from_node and edge.from_output == from_output:
                return edge
            raise ConfigurationError(
                f"Input {to_input!r} of node {to_node} is already connected to {edge.from_node}"
            )

        if edge_id is None:
            taken = {e.edge_id for e in self.edges}
            while f"conn_{self._next_edge}" in taken:
                self._next_edge += 1
            edge_id = f"conn_{self._next_edge}"
            self._next_edge += 1

        edge = Edge(from_node, from_output, to_node, to_input, edge_id)
        self.edges.append(edge)
        return edge

    def disconnect(self, edge_id: str) -> None:
        """Remove a connection by id."""
        before = len(self.edges)
        self.edges = [e for e in self.edges if e.edge_id != edge_id]
        if len(self.edges) == before:
            raise ConfigurationError(f"Unknown connection: {edge_id}")

    def incoming(self, node_id: str) -> list[Edge]:
        """Edges targeting a node, in connection order."""
        return [e for e in self.edges if e.to_node == node_id]

    def add_dynamic_input(
        self,
        node_id: str,
        base_name: str,
        registry: type["StepRegistry"],
    ) -> Optional[str]:
        """Add the next numbered slot of a dynamic input.

        Args:
            node_id: Node to extend
            base_name: Name of the dynamic parameter (e.g. "input")
            registry: Step registry

        Returns:
            Name of the new slot, or None when max_dynamic is reached
        """
        node = self.node(node_id)
        definition = registry.get(node.step_type)
        base = definition.parameter(base_name)
        if base is None or not base.dynamic:
            raise ConfigurationError(f"{node.step_type}.{base_name} does not accept dynamic inputs")

        existing = [n for n in node.parameters if definition.dynamic_base(n) is base]
        if base.max_dynamic and len(existing) >= base.max_dynamic:
            return None

        numbers = [base.slot_number(n) for n in list(definition.parameter_names) + existing]
        next_number = max([n for n in numbers if n is not None] + [1]) + 1

        slot = base.slot_name(next_number)
        node.parameters[slot] = base.default if base.default is not None else ""
        return slot

    def remove_dynamic_input(
        self,
        node_id: str,
        slot: str,
        registry: type["StepRegistry"],
    ) -> None:
        """Remove a dynamic input slot and any connection into it."""
        node = self.node(node_id)
        definition = registry.get(node.step_type)
        if definition.dynamic_base(slot) is None:
            raise ConfigurationError(f"{slot} is not a dynamic input of {node.step_type}")

        node.parameters.pop(slot, None)
        self.edges = [e for e in self.edges if not (e.to_node == node_id and e.to_input == slot)]

    def to_dict(self) -> dict[str, Any]:
        """Serialize graph in the editor export format."""
        return {
            "nodes": [n.to_dict() for n in self.nodes.values()],
            "connections": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Graph":
        """Create graph from the editor export format.

        Args:
            data: Dictionary with nodes and connections

        Returns:
            Graph instance
        """
        if not isinstance(data, dict) or not isinstance(data.get("nodes"), list):
            raise ConfigurationError("Invalid graph: missing or invalid nodes array")

        connections = data.get("connections", [])
        if not isinstance(connections, list):
            raise ConfigurationError("Invalid graph: missing or invalid connections array")

        graph = cls()
        for node_data in data["nodes"]:
            node = GraphNode.from_dict(node_data)
            graph.add_node(node.step_type, node.parameters, node_id=node.node_id)

        for edge_data in connections:
            edge = Edge.from_dict(edge_data)
            graph.connect(
                edge.from_node,
                edge.to_node,
                from_output=edge.from_output,
                to_input=edge.to_input,
                edge_id=edge.edge_id or None,
            )

        return graph

    @staticmethod
    def is_graph_document(data: Any) -> bool:
        """Check whether loaded data looks like a graph export rather than a step config."""
        return isinstance(data, dict) and isinstance(data.get("nodes"), list)

    def save(self, path: Path | str) -> None:
        """Save graph to file.

        Supports YAML and JSON formats based on extension.
        """
        path = Path(path)
        with open(path, "w") as f:
            if path.suffix in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path | str) -> "Graph":
        """Load graph from a JSON or YAML file."""
        return cls.from_dict(load_document(path))


def load_document(path: Path | str) -> Any:
    """Read a JSON or YAML document, preserving key order.

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Malformed config file {path}: {e}")
