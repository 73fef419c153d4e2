"""Ordered step pipelines: the config file the run driver executes."""

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Optional, TYPE_CHECKING

import yaml

from scriptflow.pipeline.exporter import GraphExporter
from scriptflow.pipeline.graph import Graph, load_document
from scriptflow.pipeline.registry import StepRegistry
from scriptflow.pipeline.step import ResolvedStep, parse_steps_string
from scriptflow.utils import ConfigurationError, is_empty

if TYPE_CHECKING:
    from scriptflow.config import Config

logger = logging.getLogger(__name__)


class Pipeline:
    """Ordered sequence of steps, keyed the way the step config file is.

    Build pipelines with fluent API:
        pipeline = Pipeline("social").add("ff_scale", input="in.mp4", width=1080).add("ff_social_media")

    Or load from a config file (or a node editor graph export):
        pipeline = Pipeline.load("scriptflow.json")
    """

    def __init__(
        self,
        name: str = "pipeline",
        description: str = "",
        config: Optional["Config"] = None,
    ):
        """Initialize pipeline.

        Args:
            name: Pipeline name for identification
            description: Human-readable description
            config: Configuration object
        """
        self.name = name
        self.description = description
        self._config = config
        self.steps: list[ResolvedStep] = []

    @property
    def config(self) -> "Config":
        """Get configuration, creating default if needed."""
        if self._config is None:
            from scriptflow.config import Config
            self._config = Config.from_env()
        return self._config

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[ResolvedStep]:
        return iter(self.steps)

    @property
    def step_keys(self) -> list[str]:
        return [s.step_key for s in self.steps]

    def _next_key(self, step_type: str) -> str:
        keys = set(self.step_keys)
        if step_type not in keys:
            return step_type
        n = 2
        while f"{step_type}{n}" in keys:
            n += 1
        return f"{step_type}{n}"

    def add(self, step_type: str, **params) -> "Pipeline":
        """Add a step to the pipeline.

        Args:
            step_type: Step type id
            **params: Step parameters

        Returns:
            Self for chaining
        """
        step = ResolvedStep(step_key=self._next_key(step_type), step_type=step_type, parameters=params)
        self.steps.append(step)
        return self

    def add_step(self, step: ResolvedStep) -> "Pipeline":
        """Add a pre-configured step, renumbering its key if already taken.

        Args:
            step: ResolvedStep instance

        Returns:
            Self for chaining
        """
        if step.step_key in self.step_keys:
            step.step_key = self._next_key(step.step_type)
        self.steps.append(step)
        return self

    def validate(self, registry: type[StepRegistry] = StepRegistry) -> list[str]:
        """Check steps against the registry.

        Returns:
            List of error messages (empty when the pipeline can run)
        """
        errors = []

        for step in self.steps:
            definition = registry.find(step.step_type)
            if definition is None:
                errors.append(f"Unknown step type: {step.step_type} ({step.step_key})")
                continue
            if not definition.executable:
                errors.append(f"Step {step.step_key} ({step.step_type}) cannot be executed")
                continue

            for spec in definition.parameters:
                value = step.parameters.get(spec.config_key)
                if is_empty(value):
                    if spec.required:
                        errors.append(f"Step {step.step_key} missing required parameter: {spec.config_key}")
                    continue
                problem = spec.check(value)
                if problem:
                    errors.append(f"Step {step.step_key} invalid parameter: {problem}")

        return errors

    def describe(self) -> str:
        """Get human-readable description of pipeline."""
        step_names = " → ".join(s.display_name for s in self.steps)
        return f"{step_names} ({len(self.steps)} steps)"

    def to_dict(self) -> dict[str, Any]:
        """Serialize pipeline as a step config mapping.

        Returns:
            Ordered mapping of step key to parameters
        """
        return {s.step_key: s.to_config_entry() for s in self.steps}

    @classmethod
    def from_dict(
        cls,
        data: Any,
        name: str = "pipeline",
        config: Optional["Config"] = None,
    ) -> "Pipeline":
        """Create pipeline from a step config mapping.

        Keys are step keys (``ff_scale``, ``ff_scale2``); the step type is the
        key with trailing digits removed. Null parameters are dropped.

        Args:
            data: Mapping of step key to parameters
            name: Pipeline name
            config: Configuration object

        Returns:
            Pipeline instance

        Raises:
            ConfigurationError: If data is not a mapping of mappings
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Pipeline config must be an object keyed by step name")

        pipeline = cls(name=name, config=config)
        for step_key, entry in data.items():
            pipeline.add_step(ResolvedStep.from_config_entry(str(step_key), entry))
        return pipeline

    @classmethod
    def from_steps_string(
        cls,
        steps_str: str,
        name: str = "inline",
        config: Optional["Config"] = None,
    ) -> "Pipeline":
        """Create pipeline from inline steps string.

        Args:
            steps_str: Steps specification (e.g., "ff_scale:input=in.mp4,width=1280,ff_flip")
            name: Pipeline name
            config: Configuration object

        Returns:
            Pipeline instance
        """
        pipeline = cls(name=name, config=config)
        for step in parse_steps_string(steps_str):
            pipeline.add_step(step)
        return pipeline

    @classmethod
    def from_graph(
        cls,
        graph: Graph,
        exporter: Optional[GraphExporter] = None,
        name: str = "graph",
        config: Optional["Config"] = None,
    ) -> "Pipeline":
        """Create pipeline by exporting a node graph."""
        if exporter is None:
            exporter = GraphExporter()

        pipeline = cls(name=name, config=config)
        for step in exporter.export(graph):
            pipeline.add_step(step)
        return pipeline

    def save(self, path: Path | str) -> None:
        """Save pipeline configuration to file.

        Supports YAML and JSON formats based on extension.

        Args:
            path: Output file path (.yaml, .yml, or .json)
        """
        path = Path(path)

        with open(path, "w") as f:
            if path.suffix in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Pipeline saved: {path}")

    @classmethod
    def load(cls, path: Path | str, config: Optional["Config"] = None) -> "Pipeline":
        """Load pipeline from a configuration file.

        Accepts a step config or a node editor graph export, as JSON or YAML.

        Args:
            path: Path to YAML or JSON file
            config: Configuration object

        Returns:
            Pipeline instance
        """
        path = Path(path)
        data = load_document(path)

        if Graph.is_graph_document(data):
            logger.debug(f"{path} is a graph export, resolving steps")
            return cls.from_graph(Graph.from_dict(data), name=path.stem, config=config)

        return cls.from_dict(data, name=path.stem, config=config)
