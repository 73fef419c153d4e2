"""Pipeline graphs, step configs and the run driver.

Build a graph the way the node editor does and export it:

    from scriptflow.pipeline import Graph, GraphExporter, StepRegistry

    graph = Graph()
    src = graph.add_node("input", {"filepath": "clip.mp4"})
    scale = graph.add_node("ff_scale", {"width": "1280"}, registry=StepRegistry)
    graph.connect(src, scale)

    exporter = GraphExporter()
    exporter.validate(graph).raise_for_errors()
    print(exporter.export_string(graph))

Run a step config file:

    from scriptflow.pipeline import Pipeline, RunDriver

    result = RunDriver().run(Pipeline.load("scriptflow.json"), base_dir=".")
    print(result.final_output)

List available step types:

    from scriptflow.pipeline import StepRegistry

    print(StepRegistry.format_list("size"))
"""

from scriptflow.pipeline.base import (
    ParameterKind,
    ParameterSpec,
    OutputSpec,
    OutputNaming,
    StepDefinition,
    CATEGORY_INPUT,
    CATEGORY_SIZE,
    CATEGORY_EFFECTS,
    CATEGORY_COMPOSITION,
    CATEGORY_FORMAT,
    CATEGORY_TIMING,
    CATEGORY_ASSEMBLY,
    CATEGORY_UTILITIES,
    CATEGORY_CUSTOM,
    ALL_CATEGORIES,
)
from scriptflow.pipeline.registry import StepRegistry
from scriptflow.pipeline.graph import Graph, GraphNode, Edge
from scriptflow.pipeline.order import resolve_order
from scriptflow.pipeline.binding import bind_inputs, output_filename
from scriptflow.pipeline.step import ResolvedStep, parse_steps_string
from scriptflow.pipeline.exporter import GraphExporter, ValidationReport
from scriptflow.pipeline.pipeline import Pipeline
from scriptflow.pipeline.keywords import KeywordSubstituter, RunContext, contrast_colour
from scriptflow.pipeline.executor import ScriptStepExecutor, StepExecutor, StepOutcome
from scriptflow.pipeline.runner import (
    RunDriver,
    RunState,
    RunStatus,
    RunResult,
    StepResult,
    RunEvent,
    StepStarted,
    StepCompleted,
    StepFailed,
    RunCompleted,
)

__all__ = [
    # Definitions
    "ParameterKind",
    "ParameterSpec",
    "OutputSpec",
    "OutputNaming",
    "StepDefinition",
    # Categories
    "CATEGORY_INPUT",
    "CATEGORY_SIZE",
    "CATEGORY_EFFECTS",
    "CATEGORY_COMPOSITION",
    "CATEGORY_FORMAT",
    "CATEGORY_TIMING",
    "CATEGORY_ASSEMBLY",
    "CATEGORY_UTILITIES",
    "CATEGORY_CUSTOM",
    "ALL_CATEGORIES",
    # Registry
    "StepRegistry",
    # Graph
    "Graph",
    "GraphNode",
    "Edge",
    "resolve_order",
    "bind_inputs",
    "output_filename",
    # Export
    "ResolvedStep",
    "parse_steps_string",
    "GraphExporter",
    "ValidationReport",
    "Pipeline",
    # Keywords
    "KeywordSubstituter",
    "RunContext",
    "contrast_colour",
    # Execution
    "ScriptStepExecutor",
    "StepExecutor",
    "StepOutcome",
    "RunDriver",
    "RunState",
    "RunStatus",
    "RunResult",
    "StepResult",
    "RunEvent",
    "StepStarted",
    "StepCompleted",
    "StepFailed",
    "RunCompleted",
]
