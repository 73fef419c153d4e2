"""Run driver: executes a resolved pipeline step by step."""

import json
import logging
import shutil
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TYPE_CHECKING

from scriptflow.pipeline.binding import output_filename
from scriptflow.pipeline.executor import ScriptStepExecutor, StepExecutor
from scriptflow.pipeline.exporter import GraphExporter
from scriptflow.pipeline.keywords import KeywordSubstituter, RunContext
from scriptflow.pipeline.pipeline import Pipeline
from scriptflow.pipeline.registry import StepRegistry
from scriptflow.pipeline.step import ResolvedStep
from scriptflow.utils import (
    NoOutputProducedError,
    ScriptflowError,
    StepExecutionError,
    cleanup_intermediates,
    is_empty,
)

if TYPE_CHECKING:
    from scriptflow.config import Config
    from scriptflow.pipeline.graph import Graph

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Lifecycle of a run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class RunStatus:
    """Observable progress of the current (or last) run."""

    state: RunState = RunState.IDLE
    current_step: Optional[str] = None
    progress: Optional[float] = None
    logs: list[str] = field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    def snapshot(self) -> "RunStatus":
        return replace(self, logs=list(self.logs))


@dataclass
class StepResult:
    """Result from a single pipeline step."""

    step: ResolvedStep
    parameters: dict[str, Any]
    success: bool
    output: Optional[str] = None
    error: Optional[StepExecutionError] = None
    duration_seconds: float = 0.0


@dataclass
class RunResult:
    """Result from running a complete pipeline."""

    pipeline_name: str
    base_dir: Path
    total_steps: int = 0
    state: RunState = RunState.IDLE
    step_results: list[StepResult] = field(default_factory=list)
    final_output: Optional[Path] = None
    total_duration: float = 0.0
    rejected: bool = False
    error: Optional[ScriptflowError] = None
    cleaned_up: list[Path] = field(default_factory=list)

    @property
    def completed_count(self) -> int:
        return sum(1 for r in self.step_results if r.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.step_results if not r.success)

    @property
    def success(self) -> bool:
        return self.state is RunState.COMPLETED

    @property
    def no_output(self) -> bool:
        return isinstance(self.error, NoOutputProducedError)

    def failure_summary(self) -> str:
        return f"{self.failed_count} of {self.total_steps} steps failed"

    def save_summary(self, output_dir: Path) -> Path:
        """Save run summary to JSON.

        Args:
            output_dir: Output directory

        Returns:
            Path to summary file
        """
        summary = {
            "pipeline": self.pipeline_name,
            "base_dir": str(self.base_dir),
            "state": self.state.value,
            "final_output": str(self.final_output) if self.final_output else None,
            "error": str(self.error) if self.error else None,
            "total_duration": self.total_duration,
            "timestamp": datetime.now().isoformat(),
            "steps": [
                {
                    "step": r.step.step_key,
                    "type": r.step.step_type,
                    "params": r.parameters,
                    "output": r.output,
                    "success": r.success,
                    "error": str(r.error) if r.error else None,
                    "exit_code": r.error.exit_code if r.error else 0,
                    "duration": r.duration_seconds,
                }
                for r in self.step_results
            ],
        }

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        summary_path = output_dir / f"run_{self.pipeline_name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        with open(summary_path, "w") as f:
            json.dump(summary, f, indent=2)

        return summary_path


@dataclass(frozen=True)
class RunEvent:
    """Base class for events emitted while a pipeline runs."""
    pass


@dataclass(frozen=True)
class StepStarted(RunEvent):
    step_key: str
    index: int
    total: int
    progress: float


@dataclass(frozen=True)
class StepCompleted(RunEvent):
    step_key: str
    output: Optional[str]
    duration_seconds: float


@dataclass(frozen=True)
class StepFailed(RunEvent):
    step_key: str
    error: StepExecutionError


@dataclass(frozen=True)
class RunCompleted(RunEvent):
    result: RunResult


class RunDriver:
    """Runs pipelines one step at a time, continuing past failed steps.

    After the last step, the output of the last step that succeeded is
    copied to the final output file in the pipeline's directory.

        driver = RunDriver(config=Config.from_env())
        result = driver.run(Pipeline.load("scriptflow.json"), base_dir=".")
        if not result.success:
            print(result.failure_summary())
    """

    def __init__(
        self,
        executor: Optional[StepExecutor] = None,
        config: Optional["Config"] = None,
        registry: type[StepRegistry] = StepRegistry,
    ):
        """Initialize driver.

        Args:
            executor: Runs individual steps (script executor if None)
            config: Configuration object
            registry: Step registry, used to work out each step's output file
        """
        if config is None:
            from scriptflow.config import Config
            config = Config.from_env()
        self.config = config
        self.executor = executor or ScriptStepExecutor(config)
        self.registry = registry
        self._status = RunStatus()
        self._stop_requested = False
        self._active = False
        self._listeners: list[Callable[[RunStatus], None]] = []

    @property
    def status(self) -> RunStatus:
        """Copy of the current run status."""
        return self._status.snapshot()

    @property
    def is_running(self) -> bool:
        """True from the start of a run until its generator finishes, even once stopped."""
        return self._active

    def add_listener(self, callback: Callable[[RunStatus], None]) -> None:
        """Register a callback invoked with a status copy on every change."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[RunStatus], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def stop(self) -> None:
        """Stop the current run.

        The state switches to STOPPED at once; the step in flight finishes
        and no further step starts.
        """
        if self._active and not self._stop_requested:
            self._stop_requested = True
            self._update(state=RunState.STOPPED, current_step="Stopping...")
            self._log("Stop requested")

    def clear_logs(self) -> None:
        """Clear retained log lines.

        Raises:
            ScriptflowError: If a run is in progress
        """
        if self.is_running:
            raise ScriptflowError("Cannot clear logs while a pipeline is running")
        self._update(logs=[])

    def _update(self, **changes) -> None:
        for key, value in changes.items():
            setattr(self._status, key, value)
        for callback in list(self._listeners):
            callback(self.status)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, message)
        self._status.logs.append(f"[{datetime.now().strftime('%H:%M:%S')}] {message}")
        self._update()

    def iter_run(
        self,
        pipeline: Pipeline,
        base_dir: Optional[Path | str] = None,
        context: Optional[RunContext] = None,
        tidy: Optional[bool] = None,
    ) -> Iterator[RunEvent]:
        """Run a pipeline, yielding an event as each step starts and ends.

        The last event is always RunCompleted carrying the RunResult.

        Args:
            pipeline: Steps to run
            base_dir: Directory relative paths resolve against (cwd if None)
            context: Run-wide keyword values (fresh context if None)
            tidy: Delete intermediate files afterwards (config default if None)
        """
        base_dir = Path(base_dir or ".").resolve()

        if self.is_running:
            logger.warning("Pipeline is already running")
            yield RunCompleted(RunResult(
                pipeline_name=pipeline.name,
                base_dir=base_dir,
                total_steps=len(pipeline),
                state=RunState.IDLE,
                rejected=True,
                error=ScriptflowError("Pipeline is already running"),
            ))
            return

        tidy = self.config.tidy if tidy is None else tidy
        substituter = KeywordSubstituter(context or RunContext.create(base_dir))
        total = len(pipeline)
        result = RunResult(pipeline_name=pipeline.name, base_dir=base_dir, total_steps=total)

        self._stop_requested = False
        self._active = True
        start_time = time.time()
        last_output: Optional[str] = None

        try:
            self._status.logs = []
            self._update(state=RunState.RUNNING, current_step="Preparing pipeline...", progress=0.0)
            self._log(f"Starting pipeline {pipeline.name}: {pipeline.describe()}")

            for i, step in enumerate(pipeline.steps):
                if self._stop_requested:
                    self._log(f"Pipeline stopped before {step.step_key}")
                    result.state = RunState.STOPPED
                    break

                progress = i / total * 100
                self._update(current_step=f"Running {step.step_key}...", progress=progress)
                self._log(f"Executing step {i + 1}/{total}: {step.step_key}")
                yield StepStarted(step.step_key, i + 1, total, progress)

                step_result = self._run_step(step, substituter, base_dir)
                result.step_results.append(step_result)

                if step_result.success:
                    last_output = step_result.output
                    self._log(f"  {step.step_key} done ({step_result.duration_seconds:.1f}s)")
                    yield StepCompleted(step.step_key, step_result.output, step_result.duration_seconds)
                else:
                    self._log(
                        f"  {step.step_key} failed: {step_result.error}. Continuing with next step...",
                        logging.ERROR,
                    )
                    yield StepFailed(step.step_key, step_result.error)

            self._finish(result, last_output, tidy)
            result.total_duration = time.time() - start_time
        finally:
            self._active = False
            if self._status.state is RunState.RUNNING:
                # consumer abandoned the generator mid-run
                self._update(state=RunState.STOPPED, current_step=None)

        yield RunCompleted(result)

    def _run_step(self, step: ResolvedStep, substituter: KeywordSubstituter, base_dir: Path) -> StepResult:
        step_start = time.time()
        parameters = step.runnable_parameters()

        try:
            parameters = substituter.substitute_parameters(parameters)
            outcome = self.executor.execute(step.step_type, parameters, base_dir)
            if not outcome.succeeded:
                raise StepExecutionError(
                    step.step_key,
                    f"Script {step.step_key} failed with exit code {outcome.exit_code}",
                    exit_code=outcome.exit_code,
                    stderr=outcome.stderr,
                )
        except StepExecutionError as e:
            error = e if e.step_key == step.step_key else StepExecutionError(
                step.step_key, str(e), exit_code=e.exit_code, stderr=e.stderr
            )
            return StepResult(step, parameters, False, error=error, duration_seconds=time.time() - step_start)
        except Exception as e:
            error = StepExecutionError(step.step_key, f"{type(e).__name__}: {e}")
            return StepResult(step, parameters, False, error=error, duration_seconds=time.time() - step_start)

        return StepResult(
            step,
            parameters,
            True,
            output=self._step_output(step, parameters),
            duration_seconds=time.time() - step_start,
        )

    def _step_output(self, step: ResolvedStep, parameters: dict[str, Any]) -> str:
        definition = self.registry.find(step.step_type)
        if definition is not None:
            name = output_filename(definition, parameters)
            if name is not None:
                return name
        output = parameters.get("output")
        return str(output) if not is_empty(output) else f"{step.step_type}.mp4"

    def _finish(self, result: RunResult, last_output: Optional[str], tidy: bool) -> None:
        final_path = result.base_dir / self.config.output_filename
        reason = result.failure_summary()

        if self._stop_requested:
            result.state = RunState.STOPPED

        if last_output is not None:
            source = result.base_dir / last_output
            if source.is_file():
                try:
                    if source.resolve() != final_path.resolve():
                        self._log(f"Final: Copying {source.name} to {final_path.name}")
                        shutil.copyfile(source, final_path)
                except OSError as e:
                    reason = f"could not copy {source.name} to {final_path}: {e}"
                    self._log(f"Final: {reason}", logging.ERROR)
                else:
                    result.final_output = final_path
            else:
                self._log(f"Last output {last_output} was not found", logging.WARNING)

        if result.final_output is None:
            result.error = NoOutputProducedError(f"No output produced ({reason})")
            self._log(str(result.error), logging.ERROR)
        elif tidy:
            candidates = [result.base_dir / r.output for r in result.step_results if r.success and r.output]
            result.cleaned_up = cleanup_intermediates(candidates, keep=[final_path])

        if result.state is not RunState.STOPPED:
            failed = result.failed_count > 0 or result.final_output is None
            result.state = RunState.FAILED if failed else RunState.COMPLETED

        if result.state is RunState.COMPLETED:
            message = f"Pipeline completed: {result.completed_count}/{result.total_steps} steps"
        elif result.state is RunState.STOPPED:
            message = f"Pipeline stopped: {result.completed_count}/{result.total_steps} steps completed"
        else:
            message = f"Pipeline failed: {result.failure_summary()}"

        self._log(message)
        self._update(
            state=result.state,
            current_step=message,
            progress=100.0 if result.state is RunState.COMPLETED else self._status.progress,
        )

    def run(
        self,
        pipeline: Pipeline,
        base_dir: Optional[Path | str] = None,
        on_event: Optional[Callable[[RunEvent], None]] = None,
        context: Optional[RunContext] = None,
        tidy: Optional[bool] = None,
    ) -> RunResult:
        """Run a pipeline to completion.

        Args:
            pipeline: Steps to run
            base_dir: Directory relative paths resolve against (cwd if None)
            on_event: Called with every RunEvent
            context: Run-wide keyword values
            tidy: Delete intermediate files afterwards

        Returns:
            RunResult
        """
        result = None
        for event in self.iter_run(pipeline, base_dir, context=context, tidy=tidy):
            if on_event is not None:
                on_event(event)
            if isinstance(event, RunCompleted):
                result = event.result
        return result

    def run_graph(
        self,
        graph: "Graph",
        exporter: Optional[GraphExporter] = None,
        base_dir: Optional[Path | str] = None,
        on_event: Optional[Callable[[RunEvent], None]] = None,
        tidy: Optional[bool] = None,
    ) -> RunResult:
        """Validate, export and run a node graph.

        Raises:
            ValidationError: If the graph is not valid; nothing is run
        """
        if exporter is None:
            exporter = GraphExporter(self.registry)

        exporter.validate(graph).raise_for_errors()
        pipeline = Pipeline.from_graph(graph, exporter, config=self.config)
        return self.run(pipeline, base_dir, on_event=on_event, tidy=tidy)
