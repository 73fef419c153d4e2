"""Command line interface for scriptflow."""

import logging
from pathlib import Path
from typing import Optional

import click
from tqdm import tqdm

from scriptflow import __version__
from scriptflow.config import Config
from scriptflow.pipeline import (
    Graph,
    GraphExporter,
    Pipeline,
    RunDriver,
    StepCompleted,
    StepFailed,
    StepRegistry,
    StepStarted,
)
from scriptflow.pipeline.graph import load_document
from scriptflow.utils import ScriptflowError, format_duration

EXIT_STEP_FAILED = 1
EXIT_NO_OUTPUT = 2


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool) -> None:
    """scriptflow - run chains of ff_* video scripts.

    Runs a step config (or a node editor graph export) one step at a time,
    feeding each step's output into the next.

    Examples:

        scriptflow run scriptflow.json

        scriptflow run graph.json --no-cleanup

        scriptflow export graph.json -o scriptflow.json

        scriptflow steps list --category size
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_pipeline(path: Path, config: Config) -> Pipeline:
    """Load a step config or graph export, validating it first."""
    data = load_document(path)

    if Graph.is_graph_document(data):
        graph = Graph.from_dict(data)
        exporter = GraphExporter()
        exporter.validate(graph).raise_for_errors()
        return Pipeline.from_graph(graph, exporter, name=path.stem, config=config)

    pipe = Pipeline.from_dict(data, name=path.stem, config=config)
    for step in pipe:
        StepRegistry.get(step.step_type)
    for warning in pipe.validate():
        click.secho(f"Warning: {warning}", fg="yellow")
    return pipe


# ============================================================================
# RUN Command
# ============================================================================
@cli.command()
@click.argument("config_file", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--steps", "-s", help="Inline steps: 'ff_scale:input=in.mp4,width=1280,ff_flip'")
@click.option("--base-dir", "-b", type=click.Path(file_okay=False), help="Directory paths are relative to (default: config file's folder)")
@click.option("--output", "-o", help="Final output filename")
@click.option("--no-cleanup", "--notidy", "-t", "no_cleanup", is_flag=True, help="Keep intermediate files")
@click.option("--summary", is_flag=True, help="Write a JSON run summary next to the output")
def run(
    config_file: Optional[str],
    steps: Optional[str],
    base_dir: Optional[str],
    output: Optional[str],
    no_cleanup: bool,
    summary: bool,
) -> None:
    """Run a pipeline.

    Steps run in order. A failing step is reported and skipped; the last
    step that succeeded provides the final output.

    Exit status: 0 when every step succeeded, 1 when a step failed or the
    config is invalid, 2 when no output was produced.

    Examples:

        scriptflow run scriptflow.json

        scriptflow run graph.yaml --no-cleanup -o final.mp4

        scriptflow run --steps "ff_scale:input=in.mp4,width=1280,ff_flip" -b ./media
    """
    try:
        cfg = Config.from_env()
        if output:
            cfg.output_filename = output
        if no_cleanup:
            cfg.tidy = False
        _show_warnings(cfg)

        if config_file:
            path = Path(config_file)
            pipe = _load_pipeline(path, cfg)
            directory = Path(base_dir) if base_dir else path.parent
        elif steps:
            pipe = Pipeline.from_steps_string(steps, config=cfg)
            for step in pipe:
                StepRegistry.get(step.step_type)
            directory = Path(base_dir) if base_dir else Path.cwd()
        else:
            raise ScriptflowError("Specify a config file or --steps")

        click.echo("\nscriptflow - Run")
        click.echo("=" * 40)
        click.echo(f"Pipeline: {pipe.describe()}")
        click.echo(f"Folder: {directory}")
        click.echo("")

        driver = RunDriver(config=cfg)
        with tqdm(total=len(pipe), desc="Pipeline", unit="step") as pbar:

            def on_event(event) -> None:
                if isinstance(event, StepStarted):
                    pbar.set_description(f"[{event.index}/{event.total}] {event.step_key}")
                elif isinstance(event, StepCompleted):
                    pbar.update(1)
                elif isinstance(event, StepFailed):
                    tqdm.write(click.style(f"  {event.step_key} failed: {event.error}", fg="red"))
                    if event.error.stderr:
                        tqdm.write(event.error.stderr.rstrip())
                    pbar.update(1)

            result = driver.run(pipe, directory, on_event=on_event)

        if summary:
            click.echo(f"Summary: {result.save_summary(directory)}")

        click.echo(f"Total time: {format_duration(result.total_duration)}")

        if result.no_output:
            click.secho(f"\n{result.error}", fg="red")
            raise SystemExit(EXIT_NO_OUTPUT)

        if result.failed_count:
            click.secho(f"\nPipeline finished with errors: {result.failure_summary()}", fg="yellow")
            click.echo(f"Final output: {result.final_output}")
            raise SystemExit(EXIT_STEP_FAILED)

        click.secho("\nPipeline complete!", fg="green")
        click.echo(f"Final output: {result.final_output}")

    except ScriptflowError as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)


# ============================================================================
# EXPORT / VALIDATE / CREATE Commands
# ============================================================================
@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the step config here (.json/.yaml)")
def export(graph_file: str, output: Optional[str]) -> None:
    """Export a node editor graph as a step config.

    Examples:

        scriptflow export graph.json

        scriptflow export graph.json -o scriptflow.json
    """
    try:
        graph = Graph.load(graph_file)
        exporter = GraphExporter()

        if output:
            Pipeline.from_graph(graph, exporter, name=Path(graph_file).stem).save(output)
            click.secho(f"Exported to {output}", fg="green")
        else:
            click.echo(exporter.export_string(graph))

    except ScriptflowError as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)


@cli.command()
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def validate(config_file: str) -> None:
    """Check a graph export or step config without running it.

    Examples:

        scriptflow validate graph.json
    """
    try:
        data = load_document(config_file)
        if Graph.is_graph_document(data):
            errors = GraphExporter().validate(Graph.from_dict(data)).errors
        else:
            errors = Pipeline.from_dict(data).validate()

        if errors:
            for error in errors:
                click.secho(f"  {error}", fg="red")
            click.secho(f"\n{len(errors)} problem(s) found", fg="red")
            raise SystemExit(1)

        click.secho("Pipeline is valid", fg="green")

    except ScriptflowError as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)


@cli.command()
@click.argument("output_file", type=click.Path(dir_okay=False))
@click.option("--steps", "-s", required=True, help="Steps: 'ff_scale:input=in.mp4,width=1280,ff_flip'")
def create(output_file: str, steps: str) -> None:
    """Create a step config file from an inline steps string.

    Examples:

        scriptflow create scriptflow.json -s "ff_scale:input=in.mp4,width=1280,ff_flip"

        scriptflow create flow.yaml -s "ff_cut:input=in.mp4,start=00:00:05,ff_fps:fps=25"
    """
    try:
        pipe = Pipeline.from_steps_string(steps, name=Path(output_file).stem)
        for step in pipe:
            StepRegistry.get(step.step_type)
        pipe.save(output_file)
        click.secho(f"Pipeline saved: {output_file}", fg="green")

    except ScriptflowError as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)


# ============================================================================
# STEPS Command Group
# ============================================================================
@cli.group()
def steps() -> None:
    """Browse the available step types.

        scriptflow steps list --category effects

        scriptflow steps show ff_crop
    """
    pass


@steps.command("list")
@click.option("--category", "-c", type=click.Choice(StepRegistry.categories()), help="Filter by category")
def steps_list(category: Optional[str]) -> None:
    """List available step types."""
    click.echo("\n" + StepRegistry.format_list(category))


@steps.command("show")
@click.argument("step_id")
def steps_show(step_id: str) -> None:
    """Show parameters and outputs of a step type."""
    try:
        click.echo("\n" + StepRegistry.format_definition(step_id))
    except ScriptflowError as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)


# ============================================================================
# Helper Functions
# ============================================================================
def _show_warnings(config: Config) -> None:
    """Show configuration warnings."""
    warnings = config.validate()
    for warning in warnings:
        click.secho(f"Warning: {warning}", fg="yellow")


if __name__ == "__main__":
    cli()
