#!/usr/bin/env python3
"""Example: Build and run step pipelines."""

from scriptflow.config import Config
from scriptflow.pipeline import Pipeline, RunDriver, StepFailed, StepRegistry, StepStarted


def main():
    config = Config.from_env()

    # List available steps
    print("Available steps:")
    print(StepRegistry.format_list("size"))

    # Method 1: Build pipeline with fluent API
    pipeline = (
        Pipeline("social", config=config)
        .add("ff_scale", input="input_video.mp4", width="<CALC_1920/2>", height=-1, output="scaled.mp4")
        .add("ff_text", input="scaled.mp4", text="<FOLDER_TITLE>", colour="<CONSTANT_CONTRAST_COLOUR>")
        .add("ff_social_media", input="ff_text.mp4")
    )

    print(f"\nPipeline: {pipeline.describe()}")

    # Run it, printing progress as steps start and fail
    def on_event(event):
        if isinstance(event, StepStarted):
            print(f"[{event.index}/{event.total}] {event.step_key}")
        elif isinstance(event, StepFailed):
            print(f"  failed: {event.error}")

    driver = RunDriver(config=config)
    result = driver.run(pipeline, base_dir=".", on_event=on_event, tidy=False)

    print(f"\nCompleted: {result.completed_count}/{result.total_steps}")
    if result.final_output:
        print(f"Final output: {result.final_output}")
    else:
        print(result.error)

    # Method 2: Build from inline string
    pipeline2 = Pipeline.from_steps_string(
        "ff_cut:input=input_video.mp4,start=00:00:05,ff_fps:input=ff_cut.mp4,fps=25",
        name="trim",
        config=config,
    )
    print(f"\nTrim pipeline: {pipeline2.describe()}")

    # Method 3: Load from config file (step config or node editor export)
    # pipeline3 = Pipeline.load("scriptflow.json", config=config)
    # driver.run(pipeline3, base_dir=".")

    # Method 4: Save pipeline for reuse
    pipeline.save("social.json")
    print("\nPipeline saved to social.json")

    # Save the run summary
    summary_path = result.save_summary(".")
    print(f"Summary saved: {summary_path}")


if __name__ == "__main__":
    main()
