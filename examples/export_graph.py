#!/usr/bin/env python3
"""Example: Build a node graph, check it and export it as a step config."""

from scriptflow.pipeline import Graph, GraphExporter, StepRegistry


def main():
    graph = Graph()

    # Two raw inputs feeding a concat, then a title
    graph.add_node("input", {"filepath": "intro.mp4"}, node_id="intro")
    graph.add_node("input", {"filepath": "main.mp4"}, node_id="main")
    graph.add_node("ff_concat", node_id="concat", registry=StepRegistry)
    graph.add_node("ff_text", {"text": "<DATE_%Y>"}, node_id="title", registry=StepRegistry)

    graph.connect("intro", "concat", to_input="input1")
    graph.connect("main", "concat", to_input="input2")
    graph.connect("concat", "title")

    # Concat takes extra inputs on demand
    slot = graph.add_dynamic_input("concat", "input3", StepRegistry)
    print(f"Added concat slot: {slot}")
    graph.remove_dynamic_input("concat", slot, StepRegistry)

    exporter = GraphExporter()
    report = exporter.validate(graph)
    if not report.is_valid:
        for error in report.errors:
            print(f"  {error}")
        return

    print(exporter.export_string(graph))

    graph.save("graph.json")
    print("\nGraph saved to graph.json")


if __name__ == "__main__":
    main()
