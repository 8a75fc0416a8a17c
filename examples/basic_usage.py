#!/usr/bin/env python3
"""Programmatic graph building example.

This demonstrates using the package directly:

* load settings from `.env`
* flatten a workflow definition into a graph
* add a task after an existing one and print the edited definition

The definition is read from a JSON file passed as an argument.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

from workflow_dag import DAGSettings, WorkflowDAG, WorkflowDef
from workflow_dag.dag.errors import StructuralError
from workflow_dag.models.definition import TaskType


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and edit a workflow graph (example).")
    parser.add_argument("definition", type=Path, help="Path to a workflow definition JSON file")
    parser.add_argument("--after", default="__start", help="Reference to insert after")
    parser.add_argument("--type", default="SIMPLE", help="Task type to insert (default: SIMPLE)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = DAGSettings()
    settings.setup_logging()

    workflow_def = WorkflowDef.model_validate_json(args.definition.read_text(encoding="utf-8"))
    dag = WorkflowDAG.from_workflow_def(
        workflow_def, collapse_limit=settings.dynamic_fork_collapse_limit
    )
    print(f"Graph has {len(dag.graph)} vertices and {len(dag.graph.edges())} edges")

    try:
        dag.insert_after(args.after, TaskType(args.type.upper()))
    except StructuralError as exc:
        print(str(exc))
        return 1

    print(json.dumps(dag.to_workflow_def().to_json(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
