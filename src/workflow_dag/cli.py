"""CLI entrypoint for building and editing workflow graphs.

Every command reads JSON from files and writes JSON to stdout; nothing is
persisted.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from workflow_dag import __version__
from workflow_dag.config import DAGSettings
from workflow_dag.dag.builder import WorkflowDAG
from workflow_dag.dag.errors import WorkflowDAGError
from workflow_dag.models.definition import TaskType, WorkflowDef
from workflow_dag.models.execution import Execution

logger = logging.getLogger(__name__)

_EDIT_COMMANDS = {
    "insert-after",
    "add-fork-task",
    "add-switch-case",
    "add-loop-task",
    "delete-task",
}


def _task_type(value: str) -> TaskType:
    try:
        return TaskType(value.upper())
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"unknown task type: {value}") from e


def _add_definition_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--definition",
        type=Path,
        required=True,
        help="Path to a workflow definition JSON file",
    )


def _add_type_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--type",
        dest="task_type",
        type=_task_type,
        default=TaskType.SIMPLE,
        help="Type of the task to create, e.g. SIMPLE, HTTP, FORK_JOIN (default: SIMPLE)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-dag",
        description="Flatten workflow definitions into graphs and apply structural edits",
    )
    parser.add_argument("--version", action="version", version=f"workflow-dag {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    graph = subparsers.add_parser("graph", help="Print the graph for a definition or execution")
    source = graph.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--definition",
        type=Path,
        default=None,
        help="Path to a workflow definition JSON file",
    )
    source.add_argument(
        "--execution",
        type=Path,
        default=None,
        help="Path to an execution JSON file (embeds its workflow definition and task attempts)",
    )

    insert_after = subparsers.add_parser(
        "insert-after", help="Insert a new task after an existing one"
    )
    _add_definition_arg(insert_after)
    insert_after.add_argument(
        "--ref", required=True, help="Reference name to insert after ('__start' for the top)"
    )
    _add_type_arg(insert_after)

    add_fork_task = subparsers.add_parser(
        "add-fork-task", help="Add a parallel branch to a FORK_JOIN task"
    )
    _add_definition_arg(add_fork_task)
    add_fork_task.add_argument("--ref", required=True, help="FORK_JOIN reference name")
    _add_type_arg(add_fork_task)

    add_switch_case = subparsers.add_parser(
        "add-switch-case", help="Add a case (or the default case) to a SWITCH task"
    )
    _add_definition_arg(add_switch_case)
    add_switch_case.add_argument("--ref", required=True, help="SWITCH reference name")
    _add_type_arg(add_switch_case)
    add_switch_case.add_argument(
        "--default",
        dest="is_default",
        action="store_true",
        help="Set the default case instead of adding a new named case",
    )

    add_loop_task = subparsers.add_parser(
        "add-loop-task", help="Replace the body of a DO_WHILE task"
    )
    _add_definition_arg(add_loop_task)
    add_loop_task.add_argument("--ref", required=True, help="DO_WHILE reference name")
    _add_type_arg(add_loop_task)

    delete_task = subparsers.add_parser("delete-task", help="Delete a task (and a fork's JOIN)")
    _add_definition_arg(delete_task)
    delete_task.add_argument("--ref", required=True, help="Reference name to delete")

    return parser


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _load_definition(path: Path) -> WorkflowDef:
    return WorkflowDef.model_validate_json(path.read_text(encoding="utf-8"))


def _load_execution(path: Path) -> Execution:
    return Execution.model_validate_json(path.read_text(encoding="utf-8"))


def _apply_edit(dag: WorkflowDAG, args: argparse.Namespace) -> None:
    if args.command == "insert-after":
        dag.insert_after(args.ref, args.task_type)
    elif args.command == "add-fork-task":
        dag.add_fork_tasks(args.ref, args.task_type)
    elif args.command == "add-switch-case":
        dag.add_switch_case(args.ref, args.task_type, is_default=args.is_default)
    elif args.command == "add-loop-task":
        dag.add_loop_task(args.ref, args.task_type)
    elif args.command == "delete-task":
        dag.delete_task(args.ref)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = DAGSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment or .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    settings.setup_logging()
    limit = settings.dynamic_fork_collapse_limit

    try:
        if args.command == "graph":
            if args.execution is not None:
                dag = WorkflowDAG.from_execution(
                    _load_execution(args.execution), collapse_limit=limit
                )
            else:
                dag = WorkflowDAG.from_workflow_def(
                    _load_definition(args.definition), collapse_limit=limit
                )
            _print_json(dag.to_json())
            return 0

        if args.command in _EDIT_COMMANDS:
            dag = WorkflowDAG.from_workflow_def(
                _load_definition(args.definition), collapse_limit=limit
            )
            _apply_edit(dag, args)
            logger.info("Edit applied", extra={"command": args.command, "ref": args.ref})
            _print_json(dag.to_workflow_def().to_json())
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except (OSError, ValidationError) as e:
        logger.error("Could not load input", extra={"command": args.command})
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2

    except WorkflowDAGError as e:
        logger.warning(str(e), extra={"command": args.command})
        print(str(e), file=sys.stderr)
        return 3

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
