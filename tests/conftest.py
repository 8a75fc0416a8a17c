"""Test configuration and fixtures."""

from typing import Any

import pytest

from workflow_dag.models.definition import WorkflowDef
from workflow_dag.models.execution import Execution


def task(ref: str, task_type: str = "SIMPLE", **fields: Any) -> dict[str, Any]:
    """Task config dict in wire format."""
    return {"name": ref, "taskReferenceName": ref, "type": task_type, **fields}


def attempt(
    ref: str,
    status: str = "COMPLETED",
    task_type: str = "SIMPLE",
    task_id: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Task attempt dict in wire format."""
    return {
        "taskId": task_id or f"id-{ref}",
        "referenceTaskName": ref,
        "taskType": task_type,
        "taskDefName": ref,
        "status": status,
        **fields,
    }


@pytest.fixture
def make_task():
    """Factory for task config dicts."""
    return task


@pytest.fixture
def make_attempt():
    """Factory for task attempt dicts."""
    return attempt


@pytest.fixture
def switch_def() -> WorkflowDef:
    """A -> B(SWITCH) with one named case and a default."""
    return WorkflowDef.model_validate(
        {
            "name": "switch_wf",
            "tasks": [
                task("A"),
                task(
                    "B",
                    "SWITCH",
                    evaluatorType="value-param",
                    expression="switchCaseValue",
                    decisionCases={"x": [task("C")]},
                    defaultCase=[task("D")],
                ),
            ],
        }
    )


@pytest.fixture
def fork_def() -> WorkflowDef:
    """Static fork with two branches, its JOIN and one trailing task."""
    return WorkflowDef.model_validate(
        {
            "name": "fork_wf",
            "tasks": [
                task("fork", "FORK_JOIN", forkTasks=[[task("b1a"), task("b1b")], [task("b2")]]),
                task("join", "JOIN", joinOn=["b1b", "b2"]),
                task("after"),
            ],
        }
    )


@pytest.fixture
def loop_def() -> WorkflowDef:
    """Single DO_WHILE with a two-task body."""
    return WorkflowDef.model_validate(
        {
            "name": "loop_wf",
            "tasks": [
                task("loop", "DO_WHILE", loopCondition="true", loopOver=[task("l1"), task("l2")]),
            ],
        }
    )


@pytest.fixture
def dynamic_fork_def() -> WorkflowDef:
    return WorkflowDef.model_validate(
        {
            "name": "df_wf",
            "tasks": [
                task(
                    "df",
                    "FORK_JOIN_DYNAMIC",
                    dynamicForkTasksParam="dynamicTasks",
                    dynamicForkTasksInputParamName="dynamicTasksInput",
                ),
                task("df_join", "JOIN"),
            ],
        }
    )


@pytest.fixture
def dynamic_fork_execution(dynamic_fork_def: WorkflowDef) -> Execution:
    """Dynamic fork that spawned four children, all completed."""
    children = [attempt(f"c{i}", parentTaskReferenceName="df") for i in range(1, 5)]
    return Execution.model_validate(
        {
            "workflowId": "wf-1",
            "status": "COMPLETED",
            "workflowDefinition": dynamic_fork_def.to_json(),
            "tasks": [
                attempt("df", task_type="FORK"),
                *children,
                attempt("df_join", task_type="JOIN"),
            ],
        }
    )
