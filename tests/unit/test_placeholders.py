"""Unit tests for placeholder tallies."""

from __future__ import annotations

import pytest

from workflow_dag.dag.binder import ExecutionBinder
from workflow_dag.dag.errors import DAGInvariantError
from workflow_dag.dag.placeholders import (
    Tally,
    collect_loop_refs,
    df_placeholder,
    loop_placeholder,
    tally_statuses,
)
from workflow_dag.models.execution import TaskResult, TaskStatus, WorkflowStatus


def _bind(*raw: dict[str, object]) -> ExecutionBinder:
    return ExecutionBinder.bind(
        status=WorkflowStatus.RUNNING,
        tasks=[TaskResult.model_validate(r) for r in raw],
    )


def test_tally_counts_scheduled_as_in_progress() -> None:
    tally = tally_statuses(
        [
            TaskStatus.COMPLETED,
            TaskStatus.SCHEDULED,
            TaskStatus.IN_PROGRESS,
            TaskStatus.CANCELED,
            TaskStatus.FAILED,
        ]
    )

    assert tally == Tally(success=1, in_progress=2, canceled=1, total=5)


@pytest.mark.parametrize(
    ("tally", "expected"),
    [
        (Tally(success=3, total=3), TaskStatus.COMPLETED),
        (Tally(), TaskStatus.COMPLETED),
        (Tally(success=1, in_progress=1, canceled=1, total=3), TaskStatus.IN_PROGRESS),
        (Tally(success=1, canceled=1, total=3), TaskStatus.FAILED),
    ],
)
def test_tally_status(tally: Tally, expected: TaskStatus) -> None:
    assert tally.status == expected


def test_df_placeholder_before_fork_ran_has_shape_only() -> None:
    placeholder = df_placeholder(ExecutionBinder(), "df")

    assert placeholder.task_config.task_reference_name == "df_DF_CHILDREN_PLACEHOLDER"
    assert placeholder.task_config.type == "DF_CHILDREN_PLACEHOLDER"
    assert placeholder.status is None
    assert placeholder.tally is None
    assert placeholder.contains_task_refs is None


def test_df_placeholder_tallies_latest_child_statuses(make_attempt) -> None:
    binder = _bind(
        make_attempt("df", task_type="FORK"),
        make_attempt("c1", parentTaskReferenceName="df"),
        make_attempt("c2", "FAILED", parentTaskReferenceName="df", task_id="c2-1"),
        make_attempt("c2", "IN_PROGRESS", parentTaskReferenceName="df", task_id="c2-2"),
    )

    placeholder = df_placeholder(binder, "df", ["c1", "c2"])

    assert placeholder.tally == Tally(success=1, in_progress=1, canceled=0, total=2)
    assert placeholder.status == TaskStatus.IN_PROGRESS
    assert placeholder.contains_task_refs == ["c1", "c2"]


def test_df_placeholder_with_unknown_child_is_an_invariant_error(make_attempt) -> None:
    binder = _bind(make_attempt("df", task_type="FORK"))

    with pytest.raises(DAGInvariantError):
        df_placeholder(binder, "df", ["nowhere"])


def test_loop_refs_match_iteration_suffix_only(make_attempt) -> None:
    binder = _bind(
        make_attempt("loop", task_type="DO_WHILE"),
        make_attempt("l1__1"),
        make_attempt("l10__1"),
        make_attempt("l1__2"),
    )

    loop_refs = collect_loop_refs(binder, ["l1"])
    placeholder = loop_placeholder(binder, "loop", loop_refs)

    assert loop_refs == ["l1__1", "l1__2"]
    assert placeholder.task_config.task_reference_name == "loop_LOOP_CHILDREN_PLACEHOLDER"
    assert placeholder.tally == Tally(success=2, total=2)
    assert placeholder.status == TaskStatus.COMPLETED


def test_loop_refs_for_empty_body() -> None:
    assert collect_loop_refs(ExecutionBinder(), []) == []
