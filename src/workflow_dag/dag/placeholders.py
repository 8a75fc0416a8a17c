"""Collapse dynamic-fork children and loop iterations into one vertex.

A placeholder carries a tally of its children's latest statuses and the full
list of the references it stands for, so a renderer can drill down.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from workflow_dag.dag.binder import ExecutionBinder
from workflow_dag.dag.errors import DAGInvariantError
from workflow_dag.models.definition import PlaceholderTask, TaskType
from workflow_dag.models.execution import TaskStatus

DF_PLACEHOLDER_SUFFIX = "_DF_CHILDREN_PLACEHOLDER"
LOOP_PLACEHOLDER_SUFFIX = "_LOOP_CHILDREN_PLACEHOLDER"

# Separator between a loop body task's ref and its iteration number.
ITERATION_SEPARATOR = "__"

_IN_PROGRESS_STATUSES = frozenset({TaskStatus.IN_PROGRESS, TaskStatus.SCHEDULED})


@dataclass(frozen=True, slots=True)
class Tally:
    """Status counts over a group of tasks; whatever is left over counts as failed."""

    success: int = 0
    in_progress: int = 0
    canceled: int = 0
    total: int = 0

    @property
    def status(self) -> TaskStatus:
        if self.success == self.total:
            return TaskStatus.COMPLETED
        if self.in_progress:
            return TaskStatus.IN_PROGRESS
        return TaskStatus.FAILED

    def to_json(self) -> dict[str, int]:
        return {
            "success": self.success,
            "inProgress": self.in_progress,
            "canceled": self.canceled,
            "total": self.total,
        }


def tally_statuses(statuses: Iterable[TaskStatus]) -> Tally:
    success = in_progress = canceled = total = 0
    for status in statuses:
        total += 1
        if status == TaskStatus.COMPLETED:
            success += 1
        elif status in _IN_PROGRESS_STATUSES:
            in_progress += 1
        elif status == TaskStatus.CANCELED:
            canceled += 1
    return Tally(success=success, in_progress=in_progress, canceled=canceled, total=total)


@dataclass(frozen=True, slots=True)
class Placeholder:
    task_config: PlaceholderTask
    status: TaskStatus | None = None
    tally: Tally | None = None
    contains_task_refs: list[str] | None = None


def _latest_statuses(binder: ExecutionBinder, refs: Iterable[str]) -> list[TaskStatus]:
    statuses = []
    for ref in refs:
        result = binder.result_by_ref(ref)
        if result is None:
            raise DAGInvariantError(f"Invalid ref encountered while tallying: {ref!r}")
        statuses.append(result.status)
    return statuses


def df_placeholder(
    binder: ExecutionBinder, df_ref: str, forked_refs: Iterable[str] | None = None
) -> Placeholder:
    """Placeholder for a dynamic fork's children.

    Before the fork has run there is nothing to count, so only the shape is
    returned (no status, tally or contained refs).
    """

    placeholder_ref = df_ref + DF_PLACEHOLDER_SUFFIX
    config = PlaceholderTask(
        name=placeholder_ref,
        task_reference_name=placeholder_ref,
        type=TaskType.DF_CHILDREN_PLACEHOLDER.value,
    )

    if binder.result_by_ref(df_ref) is None:
        return Placeholder(task_config=config)

    refs = list(forked_refs or [])
    tally = tally_statuses(_latest_statuses(binder, refs))
    return Placeholder(
        task_config=config,
        status=tally.status,
        tally=tally,
        contains_task_refs=refs,
    )


def collect_loop_refs(binder: ExecutionBinder, body_refs: Iterable[str]) -> list[str]:
    """Every iteration ref (`<body ref>__<n>`) recorded for the given loop body refs."""

    prefixes = tuple(ref + ITERATION_SEPARATOR for ref in body_refs)
    if not prefixes:
        return []
    return [ref for ref in binder.refs() if ref.startswith(prefixes)]


def loop_placeholder(binder: ExecutionBinder, loop_ref: str, loop_refs: list[str]) -> Placeholder:
    placeholder_ref = loop_ref + LOOP_PLACEHOLDER_SUFFIX
    config = PlaceholderTask(
        name=placeholder_ref,
        task_reference_name=placeholder_ref,
        type=TaskType.LOOP_CHILDREN_PLACEHOLDER.value,
    )

    tally = tally_statuses(_latest_statuses(binder, loop_refs))
    return Placeholder(
        task_config=config,
        status=tally.status,
        tally=tally,
        contains_task_refs=list(loop_refs),
    )
