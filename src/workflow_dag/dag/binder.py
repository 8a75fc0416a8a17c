"""Index task attempts from an execution trace.

Binding is two passes. The first indexes every attempt by reference name
(ordered, multi-valued for retries) and by task id. The second walks the
attempts again and records, on each fork parent's latest attempt, the set of
child references it spawned; a parent cannot know its children until they
have all been indexed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from workflow_dag.dag.errors import DAGInvariantError, DisallowedAccessError, TaskLookupError
from workflow_dag.models.definition import TaskType
from workflow_dag.models.execution import (
    ExtendedTaskResult,
    TaskResult,
    TerminalResult,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)

START_REF = "__start"
FINAL_REF = "__final"


class ExecutionBinder:
    """Attempt lookups by reference name and by task id.

    An unbound binder (no trace) answers every lookup with "nothing ran".
    """

    def __init__(self) -> None:
        self._by_ref: dict[str, list[ExtendedTaskResult]] = {}
        self._by_id: dict[str, TaskResult] = {}
        self.is_terminated = False

    @classmethod
    def bind(cls, *, status: WorkflowStatus, tasks: Iterable[TaskResult]) -> ExecutionBinder:
        binder = cls()
        attempts = list(tasks)

        for attempt in attempts:
            if attempt.task_type == TaskType.TERMINATE:
                binder.is_terminated = True
            binder.add(attempt)

        binder._link_forked_children(attempts)

        # The start bubble always counts as executed.
        binder.add(TerminalResult(reference_task_name=START_REF))
        if status == WorkflowStatus.COMPLETED and not binder.is_terminated:
            binder.add(TerminalResult(reference_task_name=FINAL_REF))

        logger.debug(
            "Execution trace bound",
            extra={
                "attempts": len(attempts),
                "refs": len(binder._by_ref),
                "terminated": binder.is_terminated,
            },
        )
        return binder

    def add(self, attempt: ExtendedTaskResult) -> None:
        self._by_ref.setdefault(attempt.reference_task_name, []).append(attempt)
        if isinstance(attempt, TaskResult):
            self._by_id[attempt.task_id] = attempt

    def _link_forked_children(self, attempts: list[TaskResult]) -> None:
        for attempt in attempts:
            parent_ref = attempt.parent_task_reference_name
            if not parent_ref or attempt.task_type == TaskType.JOIN:
                continue

            parent = self.latest(parent_ref)
            if not isinstance(parent, TaskResult):
                raise DAGInvariantError(
                    f"Task {attempt.reference_task_name!r} names parent {parent_ref!r} "
                    "which has no attempt in the trace"
                )
            parent.add_forked_ref(attempt.reference_task_name)

    @property
    def is_bound(self) -> bool:
        return bool(self._by_ref)

    def refs(self) -> list[str]:
        """Every reference name with at least one attempt, in arrival order."""

        return list(self._by_ref)

    def results_by_ref(self, ref: str) -> list[ExtendedTaskResult]:
        return self._by_ref.get(ref, [])

    def latest(self, ref: str) -> ExtendedTaskResult | None:
        """Authoritative (last) attempt for `ref`, terminal pseudo attempts included."""

        attempts = self._by_ref.get(ref)
        return attempts[-1] if attempts else None

    def result_by_ref(self, ref: str) -> TaskResult | None:
        attempt = self.latest(ref)
        if isinstance(attempt, TerminalResult):
            raise DisallowedAccessError(f"Terminal task {ref!r} cannot be retrieved")
        return attempt

    def result_by_id(self, task_id: str) -> TaskResult:
        attempt = self._by_id.get(task_id)
        if attempt is None:
            raise TaskLookupError(f"No task result for id {task_id!r}")
        return attempt
