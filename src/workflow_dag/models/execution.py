"""Execution trace models.

An execution is the overall run status plus the ordered list of task attempts
reported by the workflow server. Retries show up as repeated attempts sharing
one reference name; the last one is authoritative.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workflow_dag.models.definition import WorkflowDef


class TaskStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    COMPLETED_WITH_ERRORS = "COMPLETED_WITH_ERRORS"
    FAILED = "FAILED"
    FAILED_WITH_TERMINAL_ERROR = "FAILED_WITH_TERMINAL_ERROR"
    CANCELED = "CANCELED"
    TIMED_OUT = "TIMED_OUT"
    SKIPPED = "SKIPPED"


class WorkflowStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    TERMINATED = "TERMINATED"
    PAUSED = "PAUSED"


class TaskResult(BaseModel):
    """One attempt of one task, as reported by the workflow server."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    task_id: str
    reference_task_name: str
    task_type: str
    task_def_name: str | None = None
    status: TaskStatus
    parent_task_reference_name: str | None = None

    # Filled in by the binder for fork parents. Insertion-ordered and
    # de-duplicated, since retries can re-emit the same child reference.
    forked_task_refs: list[str] | None = Field(default=None, exclude=True)

    def add_forked_ref(self, ref: str) -> None:
        if self.forked_task_refs is None:
            self.forked_task_refs = []
        if ref not in self.forked_task_refs:
            self.forked_task_refs.append(ref)


class TerminalResult(BaseModel):
    """Pseudo attempt for the synthetic start/final bubbles. Carries no id."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reference_task_name: str
    task_type: Literal["TERMINAL"] = "TERMINAL"
    status: TaskStatus = TaskStatus.COMPLETED


ExtendedTaskResult = TaskResult | TerminalResult


class Execution(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    workflow_id: str | None = None
    status: WorkflowStatus
    workflow_definition: WorkflowDef
    tasks: list[TaskResult] = Field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TaskCoordinate:
    """Selects a task either by attempt id or by reference name.

    Exactly one of `id` or `ref` should be set.
    """

    id: str | None = None
    ref: str | None = None
