"""Workflow definition models.

A definition is a named root task list. Each task is one variant of a closed
tagged union keyed by ``type``; structural variants own nested task lists
(fork branches, switch cases, loop bodies).

Payload fields this package does not interpret (``inputParameters``,
``expression``, ...) are kept as pydantic extras so an edited tree serializes
back to the same definition.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter
from pydantic.alias_generators import to_camel


class TaskType(str, Enum):
    SIMPLE = "SIMPLE"
    HTTP = "HTTP"
    INLINE = "INLINE"
    WAIT = "WAIT"
    TERMINATE = "TERMINATE"
    JOIN = "JOIN"
    EVENT = "EVENT"
    SUB_WORKFLOW = "SUB_WORKFLOW"
    START_WORKFLOW = "START_WORKFLOW"
    HUMAN = "HUMAN"
    JSON_JQ_TRANSFORM = "JSON_JQ_TRANSFORM"
    SET_VARIABLE = "SET_VARIABLE"
    KAFKA_PUBLISH = "KAFKA_PUBLISH"
    LAMBDA = "LAMBDA"
    NOOP = "NOOP"
    EXCLUSIVE_JOIN = "EXCLUSIVE_JOIN"

    FORK_JOIN = "FORK_JOIN"
    FORK_JOIN_DYNAMIC = "FORK_JOIN_DYNAMIC"
    SWITCH = "SWITCH"
    # Deprecated predecessor of SWITCH; walked identically.
    DECISION = "DECISION"
    DO_WHILE = "DO_WHILE"

    # Graph-only kinds, never present in a stored definition.
    TERMINAL = "TERMINAL"
    DO_WHILE_END = "DO_WHILE_END"
    DF_CHILDREN_PLACEHOLDER = "DF_CHILDREN_PLACEHOLDER"
    LOOP_CHILDREN_PLACEHOLDER = "LOOP_CHILDREN_PLACEHOLDER"


FORK_TYPES: frozenset[str] = frozenset({TaskType.FORK_JOIN, TaskType.FORK_JOIN_DYNAMIC})
SWITCH_TYPES: frozenset[str] = frozenset({TaskType.SWITCH, TaskType.DECISION})


class _TaskConfig(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    name: str
    task_reference_name: str

    @property
    def effective_ref(self) -> str:
        """Reference used for execution-status lookups."""

        return self.task_reference_name

    def nested_sequences(self) -> list[list[TaskNode]]:
        """Task lists owned by this node, in walk order."""

        return []

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SimpleTask(_TaskConfig):
    """Any elementary task that the walker treats as a single vertex.

    `type` is open: system task kinds added by the server (`BUSINESS_RULE`,
    `GET_SIGNED_JWT`, ...) and worker-defined kinds all land here.
    """

    type: str = "SIMPLE"


class TerminateTask(_TaskConfig):
    type: Literal["TERMINATE"] = "TERMINATE"


class JoinTask(_TaskConfig):
    type: Literal["JOIN"] = "JOIN"
    join_on: list[str] = Field(default_factory=list)


class ForkJoinTask(_TaskConfig):
    type: Literal["FORK_JOIN"] = "FORK_JOIN"
    fork_tasks: list[list[TaskNode]] = Field(default_factory=list)

    def nested_sequences(self) -> list[list[TaskNode]]:
        return list(self.fork_tasks)


class DynamicForkTask(_TaskConfig):
    type: Literal["FORK_JOIN_DYNAMIC"] = "FORK_JOIN_DYNAMIC"
    dynamic_fork_tasks_param: str | None = None
    dynamic_fork_tasks_input_param_name: str | None = None


class SwitchTask(_TaskConfig):
    type: Literal["SWITCH", "DECISION"] = "SWITCH"
    decision_cases: dict[str, list[TaskNode]] = Field(default_factory=dict)
    default_case: list[TaskNode] = Field(default_factory=list)

    def nested_sequences(self) -> list[list[TaskNode]]:
        return [self.default_case, *self.decision_cases.values()]


class DoWhileTask(_TaskConfig):
    type: Literal["DO_WHILE"] = "DO_WHILE"
    loop_condition: str | None = None
    loop_over: list[TaskNode] = Field(default_factory=list)

    def nested_sequences(self) -> list[list[TaskNode]]:
        return [self.loop_over]


ELEMENTARY_TAG = "elementary"

# Structural kinds dispatch to their own variant; every other type string is
# an elementary task.
_STRUCTURAL_TAGS: dict[str, str] = {
    "TERMINATE": "TERMINATE",
    "JOIN": "JOIN",
    "FORK_JOIN": "FORK_JOIN",
    "FORK_JOIN_DYNAMIC": "FORK_JOIN_DYNAMIC",
    "SWITCH": "SWITCH",
    "DECISION": "SWITCH",
    "DO_WHILE": "DO_WHILE",
}


def _task_tag(value: Any) -> str:
    if isinstance(value, dict):
        task_type = value.get("type")
    else:
        task_type = getattr(value, "type", None)
    if not isinstance(task_type, str):
        return ELEMENTARY_TAG
    return _STRUCTURAL_TAGS.get(task_type, ELEMENTARY_TAG)


TaskNode = Annotated[
    Annotated[SimpleTask, Tag(ELEMENTARY_TAG)]
    | Annotated[TerminateTask, Tag("TERMINATE")]
    | Annotated[JoinTask, Tag("JOIN")]
    | Annotated[ForkJoinTask, Tag("FORK_JOIN")]
    | Annotated[DynamicForkTask, Tag("FORK_JOIN_DYNAMIC")]
    | Annotated[SwitchTask, Tag("SWITCH")]
    | Annotated[DoWhileTask, Tag("DO_WHILE")],
    Discriminator(_task_tag),
]

ForkJoinTask.model_rebuild()
SwitchTask.model_rebuild()
DoWhileTask.model_rebuild()


class TerminalTask(_TaskConfig):
    """Synthetic start/final bubble."""

    type: Literal["TERMINAL"] = "TERMINAL"


class EndDoWhileTask(_TaskConfig):
    """Bar closing a loop; status lookups resolve through the loop's own ref."""

    type: Literal["DO_WHILE_END"] = "DO_WHILE_END"
    alias_for_ref: str

    @property
    def effective_ref(self) -> str:
        return self.alias_for_ref


class PlaceholderTask(_TaskConfig):
    """Stack standing in for collapsed dynamic-fork children or loop iterations."""

    type: Literal["DF_CHILDREN_PLACEHOLDER", "LOOP_CHILDREN_PLACEHOLDER"]


class IncompleteDFChildTask(_TaskConfig):
    """Minimal config for a dynamic-fork child that has no vertex of its own."""


GraphTask = (
    SimpleTask
    | TerminateTask
    | JoinTask
    | ForkJoinTask
    | DynamicForkTask
    | SwitchTask
    | DoWhileTask
    | TerminalTask
    | EndDoWhileTask
    | PlaceholderTask
)


class WorkflowDef(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    name: str
    version: int | None = None
    description: str | None = None
    tasks: list[TaskNode] = Field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


_TASK_ADAPTER: TypeAdapter[TaskNode] = TypeAdapter(TaskNode)


def parse_task(obj: dict[str, Any]) -> TaskNode:
    """Validate a single task dict into its TaskNode variant."""

    return _TASK_ADAPTER.validate_python(obj)


def iter_tasks(tasks: list[TaskNode]) -> Iterator[TaskNode]:
    """Yield every task in a nested task list, depth-first in definition order."""

    for task in tasks:
        yield task
        for sequence in task.nested_sequences():
            yield from iter_tasks(sequence)
