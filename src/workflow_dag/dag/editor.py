"""Structural edits applied directly to the nested definition tree.

Every operation locates its target through the graph built from the current
tree, mutates the owning task list in place and returns the root task list
for re-serialization. Callers are expected to rebuild the graph (or work on
a clone) before the next edit.
"""

from __future__ import annotations

import logging

from workflow_dag.dag.binder import START_REF
from workflow_dag.dag.errors import StructuralError, TaskLookupError
from workflow_dag.dag.graph import NodeData, SequenceRef, TaskGraph
from workflow_dag.dag.templates import template_for
from workflow_dag.models.definition import (
    FORK_TYPES,
    DoWhileTask,
    EndDoWhileTask,
    ForkJoinTask,
    GraphTask,
    SwitchTask,
    TaskNode,
    TaskType,
    iter_tasks,
    parse_task,
)

logger = logging.getLogger(__name__)


class TaskEditorMixin:
    """Tree mutations for a built workflow graph."""

    graph: TaskGraph
    tasks: list[TaskNode]

    def _require_node(self, ref: str) -> NodeData:
        vertex = self.graph.node(ref)
        if vertex is None:
            raise TaskLookupError(f"No task with reference {ref!r} in graph")
        return vertex

    def resolve_sequence(self, where: SequenceRef) -> list[TaskNode]:
        """Return the task list a `SequenceRef` points at."""

        if where.owner_ref is None:
            return self.tasks

        owner = self._require_node(where.owner_ref).task_config
        if where.slot == "forkTasks" and isinstance(owner, ForkJoinTask):
            if isinstance(where.key, int) and where.key < len(owner.fork_tasks):
                return owner.fork_tasks[where.key]
        elif where.slot == "decisionCases" and isinstance(owner, SwitchTask):
            if isinstance(where.key, str) and where.key in owner.decision_cases:
                return owner.decision_cases[where.key]
        elif where.slot == "defaultCase" and isinstance(owner, SwitchTask):
            return owner.default_case
        elif where.slot == "loopOver" and isinstance(owner, DoWhileTask):
            return owner.loop_over

        raise TaskLookupError(f"{where.owner_ref!r} has no {where.slot} sequence {where.key!r}")

    @staticmethod
    def _index_in(sequence: list[TaskNode], config: GraphTask) -> int:
        for idx, task in enumerate(sequence):
            if task is config:
                return idx
        raise StructuralError(
            f"Task {config.task_reference_name!r} is not part of its owning sequence"
        )

    @staticmethod
    def _paired_join_index(sequence: list[TaskNode], fork_idx: int) -> int:
        join_idx = fork_idx + 1
        if join_idx >= len(sequence) or sequence[join_idx].type != TaskType.JOIN:
            fork_ref = sequence[fork_idx].task_reference_name
            raise StructuralError(f"Fork {fork_ref!r} must be followed by a JOIN")
        return join_idx

    @staticmethod
    def _require_unpaired_join(sequence: list[TaskNode], pos: int) -> None:
        task = sequence[pos]
        if task.type == TaskType.JOIN and pos > 0 and sequence[pos - 1].type in FORK_TYPES:
            fork_ref = sequence[pos - 1].task_reference_name
            raise StructuralError(
                f"JOIN {task.task_reference_name!r} closes fork {fork_ref!r}; "
                "edit the fork instead"
            )

    def _known_refs(self) -> set[str]:
        refs = set(self.graph.nodes())
        refs.update(task.task_reference_name for task in iter_tasks(self.tasks))
        return refs

    def get_next_untitled(self, kind: TaskType | str) -> list[TaskNode]:
        """Fresh task(s) of `kind` named `<kind>_<n>` with the lowest unused n."""

        template = template_for(kind)
        prefix = TaskType(kind).value.lower()
        taken = self._known_refs()

        idx = 0
        while True:
            candidate = template(f"{prefix}_{idx}")
            if not any(task.task_reference_name in taken for task in candidate):
                return candidate
            idx += 1

    def insert_after(self, ref: str, kind: TaskType | str) -> list[TaskNode]:
        vertex = self._require_node(ref)

        if ref == START_REF:
            self.tasks[0:0] = self.get_next_untitled(kind)
            logger.debug("Task inserted at start", extra={"kind": TaskType(kind).value})
            return self.tasks

        config, where = vertex.task_config, vertex.parent
        if isinstance(config, EndDoWhileTask):
            loop_vertex = self._require_node(config.alias_for_ref)
            config, where = loop_vertex.task_config, loop_vertex.parent

        sequence = self.resolve_sequence(where)
        pos = self._index_in(sequence, config)
        if config.type in FORK_TYPES:
            pos = self._paired_join_index(sequence, pos)

        new_tasks = self.get_next_untitled(kind)
        sequence[pos + 1 : pos + 1] = new_tasks
        logger.debug(
            "Task inserted",
            extra={"after": ref, "inserted": [t.task_reference_name for t in new_tasks]},
        )
        return self.tasks

    def add_fork_tasks(self, parent_ref: str, kind: TaskType | str) -> list[TaskNode]:
        config = self._require_node(parent_ref).task_config
        if not isinstance(config, ForkJoinTask):
            raise StructuralError(f"{parent_ref!r} is not a FORK_JOIN task")

        config.fork_tasks.append(self.get_next_untitled(kind))
        logger.debug("Fork branch added", extra={"fork": parent_ref})
        return self.tasks

    def add_switch_case(
        self, parent_ref: str, kind: TaskType | str, is_default: bool = False
    ) -> list[TaskNode]:
        config = self._require_node(parent_ref).task_config
        if not isinstance(config, SwitchTask):
            raise StructuralError(f"{parent_ref!r} is not a SWITCH task")

        new_tasks = self.get_next_untitled(kind)
        if is_default:
            config.default_case = new_tasks
        else:
            case_value = _next_case_value(config)
            config.decision_cases[case_value] = new_tasks
        logger.debug("Switch case added", extra={"switch": parent_ref, "default": is_default})
        return self.tasks

    def add_loop_task(self, parent_ref: str, kind: TaskType | str) -> list[TaskNode]:
        config = self._require_node(parent_ref).task_config
        if not isinstance(config, DoWhileTask):
            raise StructuralError(f"{parent_ref!r} is not a DO_WHILE task")

        config.loop_over = self.get_next_untitled(kind)
        logger.debug("Loop body set", extra={"loop": parent_ref})
        return self.tasks

    def delete_task(self, ref: str) -> list[TaskNode]:
        vertex = self._require_node(ref)
        sequence = self.resolve_sequence(vertex.parent)
        pos = self._index_in(sequence, vertex.task_config)

        if vertex.task_config.type in FORK_TYPES:
            join_idx = self._paired_join_index(sequence, pos)
            del sequence[pos : join_idx + 1]
        else:
            self._require_unpaired_join(sequence, pos)
            del sequence[pos]

        if not sequence:
            self._prune_empty_sequence(vertex.parent, sequence)

        logger.debug("Task deleted", extra={"ref": ref})
        return self.tasks

    def _prune_empty_sequence(self, where: SequenceRef, sequence: list[TaskNode]) -> None:
        """Drop the fork branch or switch case that held a now-empty list.

        Empty loop bodies, default cases and the root list are left in place.
        """

        if where.owner_ref is None:
            return

        owner = self._require_node(where.owner_ref).task_config
        if isinstance(owner, ForkJoinTask) and where.slot == "forkTasks":
            for idx, branch in enumerate(owner.fork_tasks):
                if branch is sequence:
                    del owner.fork_tasks[idx]
                    return
        elif isinstance(owner, SwitchTask) and where.slot == "decisionCases":
            for case_value, branch in owner.decision_cases.items():
                if branch is sequence:
                    del owner.decision_cases[case_value]
                    return

    def update_task(self, ref: str, config: TaskNode | dict[str, object]) -> list[TaskNode]:
        """Replace a task's config in place, e.g. after a property-panel edit."""

        new_config = parse_task(config) if isinstance(config, dict) else config
        vertex = self._require_node(ref)
        sequence = self.resolve_sequence(vertex.parent)
        pos = self._index_in(sequence, vertex.task_config)
        if new_config.type != TaskType.JOIN:
            self._require_unpaired_join(sequence, pos)
        if new_config.type in FORK_TYPES:
            self._paired_join_index(sequence, pos)

        sequence[pos] = new_config
        logger.debug(
            "Task updated", extra={"ref": ref, "new_ref": new_config.task_reference_name}
        )
        return self.tasks


def _next_case_value(switch: SwitchTask) -> str:
    idx = 0
    while f"case_{idx}" in switch.decision_cases:
        idx += 1
    return f"case_{idx}"
