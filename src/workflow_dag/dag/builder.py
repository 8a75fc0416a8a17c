"""Flatten a nested workflow definition into a directed graph.

The walk visits tasks in definition order. Each task materializes one or more
vertices, gets wired to the current antecedent set (the "frontier") and
hands back a new frontier for its next sibling:

- FORK_JOIN: branches are walked from the fork; their tails together form
  the frontier, which the following JOIN consumes like any other task.
- FORK_JOIN_DYNAMIC: children recorded in the trace become vertices, unless
  there are none or too many, in which case one placeholder stands in.
- SWITCH/DECISION: every case (and default) is walked from the switch; an
  empty default contributes the switch itself to the frontier.
- DO_WHILE: executed loops collapse into one placeholder; unexecuted loops
  show their body. Both close with a `<ref>-END` bar.
- TERMINATE: ends its branch (empty frontier).

Example:
    tasks=[A, B(SWITCH, cases={"x": [C]}, default=[D])] yields
    __start -> A -> B, B -> C ("x"), B -> D ("default"), C/D -> __final
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Literal

from workflow_dag.dag.binder import FINAL_REF, START_REF, ExecutionBinder
from workflow_dag.dag.editor import TaskEditorMixin
from workflow_dag.dag.errors import (
    DAGInvariantError,
    InvalidCoordinateError,
    TaskLookupError,
)
from workflow_dag.dag.graph import (
    ROOT_SEQUENCE,
    EdgeProperties,
    NodeData,
    SequenceRef,
    TaskGraph,
)
from workflow_dag.dag.placeholders import (
    Tally,
    collect_loop_refs,
    df_placeholder,
    loop_placeholder,
)
from workflow_dag.models.definition import (
    DoWhileTask,
    DynamicForkTask,
    EndDoWhileTask,
    ForkJoinTask,
    GraphTask,
    IncompleteDFChildTask,
    JoinTask,
    SwitchTask,
    TaskNode,
    TaskType,
    TerminalTask,
    TerminateTask,
    WorkflowDef,
    iter_tasks,
    parse_task,
)
from workflow_dag.models.execution import (
    Execution,
    ExtendedTaskResult,
    TaskCoordinate,
    TaskResult,
    TaskStatus,
)

logger = logging.getLogger(__name__)

DYNAMIC_FORK_COLLAPSE_LIMIT = 3
DEFAULT_CASE = "default"


@dataclass(frozen=True, slots=True)
class VertexOverrides:
    """Status fields set explicitly instead of read from the vertex's own attempts."""

    status: TaskStatus | None = None
    tally: Tally | None = None
    contains_task_refs: list[str] | None = None


class WorkflowDAG(TaskEditorMixin):
    """Graph view of a workflow definition, optionally overlaid with an execution.

    Build with `from_workflow_def` (definition only) or `from_execution`.
    The instance owns a private copy of the definition's task tree, which the
    editor operations mutate.
    """

    def __init__(
        self,
        workflow_def: WorkflowDef,
        *,
        binder: ExecutionBinder | None = None,
        execution: Execution | None = None,
        collapse_limit: int = DYNAMIC_FORK_COLLAPSE_LIMIT,
    ) -> None:
        self.workflow_def = workflow_def
        self.tasks: list[TaskNode] = copy.deepcopy(workflow_def.tasks)
        self.graph = TaskGraph()
        self.binder = binder if binder is not None else ExecutionBinder()
        self.execution = execution
        self.collapse_limit = collapse_limit

    @classmethod
    def from_workflow_def(
        cls, workflow_def: WorkflowDef, *, collapse_limit: int = DYNAMIC_FORK_COLLAPSE_LIMIT
    ) -> WorkflowDAG:
        dag = cls(workflow_def, collapse_limit=collapse_limit)
        dag.initialize()
        return dag

    @classmethod
    def from_execution(
        cls,
        execution: Execution,
        tasks: list[TaskResult] | None = None,
        *,
        collapse_limit: int = DYNAMIC_FORK_COLLAPSE_LIMIT,
    ) -> WorkflowDAG:
        """Build from an execution and its attempts (defaults to `execution.tasks`).

        Attempts are copied before binding; the caller's records are not touched.
        """

        attempts = execution.tasks if tasks is None else tasks
        binder = ExecutionBinder.bind(
            status=execution.status,
            tasks=[attempt.model_copy(deep=True) for attempt in attempts],
        )
        dag = cls(
            execution.workflow_definition,
            binder=binder,
            execution=execution,
            collapse_limit=collapse_limit,
        )
        dag.initialize()
        return dag

    def initialize(self) -> None:
        start = TerminalTask(name="start", task_reference_name=START_REF)
        antecedents = self.process_task(start, [], ROOT_SEQUENCE)
        antecedents = self.process_task_list(self.tasks, antecedents, ROOT_SEQUENCE)

        final = TerminalTask(name="final", task_reference_name=FINAL_REF)
        self.process_task(final, antecedents, ROOT_SEQUENCE)

        # Every branch ended in a user TERMINATE task.
        if not self.graph.in_edges(FINAL_REF):
            self.graph.remove_node(FINAL_REF)

        logger.debug(
            "Workflow graph built",
            extra={
                "workflow": self.workflow_def.name,
                "nodes": len(self.graph),
                "edges": len(self.graph.edges()),
                "executed": self.execution is not None,
            },
        )

    # -- walking ------------------------------------------------------------

    def process_task_list(
        self, tasks: list[TaskNode], antecedents: list[GraphTask], parent: SequenceRef
    ) -> list[GraphTask]:
        frontier = antecedents
        for task in tasks:
            frontier = self.process_task(task, frontier, parent)
        return frontier

    def process_task(
        self, task: GraphTask, antecedents: list[GraphTask], parent: SequenceRef
    ) -> list[GraphTask]:
        if isinstance(task, ForkJoinTask):
            return self._process_fork_join(task, antecedents, parent)
        if isinstance(task, DynamicForkTask):
            return self._process_fork_join_dynamic(task, antecedents, parent)
        if isinstance(task, SwitchTask):
            return self._process_switch(task, antecedents, parent)
        if isinstance(task, DoWhileTask):
            return self._process_do_while(task, antecedents, parent)
        if isinstance(task, JoinTask):
            return self._process_join(task, antecedents, parent)
        if isinstance(task, TerminateTask):
            self.add_vertex(task, antecedents, parent)
            return []

        self.add_vertex(task, antecedents, parent)
        return [task]

    def _process_fork_join(
        self, fork: ForkJoinTask, antecedents: list[GraphTask], parent: SequenceRef
    ) -> list[GraphTask]:
        self.add_vertex(fork, antecedents, parent)
        if not fork.fork_tasks:
            return [fork]

        frontier: list[GraphTask] = []
        for idx, branch in enumerate(fork.fork_tasks):
            where = SequenceRef(fork.task_reference_name, "forkTasks", idx)
            frontier.extend(self.process_task_list(branch, [fork], where))
        return frontier

    def _process_fork_join_dynamic(
        self, fork: DynamicForkTask, antecedents: list[GraphTask], parent: SequenceRef
    ) -> list[GraphTask]:
        self.add_vertex(fork, antecedents, parent)

        fork_result = self.binder.result_by_ref(fork.task_reference_name)
        forked_refs = fork_result.forked_task_refs if fork_result is not None else None

        if not forked_refs or len(forked_refs) >= self.collapse_limit:
            placeholder = df_placeholder(self.binder, fork.task_reference_name, forked_refs)
            self.add_vertex(
                placeholder.task_config,
                [fork],
                parent,
                VertexOverrides(
                    status=placeholder.status,
                    tally=placeholder.tally,
                    contains_task_refs=placeholder.contains_task_refs,
                ),
            )
            return [placeholder.task_config]

        children: list[GraphTask] = []
        for ref in forked_refs:
            child_result = self.binder.result_by_ref(ref)
            if child_result is None:
                raise DAGInvariantError(f"Forked child {ref!r} has no attempt")
            child = task_config_from_result(child_result)
            self.add_vertex(child, [fork], parent)
            children.append(child)
        return children

    def _process_switch(
        self, switch: SwitchTask, antecedents: list[GraphTask], parent: SequenceRef
    ) -> list[GraphTask]:
        self.add_vertex(switch, antecedents, parent)
        ref = switch.task_reference_name

        frontier: list[GraphTask] = []
        if not switch.default_case:
            # Empty default path runs straight through the switch.
            frontier.append(switch)
        else:
            frontier.extend(
                self.process_task_list(
                    switch.default_case, [switch], SequenceRef(ref, "defaultCase")
                )
            )

        for case_value, branch in switch.decision_cases.items():
            where = SequenceRef(ref, "decisionCases", case_value)
            frontier.extend(self.process_task_list(branch, [switch], where))
        return frontier

    def _process_do_while(
        self, loop: DoWhileTask, antecedents: list[GraphTask], parent: SequenceRef
    ) -> list[GraphTask]:
        has_executed = self.get_task_config_execution_status(loop) is not None
        self.add_vertex(loop, antecedents, parent)

        ref = loop.task_reference_name
        end = EndDoWhileTask(name=loop.name, task_reference_name=f"{ref}-END", alias_for_ref=ref)

        if has_executed:
            loop_refs = collect_loop_refs(
                self.binder, [task.task_reference_name for task in iter_tasks(loop.loop_over)]
            )
            placeholder = loop_placeholder(self.binder, ref, loop_refs)
            self.add_vertex(
                placeholder.task_config,
                [loop],
                parent,
                VertexOverrides(
                    status=placeholder.status,
                    tally=placeholder.tally,
                    contains_task_refs=placeholder.contains_task_refs,
                ),
            )
            self.add_vertex(
                end, [placeholder.task_config], parent, VertexOverrides(status=placeholder.status)
            )
        else:
            # An empty body is only valid while authoring; the bar then hangs
            # directly off the loop.
            body_frontier = self.process_task_list(
                loop.loop_over, [loop], SequenceRef(ref, "loopOver")
            )
            self.add_vertex(end, body_frontier, parent)

        return [end]

    def _process_join(
        self, join: JoinTask, antecedents: list[GraphTask], parent: SequenceRef
    ) -> list[GraphTask]:
        self.add_vertex(join, antecedents, parent)
        return [join]

    def add_vertex(
        self,
        task: GraphTask,
        antecedents: list[GraphTask],
        parent: SequenceRef,
        overrides: VertexOverrides | None = None,
    ) -> None:
        effective_ref = task.effective_ref
        last_result = self.binder.latest(effective_ref)

        vertex = NodeData(
            task_config=task,
            parent=parent,
            task_results=self.binder.results_by_ref(effective_ref),
        )
        if overrides is None:
            vertex.status = last_result.status if last_result is not None else None
        else:
            vertex.status = overrides.status
            vertex.tally = overrides.tally
            vertex.contains_task_refs = overrides.contains_task_refs

        ref = task.task_reference_name
        self.graph.set_node(ref, vertex)

        for antecedent in antecedents:
            antecedent_ref = antecedent.task_reference_name
            antecedent_vertex = self.graph.node(antecedent_ref)
            antecedent_executed = (
                antecedent_vertex is not None and antecedent_vertex.status is not None
            )

            if isinstance(antecedent, SwitchTask):
                # Which branch ran is inferred from the successor's own attempt,
                # not from the switch's output.
                props = EdgeProperties(
                    executed=last_result is not None and is_branch_taken(last_result, antecedent),
                    case_value=get_case_value(ref, antecedent),
                )
            else:
                props = EdgeProperties(executed=antecedent_executed and vertex.status is not None)

            self.graph.set_edge(antecedent_ref, ref, props)

    # -- queries ------------------------------------------------------------

    def node(self, ref: str) -> NodeData:
        return self._require_node(ref)

    def node_by_coord(self, coord: TaskCoordinate) -> NodeData:
        return self.node(self._coord_to_ref(coord))

    def _coord_to_ref(self, coord: TaskCoordinate) -> str:
        by, key = _coordinate_key(coord)
        if by == "id":
            return self.binder.result_by_id(key).reference_task_name
        return key

    def get_task_results_by_ref(self, ref: str) -> list[ExtendedTaskResult]:
        return self.binder.results_by_ref(ref)

    def get_task_result_by_ref(self, ref: str) -> TaskResult | None:
        return self.binder.result_by_ref(ref)

    def get_task_result_by_id(self, task_id: str) -> TaskResult:
        return self.binder.result_by_id(task_id)

    def get_task_result_by_coord(self, coord: TaskCoordinate) -> TaskResult | None:
        """Latest attempt for a coordinate; None if the ref has not run yet."""

        by, key = _coordinate_key(coord)
        if by == "id":
            return self.binder.result_by_id(key)
        return self.binder.result_by_ref(key)

    def get_task_result_attempts_by_coord(
        self, coord: TaskCoordinate | None
    ) -> list[ExtendedTaskResult] | None:
        if coord is None:
            return None
        return self.binder.results_by_ref(self._coord_to_ref(coord))

    def get_df_siblings_by_coord(
        self, coord: TaskCoordinate | None
    ) -> list[TaskResult | None] | None:
        """All attempts spawned by the same dynamic fork as the task at `coord`."""

        if coord is None:
            return None

        result = self.get_task_result_by_coord(coord)
        if result is None or not result.parent_task_reference_name:
            return None

        parent = self.binder.result_by_ref(result.parent_task_reference_name)
        if parent is None or parent.forked_task_refs is None:
            raise DAGInvariantError(
                f"Dynamic fork {result.parent_task_reference_name!r} is missing forked task refs"
            )
        return [self.binder.result_by_ref(ref) for ref in parent.forked_task_refs]

    def get_task_config_by_ref(self, ref: str) -> GraphTask | IncompleteDFChildTask:
        vertex = self.graph.node(ref)
        if vertex is not None:
            return vertex.task_config

        # No vertex of its own, e.g. a collapsed dynamic-fork child.
        result = self.binder.result_by_ref(ref)
        if result is None:
            raise TaskLookupError(f"No task config found for ref {ref!r}")
        return IncompleteDFChildTask(name=result.task_def_name or ref, task_reference_name=ref)

    def get_task_config_by_coord(self, coord: TaskCoordinate) -> GraphTask | IncompleteDFChildTask:
        return self.get_task_config_by_ref(self._coord_to_ref(coord))

    def get_task_config_execution_status(self, task: GraphTask) -> TaskStatus | None:
        result = self.binder.result_by_ref(task.effective_ref)
        return result.status if result is not None else None

    # -- copies and serialization -------------------------------------------

    def to_workflow_def(self) -> WorkflowDef:
        """Definition re-derived from the (possibly edited) task tree."""

        return self.workflow_def.model_copy(update={"tasks": copy.deepcopy(self.tasks)})

    def clone(self) -> WorkflowDAG:
        """Rebuild over a copy of the current tree so edits leave this graph intact."""

        dag = WorkflowDAG(
            self.to_workflow_def(),
            binder=self.binder,
            execution=self.execution,
            collapse_limit=self.collapse_limit,
        )
        dag.initialize()
        return dag

    def to_json(self) -> dict[str, Any]:
        return self.graph.to_json()


def _coordinate_key(coord: TaskCoordinate) -> tuple[Literal["id", "ref"], str]:
    """Which lookup a coordinate selects, and its key."""

    if coord.id and not coord.ref:
        return "id", coord.id
    if coord.ref and not coord.id:
        return "ref", coord.ref
    raise InvalidCoordinateError(f"Task coordinate needs exactly one of id or ref, got {coord!r}")


def get_case_value(ref: str, switch: SwitchTask) -> str:
    """Label for the edge from `switch` to the task `ref` that follows it."""

    if switch.default_case and switch.default_case[0].task_reference_name == ref:
        return DEFAULT_CASE

    for case_value, branch in switch.decision_cases.items():
        if branch and branch[0].task_reference_name == ref:
            return case_value

    if not switch.default_case:
        # Not valid for execution, but allowed while editing.
        return DEFAULT_CASE

    raise TaskLookupError(
        f"Could not find case value for {ref!r} after switch {switch.task_reference_name!r}"
    )


def is_branch_taken(result: ExtendedTaskResult, switch: SwitchTask) -> bool:
    branch_ref = result.reference_task_name

    if switch.default_case and switch.default_case[0].task_reference_name == branch_ref:
        return True

    return any(
        branch and branch[0].task_reference_name == branch_ref
        for branch in switch.decision_cases.values()
    )


def task_config_from_result(result: TaskResult) -> TaskNode:
    """Minimal config for a task known only from its attempt record.

    Any task type is accepted; kinds without a structural variant become
    elementary tasks.
    """

    task_type = result.task_type
    if task_type == "FORK":
        task_type = (
            TaskType.FORK_JOIN_DYNAMIC.value
            if result.parent_task_reference_name
            else TaskType.FORK_JOIN.value
        )

    return parse_task(
        {
            "name": result.task_def_name or result.reference_task_name,
            "taskReferenceName": result.reference_task_name,
            "type": task_type,
        }
    )
