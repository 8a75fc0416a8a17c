"""Unit tests for structural edits on the definition tree."""

from __future__ import annotations

import pytest

from workflow_dag.dag.builder import WorkflowDAG
from workflow_dag.dag.errors import StructuralError, TaskLookupError
from workflow_dag.models.definition import (
    DoWhileTask,
    ForkJoinTask,
    SwitchTask,
    TaskNode,
    TaskType,
    WorkflowDef,
)


def _refs(tasks: list[TaskNode]) -> list[str]:
    return [t.task_reference_name for t in tasks]


@pytest.fixture
def fork_without_join(make_task) -> WorkflowDef:
    return WorkflowDef.model_validate(
        {
            "name": "broken",
            "tasks": [
                make_task("fork", "FORK_JOIN", forkTasks=[[make_task("x")]]),
                make_task("after"),
            ],
        }
    )


def test_insert_after_start_prepends(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    tasks = dag.insert_after("__start", TaskType.SIMPLE)

    assert _refs(tasks) == ["simple_0", "A", "B"]


def test_insert_after_task(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    tasks = dag.insert_after("A", "HTTP")

    assert _refs(tasks) == ["A", "http_0", "B"]
    assert tasks[1].type == "HTTP"


def test_generated_name_skips_taken_refs(make_task) -> None:
    workflow_def = WorkflowDef.model_validate(
        {"name": "wf", "tasks": [make_task("simple_0"), make_task("simple_2")]}
    )
    dag = WorkflowDAG.from_workflow_def(workflow_def)

    tasks = dag.insert_after("simple_0", TaskType.SIMPLE)

    assert _refs(tasks) == ["simple_0", "simple_1", "simple_2"]


def test_insert_fork_adds_join_pair(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    tasks = dag.insert_after("A", TaskType.FORK_JOIN)

    assert _refs(tasks) == ["A", "fork_join_0", "fork_join_0_join", "B"]
    assert [t.type for t in tasks[1:3]] == ["FORK_JOIN", "JOIN"]


def test_insert_after_fork_lands_after_its_join(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    tasks = dag.insert_after("fork", TaskType.SIMPLE)

    assert _refs(tasks) == ["fork", "join", "simple_0", "after"]


def test_insert_after_fork_without_join_leaves_tree_unchanged(
    fork_without_join: WorkflowDef,
) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_without_join)

    with pytest.raises(StructuralError):
        dag.insert_after("fork", TaskType.SIMPLE)

    assert _refs(dag.tasks) == ["fork", "after"]


def test_insert_inside_fork_branch(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    tasks = dag.insert_after("b1a", TaskType.SIMPLE)

    fork = tasks[0]
    assert isinstance(fork, ForkJoinTask)
    assert _refs(fork.fork_tasks[0]) == ["b1a", "simple_0", "b1b"]
    assert _refs(fork.fork_tasks[1]) == ["b2"]


def test_insert_inside_loop_body(loop_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(loop_def)

    loop = dag.insert_after("l1", TaskType.SIMPLE)[0]

    assert isinstance(loop, DoWhileTask)
    assert _refs(loop.loop_over) == ["l1", "simple_0", "l2"]


def test_insert_after_loop_end_goes_after_loop(loop_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(loop_def)

    tasks = dag.insert_after("loop-END", TaskType.SIMPLE)

    assert _refs(tasks) == ["loop", "simple_0"]


def test_insert_after_synthetic_vertex_is_rejected(dynamic_fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(dynamic_fork_def)

    with pytest.raises(StructuralError):
        dag.insert_after("df_DF_CHILDREN_PLACEHOLDER", TaskType.SIMPLE)


def test_insert_after_unknown_ref(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    with pytest.raises(TaskLookupError):
        dag.insert_after("missing", TaskType.SIMPLE)


def test_unknown_kind_has_no_template(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    with pytest.raises(TaskLookupError):
        dag.insert_after("A", TaskType.TERMINAL)


def test_add_fork_branch(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    fork = dag.add_fork_tasks("fork", TaskType.SIMPLE)[0]

    assert isinstance(fork, ForkJoinTask)
    assert len(fork.fork_tasks) == 3
    assert _refs(fork.fork_tasks[2]) == ["simple_0"]


def test_add_fork_branch_to_non_fork(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    with pytest.raises(StructuralError):
        dag.add_fork_tasks("after", TaskType.SIMPLE)


def test_add_switch_cases(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    dag.add_switch_case("B", TaskType.SIMPLE)
    switch = dag.add_switch_case("B", TaskType.SIMPLE)[1]

    assert isinstance(switch, SwitchTask)
    assert list(switch.decision_cases) == ["x", "case_0", "case_1"]
    assert _refs(switch.decision_cases["case_0"]) == ["simple_0"]
    assert _refs(switch.decision_cases["case_1"]) == ["simple_1"]


def test_add_default_case_replaces_it(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    switch = dag.add_switch_case("B", TaskType.WAIT, is_default=True)[1]

    assert isinstance(switch, SwitchTask)
    assert _refs(switch.default_case) == ["wait_0"]
    assert list(switch.decision_cases) == ["x"]


def test_add_loop_task_replaces_body(loop_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(loop_def)

    loop = dag.add_loop_task("loop", TaskType.INLINE)[0]

    assert isinstance(loop, DoWhileTask)
    assert _refs(loop.loop_over) == ["inline_0"]


def test_add_loop_task_to_non_loop(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    with pytest.raises(StructuralError):
        dag.add_loop_task("B", TaskType.SIMPLE)


def test_delete_task(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    assert _refs(dag.delete_task("A")) == ["B"]


def test_delete_fork_removes_its_join(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    assert _refs(dag.delete_task("fork")) == ["after"]


def test_delete_fork_without_join_leaves_tree_unchanged(
    fork_without_join: WorkflowDef,
) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_without_join)

    with pytest.raises(StructuralError):
        dag.delete_task("fork")

    assert _refs(dag.tasks) == ["fork", "after"]


def test_delete_last_task_prunes_fork_branch(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    fork = dag.delete_task("b2")[0]

    assert isinstance(fork, ForkJoinTask)
    assert [_refs(branch) for branch in fork.fork_tasks] == [["b1a", "b1b"]]


def test_delete_last_task_prunes_switch_case(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    switch = dag.delete_task("C")[1]

    assert isinstance(switch, SwitchTask)
    assert switch.decision_cases == {}


def test_delete_last_default_task_keeps_default(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    switch = dag.delete_task("D")[1]

    assert isinstance(switch, SwitchTask)
    assert switch.default_case == []
    assert list(switch.decision_cases) == ["x"]


def test_delete_last_loop_task_keeps_loop(loop_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(loop_def)

    dag.delete_task("l1")
    loop = dag.delete_task("l2")[0]

    assert isinstance(loop, DoWhileTask)
    assert loop.loop_over == []


def test_delete_start_is_rejected(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    with pytest.raises(StructuralError):
        dag.delete_task("__start")


def test_update_task(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    tasks = dag.update_task(
        "A", {"name": "renamed", "taskReferenceName": "A2", "type": "HTTP"}
    )

    assert _refs(tasks) == ["A2", "B"]
    assert tasks[0].type == "HTTP"
    assert tasks[0].name == "renamed"


def test_edits_do_not_touch_source_definition(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)

    dag.insert_after("A", TaskType.SIMPLE)

    assert _refs(switch_def.tasks) == ["A", "B"]


def test_clone_is_independent(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)
    clone = dag.clone()

    clone.insert_after("A", TaskType.SIMPLE)

    assert _refs(dag.tasks) == ["A", "B"]
    assert _refs(clone.tasks) == ["A", "simple_0", "B"]


def test_rebuild_after_edit(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)
    dag.insert_after("A", TaskType.SIMPLE)

    rebuilt = WorkflowDAG.from_workflow_def(dag.to_workflow_def())

    assert rebuilt.graph.successors("A") == ["simple_0"]
    assert rebuilt.graph.successors("simple_0") == ["B"]


def test_edited_definition_keeps_payload_fields(switch_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(switch_def)
    dag.insert_after("A", TaskType.SIMPLE)

    payload = dag.to_workflow_def().to_json()

    assert payload["tasks"][2]["expression"] == "switchCaseValue"
    assert payload["tasks"][1] == {
        "name": "simple_0",
        "taskReferenceName": "simple_0",
        "type": "SIMPLE",
        "inputParameters": {},
    }


def test_delete_join_after_fork_is_rejected(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    with pytest.raises(StructuralError):
        dag.delete_task("join")

    assert _refs(dag.tasks) == ["fork", "join", "after"]
    rebuilt = WorkflowDAG.from_workflow_def(dag.to_workflow_def())
    assert _refs(rebuilt.insert_after("fork", TaskType.SIMPLE)) == [
        "fork",
        "join",
        "simple_0",
        "after",
    ]


def test_delete_join_after_dynamic_fork_is_rejected(dynamic_fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(dynamic_fork_def)

    with pytest.raises(StructuralError):
        dag.delete_task("df_join")

    assert _refs(dag.tasks) == ["df", "df_join"]


def test_delete_standalone_join(make_task) -> None:
    workflow_def = WorkflowDef.model_validate(
        {"name": "wf", "tasks": [make_task("A"), make_task("j", "JOIN")]}
    )
    dag = WorkflowDAG.from_workflow_def(workflow_def)

    assert _refs(dag.delete_task("j")) == ["A"]


def test_update_join_after_fork_to_other_type_is_rejected(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    with pytest.raises(StructuralError):
        dag.update_task("join", {"name": "join", "taskReferenceName": "join", "type": "SIMPLE"})

    assert [t.type for t in dag.tasks] == ["FORK_JOIN", "JOIN", "SIMPLE"]


def test_update_join_after_fork_keeping_join(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    tasks = dag.update_task(
        "join",
        {"name": "join", "taskReferenceName": "join", "type": "JOIN", "joinOn": ["b2"]},
    )

    assert [t.type for t in tasks] == ["FORK_JOIN", "JOIN", "SIMPLE"]
    assert tasks[1].join_on == ["b2"]


def test_update_into_fork_needs_following_join(fork_def: WorkflowDef) -> None:
    dag = WorkflowDAG.from_workflow_def(fork_def)

    with pytest.raises(StructuralError):
        dag.update_task(
            "after", {"name": "after", "taskReferenceName": "after", "type": "FORK_JOIN"}
        )

    assert _refs(dag.tasks) == ["fork", "join", "after"]
    assert dag.tasks[2].type == "SIMPLE"
