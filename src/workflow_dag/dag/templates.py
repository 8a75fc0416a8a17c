"""Starter configs for tasks added by the editor.

Each template returns a list so that kinds needing a companion task (forks
and their JOIN) are always inserted as a pair.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from workflow_dag.dag.errors import TaskLookupError
from workflow_dag.models.definition import TaskNode, TaskType, parse_task

Template = Callable[[str], list[TaskNode]]


def _task(ref: str, task_type: TaskType, **fields: Any) -> TaskNode:
    return parse_task(
        {
            "name": ref,
            "taskReferenceName": ref,
            "type": task_type.value,
            **fields,
        }
    )


def _join(ref: str) -> TaskNode:
    return _task(f"{ref}_join", TaskType.JOIN, inputParameters={}, joinOn=[])


def _simple(ref: str) -> list[TaskNode]:
    return [_task(ref, TaskType.SIMPLE, inputParameters={})]


def _http(ref: str) -> list[TaskNode]:
    return [
        _task(
            ref,
            TaskType.HTTP,
            inputParameters={
                "http_request": {
                    "uri": "https://example.com",
                    "method": "GET",
                    "connectionTimeOut": 3000,
                    "readTimeOut": 3000,
                }
            },
        )
    ]


def _inline(ref: str) -> list[TaskNode]:
    return [
        _task(
            ref,
            TaskType.INLINE,
            inputParameters={
                "evaluatorType": "graaljs",
                "expression": "(function () { return $.value; })();",
                "value": "",
            },
        )
    ]


def _wait(ref: str) -> list[TaskNode]:
    return [_task(ref, TaskType.WAIT, inputParameters={"duration": "1 seconds"})]


def _terminate(ref: str) -> list[TaskNode]:
    return [
        _task(
            ref,
            TaskType.TERMINATE,
            inputParameters={"terminationStatus": "COMPLETED", "workflowOutput": {}},
        )
    ]


def _join_only(ref: str) -> list[TaskNode]:
    return [_task(ref, TaskType.JOIN, inputParameters={}, joinOn=[])]


def _sub_workflow(ref: str) -> list[TaskNode]:
    return [
        _task(
            ref,
            TaskType.SUB_WORKFLOW,
            inputParameters={},
            subWorkflowParam={"name": "", "version": 1},
        )
    ]


def _json_jq(ref: str) -> list[TaskNode]:
    return [_task(ref, TaskType.JSON_JQ_TRANSFORM, inputParameters={"queryExpression": "."})]


def _fork_join(ref: str) -> list[TaskNode]:
    return [_task(ref, TaskType.FORK_JOIN, inputParameters={}, forkTasks=[]), _join(ref)]


def _fork_join_dynamic(ref: str) -> list[TaskNode]:
    return [
        _task(
            ref,
            TaskType.FORK_JOIN_DYNAMIC,
            inputParameters={"dynamicTasks": "", "dynamicTasksInput": ""},
            dynamicForkTasksParam="dynamicTasks",
            dynamicForkTasksInputParamName="dynamicTasksInput",
        ),
        _join(ref),
    ]


def _switch(ref: str) -> list[TaskNode]:
    return [
        _task(
            ref,
            TaskType.SWITCH,
            inputParameters={"switchCaseValue": ""},
            evaluatorType="value-param",
            expression="switchCaseValue",
            decisionCases={},
            defaultCase=[],
        )
    ]


def _do_while(ref: str) -> list[TaskNode]:
    return [_task(ref, TaskType.DO_WHILE, inputParameters={}, loopCondition="", loopOver=[])]


TEMPLATES: dict[TaskType, Template] = {
    TaskType.SIMPLE: _simple,
    TaskType.HTTP: _http,
    TaskType.INLINE: _inline,
    TaskType.WAIT: _wait,
    TaskType.TERMINATE: _terminate,
    TaskType.JOIN: _join_only,
    TaskType.SUB_WORKFLOW: _sub_workflow,
    TaskType.JSON_JQ_TRANSFORM: _json_jq,
    TaskType.FORK_JOIN: _fork_join,
    TaskType.FORK_JOIN_DYNAMIC: _fork_join_dynamic,
    TaskType.SWITCH: _switch,
    TaskType.DO_WHILE: _do_while,
}


def template_for(kind: TaskType | str) -> Template:
    try:
        return TEMPLATES[TaskType(kind)]
    except (KeyError, ValueError) as e:
        raise TaskLookupError(f"No template for task type {kind!r}") from e
