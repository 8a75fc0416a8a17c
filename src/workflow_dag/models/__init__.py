"""Definition and execution payload models."""

from workflow_dag.models.definition import (
    DoWhileTask,
    DynamicForkTask,
    ForkJoinTask,
    JoinTask,
    SimpleTask,
    SwitchTask,
    TaskNode,
    TaskType,
    TerminateTask,
    WorkflowDef,
    parse_task,
)
from workflow_dag.models.execution import (
    Execution,
    TaskCoordinate,
    TaskResult,
    TaskStatus,
    WorkflowStatus,
)

__all__ = [
    "DoWhileTask",
    "DynamicForkTask",
    "Execution",
    "ForkJoinTask",
    "JoinTask",
    "SimpleTask",
    "SwitchTask",
    "TaskCoordinate",
    "TaskNode",
    "TaskResult",
    "TaskStatus",
    "TaskType",
    "TerminateTask",
    "WorkflowDef",
    "WorkflowStatus",
    "parse_task",
]
