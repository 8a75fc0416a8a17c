"""Graph construction, querying and editing."""

from workflow_dag.dag.binder import FINAL_REF, START_REF, ExecutionBinder
from workflow_dag.dag.builder import WorkflowDAG
from workflow_dag.dag.errors import (
    DAGInvariantError,
    DisallowedAccessError,
    InvalidCoordinateError,
    StructuralError,
    TaskLookupError,
    WorkflowDAGError,
)
from workflow_dag.dag.graph import EdgeProperties, NodeData, SequenceRef, TaskGraph
from workflow_dag.dag.placeholders import Tally

__all__ = [
    "DAGInvariantError",
    "DisallowedAccessError",
    "EdgeProperties",
    "ExecutionBinder",
    "FINAL_REF",
    "InvalidCoordinateError",
    "NodeData",
    "START_REF",
    "SequenceRef",
    "StructuralError",
    "Tally",
    "TaskGraph",
    "TaskLookupError",
    "WorkflowDAG",
    "WorkflowDAGError",
]
