"""Workflow DAG.

Compiles nested workflow definitions (forks, dynamic forks, switches and
do-while loops) into a flat directed graph, optionally overlaid with an
execution trace, and applies structural edits back onto the definition tree.
"""

__version__ = "0.1.0"

from workflow_dag.config import DAGSettings
from workflow_dag.dag.builder import WorkflowDAG
from workflow_dag.models.definition import WorkflowDef
from workflow_dag.models.execution import Execution, TaskCoordinate

__all__ = [
    "__version__",
    "DAGSettings",
    "Execution",
    "TaskCoordinate",
    "WorkflowDAG",
    "WorkflowDef",
]
