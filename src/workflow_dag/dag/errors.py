"""Errors raised while building, querying or editing a workflow graph.

None of these are retried internally; they propagate to the caller.
"""

from __future__ import annotations


class WorkflowDAGError(Exception):
    """Base class for all workflow graph errors."""


class DAGInvariantError(WorkflowDAGError):
    """The execution trace is malformed (e.g. a child names a parent that never ran)."""


class StructuralError(WorkflowDAGError, ValueError):
    """An edit would break the tree's structure. The tree is left unmodified."""


class TaskLookupError(WorkflowDAGError, LookupError):
    """A reference, id or case value could not be resolved."""


class InvalidCoordinateError(TaskLookupError):
    """A task coordinate must carry exactly one of `id` or `ref`."""


class DisallowedAccessError(WorkflowDAGError):
    """Synthetic terminal tasks have no execution identity and cannot be fetched."""
