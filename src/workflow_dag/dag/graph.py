"""Directed graph storage keyed by task reference name.

Vertices carry a `NodeData` payload and edges carry `EdgeProperties`. The
store is a thin typed layer over `networkx.DiGraph`, which keeps node and
adjacency insertion order, so two builds from identical inputs enumerate
identically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

import networkx as nx

if TYPE_CHECKING:
    from workflow_dag.dag.placeholders import Tally
    from workflow_dag.models.definition import GraphTask
    from workflow_dag.models.execution import ExtendedTaskResult, TaskStatus

SequenceSlot = Literal["tasks", "forkTasks", "decisionCases", "defaultCase", "loopOver"]


@dataclass(frozen=True, slots=True)
class SequenceRef:
    """Path to the task list that owns a vertex's config.

    `owner_ref` is the structural task holding the list (None for the root
    task list), `slot` names the field and `key` indexes fork branches or
    switch cases.
    """

    owner_ref: str | None = None
    slot: SequenceSlot = "tasks"
    key: int | str | None = None


ROOT_SEQUENCE = SequenceRef()


@dataclass(frozen=True, slots=True)
class EdgeProperties:
    executed: bool = False
    case_value: str | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"executed": self.executed}
        if self.case_value is not None:
            out["caseValue"] = self.case_value
        return out


@dataclass(slots=True)
class NodeData:
    task_config: GraphTask
    parent: SequenceRef
    task_results: list[ExtendedTaskResult] = field(default_factory=list)

    status: TaskStatus | None = None
    tally: Tally | None = None
    contains_task_refs: list[str] | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "ref": self.task_config.task_reference_name,
            "name": self.task_config.name,
            "type": self.task_config.type,
            "attempts": len(self.task_results),
        }
        if self.status is not None:
            out["status"] = self.status.value
        if self.tally is not None:
            out["tally"] = self.tally.to_json()
        if self.contains_task_refs is not None:
            out["containsTaskRefs"] = list(self.contains_task_refs)
        return out


class TaskGraph:
    """Directed graph of task vertices."""

    def __init__(self) -> None:
        self._graph = nx.DiGraph()

    def set_node(self, ref: str, data: NodeData) -> None:
        self._graph.add_node(ref, data=data)

    def node(self, ref: str) -> NodeData | None:
        if ref not in self._graph:
            return None
        data: NodeData = self._graph.nodes[ref]["data"]
        return data

    def has_node(self, ref: str) -> bool:
        return ref in self._graph

    def remove_node(self, ref: str) -> None:
        self._graph.remove_node(ref)

    def nodes(self) -> list[str]:
        return list(self._graph.nodes)

    def set_edge(self, source: str, target: str, props: EdgeProperties) -> None:
        self._graph.add_edge(source, target, props=props)

    def edge(self, source: str, target: str) -> EdgeProperties | None:
        if not self._graph.has_edge(source, target):
            return None
        props: EdgeProperties = self._graph.edges[source, target]["props"]
        return props

    def edges(self) -> list[tuple[str, str]]:
        return list(self._graph.edges)

    def in_edges(self, ref: str) -> list[tuple[str, str]]:
        return list(self._graph.in_edges(ref))

    def out_edges(self, ref: str) -> list[tuple[str, str]]:
        return list(self._graph.out_edges(ref))

    def successors(self, ref: str) -> list[str]:
        return list(self._graph.successors(ref))

    def predecessors(self, ref: str) -> list[str]:
        return list(self._graph.predecessors(ref))

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __contains__(self, ref: object) -> bool:
        return ref in self._graph

    def to_json(self) -> dict[str, Any]:
        nodes = [data.to_json() for _, data in self._graph.nodes(data="data")]
        edges = [
            {"source": source, "target": target, **props.to_json()}
            for source, target, props in self._graph.edges(data="props")
        ]

        return {"nodes": nodes, "edges": edges}
