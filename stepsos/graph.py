"""Derived node/edge views over the step pipeline and its executions."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .persistence import ExecutionRecord, StepRecord

NODE_X = 400
NODE_Y_START = 100
NODE_Y_GAP = 120


class GraphNode(BaseModel):
    id: str
    type: str
    status: str = "pending"
    x: int = NODE_X
    y: int = NODE_Y_START
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[str] = None
    logs: Optional[List[str]] = None


class GraphEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")


class Graph(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _node(name: str, index: int) -> GraphNode:
    return GraphNode(
        id=name,
        type="entry" if index == 0 else "workflow",
        y=NODE_Y_START + NODE_Y_GAP * index,
    )


def _chain(names: Sequence[str]) -> List[GraphEdge]:
    return [GraphEdge(source=a, target=b) for a, b in zip(names, names[1:])]


def pipeline_graph(
    step_names: Sequence[str], latest: Optional[ExecutionRecord] = None
) -> Graph:
    """Fixed pipeline with each node coloured by the latest execution."""
    nodes = []
    for index, name in enumerate(step_names):
        node = _node(name, index)
        step = latest.step(name) if latest else None
        if step is not None:
            node.status = step.status
        nodes.append(node)
    return Graph(nodes=nodes, edges=_chain(step_names))


def lineage_graph(record: ExecutionRecord, step_names: Sequence[str]) -> Graph:
    """One node per recorded step, carrying its data lineage.

    Edges link consecutive declared steps that both have a record.
    """
    nodes = []
    for index, step in enumerate(record.steps):
        node = _node(step.name, index)
        node.status = step.status
        node.input = step.input
        node.output = step.output
        node.error = step.error
        node.logs = list(step.logs)
        nodes.append(node)

    recorded = {step.name for step in record.steps}
    present = [name for name in step_names if name in recorded]
    return Graph(nodes=nodes, edges=_chain(present))


def step_details(name: str, latest: Optional[ExecutionRecord]) -> dict:
    """The latest execution's record for step ``name``, or a placeholder."""
    step = latest.step(name) if latest else None
    if step is None:
        step = StepRecord(name=name, status="pending", logs=["No execution data"])
    details = step.model_dump(mode="json", by_alias=True)
    details["id"] = name
    details["executionId"] = latest.id if latest else None
    return details
