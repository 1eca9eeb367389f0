"""Graph view tests."""

from stepsos.graph import lineage_graph, pipeline_graph, step_details
from stepsos.persistence import ExecutionRecord, StepRecord

STEPS = ["entry", "validate", "process"]


def _failed_execution():
    return ExecutionRecord(
        id="e1",
        status="failed",
        input={"fileId": "f1"},
        steps=[
            StepRecord(name="entry", status="completed", input={"fileId": "f1"}, output={"fileId": "f1"}),
            StepRecord(name="validate", status="failed", error="fileName is required", logs=["a", "b"]),
            StepRecord(name="process", status="skipped", logs=["Skipped"]),
        ],
    )


def test_pipeline_graph_without_executions():
    graph = pipeline_graph(STEPS).to_wire()
    assert [n["id"] for n in graph["nodes"]] == STEPS
    assert [n["status"] for n in graph["nodes"]] == ["pending"] * 3
    assert [n["type"] for n in graph["nodes"]] == ["entry", "workflow", "workflow"]
    assert [n["y"] for n in graph["nodes"]] == [100, 220, 340]
    assert graph["edges"] == [
        {"from": "entry", "to": "validate"},
        {"from": "validate", "to": "process"},
    ]


def test_pipeline_graph_coloured_by_latest():
    graph = pipeline_graph(STEPS, _failed_execution()).to_wire()
    assert [n["status"] for n in graph["nodes"]] == ["completed", "failed", "skipped"]
    assert "input" not in graph["nodes"][0]


def test_lineage_graph_carries_step_data():
    graph = lineage_graph(_failed_execution(), STEPS).to_wire()
    validate = graph["nodes"][1]
    assert validate["error"] == "fileName is required"
    assert validate["logs"] == ["a", "b"]
    assert graph["nodes"][0]["output"] == {"fileId": "f1"}
    assert len(graph["edges"]) == 2


def test_lineage_graph_of_rejected_execution_has_no_edges():
    record = ExecutionRecord(
        id="e2",
        status="rejected",
        steps=[StepRecord(name="execution", status="failed", error="input is required")],
    )
    graph = lineage_graph(record, STEPS).to_wire()
    assert [n["id"] for n in graph["nodes"]] == ["execution"]
    assert graph["edges"] == []


def test_step_details():
    details = step_details("validate", _failed_execution())
    assert details["id"] == "validate"
    assert details["executionId"] == "e1"
    assert details["status"] == "failed"

    placeholder = step_details("validate", None)
    assert placeholder["status"] == "pending"
    assert placeholder["logs"] == ["No execution data"]
    assert placeholder["executionId"] is None
