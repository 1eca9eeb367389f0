"""Step runner tests: the execution state machine end to end."""

import pytest

from stepsos.execute import REJECTION_STEP_NAME, StepRunner, check_contract
from stepsos.persistence import ExecutionRecord
from stepsos.steps import EntryStep, Step, ValidateStep


class FailingStep(Step):
    name = "boom"

    async def run(self, input):
        raise RuntimeError("disk full")


class EchoStep(Step):
    def __init__(self, name):
        self._name = name
        self.calls = 0

    @property
    def name(self):
        return self._name

    async def run(self, input):
        self.calls += 1
        return input


def _events(events):
    return [(e.event, e.data.get("stepId")) for e in events]


@pytest.mark.asyncio
async def test_valid_upload_completes(store, runner, events, valid_upload):
    await store.create("e1", valid_upload, workflow_id="file_upload_flow")
    record = await runner.run("e1")

    assert record.status == "completed"
    assert record.completed_at is not None
    assert [s.name for s in record.steps] == ["entry", "validate", "process"]
    assert all(s.status == "completed" for s in record.steps)
    assert record.step("process").output["artifactId"].startswith("artifact_")
    assert record.step("validate").input == record.step("entry").output

    assert _events(events) == [
        ("execution:start", None),
        ("step:start", "entry"),
        ("step:complete", "entry"),
        ("step:start", "validate"),
        ("step:complete", "validate"),
        ("step:start", "process"),
        ("step:complete", "process"),
        ("execution:complete", None),
    ]
    assert events[-1].data["output"]["fileId"] == "f1"


@pytest.mark.asyncio
async def test_unsupported_file_type_fails_and_skips(store, runner, events, valid_upload):
    valid_upload["fileType"] = "application/pdf"
    await store.create("e1", valid_upload, workflow_id="file_upload_flow")
    record = await runner.run("e1")

    assert record.status == "failed"
    validate = record.step("validate")
    assert validate.status == "failed"
    assert "Unsupported fileType" in validate.error
    assert any("failed" in line for line in validate.logs)

    process = record.step("process")
    assert process.status == "skipped"
    assert process.logs == ["Skipped because upstream step 'validate' failed"]

    assert _events(events)[-3:] == [
        ("step:failed", "validate"),
        ("execution:failed", "validate"),
        ("step:skipped", "process"),
    ]
    assert "execution:complete" not in [e.event for e in events]


@pytest.mark.asyncio
async def test_null_input_is_rejected(store, runner, events):
    await store.create("e1", None, workflow_id="file_upload_flow")
    record = await runner.run("e1")

    assert record.status == "rejected"
    assert record.rejection_reason == "input is required"
    assert [s.name for s in record.steps] == [REJECTION_STEP_NAME]
    assert record.steps[0].status == "failed"
    assert [e.event for e in events] == ["execution:rejected"]
    assert events[0].data == {"executionId": "e1", "reason": "input is required"}


@pytest.mark.asyncio
async def test_admit_only_runs_on_pending(store, runner, valid_upload):
    await store.create("e1", valid_upload, workflow_id="wf")
    await runner.run("e1")
    with pytest.raises(ValueError):
        await runner.admit("e1")


@pytest.mark.parametrize(
    "record,reason",
    [
        (ExecutionRecord(id=" ", workflow_id="wf", input={}), "executionId must be a non-empty string"),
        (ExecutionRecord(id="e1", workflow_id=None, input={}), "workflowId must be a non-empty string"),
        (ExecutionRecord(id="e1", workflow_id="wf", input=None), "input is required"),
        (ExecutionRecord(id="e1", workflow_id="wf", input=[1]), "input must be an object, not an array"),
        (ExecutionRecord(id="e1", workflow_id="wf", input="x"), "input must be an object"),
        (ExecutionRecord(id="e1", workflow_id="wf", input={}), None),
    ],
)
def test_contract_gate(record, reason):
    assert check_contract(record) == reason


@pytest.mark.asyncio
async def test_first_step_failure_skips_the_rest(store, bus, events):
    downstream = EchoStep("after")
    runner = StepRunner(store, bus, steps=[FailingStep(), downstream])
    await store.create("e1", {"a": 1}, workflow_id="wf")

    record = await runner.run("e1")
    assert record.status == "failed"
    assert [(s.name, s.status) for s in record.steps] == [("boom", "failed"), ("after", "skipped")]
    assert record.step("boom").error == "disk full"
    assert downstream.calls == 0


@pytest.mark.asyncio
async def test_middle_step_failure(store, bus):
    first, last = EchoStep("first"), EchoStep("last")
    runner = StepRunner(store, bus, steps=[first, FailingStep(), last])
    await store.create("e1", {"a": 1}, workflow_id="wf")

    record = await runner.run("e1")
    assert [s.status for s in record.steps] == ["completed", "failed", "skipped"]
    assert record.step("boom").input == {"a": 1}
    assert first.calls == 1
    assert last.calls == 0


@pytest.mark.asyncio
async def test_validation_errors_from_nested_input(store, bus):
    runner = StepRunner(store, bus, steps=[EntryStep(), ValidateStep()])
    await store.create(
        "e1",
        {"payload": {"fileName": "", "fileSizeMB": 0, "fileType": "text/plain", "checksum": 7}, "user": {"id": "u"}},
        workflow_id="wf",
    )
    record = await runner.run("e1")
    error = record.step("validate").error
    for violation in ("fileName is required", "fileSizeMB must be > 0", "Unsupported fileType: text/plain", "checksum must be a string"):
        assert violation in error


@pytest.mark.asyncio
async def test_step_delay_sleeps_between_steps(store, bus, monkeypatch, valid_upload):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("stepsos.execute.asyncio.sleep", fake_sleep)
    runner = StepRunner(store, bus, step_delay=0.5)
    await store.create("e1", valid_upload, workflow_id="wf")
    await runner.run("e1")
    assert delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_crashing_subscriber_does_not_stop_the_run(store, runner, bus, valid_upload):
    def broken(event):
        raise RuntimeError("ui gone")

    bus.subscribe(broken)
    await store.create("e1", valid_upload, workflow_id="wf")
    record = await runner.run("e1")
    assert record.status == "completed"


@pytest.mark.asyncio
async def test_listener_edits_to_event_data_do_not_reach_next_step(store, runner, bus, valid_upload):
    def tamper(event):
        if event.event == "step:complete" and event.data["stepId"] == "entry":
            event.data["output"]["fileType"] = "application/pdf"
        if event.event == "step:start":
            event.data["input"]["checksum"] = ""

    bus.subscribe(tamper)
    await store.create("e1", valid_upload, workflow_id="wf")
    record = await runner.run("e1")

    assert record.status == "completed"
    assert record.step("validate").input["fileType"] == "image/png"
    assert record.input["checksum"] == "abc"
