"""In-memory execution store tests."""

import pytest

from stepsos.exceptions import DuplicateExecutionError, NotFoundError
from stepsos.persistence import InMemoryExecutionStore, StepRecord


@pytest.mark.asyncio
async def test_create_and_get():
    store = InMemoryExecutionStore()
    created = await store.create("e1", {"fileId": "f1"}, workflow_id="file_upload_flow")

    assert created.status == "pending"
    fetched = await store.get("e1")
    assert fetched.input == {"fileId": "f1"}
    assert fetched.workflow_id == "file_upload_flow"
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_duplicate_id_is_an_error():
    store = InMemoryExecutionStore()
    await store.create("e1", {})
    with pytest.raises(DuplicateExecutionError):
        await store.create("e1", {"other": True})
    assert (await store.get("e1")).input == {}


@pytest.mark.asyncio
async def test_get_is_idempotent_and_returns_copies():
    store = InMemoryExecutionStore()
    await store.create("e1", {"nested": {"a": 1}})

    first = await store.get("e1")
    second = await store.get("e1")
    assert first == second

    first.input["nested"]["a"] = 2
    first.steps.append(StepRecord(name="entry"))
    assert (await store.get("e1")) == second


@pytest.mark.asyncio
async def test_list_preserves_creation_order():
    store = InMemoryExecutionStore()
    for execution_id in ("b", "a", "c"):
        await store.create(execution_id, {})

    assert [r.id for r in await store.list_executions()] == ["b", "a", "c"]
    assert (await store.latest()).id == "c"


@pytest.mark.asyncio
async def test_latest_on_empty_store():
    assert await InMemoryExecutionStore().latest() is None


@pytest.mark.asyncio
async def test_terminal_status_is_final():
    store = InMemoryExecutionStore()
    await store.create("e1", {})
    await store.set_status("e1", "running")
    await store.set_status("e1", "completed")

    record = await store.get("e1")
    assert record.completed_at is not None
    with pytest.raises(ValueError):
        await store.set_status("e1", "failed")


@pytest.mark.asyncio
async def test_rejection_reason_is_recorded():
    store = InMemoryExecutionStore()
    await store.create("e1", None)
    await store.set_status("e1", "rejected", rejection_reason="input is required")
    assert (await store.get("e1")).rejection_reason == "input is required"


@pytest.mark.asyncio
async def test_step_records_are_append_only_and_terminal():
    store = InMemoryExecutionStore()
    await store.create("e1", {})
    await store.append_step("e1", StepRecord(name="entry", status="running"))

    with pytest.raises(ValueError):
        await store.append_step("e1", StepRecord(name="entry"))

    await store.replace_step("e1", StepRecord(name="entry", status="completed", output={"ok": 1}))
    with pytest.raises(ValueError):
        await store.replace_step("e1", StepRecord(name="entry", status="failed"))

    step = (await store.get("e1")).step("entry")
    assert step.status == "completed"
    assert step.output == {"ok": 1}


@pytest.mark.asyncio
async def test_mutating_unknown_records_raises_not_found():
    store = InMemoryExecutionStore()
    with pytest.raises(NotFoundError):
        await store.set_status("nope", "running")
    await store.create("e1", {})
    with pytest.raises(NotFoundError):
        await store.replace_step("e1", StepRecord(name="validate"))


@pytest.mark.asyncio
async def test_wire_format_is_camel_case():
    store = InMemoryExecutionStore()
    await store.create("e1", {"fileId": "f1"}, workflow_id="wf", replay_of="e0")
    wire = (await store.get("e1")).to_wire()
    assert wire["workflowId"] == "wf"
    assert wire["replayOf"] == "e0"
    assert "createdAt" in wire


@pytest.mark.asyncio
async def test_create_does_not_alias_caller_input():
    store = InMemoryExecutionStore()
    submitted = {"fileType": "image/png", "tags": ["a"]}
    await store.create("e1", submitted)

    submitted["fileType"] = "application/pdf"
    submitted["tags"].append("b")

    assert (await store.get("e1")).input == {"fileType": "image/png", "tags": ["a"]}
