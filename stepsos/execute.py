"""Step execution engine for StepsOS executions."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel

from .bus import EventBus
from .contracts import utcnow
from .exceptions import NotFoundError
from .persistence import ExecutionRecord, ExecutionRepository, StepRecord
from .steps import Step, build_pipeline

logger = logging.getLogger(__name__)

REJECTION_STEP_NAME = "execution"


def check_contract(record: ExecutionRecord) -> Optional[str]:
    """Return why ``record`` fails the pre-flight gate, or ``None``."""
    if not isinstance(record.id, str) or not record.id.strip():
        return "executionId must be a non-empty string"
    if not isinstance(record.workflow_id, str) or not record.workflow_id.strip():
        return "workflowId must be a non-empty string"
    if record.input is None:
        return "input is required"
    if isinstance(record.input, list):
        return "input must be an object, not an array"
    if not isinstance(record.input, dict):
        return "input must be an object"
    return None


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


def _stamp() -> str:
    return utcnow().isoformat()


class StepRunner:
    """Drives one execution at a time through the declared steps.

    Steps run strictly in declared order. The first failure marks the
    execution failed and every later step is recorded as skipped without
    being invoked. Step errors never escape ``run``; they become terminal
    record state plus a published event.
    """

    def __init__(
        self,
        store: ExecutionRepository,
        bus: EventBus,
        steps: Optional[Sequence[Step]] = None,
        step_delay: float = 0.0,
    ) -> None:
        self._store = store
        self._bus = bus
        self._steps: List[Step] = list(steps) if steps is not None else build_pipeline()
        self._step_delay = step_delay

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self._steps]

    async def run(self, execution_id: str) -> ExecutionRecord:
        """Gate and then run the execution to a terminal state."""
        if await self.admit(execution_id):
            return await self.execute_steps(execution_id)
        return await self._snapshot(execution_id)

    async def admit(self, execution_id: str) -> bool:
        """Run the contract gate once; reject the execution when it fails."""
        record = await self._snapshot(execution_id)
        if record.status != "pending":
            raise ValueError(f"Execution {execution_id} is {record.status}, not pending")

        reason = check_contract(record)
        if reason is None:
            return True

        await self._store.set_status(execution_id, "rejected", rejection_reason=reason)
        await self._store.append_step(
            execution_id,
            StepRecord(
                name=REJECTION_STEP_NAME,
                status="failed",
                error=reason,
                logs=[f"Execution rejected at {_stamp()}", f"Reason: {reason}"],
            ),
        )
        logger.warning(f"Rejected execution {execution_id}: {reason}")
        self._bus.publish(
            "execution:rejected", {"executionId": execution_id, "reason": reason}
        )
        return False

    async def execute_steps(self, execution_id: str) -> ExecutionRecord:
        """Run every declared step against an admitted execution."""
        record = await self._snapshot(execution_id)
        await self._store.set_status(execution_id, "running")
        self._bus.publish(
            "execution:start",
            {"executionId": execution_id, "steps": self.step_names},
        )
        logger.info(f"Starting execution {execution_id}")

        current_input: Any = record.input
        failed_step: Optional[str] = None

        for index, step in enumerate(self._steps):
            if failed_step is not None:
                await self._skip(execution_id, step, failed_step)
                continue

            if index > 0 and self._step_delay > 0:
                await asyncio.sleep(self._step_delay)

            output, ok = await self._execute(execution_id, step, current_input)
            if ok:
                current_input = output
            else:
                failed_step = step.name

        if failed_step is None:
            await self._store.set_status(execution_id, "completed")
            logger.info(f"Execution {execution_id} completed")
            self._bus.publish(
                "execution:complete",
                {"executionId": execution_id, "output": copy.deepcopy(current_input)},
            )
        return await self._snapshot(execution_id)

    async def _execute(
        self, execution_id: str, step: Step, step_input: Any
    ) -> tuple[Any, bool]:
        started = StepRecord(
            name=step.name,
            status="running",
            input=step_input,
            started_at=utcnow(),
            logs=[f"Step {step.name} started at {_stamp()}"],
        )
        await self._store.append_step(execution_id, started)
        self._bus.publish(
            "step:start",
            {
                "executionId": execution_id,
                "stepId": step.name,
                "input": copy.deepcopy(step_input),
            },
        )

        try:
            output = _to_jsonable(await step.run(step_input))
        except Exception as e:
            error = str(e) or type(e).__name__
            failed = started.model_copy(
                update={
                    "status": "failed",
                    "error": error,
                    "completed_at": utcnow(),
                    "logs": started.logs
                    + [f"Step {step.name} failed at {_stamp()}", f"Reason: {error}"],
                }
            )
            await self._store.replace_step(execution_id, failed)
            self._bus.publish(
                "step:failed",
                {"executionId": execution_id, "stepId": step.name, "error": error},
            )
            await self._store.set_status(execution_id, "failed")
            logger.warning(
                f"Step {step.name} failed for execution_id={execution_id}: {error}"
            )
            self._bus.publish(
                "execution:failed",
                {"executionId": execution_id, "stepId": step.name, "error": error},
            )
            return None, False

        completed = started.model_copy(
            update={
                "status": "completed",
                "output": output,
                "completed_at": utcnow(),
                "logs": started.logs
                + [f"Step {step.name} completed successfully at {_stamp()}"],
            }
        )
        await self._store.replace_step(execution_id, completed)
        logger.debug(f"Step {step.name} completed for execution_id={execution_id}")
        self._bus.publish(
            "step:complete",
            {
                "executionId": execution_id,
                "stepId": step.name,
                "output": copy.deepcopy(output),
            },
        )
        return output, True

    async def _skip(self, execution_id: str, step: Step, failed_step: str) -> None:
        reason = f"Skipped because upstream step '{failed_step}' failed"
        await self._store.append_step(
            execution_id,
            StepRecord(name=step.name, status="skipped", logs=[reason]),
        )
        self._bus.publish(
            "step:skipped",
            {"executionId": execution_id, "stepId": step.name, "reason": reason},
        )

    async def _snapshot(self, execution_id: str) -> ExecutionRecord:
        record = await self._store.get(execution_id)
        if record is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        return record
