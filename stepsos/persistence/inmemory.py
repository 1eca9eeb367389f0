"""In-memory implementation of the execution store."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from ..contracts import (
    TERMINAL_EXECUTION_STATUSES,
    TERMINAL_STEP_STATUSES,
    ExecutionStatus,
    utcnow,
)
from ..exceptions import DuplicateExecutionError, NotFoundError
from .models import ExecutionRecord, StepRecord
from .repository import ExecutionRepository

logger = logging.getLogger(__name__)


class InMemoryExecutionStore(ExecutionRepository):
    """Store execution state in local memory.

    Data lives for the lifetime of the process and is never evicted.
    Readers always receive deep copies, and every mutation swaps whole
    step records under the lock, so a reader never sees a half-updated
    step.
    """

    def __init__(self) -> None:
        self._executions: Dict[str, ExecutionRecord] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    async def create(
        self,
        execution_id: str,
        input: Any,
        workflow_id: Optional[str] = None,
        replay_of: Optional[str] = None,
    ) -> ExecutionRecord:
        with self._lock:
            if execution_id in self._executions:
                raise DuplicateExecutionError(
                    f"Execution {execution_id} already exists"
                )
            record = ExecutionRecord(
                id=execution_id,
                workflow_id=workflow_id,
                input=input,
                replay_of=replay_of,
            )
            # stored input never aliases the caller's object
            self._executions[execution_id] = record.model_copy(deep=True)
            logger.debug(f"Created execution {execution_id}")
            return record.model_copy(deep=True)

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock:
            record = self._executions.get(execution_id)
            return record.model_copy(deep=True) if record else None

    async def list_executions(self) -> list[ExecutionRecord]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._executions.values()]

    async def latest(self) -> ExecutionRecord | None:
        with self._lock:
            if not self._executions:
                return None
            last_id = next(reversed(self._executions))
            return self._executions[last_id].model_copy(deep=True)

    # ------------------------------------------------------------------
    def _require(self, execution_id: str) -> ExecutionRecord:
        record = self._executions.get(execution_id)
        if record is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        return record

    async def set_status(
        self,
        execution_id: str,
        status: ExecutionStatus,
        rejection_reason: Optional[str] = None,
    ) -> None:
        with self._lock:
            record = self._require(execution_id)
            if record.status in TERMINAL_EXECUTION_STATUSES:
                raise ValueError(
                    f"Execution {execution_id} is already {record.status}"
                )
            update: dict = {"status": status}
            if status == "rejected":
                update["rejection_reason"] = rejection_reason
            if status in TERMINAL_EXECUTION_STATUSES:
                update["completed_at"] = utcnow()
            self._executions[execution_id] = record.model_copy(update=update)

    async def append_step(self, execution_id: str, step: StepRecord) -> None:
        with self._lock:
            record = self._require(execution_id)
            if record.step(step.name) is not None:
                raise ValueError(
                    f"Step {step.name} already recorded for {execution_id}"
                )
            steps = record.steps + [step.model_copy(deep=True)]
            self._executions[execution_id] = record.model_copy(
                update={"steps": steps}
            )

    async def replace_step(self, execution_id: str, step: StepRecord) -> None:
        with self._lock:
            record = self._require(execution_id)
            steps = list(record.steps)
            for index, existing in enumerate(steps):
                if existing.name != step.name:
                    continue
                if existing.status in TERMINAL_STEP_STATUSES:
                    raise ValueError(
                        f"Step {step.name} of {execution_id} is already {existing.status}"
                    )
                steps[index] = step.model_copy(deep=True)
                self._executions[execution_id] = record.model_copy(
                    update={"steps": steps}
                )
                return
            raise NotFoundError(f"Step {step.name} not found in {execution_id}")
