"""Store abstraction for execution state."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from ..contracts import ExecutionStatus
from .models import ExecutionRecord, StepRecord


class ExecutionRepository(Protocol):
    """Protocol for execution state backends."""

    async def create(
        self,
        execution_id: str,
        input: Any,
        workflow_id: Optional[str] = None,
        replay_of: Optional[str] = None,
    ) -> ExecutionRecord:
        """Insert a new pending execution; duplicate ids are an error."""

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        """Return a snapshot of the execution, or ``None``."""

    async def list_executions(self) -> list[ExecutionRecord]:
        """Return snapshots of all executions in creation order."""

    async def latest(self) -> ExecutionRecord | None:
        """Return the most recently created execution."""

    async def set_status(
        self,
        execution_id: str,
        status: ExecutionStatus,
        rejection_reason: Optional[str] = None,
    ) -> None:
        """Move the execution to ``status``."""

    async def append_step(self, execution_id: str, step: StepRecord) -> None:
        """Append a step record."""

    async def replace_step(self, execution_id: str, step: StepRecord) -> None:
        """Swap the step record with the same name for ``step``."""
