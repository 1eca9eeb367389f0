"""Execution gateway: the entry point callers use to start runs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Set

from .contracts import (
    DEFAULT_WORKFLOW_ID,
    TERMINAL_EXECUTION_STATUSES,
    EnvelopeSubmission,
    PayloadSubmission,
    ReplaySubmission,
    Submission,
    new_execution_id,
    parse_submission,
)
from .exceptions import NotFoundError, RejectedExecution
from .execute import StepRunner
from .persistence import ExecutionRepository

logger = logging.getLogger(__name__)


class ExecutionGateway:
    """Service responsible for accepting submissions and launching runs.

    ``submit`` returns as soon as the execution is recorded and admitted;
    the run itself continues on a background task the gateway keeps a
    reference to until it reaches a terminal state.
    """

    def __init__(self, store: ExecutionRepository, runner: StepRunner) -> None:
        self._store = store
        self._runner = runner
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending_runs(self) -> int:
        return len(self._tasks)

    async def submit(self, body: Any) -> str:
        """Record a submission and start running it.

        Args:
            body: Decoded JSON body or an already parsed ``Submission``.

        Returns:
            The execution id, already present in the store.

        Raises:
            RejectedExecution: The submission failed the contract gate. The
                rejected record stays in the store.
            NotFoundError: A replay referenced an unknown execution.
        """
        if isinstance(body, (EnvelopeSubmission, PayloadSubmission, ReplaySubmission)):
            submission = body
        else:
            submission = parse_submission(body)
        execution_id = await self._create(submission)

        if not await self._runner.admit(execution_id):
            record = await self._store.get(execution_id)
            reason = record.rejection_reason if record else "rejected"
            raise RejectedExecution(reason or "rejected", execution_id=execution_id)

        task = asyncio.create_task(
            self._run(execution_id), name=f"execution-{execution_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Accepted execution {execution_id}")
        return execution_id

    async def replay(self, execution_id: str) -> str:
        """Re-run the stored input of ``execution_id`` under a new id."""
        return await self.submit(ReplaySubmission(execution_id=execution_id))

    async def _create(self, submission: Submission) -> str:
        if isinstance(submission, ReplaySubmission):
            source = await self._store.get(submission.execution_id)
            if source is None:
                raise NotFoundError(f"Execution {submission.execution_id} not found")
            execution_id = new_execution_id()
            await self._store.create(
                execution_id,
                source.input,
                workflow_id=source.workflow_id,
                replay_of=source.id,
            )
            return execution_id

        if isinstance(submission, EnvelopeSubmission):
            execution_id = submission.execution_id or new_execution_id()
            await self._store.create(
                execution_id, submission.input, workflow_id=submission.workflow_id
            )
            return execution_id

        execution_id = new_execution_id()
        await self._store.create(
            execution_id, submission.payload, workflow_id=DEFAULT_WORKFLOW_ID
        )
        return execution_id

    async def _run(self, execution_id: str) -> None:
        try:
            await self._runner.execute_steps(execution_id)
        except Exception:
            logger.exception(f"Run for execution {execution_id} crashed")
            await self._fail(execution_id)

    async def _fail(self, execution_id: str) -> None:
        record = await self._store.get(execution_id)
        if record is None or record.status in TERMINAL_EXECUTION_STATUSES:
            return
        try:
            await self._store.set_status(execution_id, "failed")
        except (ValueError, NotFoundError) as e:
            logger.error(f"Could not mark execution {execution_id} failed: {e}")

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight runs to finish."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} executions still running after drain")
