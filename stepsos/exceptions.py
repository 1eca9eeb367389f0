"""Error taxonomy for StepsOS."""

from __future__ import annotations

from typing import List, Optional


class StepsOSError(Exception):
    """Base class for all StepsOS errors."""


class RejectedExecution(StepsOSError):
    """Submission failed the pre-flight contract gate; no step ran."""

    def __init__(self, reason: str, execution_id: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.execution_id = execution_id


class StepError(StepsOSError):
    """Raised by a step's ``run`` when it cannot produce an output."""


class StepValidationFailed(StepError):
    """One or more field rules were violated."""

    def __init__(self, violations: List[str]) -> None:
        super().__init__(", ".join(violations))
        self.violations = list(violations)


class StepContractViolation(StepError):
    """A step's structural precondition on its input was not met."""


class DuplicateExecutionError(StepsOSError):
    """An execution with the same id already exists."""


class NotFoundError(StepsOSError):
    """Unknown execution or step."""


class TransportError(StepsOSError):
    """Event-feed send or parse failure."""


class StreamConnectionError(StepsOSError):
    """Event-feed connect timeout or abnormal close."""


ContractViolation = RejectedExecution
ValidationFailed = StepValidationFailed
UpstreamContractViolation = StepContractViolation


__all__ = [
    "StepsOSError",
    "RejectedExecution",
    "StepError",
    "StepValidationFailed",
    "StepContractViolation",
    "DuplicateExecutionError",
    "NotFoundError",
    "TransportError",
    "StreamConnectionError",
    "ContractViolation",
    "ValidationFailed",
    "UpstreamContractViolation",
]
