"""Wire contracts for StepsOS: stream events and submission kinds."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_ID = "file_upload_flow"

ExecutionStatus = Literal["pending", "running", "completed", "failed", "rejected"]
StepStatus = Literal["pending", "running", "completed", "failed", "skipped"]
TERMINAL_EXECUTION_STATUSES = frozenset({"completed", "failed", "rejected"})
TERMINAL_STEP_STATUSES = frozenset({"completed", "failed", "skipped"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex}"


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StreamEvent(BaseModel):
    """Transient event delivered over the bus and the event feed."""

    event: str
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=lambda: utcnow().isoformat())

    def to_json(self) -> str:
        """Serialize event to JSON."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "StreamEvent":
        """Deserialize event from JSON."""
        return cls.model_validate_json(data)


class EnvelopeSubmission(CamelModel):
    """``{executionId?, workflowId?, input}``."""

    kind: Literal["envelope"] = "envelope"
    execution_id: Optional[str] = None
    workflow_id: Optional[str] = DEFAULT_WORKFLOW_ID
    input: Any = None


class PayloadSubmission(CamelModel):
    """A bare payload posted without an envelope."""

    kind: Literal["payload"] = "payload"
    payload: Any = None


class ReplaySubmission(CamelModel):
    """Re-run the stored input of an earlier execution under a new id."""

    kind: Literal["replay"] = "replay"
    execution_id: str


Submission = Union[EnvelopeSubmission, PayloadSubmission, ReplaySubmission]


def parse_submission(body: Any) -> Submission:
    """Route a decoded JSON body to exactly one submission kind.

    ``replay`` wins over ``input``; anything else, including ``null``,
    arrays and scalars, is treated as a bare payload and left for the
    contract gate to judge.
    """
    if isinstance(body, dict) and body.get("replay"):
        execution_id = body.get("executionId")
        if not isinstance(execution_id, str) or not execution_id.strip():
            return PayloadSubmission(payload=body)
        return ReplaySubmission(execution_id=execution_id)
    if isinstance(body, dict) and "input" in body:
        execution_id = body.get("executionId")
        if not isinstance(execution_id, str) or not execution_id.strip():
            execution_id = None
        workflow_id = body.get("workflowId", DEFAULT_WORKFLOW_ID)
        return EnvelopeSubmission(
            execution_id=execution_id,
            workflow_id=workflow_id if isinstance(workflow_id, str) else None,
            input=body["input"],
        )
    return PayloadSubmission(payload=body)


__all__ = [
    "DEFAULT_WORKFLOW_ID",
    "ExecutionStatus",
    "StepStatus",
    "TERMINAL_EXECUTION_STATUSES",
    "TERMINAL_STEP_STATUSES",
    "CamelModel",
    "StreamEvent",
    "EnvelopeSubmission",
    "PayloadSubmission",
    "ReplaySubmission",
    "Submission",
    "parse_submission",
    "new_execution_id",
    "utcnow",
]
