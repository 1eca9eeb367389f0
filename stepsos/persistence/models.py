"""Data models for tracked execution state."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from ..contracts import CamelModel, ExecutionStatus, StepStatus, utcnow


class StepRecord(CamelModel):
    """Record of an individual step within one execution."""

    name: str
    status: StepStatus = "pending"
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ExecutionRecord(CamelModel):
    """One run of the step pipeline against one input."""

    id: str
    workflow_id: Optional[str] = None
    status: ExecutionStatus = "pending"
    input: Any = None
    steps: List[StepRecord] = Field(default_factory=list)
    rejection_reason: Optional[str] = None
    replay_of: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    def step(self, name: str) -> Optional[StepRecord]:
        """Return the step record called ``name`` if it was appended."""
        return next((s for s in self.steps if s.name == name), None)

    def to_wire(self) -> dict:
        """JSON-compatible camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)
