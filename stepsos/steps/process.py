"""Turn a validated upload into a stored artifact description."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import Field

from ..contracts import CamelModel, utcnow
from ..exceptions import StepContractViolation
from .base import Step, StepKind, as_mapping


class ProcessedArtifact(CamelModel):
    artifact_id: str = Field(default_factory=lambda: f"artifact_{uuid.uuid4().hex[:12]}")
    file_id: Any = None
    processed_at: datetime = Field(default_factory=utcnow)
    summary: str


class ProcessStep(Step):
    kind = StepKind.PROCESS

    async def run(self, input: Any) -> ProcessedArtifact:
        record = as_mapping(input)
        # the runner already skips this step after a failed validate
        if as_mapping(record.get("validation")).get("status") != "passed":
            raise StepContractViolation("Upstream validation did not pass")

        return ProcessedArtifact(
            file_id=record.get("fileId"),
            summary=(
                f"Processed {record.get('fileName')} "
                f"({record.get('fileSizeMB')} MB, {record.get('fileType')}) "
                f"uploaded by {record.get('uploadedBy')}"
            ),
        )
