"""The fixed file-upload pipeline."""

from __future__ import annotations

from typing import List, Optional

from ..config import RunnerConfig
from .base import Step, StepKind
from .entry import CanonicalUpload, EntryStep
from .process import ProcessedArtifact, ProcessStep
from .validate import ValidatedUpload, ValidateStep, ValidationMarker, check_upload


def build_pipeline(config: Optional[RunnerConfig] = None) -> List[Step]:
    """Return the declared steps in execution order."""
    config = config or RunnerConfig()
    return [
        EntryStep(),
        ValidateStep(config.allowed_file_types),
        ProcessStep(),
    ]


__all__ = [
    "Step",
    "StepKind",
    "EntryStep",
    "ValidateStep",
    "ProcessStep",
    "CanonicalUpload",
    "ValidatedUpload",
    "ValidationMarker",
    "ProcessedArtifact",
    "check_upload",
    "build_pipeline",
]
