"""Field-level validation of a canonical upload."""

from __future__ import annotations

import numbers
from datetime import datetime
from typing import Any, Iterable, List, Literal, Mapping

from pydantic import Field

from ..config import DEFAULT_ALLOWED_FILE_TYPES
from ..contracts import CamelModel, utcnow
from ..exceptions import StepValidationFailed
from .base import Step, StepKind, as_mapping
from .entry import CanonicalUpload


class ValidationMarker(CamelModel):
    status: Literal["passed"] = "passed"
    checked_at: datetime = Field(default_factory=utcnow)


class ValidatedUpload(CanonicalUpload):
    validation: ValidationMarker = Field(default_factory=ValidationMarker)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def check_upload(record: Mapping[str, Any], allowed_file_types: Iterable[str]) -> List[str]:
    """Return every violated rule, in field order."""
    violations: List[str] = []

    if _is_blank(record.get("fileId")):
        violations.append("fileId is required")
    if _is_blank(record.get("fileName")):
        violations.append("fileName is required")

    size = record.get("fileSizeMB")
    if isinstance(size, bool) or not isinstance(size, numbers.Real):
        violations.append("fileSizeMB must be a number")
    elif size <= 0:
        violations.append("fileSizeMB must be > 0")

    file_type = record.get("fileType")
    if file_type not in list(allowed_file_types):
        violations.append(f"Unsupported fileType: {file_type}")

    if _is_blank(record.get("uploadedBy")):
        violations.append("uploadedBy is required")

    checksum = record.get("checksum")
    if checksum is None or checksum == "":
        violations.append("checksum is required")
    elif not isinstance(checksum, str):
        violations.append("checksum must be a string")

    return violations


class ValidateStep(Step):
    """Reports all violated rules together rather than stopping at the first."""

    kind = StepKind.VALIDATE

    def __init__(self, allowed_file_types: Iterable[str] | None = None) -> None:
        self.allowed_file_types = list(allowed_file_types or DEFAULT_ALLOWED_FILE_TYPES)

    async def run(self, input: Any) -> ValidatedUpload:
        record = as_mapping(input)
        violations = check_upload(record, self.allowed_file_types)
        if violations:
            raise StepValidationFailed(violations)
        return ValidatedUpload.model_validate(
            {k: v for k, v in record.items() if k != "validation"}
        )
