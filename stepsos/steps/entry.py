"""Normalize an arbitrary upload submission into the canonical shape."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from ..contracts import CamelModel, utcnow
from .base import Step, StepKind, as_mapping

logger = logging.getLogger(__name__)

DEFAULT_FILE_TYPE = "application/octet-stream"


class CanonicalUpload(CamelModel):
    """Upload description every later step can rely on.

    Field types are deliberately loose: ``entry`` defaults missing values but
    never coerces present ones, so ``validate`` can report bad types.
    """

    file_id: Any = ""
    file_name: Any = ""
    file_size_mb: Any = Field(default=0, alias="fileSizeMB")
    file_type: Any = DEFAULT_FILE_TYPE
    uploaded_by: Any = ""
    checksum: Any = ""
    request_id: Optional[str] = None
    normalized_at: datetime = Field(default_factory=utcnow)


def _pick(source: Any, key: str, default: Any) -> Any:
    value = as_mapping(source).get(key)
    return default if value is None else value


class EntryStep(Step):
    """Accepts the flat upload shape or ``{payload: {...}, user: {id}}``.

    Never fails.
    """

    kind = StepKind.ENTRY

    async def run(self, input: Any) -> CanonicalUpload:
        raw = as_mapping(input)
        nested = as_mapping(raw.get("payload"))
        user = as_mapping(raw.get("user"))
        source = {**{k: v for k, v in raw.items() if k not in ("payload", "user")}, **nested}

        file_name = _pick(source, "fileName", "")
        fallback_id = file_name.strip() if isinstance(file_name, str) else ""
        request_id = raw.get("requestId")

        upload = CanonicalUpload(
            file_id=_pick(source, "fileId", fallback_id),
            file_name=file_name,
            file_size_mb=_pick(source, "fileSizeMB", 0),
            file_type=_pick(source, "fileType", DEFAULT_FILE_TYPE),
            uploaded_by=_pick(source, "uploadedBy", _pick(user, "id", "")),
            checksum=_pick(source, "checksum", ""),
            request_id=request_id if isinstance(request_id, str) else None,
        )
        logger.debug(f"Normalized upload {upload.file_id!r}")
        return upload
