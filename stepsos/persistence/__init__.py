"""Execution state for StepsOS.

State is volatile: it lives in process memory and is cleared at exit.
"""

from __future__ import annotations

from .inmemory import InMemoryExecutionStore
from .models import ExecutionRecord, StepRecord
from .repository import ExecutionRepository

__all__ = [
    "ExecutionRecord",
    "StepRecord",
    "ExecutionRepository",
    "InMemoryExecutionStore",
]
