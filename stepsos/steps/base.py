"""Uniform interface for pipeline steps."""

from __future__ import annotations

import abc
import enum
from typing import Any, Mapping

from pydantic import BaseModel


class StepKind(str, enum.Enum):
    """The closed set of steps a pipeline can declare."""

    ENTRY = "entry"
    VALIDATE = "validate"
    PROCESS = "process"


class Step(abc.ABC):
    """One named unit of the pipeline.

    ``run`` returns the step's output or raises a ``StepError`` subclass.
    """

    kind: StepKind

    @property
    def name(self) -> str:
        return self.kind.value

    @abc.abstractmethod
    async def run(self, input: Any) -> BaseModel:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def as_mapping(value: Any) -> Mapping[str, Any]:
    """Return ``value`` when it is a mapping, otherwise an empty one."""
    return value if isinstance(value, Mapping) else {}
