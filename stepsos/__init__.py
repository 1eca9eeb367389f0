"""StepsOS: execution tracking and live event broadcast for step pipelines."""

from .bus import EventBus
from .client import StreamClient
from .contracts import StreamEvent
from .dispatch import ExecutionGateway
from .execute import StepRunner
from .persistence import InMemoryExecutionStore
from .services import Services
from .transports import get_transport

__version__ = "0.1.0"
__all__ = [
    "EventBus",
    "ExecutionGateway",
    "InMemoryExecutionStore",
    "Services",
    "StepRunner",
    "StreamClient",
    "StreamEvent",
    "get_transport",
]
