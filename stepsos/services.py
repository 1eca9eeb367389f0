"""Process-wide StepsOS components, built once at startup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .agent import Narrator
from .bus import EventBus
from .config import StepsOSConfig, load_config
from .dispatch import ExecutionGateway
from .execute import StepRunner
from .persistence import ExecutionRepository, InMemoryExecutionStore
from .steps import build_pipeline

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: StepsOSConfig
    bus: EventBus
    store: ExecutionRepository
    runner: StepRunner
    gateway: ExecutionGateway
    narrator: Narrator

    @classmethod
    def build(cls, config: Optional[StepsOSConfig] = None) -> "Services":
        config = config or load_config()
        bus = EventBus()
        store = InMemoryExecutionStore()
        runner = StepRunner(
            store,
            bus,
            steps=build_pipeline(config.runner),
            step_delay=config.runner.step_delay,
        )
        return cls(
            config=config,
            bus=bus,
            store=store,
            runner=runner,
            gateway=ExecutionGateway(store, runner),
            narrator=Narrator(config.narration),
        )

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Let in-flight runs finish, then drop every listener."""
        await self.gateway.drain(timeout=timeout)
        self.bus.clear()
        logger.info("StepsOS services stopped")
