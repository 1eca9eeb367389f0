"""Natural-language narration of step outcomes.

The LLM is optional. Without a configured model, or when the provider
fails, every operation answers with a deterministic local summary.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic_ai import Agent

from ..config import NarrationConfig
from . import prompts

logger = logging.getLogger(__name__)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def _keys(value: Any) -> str:
    if isinstance(value, dict) and value:
        return ", ".join(sorted(value))
    return "none"


def local_step_summary(step_id: str, step_data: Dict[str, Any]) -> str:
    status = step_data.get("status") or "unknown"
    error = step_data.get("error")
    logs = step_data.get("logs") or []
    lines = [
        f"Analysis for {step_id}:",
        f"Status: {status}",
        f"Error: {error or 'None'}",
        f"Input fields: {_keys(step_data.get('input'))}",
        f"Output fields: {_keys(step_data.get('output'))}",
        f"Log entries: {len(logs)}",
    ]
    if status == "failed":
        lines.append(f'Summary: step "{step_id}" failed with error "{error}".')
    elif status == "skipped":
        lines.append(f'Summary: step "{step_id}" was skipped after an upstream failure.')
    else:
        lines.append(f'Summary: step "{step_id}" is {status}.')
    return "\n".join(lines)


def local_recovery(step_id: str, step_data: Dict[str, Any]) -> str:
    error = step_data.get("error")
    if not error:
        return f"Step {step_id} did not fail; no recovery needed."
    problems = [p.strip() for p in str(error).split(",") if p.strip()]
    return "Fix the submitted input and replay: " + "; ".join(problems)


def local_improvements(step_id: str, step_data: Dict[str, Any]) -> List[str]:
    suggestions = [
        "Check input data format",
        "Verify required fields are present",
        "Review validation rules",
    ]
    if step_data.get("status") == "completed":
        suggestions = [f"Step {step_id} completed; consider recording its duration"]
    return suggestions


class Narrator:
    """Wraps a pydantic-ai ``Agent`` with a local fallback."""

    def __init__(self, config: Optional[NarrationConfig] = None, agent: Any = None) -> None:
        self._config = config or NarrationConfig()
        self._agent = agent
        if self._agent is None and self._config.model:
            try:
                self._agent = Agent(
                    self._config.model,
                    system_prompt=prompts.SYSTEM_PROMPT,
                    model_settings={"temperature": self._config.temperature},
                )
            except Exception as e:
                logger.warning(
                    f"Narration model {self._config.model} unavailable: {e}. "
                    "Using local summaries."
                )
                self._agent = None

    @property
    def available(self) -> bool:
        return self._agent is not None

    async def _ask(self, prompt: str) -> Optional[str]:
        if self._agent is None:
            return None
        try:
            result = await self._agent.run(prompt)
        except Exception as e:
            logger.warning(f"Narration provider failed: {e}. Using local summary.")
            return None
        output = getattr(result, "output", result)
        return str(output) if output else None

    async def analyze_step(
        self, execution_id: str, step_id: str, step_data: Dict[str, Any]
    ) -> str:
        text = await self._ask(
            prompts.ANALYZE_STEP.format(
                execution_id=execution_id, step_id=step_id, step_data=_dump(step_data)
            )
        )
        return text or local_step_summary(step_id, step_data)

    async def suggest_recovery(
        self, execution_id: str, step_id: str, step_data: Dict[str, Any]
    ) -> str:
        text = await self._ask(
            prompts.AUTO_RECOVERY.format(
                execution_id=execution_id, step_id=step_id, step_data=_dump(step_data)
            )
        )
        return text or local_recovery(step_id, step_data)

    async def suggest_improvements(
        self, execution_id: str, step_id: str, step_data: Dict[str, Any]
    ) -> List[str]:
        text = await self._ask(
            prompts.IMPROVEMENTS.format(step_id=step_id, step_data=_dump(step_data))
        )
        if text:
            lines = [line.strip("-* ").strip() for line in text.splitlines()]
            return [line for line in lines if line][:3]
        return local_improvements(step_id, step_data)

    async def explain_execution(self, execution: Dict[str, Any]) -> str:
        text = await self._ask(prompts.EXPLAIN_EXECUTION.format(execution=_dump(execution)))
        if text:
            return text
        steps = execution.get("steps") or []
        parts = [f"{s.get('name')}: {s.get('status')}" for s in steps]
        return (
            f"Execution {execution.get('id')} is {execution.get('status')}. "
            f"Steps: {', '.join(parts) if parts else 'none recorded'}."
        )

    async def chat(self, message: str, context: Optional[Dict[str, Any]] = None) -> str:
        text = await self._ask(prompts.CHAT.format(message=message, context=_dump(context or {})))
        if text:
            return text
        if context and context.get("stepData"):
            return local_step_summary(str(context.get("stepId")), context["stepData"])
        return "Narration is unavailable; inspect the step details for status, error and logs."
