"""Narration endpoints.

These work without an LLM provider: the narrator falls back to local
summaries.

Endpoints:
    POST /ai/analyze-step     {analysis}
    POST /ai/auto-recovery    {suggestion}
    POST /ai/improvements     {suggestions}
    POST /ai/chat             {response}
    POST /ai/explain          {explanation}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from stepsos.api.deps import get_services
from stepsos.exceptions import NotFoundError
from stepsos.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


class StepNarrationRequest(BaseModel):
    executionId: Optional[str] = None
    stepId: str
    stepData: Optional[Dict[str, Any]] = None


class ChatRequest(BaseModel):
    message: str
    executionId: Optional[str] = None
    stepId: Optional[str] = None
    stepData: Optional[Dict[str, Any]] = None


class ExplainRequest(BaseModel):
    executionId: str


async def _step_data(request: StepNarrationRequest, services: Services) -> Dict[str, Any]:
    if request.stepData is not None:
        return request.stepData
    if request.executionId:
        record = await services.store.get(request.executionId)
        step = record.step(request.stepId) if record else None
        if step is not None:
            return step.model_dump(mode="json", by_alias=True)
    return {}


@router.post("/analyze-step")
async def analyze_step(request: StepNarrationRequest, services: Services = Depends(get_services)):
    data = await _step_data(request, services)
    analysis = await services.narrator.analyze_step(request.executionId or "", request.stepId, data)
    return {"success": True, "analysis": analysis}


@router.post("/auto-recovery")
async def auto_recovery(request: StepNarrationRequest, services: Services = Depends(get_services)):
    data = await _step_data(request, services)
    suggestion = await services.narrator.suggest_recovery(request.executionId or "", request.stepId, data)
    return {"success": True, "suggestion": suggestion}


@router.post("/improvements")
async def improvements(request: StepNarrationRequest, services: Services = Depends(get_services)):
    data = await _step_data(request, services)
    suggestions = await services.narrator.suggest_improvements(
        request.executionId or "", request.stepId, data
    )
    return {"success": True, "suggestions": suggestions}


@router.post("/chat")
async def chat(request: ChatRequest, services: Services = Depends(get_services)):
    context = request.model_dump(exclude={"message"}, exclude_none=True)
    response = await services.narrator.chat(request.message, context)
    return {"success": True, "response": response}


@router.post("/explain")
async def explain(request: ExplainRequest, services: Services = Depends(get_services)):
    record = await services.store.get(request.executionId)
    if record is None:
        raise NotFoundError(f"Execution {request.executionId} not found")
    explanation = await services.narrator.explain_execution(record.to_wire())
    return {"success": True, "executionId": record.id, "explanation": explanation}
