"""Execution API routes.

Endpoints:
    POST /execute                        Submit an envelope, bare payload or replay
    POST /replay                         Re-run a stored execution's input
    GET  /executions                     All executions + pipeline graph
    GET  /executions/{execution_id}      One execution
    GET  /api/executions/{id}/graph      Per-execution lineage graph
    GET  /steps/{step_id}                Latest execution's record for a step
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stepsos.api.deps import get_services
from stepsos.exceptions import DuplicateExecutionError, NotFoundError, RejectedExecution
from stepsos.graph import lineage_graph, pipeline_graph, step_details
from stepsos.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["executions"])


class ReplayRequest(BaseModel):
    executionId: str


def _rejected(error: str, execution_id=None) -> JSONResponse:
    content = {"accepted": False, "error": error}
    if execution_id:
        content["executionId"] = execution_id
    return JSONResponse(status_code=400, content=content)


@router.post("/execute")
async def execute(request: Request, services: Services = Depends(get_services)):
    """Start an execution.

    The run continues in the background; poll ``/executions/{id}`` or
    listen on the event feed for its progress.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return _rejected(f"Invalid JSON body: {e}")

    try:
        execution_id = await services.gateway.submit(body)
    except RejectedExecution as e:
        return _rejected(e.reason, e.execution_id)
    except NotFoundError as e:
        return JSONResponse(status_code=404, content={"accepted": False, "error": str(e)})
    except DuplicateExecutionError as e:
        return JSONResponse(status_code=409, content={"accepted": False, "error": str(e)})
    return {"accepted": True, "executionId": execution_id}


@router.post("/replay")
async def replay(body: ReplayRequest, services: Services = Depends(get_services)):
    try:
        execution_id = await services.gateway.replay(body.executionId)
    except RejectedExecution as e:
        return _rejected(e.reason, e.execution_id)
    return {"accepted": True, "executionId": execution_id, "replayOf": body.executionId}


@router.get("/executions")
async def list_executions(services: Services = Depends(get_services)):
    executions = await services.store.list_executions()
    latest = executions[-1] if executions else None
    graph = pipeline_graph(services.runner.step_names, latest)
    return {
        "executions": [record.to_wire() for record in executions],
        "graph": graph.to_wire(),
    }


@router.get("/executions/{execution_id}")
async def get_execution(execution_id: str, services: Services = Depends(get_services)):
    record = await services.store.get(execution_id)
    if record is None:
        raise NotFoundError(f"Execution {execution_id} not found")
    return record.to_wire()


@router.get("/api/executions/{execution_id}/graph")
async def get_execution_graph(execution_id: str, services: Services = Depends(get_services)):
    record = await services.store.get(execution_id)
    if record is None:
        raise NotFoundError(f"Execution {execution_id} not found")
    graph = lineage_graph(record, services.runner.step_names)
    return {
        "success": True,
        "executionId": execution_id,
        "status": record.status,
        "graph": graph.to_wire(),
    }


@router.get("/steps/{step_id}")
async def get_step(step_id: str, services: Services = Depends(get_services)):
    return step_details(step_id, await services.store.latest())
