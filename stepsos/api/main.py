"""StepsOS API - execution tracking and live event feed."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stepsos.api.routes import ai, executions, stream
from stepsos.config import StepsOSConfig, load_config
from stepsos.exceptions import NotFoundError
from stepsos.services import Services

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[StepsOSConfig] = None, services: Optional[Services] = None
) -> FastAPI:
    """Build the FastAPI application.

    ``services`` may be injected (tests); otherwise they are built from
    ``config`` when the application starts.
    """
    config = config or (services.config if services else load_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or Services.build(config)
        logger.info(
            f"StepsOS ready with steps {app.state.services.runner.step_names}"
        )
        yield
        logger.info("Shutting down StepsOS")
        await app.state.services.shutdown()

    app = FastAPI(
        title="StepsOS API",
        description="Runs the entry/validate/process pipeline and streams step events.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(executions.router)
    app.include_router(stream.router)
    app.include_router(ai.router)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        services: Services = request.app.state.services
        return {
            "status": "healthy",
            "steps": services.runner.step_names,
            "executions": len(await services.store.list_executions()),
            "runningExecutions": services.gateway.pending_runs,
            "listeners": services.bus.listener_count,
            "narration": services.narrator.available,
        }

    return app
