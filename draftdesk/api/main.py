"""
FastAPI application for the draftdesk AI queue.

This module composes the queue store, generation pipeline, worker and
health probe, and exposes them through the admin HTTP routes.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from draftdesk.agents.health import HealthProbe
from draftdesk.agents.pipeline import GenerationPipeline
from draftdesk.agents.provider import OllamaCloudClient
from draftdesk.config import AppConfig, config as default_config
from draftdesk.errors import QueueError
from draftdesk.jobs.database import AiQueueDatabase
from draftdesk.jobs.queue import AiQueueService
from draftdesk.jobs.worker import QueueWorker
from draftdesk.routes import health_router, queue_router
from draftdesk.utils.logging import api_logger as logger, configure_logging


def create_app(
    app_config: Optional[AppConfig] = None,
    pipeline: Optional[GenerationPipeline] = None,
    provider_transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        app_config: Settings to use (defaults to the global config)
        pipeline: Pipeline override; built from the provider client if omitted
        provider_transport: httpx transport for the provider client (tests)
    """
    cfg = app_config or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(cfg.LOG_LEVEL)
        logger.info("draftdesk API starting", environment=cfg.ENVIRONMENT)

        db = AiQueueDatabase(cfg.queue_db_path)
        await db.connect()

        client = OllamaCloudClient.from_config(cfg, transport=provider_transport)
        health_probe = HealthProbe(client, timeout=cfg.HEALTH_TIMEOUT_SECONDS)
        worker = QueueWorker(
            db,
            pipeline or GenerationPipeline.from_config(client, cfg),
            provider=client,
            poll_interval_seconds=cfg.WORKER_POLL_INTERVAL
        )

        app.state.queue_db = db
        app.state.health_probe = health_probe
        app.state.queue_worker = worker
        app.state.queue_service = AiQueueService(
            db,
            worker,
            health_probe,
            max_instructions_length=cfg.MAX_INSTRUCTIONS_LENGTH
        )

        if not cfg.provider_configured:
            logger.warning("OLLAMA_CLOUD_API_KEY not set; queue items will wait until it is configured")

        if cfg.AI_WORKER_ENABLED:
            worker.start()
        else:
            logger.info("AI queue worker is disabled (AI_WORKER_ENABLED=false)")

        try:
            yield
        finally:
            await worker.shutdown()
            await db.close()
            logger.info("draftdesk API stopped")

    app = FastAPI(
        title="draftdesk API",
        description="Asynchronous AI draft generation queue for the municipal CMS",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.config = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(queue_router)
    app.include_router(health_router)

    # ===== Error Handlers =====

    @app.exception_handler(QueueError)
    async def queue_error_handler(request, exc: QueueError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc.message}", path=request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": type(exc).__name__,
                "detail": exc.message,
                "type": type(exc).__name__
            }
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        return JSONResponse(
            status_code=400,
            content={
                "error": "ValidationError",
                "detail": f"{location}: {first.get('msg', 'Invalid request')}",
                "type": "ValidationError"
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(f"Unhandled error: {exc}", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if cfg.DEBUG else "An error occurred",
                "type": type(exc).__name__
            }
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "draftdesk.api.main:app",
        host=default_config.API_HOST,
        port=default_config.API_PORT,
        reload=default_config.DEBUG,
        log_level=default_config.LOG_LEVEL.lower()
    )
