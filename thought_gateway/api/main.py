"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from thought_gateway.api.dependencies import Services, build_services
from thought_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from thought_gateway.api.v1 import classify, credits, thoughts, webhooks
from thought_gateway.infrastructure.database.session import create_tables
from thought_gateway.infrastructure.observability.logging import setup_logging
from thought_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services.engine is not None and settings.database_auto_create:
            await create_tables(services.engine)
        if services.prewarm is not None:
            services.prewarm.start()
            logging.info("Prewarm scheduler started", extra={"labels": services.prewarm.labels})
        try:
            yield
        finally:
            if services.prewarm is not None:
                services.prewarm.shutdown()
            if services.engine is not None:
                await services.engine.dispose()

    app = FastAPI(
        title="Thought Gateway",
        description="Daily thought banks, credit ledger and entitlement webhooks for the camera app",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(thoughts.router, prefix="/v1", tags=["thoughts"])
    app.include_router(credits.router, prefix="/v1", tags=["credits"])
    app.include_router(classify.router, prefix="/v1", tags=["classify"])
    app.include_router(webhooks.router, prefix="/v1", tags=["webhooks"])

    return app


app = create_app()
