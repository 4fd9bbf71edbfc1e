"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from twin_analytics.api.middleware import RequestIDMiddleware, MetricsMiddleware
from twin_analytics.api.v1 import anomalies, scores, stress, time_machine
from twin_analytics.infrastructure.observability.logging import setup_logging
from twin_analytics.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Financial Twin Analytics",
        description="Health scores, stress tests, forward projections and anomaly reports",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

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
    app.include_router(scores.router, prefix="/v1", tags=["scores"])
    app.include_router(stress.router, prefix="/v1", tags=["stress"])
    app.include_router(time_machine.router, prefix="/v1", tags=["time-machine"])
    app.include_router(anomalies.router, prefix="/v1", tags=["anomalies"])

    return app


app = create_app()
