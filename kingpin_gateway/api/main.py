"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from kingpin_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from kingpin_gateway.api.v1 import rob, history, insurance, inventory, jobs
from kingpin_gateway.infrastructure.observability.logging import setup_logging
from kingpin_gateway.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Kingpin Gateway",
        description="Robbery resolution and economy service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(rob.router, prefix="/v1", tags=["robbery"])
    app.include_router(history.router, prefix="/v1", tags=["history"])
    app.include_router(insurance.router, prefix="/v1", tags=["insurance"])
    app.include_router(inventory.router, prefix="/v1", tags=["inventory"])
    app.include_router(jobs.router, prefix="/v1", tags=["jobs"])

    return app


app = create_app()
