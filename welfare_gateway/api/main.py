"""Welfare gateway application"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from welfare_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from welfare_gateway.api.v1 import credits, distribution, fiscal, fraud
from welfare_gateway.config import settings
from welfare_gateway.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level, settings.service_name)

V1_ROUTERS = (
    (fiscal.router, "fiscal"),
    (credits.router, "credits"),
    (distribution.router, "distributions"),
    (fraud.router, "fraud"),
)


def create_app() -> FastAPI:
    """Build the API with tracing, metrics and the v1 routers mounted"""
    app = FastAPI(
        title="Welfare Gateway",
        description="Fiscal ceilings, credit distribution and transaction risk for corporate welfare",
        version="0.1.0",
    )

    # Request ids are assigned before latency is measured
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag in V1_ROUTERS:
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
