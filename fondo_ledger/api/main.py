"""Fondo Ledger HTTP service: savings, loans and member read models under /v1"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from fondo_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from fondo_ledger.api.v1 import loans, members, savings
from fondo_ledger.infrastructure.observability.logging import setup_logging
from fondo_ledger.config import settings

setup_logging(settings.log_level)

ROUTERS = (
    (savings.router, "savings"),
    (loans.router, "loans"),
    (members.router, "members"),
)


def create_app() -> FastAPI:
    """
    Build the ledger API.

    Schema creation is left to deployment (init_db or migrations); the app
    only binds sessions per request.
    """
    app = FastAPI(
        title="Fondo Ledger",
        description="Savings ledger and loan lifecycle engine for a membership fund",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Request ID must exist before metrics and routers run
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        """Ledger posting, loan transition, payment and conflict counters"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag in ROUTERS:
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
