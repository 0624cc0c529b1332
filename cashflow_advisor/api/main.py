"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cashflow_advisor.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cashflow_advisor.api.v1 import decision, goal_impact, health_score, profile, simulation, transactions
from cashflow_advisor.infrastructure.database.session import engine, init_db
from cashflow_advisor.infrastructure.observability.logging import setup_logging
from cashflow_advisor.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(engine)
    yield


def create_app(create_tables: bool = True) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cashflow Advisor",
        description="Spend decisions, financial health scoring and purchase forecasting",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if create_tables else None,
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
    app.include_router(profile.router, prefix="/v1", tags=["profile"])
    app.include_router(health_score.router, prefix="/v1", tags=["health-score"])
    app.include_router(decision.router, prefix="/v1", tags=["decisions"])
    app.include_router(simulation.router, prefix="/v1", tags=["simulations"])
    app.include_router(goal_impact.router, prefix="/v1", tags=["goals"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])

    return app


app = create_app()
