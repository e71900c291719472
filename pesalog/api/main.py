"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from pesalog.api.middleware import MetricsMiddleware, RequestIDMiddleware
from pesalog.api.v1 import data, debts, messages, transactions
from pesalog.config import settings
from pesalog.domain.message_filter import MessageFilter
from pesalog.domain.parser import DialectMatcher
from pesalog.infrastructure.database.session import init_db
from pesalog.infrastructure.observability.logging import setup_logging
from pesalog.services.debts import DebtReconciler
from pesalog.services.ingestion import IngestionPipeline
from pesalog.services.linker import ReferenceLinker
from pesalog.services.polling import MessagePoller

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="PesaLog Core",
        description="Financial SMS ingestion, linking and debt ledger service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Services are built once and shared; all durable state lives in the database
    matcher = DialectMatcher()
    reconciler = DebtReconciler()
    pipeline = IngestionPipeline(
        matcher=matcher,
        message_filter=MessageFilter(),
        linker=ReferenceLinker(matcher),
        reconciler=reconciler,
    )
    app.state.pipeline = pipeline
    app.state.reconciler = reconciler
    app.state.poller = MessagePoller(pipeline)

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
    app.include_router(messages.router, prefix="/v1", tags=["messages"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(debts.router, prefix="/v1", tags=["debts"])
    app.include_router(data.router, prefix="/v1", tags=["data"])

    return app


app = create_app()
