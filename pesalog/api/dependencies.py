"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from pesalog.services.debts import DebtReconciler
from pesalog.services.ingestion import IngestionPipeline
from pesalog.services.polling import MessagePoller


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_pipeline(request: Request) -> IngestionPipeline:
    """Shared ingestion pipeline built by the app factory"""
    return request.app.state.pipeline


def get_reconciler(request: Request) -> DebtReconciler:
    return request.app.state.reconciler


def get_poller(request: Request) -> MessagePoller:
    return request.app.state.poller
