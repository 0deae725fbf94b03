"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from trainsmart.api.routes import router
from trainsmart.api.middleware import setup_cors, setup_metrics, setup_rate_limiting
from trainsmart.api.models import ErrorResponse
from trainsmart.api.sessions import SessionRegistry
from trainsmart.config import USE_IN_MEMORY_STORE
from trainsmart.db.connection import db
from trainsmart.db.document_store import DocumentStore
from trainsmart.db.memory_store import InMemoryDocumentStore
from trainsmart.db.postgres_store import PostgresDocumentStore
from trainsmart.exceptions import (
    AIGenerationError,
    AuthenticationError,
    DatabaseError,
    RecordNotFoundError,
    TrainSmartError,
    ValidationError,
)

logger = logging.getLogger(__name__)


async def open_document_store() -> DocumentStore:
    """Document store selected by USE_IN_MEMORY_STORE"""
    if USE_IN_MEMORY_STORE:
        logger.warning("Using in-memory document store - data is lost on restart")
        return InMemoryDocumentStore()

    await db.init_pool()
    logger.info("Database pool initialized")
    store = PostgresDocumentStore(db)
    await store.ensure_schema()
    return store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    owns_store = getattr(app.state, "sessions", None) is None
    if owns_store:
        app.state.sessions = SessionRegistry(await open_document_store())

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    sessions: SessionRegistry = app.state.sessions
    await sessions.close_all()
    if owns_store:
        await sessions.documents.close()
        await db.close_pool()
        logger.info("Document store closed")


def _status_for(exc: TrainSmartError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, RecordNotFoundError):
        return 404
    if isinstance(exc, AIGenerationError):
        return 502
    if isinstance(exc, DatabaseError):
        return 503
    return 500


def create_api_application(document_store: Optional[DocumentStore] = None) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        document_store: Store to serve sessions from; when omitted it is
            opened at startup (PostgreSQL, or in-memory if configured)
    """
    app = FastAPI(
        title="TrainSmart API",
        description="REST API for TrainSmart workout tracking and gamification",
        version="1.0.0",
        lifespan=lifespan
    )

    if document_store is not None:
        app.state.sessions = SessionRegistry(document_store)

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_metrics(app)

    # Include routes
    app.include_router(router)

    @app.exception_handler(TrainSmartError)
    async def trainsmart_exception_handler(request: Request, exc: TrainSmartError):
        return JSONResponse(status_code=_status_for(exc), content=exc.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error", detail=str(exc)).model_dump(mode="json")
        )

    logger.info("FastAPI application created")

    return app
