"""
FastAPI Main Application

Provides the REST API for interactive generation and chat routing.

Features:
    - API routes: interactive sessions, chat classification and generation
    - CORS middleware for the frontend dev servers
    - Logging configured once at startup; LangFuse flushed on shutdown
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.dependencies import get_config
from api.routes import chat_router, interactive_router
from motionflow.integrations.langfuse import flush_langfuse
from motionflow.utils import get_logger, level_from_name, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    config = get_config()
    setup_logging(level=level_from_name(config.log_level))
    logger.info(f"Starting {config.title} API server")
    yield
    flush_langfuse()
    logger.info(f"Shutting down {config.title} API server")


app = FastAPI(
    title="motionflow",
    description="REST API for interactive motion and text generation",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(interactive_router, prefix="/api/interactive", tags=["Interactive"])
app.include_router(chat_router, prefix="/api/chat", tags=["Chat"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": app.title}
