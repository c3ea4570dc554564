"""
API routes for the motionflow FastAPI backend.
"""
from .chat import router as chat_router
from .interactive import router as interactive_router

__all__ = [
    "chat_router",
    "interactive_router",
]
