"""
FastAPI backend for motionflow.

API routes:
    - /api/interactive: interactive generation sessions (initiate, continue, inspect)
    - /api/chat: intent classification and chat generation
    - /api/health: health check
"""

__version__ = "1.0.0"
