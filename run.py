#!/usr/bin/env python
"""
motionflow Application Launcher

Starts the FastAPI backend server.

    python run.py

API docs:
    http://localhost:8000/docs (Swagger UI)
    http://localhost:8000/redoc (ReDoc)
"""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=os.getenv("MOTIONFLOW_HOST", "0.0.0.0"),
        port=int(os.getenv("MOTIONFLOW_PORT", "8000")),
        reload=os.getenv("MOTIONFLOW_RELOAD", "false").lower() == "true",
        reload_dirs=["api", "motionflow", "templates"],
    )
