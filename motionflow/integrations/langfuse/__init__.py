"""
LangFuse integration for motionflow.
Traces every LLM call made through the LangChain AI port.
"""
from .handler import (
    get_langfuse_handler,
    get_langfuse_client,
    is_langfuse_enabled,
    build_run_config,
    flush_langfuse,
)
from .config import LangfuseSettings, load_langfuse_settings

__all__ = [
    "get_langfuse_handler",
    "get_langfuse_client",
    "is_langfuse_enabled",
    "build_run_config",
    "flush_langfuse",
    "LangfuseSettings",
    "load_langfuse_settings",
]
