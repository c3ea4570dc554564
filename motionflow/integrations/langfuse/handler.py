"""
LangFuse handler module.

One LangFuse client per process; each LLM call gets a fresh LangChain
callback handler bound to it. Trace attributes (session, user, tags) travel
in the run config metadata.
"""
from typing import Any, Dict, List, Optional

from langfuse import Langfuse
from langfuse.langchain import CallbackHandler

from motionflow.utils import get_logger
from .config import load_langfuse_settings

logger = get_logger(__name__)

_langfuse_client: Optional[Langfuse] = None


def is_langfuse_enabled() -> bool:
    return load_langfuse_settings().is_complete


def get_langfuse_client() -> Optional[Langfuse]:
    """Global LangFuse client, or None when LangFuse is not configured."""
    global _langfuse_client
    settings = load_langfuse_settings()
    if not settings.is_complete:
        return None
    if _langfuse_client is None:
        _langfuse_client = Langfuse(
            public_key=settings.public_key,
            secret_key=settings.secret_key,
            host=settings.host,
        )
        logger.info(f"LangFuse client initialized (host: {settings.host})")
    return _langfuse_client


def get_langfuse_handler() -> Optional[CallbackHandler]:
    """LangChain callback handler, or None when LangFuse is not configured."""
    if get_langfuse_client() is None:
        return None
    return CallbackHandler(public_key=load_langfuse_settings().public_key)


def build_run_config(
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    request_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    LangChain run config carrying the LangFuse handler and trace attributes.

    Returns an empty dict when LangFuse is disabled so callers can pass it
    through unconditionally.
    """
    handler = get_langfuse_handler()
    if handler is None:
        return {}

    tags: List[str] = ["motionflow"]
    if request_type:
        tags.append(f"type:{request_type}")

    metadata: Dict[str, Any] = {"langfuse_tags": tags}
    if session_id:
        metadata["langfuse_session_id"] = session_id
    if user_id:
        metadata["langfuse_user_id"] = user_id
    return {"callbacks": [handler], "metadata": metadata}


def flush_langfuse() -> None:
    """Flush pending LangFuse events; called on application shutdown."""
    client = get_langfuse_client()
    if client is None:
        return
    try:
        client.flush()
    except Exception as e:
        logger.warning(f"LangFuse flush failed: {e}")
