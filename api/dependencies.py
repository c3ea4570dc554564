"""
Shared collaborators for the API routes.

Every provider is a FastAPI dependency, so tests can replace any of them
through ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Header

from motionflow.adapters import DuckDuckGoSearchPort, LangChainAIPort, RequestsCrawlPort
from motionflow.config import AppConfig, load_config
from motionflow.engine import CheckpointStore, InMemoryCheckpointStore
from motionflow.enrichment import UrlEnricher
from motionflow.ports import AIPort, CrawlPort, Enricher, SearchPort, SessionStore
from motionflow.routing import ChatOrchestrator
from motionflow.sessions import InMemorySessionStore

ANONYMOUS_USER = "anonymous"


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_ai_port() -> AIPort:
    return LangChainAIPort(get_config().llm)


@lru_cache(maxsize=1)
def get_search_port() -> Optional[SearchPort]:
    return DuckDuckGoSearchPort() if get_config().search.enabled else None


@lru_cache(maxsize=1)
def get_crawl_port() -> Optional[CrawlPort]:
    return RequestsCrawlPort() if get_config().crawl.enabled else None


@lru_cache(maxsize=1)
def get_enricher() -> Optional[Enricher]:
    crawl_port = get_crawl_port()
    if crawl_port is None:
        return None
    return UrlEnricher(crawl_port, get_config().crawl)


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    return InMemorySessionStore(ttl_minutes=get_config().session.ttl_minutes)


@lru_cache(maxsize=1)
def get_checkpoint_store() -> CheckpointStore:
    return InMemoryCheckpointStore(max_age_minutes=get_config().session.ttl_minutes)


@lru_cache(maxsize=1)
def get_orchestrator() -> ChatOrchestrator:
    return ChatOrchestrator(get_ai_port(), get_config(), search_port=get_search_port())


def get_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-ID")) -> str:
    """Caller identity; requests without the header share the anonymous space."""
    return (x_user_id or "").strip() or ANONYMOUS_USER
