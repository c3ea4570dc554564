"""
Collaborator interfaces consumed by the workflow and routing layers.

Every port is async; concrete adapters live in ``motionflow.adapters``,
``motionflow.sessions``, ``motionflow.prompting`` and ``motionflow.enrichment``.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class AIPort(ABC):
    """
    AI call port.

    ``request`` receives ``{type, system_prompt, messages, options}`` where
    ``options`` may carry ``tools`` (JSON-schema tool definitions),
    ``max_tokens`` and ``temperature``. It returns
    ``{success, content, tool_calls?, error?}`` with tool calls shaped as
    ``{"name": str, "input": dict}``.
    """

    @abstractmethod
    async def request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        ...


class SearchPort(ABC):
    """Web search port returning ``{success, results: [{title, url, snippet}], error?}``."""

    @abstractmethod
    async def search(
        self,
        query: str,
        max_results: int = 5,
        language: str = "de-DE",
        categories: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        ...


class CrawlPort(ABC):
    """URL crawl port returning ``{success, data: {content, word_count}, error?}``."""

    @abstractmethod
    async def crawl(self, url: str, timeout: float = 5.0, max_content_length: int = 50000) -> Dict[str, Any]:
        ...


class SessionStore(ABC):
    """Key-value store for interactive session snapshots, scoped per user."""

    @abstractmethod
    def set(self, user_id: str, session: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def get(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def update(self, user_id: str, session_id: str, partial: Dict[str, Any]) -> None:
        ...


class PromptAssembler(ABC):
    """Turns a prompt context into ``{system, messages, tools}``."""

    @abstractmethod
    def assemble(self, context: Dict[str, Any]) -> Dict[str, Any]:
        ...


class Enricher(ABC):
    """Context enrichment returning ``{documents, knowledge, urls_crawled}``."""

    @abstractmethod
    async def enrich(self, request: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        ...
