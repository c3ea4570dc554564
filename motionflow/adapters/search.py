"""
Search port over the ddgs metasearch client.
"""
import asyncio
import threading
from typing import Any, Dict, List, Optional

from ddgs import DDGS

from motionflow.ports import SearchPort
from motionflow.utils import get_logger

logger = get_logger(__name__)


def region_for(language: str) -> str:
    """``de-DE`` → ``de-de``, ``en-US`` → ``us-en``; ddgs regions are ``country-lang``."""
    parts = (language or "de-DE").replace("_", "-").lower().split("-")
    if len(parts) == 1:
        return f"{parts[0]}-{parts[0]}"
    return f"{parts[1]}-{parts[0]}"


class DuckDuckGoSearchPort(SearchPort):
    """
    Text search via ``DDGS.text``.

    The blocking client runs in a worker thread; each thread keeps its own
    client instance.
    """

    _thread_local = threading.local()

    def _client(self) -> DDGS:
        if not hasattr(self._thread_local, "ddgs"):
            self._thread_local.ddgs = DDGS()
        return self._thread_local.ddgs

    def _search_sync(self, query: str, max_results: int, region: str) -> List[Dict[str, Any]]:
        return list(self._client().text(query, region=region, max_results=max_results) or [])

    async def search(
        self,
        query: str,
        max_results: int = 5,
        language: str = "de-DE",
        categories: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        try:
            raw = await asyncio.to_thread(self._search_sync, query, max_results, region_for(language))
        except Exception as e:
            logger.warning(f"[DuckDuckGoSearchPort] '{query[:50]}' failed: {e}")
            return {"success": False, "results": [], "error": str(e)}

        results = [
            {
                "title": item.get("title", ""),
                "url": item.get("href") or item.get("url", ""),
                "snippet": item.get("body") or item.get("snippet", ""),
            }
            for item in raw
            if item.get("href") or item.get("url")
        ]
        return {"success": True, "results": results}
