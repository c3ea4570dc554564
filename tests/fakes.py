"""
Scripted stand-ins for the AI, search and crawl ports.
"""
import asyncio
import inspect
from typing import Any, Callable, Dict, List, Optional, Union

from motionflow.ports import AIPort, CrawlPort, SearchPort

Reply = Union[Dict[str, Any], Exception, Callable[[Dict[str, Any]], Any]]


def text_reply(content: str) -> Dict[str, Any]:
    return {"success": True, "content": content, "tool_calls": []}


def tool_reply(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "content": "", "tool_calls": [{"name": name, "input": arguments}]}


def failed_reply(error: str = "model unavailable") -> Dict[str, Any]:
    return {"success": False, "content": "", "error": error}


class FakeAIPort(AIPort):
    """Replies are looked up by request ``type``; unknown types get a generated text."""

    def __init__(self, replies: Optional[Dict[str, Reply]] = None, default_content: str = "Generierter Text"):
        self.replies = dict(replies or {})
        self.default_content = default_content
        self.calls: List[Dict[str, Any]] = []

    async def request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(request)
        reply = self.replies.get(request.get("type"))
        if reply is None:
            return text_reply(f"{self.default_content} ({request.get('type')})")
        if callable(reply):
            reply = reply(request)
            if inspect.isawaitable(reply):
                reply = await reply
        if isinstance(reply, Exception):
            raise reply
        return reply

    def calls_of(self, request_type: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call.get("type") == request_type]


class FakeSearchPort(SearchPort):
    """Returns ``results_by_query[query]`` or the default result list."""

    def __init__(
        self,
        results_by_query: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        default_results: Optional[List[Dict[str, Any]]] = None,
        failing_queries: tuple = (),
    ):
        self.results_by_query = dict(results_by_query or {})
        self.default_results = list(default_results or [])
        self.failing_queries = failing_queries
        self.queries: List[str] = []

    async def search(self, query, max_results=5, language="de-DE", categories=None):
        self.queries.append(query)
        if query in self.failing_queries:
            raise ConnectionError(f"search backend down for '{query}'")
        results = self.results_by_query.get(query, self.default_results)
        return {"success": True, "results": list(results)[:max_results]}


class FakeCrawlPort(CrawlPort):
    """Serves ``pages[url]``; URLs in ``failing`` fail, URLs in ``slow`` never answer in time."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, failing: tuple = (), slow: tuple = ()):
        self.pages = dict(pages or {})
        self.failing = failing
        self.slow = slow
        self.crawled: List[str] = []

    async def crawl(self, url, timeout=5.0, max_content_length=50000):
        self.crawled.append(url)
        if url in self.slow:
            await asyncio.sleep(10)
        if url in self.failing or url not in self.pages:
            return {"success": False, "error": f"HTTP 404 for {url}"}
        content = self.pages[url][:max_content_length]
        return {"success": True, "data": {"content": content, "word_count": len(content.split())}}
