"""
Tests for the LangChain, ddgs and requests adapters.

No network: the chat model is LangChain's fake model, requests.get and the
ddgs client are replaced.
"""
import asyncio
from typing import Any, List, Optional

import pytest
import requests
from langchain_core.language_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.outputs import ChatResult

from motionflow.adapters import DuckDuckGoSearchPort, LangChainAIPort, RequestsCrawlPort, html_to_text
from motionflow.adapters.llm import to_langchain_messages, to_openai_tool
from motionflow.adapters.search import region_for
from motionflow.config import LLMConfig


class BrokenChatModel(BaseChatModel):
    @property
    def _llm_type(self) -> str:
        return "broken"

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        raise ConnectionError("endpoint unreachable")


class FakeResponse:
    def __init__(self, text="", content_type="text/html; charset=utf-8", status=200):
        self.text = text
        self.headers = {"Content-Type": content_type}
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Client Error")


class FakeDDGS:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.calls = []

    def text(self, query, region=None, max_results=None):
        self.calls.append((query, region, max_results))
        if self.error:
            raise self.error
        return self.rows[:max_results]


# =============================================================================
# LLM
# =============================================================================

def test_message_conversion():
    converted = to_langchain_messages("Rolle", [
        {"role": "user", "content": "Frage"},
        {"role": "assistant", "content": "Antwort"},
    ])

    assert [type(m) for m in converted] == [SystemMessage, HumanMessage, AIMessage]
    assert converted[0].content == "Rolle"
    assert len(to_langchain_messages("", [{"role": "user", "content": "x"}])) == 1


def test_tool_definition_conversion():
    tool = to_openai_tool({"name": "select_urls", "description": "Pick URLs", "input_schema": {"type": "object"}})
    assert tool == {
        "type": "function",
        "function": {"name": "select_urls", "description": "Pick URLs", "parameters": {"type": "object"}},
    }
    assert to_openai_tool({"name": "noop"})["function"]["parameters"] == {"type": "object", "properties": {}}


def test_ai_port_returns_model_text():
    llm = GenericFakeChatModel(messages=iter([AIMessage(content="Sehr geehrte Damen und Herren")]))
    port = LangChainAIPort(LLMConfig(), llm=llm)

    response = asyncio.run(port.request({
        "type": "antrag",
        "system_prompt": "Du schreibst Anträge.",
        "messages": [{"role": "user", "content": "Antrag zu Radwegen"}],
        "options": {"max_tokens": 100, "temperature": 0.2},
    }))

    assert response == {"success": True, "content": "Sehr geehrte Damen und Herren", "tool_calls": []}


def test_ai_port_reports_model_errors():
    port = LangChainAIPort(LLMConfig(), llm=BrokenChatModel())

    response = asyncio.run(port.request({"type": "antrag", "messages": [{"role": "user", "content": "x"}]}))

    assert response["success"] is False
    assert "endpoint unreachable" in response["error"]


# =============================================================================
# Search
# =============================================================================

@pytest.mark.parametrize("language,region", [("de-DE", "de-de"), ("en-US", "us-en"), ("fr", "fr-fr"), ("de_AT", "at-de")])
def test_region_for(language, region):
    assert region_for(language) == region


def test_search_maps_ddgs_rows(monkeypatch):
    client = FakeDDGS(rows=[
        {"title": "Radverkehr", "href": "https://example.org/rad", "body": "Mehr Radwege"},
        {"title": "ohne Link", "body": "wird verworfen"},
    ])
    port = DuckDuckGoSearchPort()
    monkeypatch.setattr(port, "_client", lambda: client)

    response = asyncio.run(port.search("Radwege Köln", max_results=5, language="de-DE"))

    assert response["success"] is True
    assert response["results"] == [
        {"title": "Radverkehr", "url": "https://example.org/rad", "snippet": "Mehr Radwege"},
    ]
    assert client.calls == [("Radwege Köln", "de-de", 5)]


def test_search_failure_is_reported(monkeypatch):
    port = DuckDuckGoSearchPort()
    monkeypatch.setattr(port, "_client", lambda: FakeDDGS(error=RuntimeError("rate limit")))

    response = asyncio.run(port.search("Radwege"))

    assert response == {"success": False, "results": [], "error": "rate limit"}


# =============================================================================
# Crawl
# =============================================================================

def test_html_to_text_drops_boilerplate():
    html = """
    <html><head><title> Radverkehr in Köln </title><style>p {color: red}</style></head>
    <body><nav>Menü</nav><h1>Mehr Radwege</h1><p>Die Stadt plant   40 km&nbsp;neue Wege.</p>
    <script>track()</script><footer>Impressum</footer></body></html>
    """
    extracted = html_to_text(html)

    assert extracted["title"] == "Radverkehr in Köln"
    assert "Mehr Radwege" in extracted["content"]
    assert "Die Stadt plant 40 km" in extracted["content"]
    for hidden in ("Menü", "track()", "Impressum", "color"):
        assert hidden not in extracted["content"]


def test_crawl_extracts_html(monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen.update(url=url, timeout=timeout)
        return FakeResponse("<title>T</title><p>eins zwei drei</p>")

    monkeypatch.setattr("motionflow.adapters.crawl.requests.get", fake_get)

    response = asyncio.run(RequestsCrawlPort().crawl("https://example.org", timeout=3.0, max_content_length=9))

    assert response["success"] is True
    assert response["data"] == {"title": "T", "content": "eins zwei", "word_count": 2}
    assert seen == {"url": "https://example.org", "timeout": 3.0}


def test_crawl_passes_plain_text(monkeypatch):
    monkeypatch.setattr(
        "motionflow.adapters.crawl.requests.get",
        lambda url, headers=None, timeout=None: FakeResponse("reiner Text", content_type="text/plain"),
    )
    response = asyncio.run(RequestsCrawlPort().crawl("https://example.org/a.txt"))
    assert response["data"]["content"] == "reiner Text"


@pytest.mark.parametrize("response,error", [
    (FakeResponse("%PDF", content_type="application/pdf"), "Unsupported content type: application/pdf"),
    (FakeResponse("<script>x()</script>"), "No text content"),
    (FakeResponse("", status=404), "404 Client Error"),
])
def test_crawl_failures(monkeypatch, response, error):
    monkeypatch.setattr("motionflow.adapters.crawl.requests.get", lambda url, headers=None, timeout=None: response)

    result = asyncio.run(RequestsCrawlPort().crawl("https://example.org"))

    assert result["success"] is False
    assert result["error"] == error


def test_crawl_timeout(monkeypatch):
    def slow_get(url, headers=None, timeout=None):
        raise requests.exceptions.ReadTimeout("read timed out")

    monkeypatch.setattr("motionflow.adapters.crawl.requests.get", slow_get)

    result = asyncio.run(RequestsCrawlPort().crawl("https://example.org", timeout=2.0))
    assert result == {"success": False, "error": "Timeout after 2.0s"}
