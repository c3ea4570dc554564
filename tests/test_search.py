"""
Tests for search planning, concurrent execution and result interleaving.
"""
import asyncio

from fakes import FakeAIPort, FakeSearchPort, failed_reply, text_reply, tool_reply
from motionflow.config import SearchConfig
from motionflow.generation.search import (
    dedupe_and_interleave,
    fallback_query,
    format_search_context,
    generate_search_queries,
    run_search_queries,
)

STATE = {"thema": "Tempo 30", "details": "vor Schulen", "request_type": "antrag"}


def _result(url, title="Titel"):
    return {"title": title, "url": url, "snippet": f"Auszug {url}"}


def test_interleave_never_repeats_a_url():
    groups = [
        {"purpose": "facts", "results": [
            _result("https://a.example/1"),
            _result("https://A.example/1/"),
            _result("https://a.example/2"),
        ]},
        {"purpose": "news", "results": [
            _result("https://a.example/2"),
            _result(" https://b.example/1 "),
            _result("https://b.example/1"),
        ]},
        {"purpose": "facts", "results": [_result("https://c.example/1"), _result("")]},
        {"purpose": "legal", "results": []},
    ]

    merged = dedupe_and_interleave(groups, total_max=50)
    keys = [item["url"].rstrip("/").lower() for item in merged]

    assert len(keys) == len(set(keys))
    assert len(merged) == 4
    assert all(item["url"] for item in merged)


def test_interleave_round_robins_purposes_and_caps_total():
    groups = [
        {"purpose": "facts", "results": [_result(f"https://facts.example/{i}") for i in range(5)]},
        {"purpose": "news", "results": [_result(f"https://news.example/{i}") for i in range(5)]},
    ]

    merged = dedupe_and_interleave(groups, total_max=5)

    assert [item["purpose"] for item in merged] == ["facts", "news", "facts", "news", "facts"]
    assert merged[1]["url"] == "https://news.example/0"


def test_fallback_query_collapses_whitespace():
    query = fallback_query("  Tempo 30 ", "vor\nSchulen", "Bündnis 90 Die Grünen")
    assert query == {"query": "Tempo 30 vor Schulen Bündnis 90 Die Grünen", "purpose": "general"}


def test_generate_queries_dedupes_and_caps():
    ai_port = FakeAIPort({"search_planning": tool_reply("plan_search_queries", {"queries": [
        {"query": "Tempo 30 Unfallzahlen", "purpose": "facts"},
        {"query": "tempo 30 unfallzahlen", "purpose": "news"},
        {"query": "Tempo 30 StVO Änderung", "purpose": "legal"},
        {"query": "Tempo 30 Grüne", "purpose": "something_else"},
        {"query": "Tempo 30 Beispiele", "purpose": "examples"},
    ]})})

    queries, meta = asyncio.run(generate_search_queries(ai_port, STATE, SearchConfig(max_queries=3)))

    assert meta == {"search_query_method": "ai"}
    assert [q["query"] for q in queries] == ["Tempo 30 Unfallzahlen", "Tempo 30 StVO Änderung", "Tempo 30 Grüne"]
    assert queries[2]["purpose"] == "general"


def test_generate_queries_accepts_json_content():
    ai_port = FakeAIPort({"search_planning": text_reply(
        '```json\n{"queries": [{"query": "Tempo 30 Lärm", "purpose": "facts"}]}\n```'
    )})
    queries, meta = asyncio.run(generate_search_queries(ai_port, STATE, SearchConfig()))
    assert queries == [{"query": "Tempo 30 Lärm", "purpose": "facts"}]


def test_generate_queries_falls_back_on_failure():
    ai_port = FakeAIPort({"search_planning": failed_reply("rate limited")})
    queries, meta = asyncio.run(generate_search_queries(ai_port, STATE, SearchConfig()))

    assert queries == [fallback_query("Tempo 30", "vor Schulen", SearchConfig().party_suffix)]
    assert meta["search_query_method"] == "fallback"
    assert "rate limited" in meta["search_query_error"]


def test_failing_query_contributes_empty_group():
    search_port = FakeSearchPort(
        results_by_query={"ok": [_result("https://ok.example")]},
        failing_queries=("down",),
    )
    groups = asyncio.run(run_search_queries(
        search_port,
        [{"query": "ok", "purpose": "facts"}, {"query": "down", "purpose": "news"}],
        SearchConfig(),
    ))

    assert groups[0]["results"] == [_result("https://ok.example")]
    assert groups[1]["results"] == []
    assert "search backend down" in groups[1]["error"]


def test_format_search_context_prefers_full_content():
    results = [
        {**_result("https://a.example"), "content": "Volltext", "content_type": "full"},
        {**_result("https://b.example"), "content_type": "snippet"},
    ]
    context = format_search_context(results, limit=1)
    assert context.startswith("[1] Titel (https://a.example)\nVolltext")
    assert "b.example" not in context
