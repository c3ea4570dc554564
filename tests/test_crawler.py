"""
Tests for crawl selection and full-content enrichment.
"""
import asyncio

import pytest

from fakes import FakeAIPort, FakeCrawlPort, failed_reply, text_reply
from motionflow.config import CrawlConfig
from motionflow.enrichment import UrlEnricher, extract_urls
from motionflow.generation.crawler import enrich_with_full_content, select_urls_for_crawl
from motionflow.utils.exceptions import EnrichmentDegradation

STATE = {"thema": "Hitzeschutz", "details": "Trinkbrunnen", "request_type": "antrag"}
RESULTS = [
    {"title": f"Quelle {i}", "url": f"https://quelle.example/{i}", "snippet": f"Snippet {i}", "purpose": "facts"}
    for i in range(6)
]


def test_ai_selection_is_validated_and_capped():
    ai_port = FakeAIPort({"crawler_agent": text_reply(
        '{"selections": ['
        '{"index": 4, "reason": "Studie"},'
        '{"index": 99, "url": "https://quelle.example/1", "expectedValue": "Zahlen"},'
        '{"index": 4, "reason": "doppelt"},'
        '{"index": 2}, {"index": 3}'
        '], "reasoning": "Fakten"}'
    )})

    decisions, meta = asyncio.run(select_urls_for_crawl(ai_port, RESULTS, STATE, CrawlConfig(max_crawls=3)))

    assert [d["index"] for d in decisions] == [4, 1, 2]
    assert decisions[1]["url"] == "https://quelle.example/1"
    assert decisions[1]["expected_value"] == "Zahlen"
    assert meta["method"] == "ai"
    assert meta["analyzed"] == 6


def test_selection_falls_back_to_first_results():
    ai_port = FakeAIPort({"crawler_agent": text_reply("Ich würde Quelle 3 nehmen.")})
    decisions, meta = asyncio.run(select_urls_for_crawl(ai_port, RESULTS, STATE, CrawlConfig(max_crawls=2)))

    assert [d["url"] for d in decisions] == ["https://quelle.example/0", "https://quelle.example/1"]
    assert meta["method"] == "fallback"

    ai_port = FakeAIPort({"crawler_agent": failed_reply()})
    decisions, meta = asyncio.run(select_urls_for_crawl(ai_port, RESULTS, STATE, CrawlConfig(max_crawls=2)))
    assert meta["method"] == "fallback"
    assert len(decisions) == 2


def test_selection_only_looks_at_top_n():
    ai_port = FakeAIPort({"crawler_agent": text_reply('{"selections": [{"index": 5}]}')})
    decisions, meta = asyncio.run(select_urls_for_crawl(
        ai_port, RESULTS, STATE, CrawlConfig(analyze_top_n=3, max_crawls=2)
    ))
    # index 5 is outside the analyzed window and does not match any candidate
    assert meta["method"] == "fallback"
    assert meta["analyzed"] == 3


def test_no_results_means_no_selection():
    decisions, meta = asyncio.run(select_urls_for_crawl(FakeAIPort(), [], STATE, CrawlConfig()))
    assert decisions == []
    assert meta["method"] == "none"


def test_enrichment_marks_full_and_snippet_results():
    crawl_port = FakeCrawlPort(
        pages={"https://quelle.example/0": "Ganzer Artikel " * 10, "https://quelle.example/2": "   "},
        slow=("https://quelle.example/3",),
    )
    decisions = [{"url": f"https://quelle.example/{i}"} for i in (0, 1, 2, 3)]

    enriched, stats = asyncio.run(enrich_with_full_content(
        crawl_port, RESULTS, decisions, CrawlConfig(timeout_seconds=0.05, max_content_length=40)
    ))

    assert [item["url"] for item in enriched] == [item["url"] for item in RESULTS]
    assert enriched[0]["content_type"] == "full"
    assert len(enriched[0]["content"]) <= 40
    assert [item["content_type"] for item in enriched[1:]] == ["snippet"] * 5
    assert stats["attempted"] == 4
    assert stats["succeeded"] == 1
    assert stats["failed"] == 3
    assert "timeout" in stats["errors"]["https://quelle.example/3"]


def test_extract_urls_keeps_order_and_strips_punctuation():
    urls = extract_urls("Siehe https://a.example/x.", "und (https://b.example) sowie https://a.example/x")
    assert urls == ["https://a.example/x", "https://b.example"]


def test_url_enricher_returns_documents_for_reachable_urls():
    crawl_port = FakeCrawlPort(pages={"https://rat.example/vorlage": "Beschlussvorlage 12/2024"})
    enricher = UrlEnricher(crawl_port, CrawlConfig())

    enriched = asyncio.run(enricher.enrich({
        "thema": "Vorlage https://rat.example/vorlage",
        "details": "vgl. https://tot.example/seite",
    }, "user-1"))

    assert enriched["urls_crawled"] == ["https://rat.example/vorlage"]
    assert enriched["documents"][0]["content"] == "Beschlussvorlage 12/2024"
    assert enriched["knowledge"] == []

    empty = asyncio.run(enricher.enrich({"thema": "ohne Links", "details": ""}, "user-1"))
    assert empty == {"documents": [], "knowledge": [], "urls_crawled": []}


def test_url_enricher_skips_degraded_urls():
    crawl_port = FakeCrawlPort(
        pages={"https://ok.example/a": "Inhalt A", "https://leer.example": ""},
        slow=("https://langsam.example",),
    )
    enricher = UrlEnricher(crawl_port, CrawlConfig(timeout_seconds=0.05))

    enriched = asyncio.run(enricher.enrich({
        "thema": "https://leer.example https://ok.example/a",
        "details": "https://langsam.example",
    }, "user-1"))

    assert enriched["urls_crawled"] == ["https://ok.example/a"]
    assert sorted(crawl_port.crawled) == ["https://langsam.example", "https://leer.example", "https://ok.example/a"]


def test_url_enricher_crawl_raises_degradation():
    enricher = UrlEnricher(FakeCrawlPort(failing=("https://tot.example",)), CrawlConfig())

    with pytest.raises(EnrichmentDegradation) as excinfo:
        asyncio.run(enricher._crawl("https://tot.example"))
    assert excinfo.value.message == "No content: HTTP 404 for https://tot.example"
    assert excinfo.value.details == {"url": "https://tot.example"}
