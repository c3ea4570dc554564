"""
Crawl enrichment: AI-driven selection of search results worth reading in full
and concurrent full-content fetching with per-URL degradation.
"""
import asyncio
from typing import Any, Dict, List, Tuple

from templates import get_template_loader
from motionflow.config import CrawlConfig
from motionflow.generation.ai_calls import ask
from motionflow.generation.state import SearchResult
from motionflow.ports import AIPort, CrawlPort
from motionflow.utils import get_logger
from motionflow.utils.json_utils import parse_json_object

logger = get_logger(__name__)


def _fallback_decisions(candidates: List[SearchResult], max_crawls: int) -> List[Dict[str, Any]]:
    return [
        {"index": index, "url": result["url"], "reason": "fallback selection", "expected_value": ""}
        for index, result in enumerate(candidates[:max_crawls])
    ]


def _validate_selections(raw: Any, candidates: List[SearchResult], max_crawls: int) -> List[Dict[str, Any]]:
    """Keep selections that point at a known candidate by index or URL."""
    by_url = {result["url"]: index for index, result in enumerate(candidates)}
    decisions = []
    taken = set()
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, dict):
            continue
        index = item.get("index")
        if not isinstance(index, int) or not 0 <= index < len(candidates):
            index = by_url.get(item.get("url"))
        if index is None or index in taken:
            continue
        taken.add(index)
        decisions.append({
            "index": index,
            "url": candidates[index]["url"],
            "reason": str(item.get("reason", "")),
            "expected_value": str(item.get("expected_value", item.get("expectedValue", ""))),
        })
        if len(decisions) >= max_crawls:
            break
    return decisions


async def select_urls_for_crawl(
    ai_port: AIPort,
    results: List[SearchResult],
    state: Dict[str, Any],
    config: CrawlConfig,
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """
    Choose at most ``config.max_crawls`` of the top ``config.analyze_top_n`` results.

    Returns:
        (decisions, metadata); decisions carry ``index, url, reason, expected_value``.
        On AI or parse failure the first K results are selected verbatim.
    """
    candidates = results[:config.analyze_top_n]
    if not candidates:
        return [], {"method": "none", "analyzed": 0, "selected": 0}

    prompt = get_template_loader().render_prompt(
        "crawler_selection",
        thema=state["thema"],
        details=state.get("details", ""),
        request_type=state.get("request_type", ""),
        results=candidates,
        max_crawls=config.max_crawls,
    )
    try:
        response = await ask(ai_port, "crawler_agent", prompt, temperature=0.1, max_tokens=1000)
        parsed = parse_json_object(response.get("content") or "")
        if parsed is None:
            raise ValueError("no JSON object in crawler response")
        decisions = _validate_selections(parsed.get("selections"), candidates, config.max_crawls)
        if parsed.get("selections") and not decisions:
            raise ValueError("crawler selections did not match any result")
        metadata = {
            "method": "ai",
            "reasoning": str(parsed.get("reasoning", "")),
            "analyzed": len(candidates),
            "selected": len(decisions),
        }
        return decisions, metadata
    except Exception as e:
        logger.warning(f"[intelligent_crawler] Selection failed, taking first {config.max_crawls}: {e}")
        decisions = _fallback_decisions(candidates, config.max_crawls)
        return decisions, {
            "method": "fallback",
            "analyzed": len(candidates),
            "selected": len(decisions),
            "error": str(e),
        }


async def _fetch(crawl_port: CrawlPort, url: str, config: CrawlConfig) -> Dict[str, Any]:
    try:
        response = await asyncio.wait_for(
            crawl_port.crawl(url, timeout=config.timeout_seconds, max_content_length=config.max_content_length),
            timeout=config.timeout_seconds,
        )
    except asyncio.TimeoutError:
        return {"success": False, "error": f"timeout after {config.timeout_seconds}s"}
    except Exception as e:
        return {"success": False, "error": str(e)}
    return response or {"success": False, "error": "empty crawl response"}


async def enrich_with_full_content(
    crawl_port: CrawlPort,
    results: List[SearchResult],
    decisions: List[Dict[str, Any]],
    config: CrawlConfig,
) -> Tuple[List[SearchResult], Dict[str, Any]]:
    """
    Fetch the selected URLs concurrently and merge the content back.

    Every result keeps its position. Selected results that were fetched get
    ``content_type: "full"``; all others, including failed fetches, stay
    ``"snippet"``.

    Returns:
        (enriched results, stats with ``attempted``, ``succeeded``, ``failed`` and ``errors``)
    """
    urls = [decision["url"] for decision in decisions]
    responses = await asyncio.gather(*(_fetch(crawl_port, url, config) for url in urls))

    fetched: Dict[str, Dict[str, Any]] = {}
    errors: Dict[str, str] = {}
    for url, response in zip(urls, responses):
        content = ((response.get("data") or {}).get("content") or "") if response.get("success") else ""
        if content.strip():
            content = content[:config.max_content_length]
            fetched[url] = {
                "content": content,
                "word_count": (response.get("data") or {}).get("word_count") or len(content.split()),
            }
        else:
            errors[url] = response.get("error") or "empty content"
            logger.warning(f"[content_enricher] Falling back to snippet for {url}: {errors[url]}")

    enriched: List[SearchResult] = []
    for result in results:
        item = dict(result)
        if item.get("url") in fetched:
            item.update(fetched[item["url"]])
            item["content_type"] = "full"
        else:
            item["content_type"] = "snippet"
        enriched.append(item)

    stats = {
        "attempted": len(urls),
        "succeeded": len(fetched),
        "failed": len(errors),
        "errors": errors,
    }
    return enriched, stats
