"""
Web search stage: purposed query planning, concurrent execution and
de-duplicated round-robin interleaving of the results.
"""
import asyncio
import re
from typing import Any, Dict, List, Tuple

from templates import get_template_loader
from motionflow.config import SearchConfig
from motionflow.generation.ai_calls import ask, tool_definition, tool_input
from motionflow.generation.state import SearchResult
from motionflow.ports import AIPort, SearchPort
from motionflow.utils import get_logger

logger = get_logger(__name__)

SEARCH_PURPOSES = {
    "facts": "Zahlen, Daten und Fakten zum Thema",
    "party_position": "Positionen und Beschlüsse von Bündnis 90/Die Grünen",
    "legal": "Rechtliche Grundlagen und Zuständigkeiten",
    "news": "Aktuelle Berichterstattung",
    "examples": "Beispiele aus anderen Kommunen oder Ländern",
    "general": "Allgemeiner Überblick",
}

QUERY_TOOL = "plan_search_queries"


def _query_tool() -> Dict[str, Any]:
    return tool_definition(
        QUERY_TOOL,
        "Plant Suchanfragen mit jeweils einem Zweck.",
        {
            "queries": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "query": {"type": "string"},
                        "purpose": {"type": "string", "enum": list(SEARCH_PURPOSES)},
                    },
                    "required": ["query", "purpose"],
                },
            }
        },
        ["queries"],
    )


def fallback_query(thema: str, details: str, party_suffix: str) -> Dict[str, str]:
    """One synthesized query from topic and details."""
    query = " ".join(part for part in (thema, details, party_suffix) if part)
    return {"query": re.sub(r"\s+", " ", query).strip(), "purpose": "general"}


async def generate_search_queries(ai_port: AIPort, state: Dict[str, Any], config: SearchConfig) -> Tuple[List[Dict[str, str]], Dict[str, Any]]:
    """
    Ask the model for purposed search queries.

    Returns:
        (queries, metadata); on any failure a single fallback query with purpose
        "general" and ``metadata["search_query_error"]``
    """
    prompt = get_template_loader().render_prompt(
        "search_queries",
        thema=state["thema"],
        details=state.get("details", ""),
        request_type=state.get("request_type", ""),
        max_queries=config.max_queries,
        purposes=SEARCH_PURPOSES,
        tool_name=QUERY_TOOL,
    )
    try:
        response = await ask(ai_port, "search_planning", prompt, tools=[_query_tool()], temperature=0.2)
        planned = (tool_input(response, QUERY_TOOL) or {}).get("queries") or []
        queries = []
        seen = set()
        for item in planned:
            query = str((item or {}).get("query", "")).strip()
            if not query or query.lower() in seen:
                continue
            seen.add(query.lower())
            purpose = item.get("purpose")
            queries.append({"query": query, "purpose": purpose if purpose in SEARCH_PURPOSES else "general"})
        if not queries:
            raise ValueError("model returned no usable queries")
        return queries[:config.max_queries], {"search_query_method": "ai"}
    except Exception as e:
        logger.warning(f"[web_search] Query planning failed, using fallback query: {e}")
        fallback = fallback_query(state["thema"], state.get("details", ""), config.party_suffix)
        return [fallback], {"search_query_method": "fallback", "search_query_error": str(e)}


async def _run_one(search_port: SearchPort, query: Dict[str, str], config: SearchConfig) -> Dict[str, Any]:
    try:
        response = await search_port.search(
            query["query"],
            max_results=config.max_results_per_query,
            language=config.language,
        )
    except Exception as e:
        logger.warning(f"[web_search] Query '{query['query'][:50]}' raised: {e}")
        return {"purpose": query["purpose"], "results": [], "error": str(e)}

    if not response.get("success"):
        logger.warning(f"[web_search] Query '{query['query'][:50]}' failed: {response.get('error')}")
        return {"purpose": query["purpose"], "results": [], "error": response.get("error") or "search failed"}
    return {"purpose": query["purpose"], "results": response.get("results") or []}


async def run_search_queries(search_port: SearchPort, queries: List[Dict[str, str]], config: SearchConfig) -> List[Dict[str, Any]]:
    """Run all queries concurrently; a failing query contributes an empty group."""
    return list(await asyncio.gather(*(_run_one(search_port, q, config) for q in queries)))


def _url_key(url: str) -> str:
    return (url or "").strip().rstrip("/").lower()


def dedupe_and_interleave(groups: List[Dict[str, Any]], total_max: int) -> List[SearchResult]:
    """
    Merge result groups into one list.

    Results are bucketed by purpose, every URL is kept only the first time it
    is seen, and the buckets are drained round-robin so no purpose dominates.

    Args:
        groups: ``[{"purpose": str, "results": [{title, url, snippet}]}]``
        total_max: Maximum number of results returned

    Returns:
        Interleaved results, each tagged with its purpose
    """
    buckets: Dict[str, List[SearchResult]] = {}
    seen = set()
    for group in groups:
        purpose = group.get("purpose") or "general"
        for result in group.get("results") or []:
            key = _url_key(result.get("url", ""))
            if not key or key in seen:
                continue
            seen.add(key)
            buckets.setdefault(purpose, []).append({
                "title": result.get("title", ""),
                "url": result.get("url", "").strip(),
                "snippet": result.get("snippet", ""),
                "purpose": purpose,
            })

    interleaved: List[SearchResult] = []
    queues = list(buckets.values())
    position = 0
    while len(interleaved) < total_max and any(position < len(q) for q in queues):
        for queue in queues:
            if position < len(queue) and len(interleaved) < total_max:
                interleaved.append(queue[position])
        position += 1
    return interleaved


def format_search_context(results: List[SearchResult], limit: int = 10) -> str:
    """Compact numbered listing of results for prompts."""
    lines = []
    for number, result in enumerate(results[:limit], start=1):
        body = result.get("content") if result.get("content_type") == "full" else result.get("snippet")
        lines.append(f"[{number}] {result.get('title', '')} ({result.get('url', '')})\n{(body or '')[:1500]}")
    return "\n\n".join(lines)
