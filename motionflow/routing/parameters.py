"""
Heuristic parameter extraction for single-intent pipelines.

Every call builds a fresh dict from the original message, so concurrently
processed intents never share extraction state.
"""
import re
from typing import Any, Dict, List, Optional

from motionflow.routing.agents import AgentKind, Route, get_agent, is_known_agent

DEFAULT_THEMA = "Politisches Thema"

THEME_PATTERNS = (
    re.compile(r"(?:zum thema|über|bezüglich|betreffend)\s+([^.!?]+)", re.IGNORECASE),
    re.compile(r"thema:?\s*([^.!?]+)", re.IGNORECASE),
    re.compile(
        r"\b(klimaschutz|umwelt|verkehr|energie|bildung|soziales|wirtschaft|digitalisierung|europa|demokratie)\b",
        re.IGNORECASE,
    ),
)

PLATFORM_KEYWORDS = {
    "facebook": ("facebook", "fb "),
    "instagram": ("instagram", "insta"),
    "twitter": ("twitter", "x.com", "tweet"),
    "linkedin": ("linkedin",),
    "tiktok": ("tiktok",),
    "pressemitteilung": ("presse", "pressemitteilung", "medien"),
}

AUTHOR_PATTERNS = (
    re.compile(r'"[^"]+"\s*-\s*([a-zäöüß][a-zäöüß\s-]+)', re.IGNORECASE),
    re.compile(
        r"(?:von|autor|name:)\s*([a-zäöüß][a-zäöüß\s-]+?)"
        r"(?:\s+(?:und|soll|zu|zum|zur|über|für|mit|bei|an|auf|in|das|die|der|ist|war|hat|wird)\b|[.!?,]|$)",
        re.IGNORECASE,
    ),
)

COMMAND_PATTERNS = (
    re.compile(r"\b(?:erstelle|mache|mach|schreibe|generiere)\s+(?:mir|uns|einen|eine|ein|das|die|der)\b", re.IGNORECASE),
    re.compile(r"\b(?:bitte|danke|könntest du|kannst du)\b", re.IGNORECASE),
    re.compile(r"\b(?:posts?|beitrag|pressemitteilung|antrag|zitat|sharepic|kleine anfrage|große anfrage)\b", re.IGNORECASE),
    re.compile(r"\b(?:für|über|zum thema|bezüglich)\b", re.IGNORECASE),
)

GENERIC_THEMES = {DEFAULT_THEMA.lower(), "grüne politik"}
MIN_QUERY_LENGTH = 10
MAX_QUERY_LENGTH = 200


def extract_theme(message: str, chat_context: Optional[Dict[str, Any]] = None) -> Optional[str]:
    if chat_context and chat_context.get("topic"):
        return str(chat_context["topic"])
    for pattern in THEME_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1).strip()
    words = message.split()
    if len(words) > 3:
        return " ".join(words[:5])
    return None


def extract_details(message: str, theme: Optional[str]) -> str:
    """Longer remainder of the message around the theme, or the message itself."""
    if not theme:
        return message
    index = message.lower().find(theme.lower())
    if index == -1:
        return message
    before = message[:index].strip()
    after = message[index + len(theme):].strip()
    details = after if len(after) > len(before) else before
    return re.sub(r"^[,.:;]\s*", "", details) or message


def extract_platforms(message: str) -> List[str]:
    lowered = message.lower() + " "
    return [
        platform for platform, keywords in PLATFORM_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    ]


def extract_quote_author(message: str) -> Optional[str]:
    for pattern in AUTHOR_PATTERNS:
        match = pattern.search(message)
        if match:
            name = match.group(1).strip()
            if 2 <= len(name) <= 50:
                return name
    return None


def extract_parameters(message: str, agent: str, chat_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Pipeline parameters for ``agent`` derived from ``message``.

    Args:
        message: Original user message
        agent: Registered agent key
        chat_context: Optional ``topic``, ``last_generated_text`` and ``user_name``

    Returns:
        New dict with at least ``thema``, ``details`` and ``original_message``
    """
    chat_context = chat_context or {}
    spec = get_agent(agent) if is_known_agent(agent) else get_agent(AgentKind.UNIVERSAL.value)
    theme = extract_theme(message, chat_context)

    params: Dict[str, Any] = {
        "original_message": message,
        "thema": theme or DEFAULT_THEMA,
        "details": extract_details(message, theme),
    }
    params.update(spec.params)

    if spec.route is Route.SOCIAL:
        platforms = list(spec.params.get("platforms") or []) or extract_platforms(message)
        params["platforms"] = platforms or ["facebook"]
        author = extract_quote_author(message)
        if author:
            params["zitatgeber"] = author
    elif spec.route is Route.ANTRAG_SIMPLE:
        params["request_type"] = spec.params.get("request_type", "default")
    elif spec.route is Route.GRUENE_JUGEND:
        params["platforms"] = extract_platforms(message) or ["instagram", "twitter"]
    elif spec.route is Route.LEICHTE_SPRACHE:
        lowered = message.lower()
        refers_back = any(word in lowered for word in ("das", "daraus", "übersetze"))
        if chat_context.get("last_generated_text") and refers_back:
            params["original_text"] = chat_context["last_generated_text"]
        else:
            params["original_text"] = message
    elif spec.route is Route.SHAREPIC and spec.kind in (AgentKind.ZITAT, AgentKind.ZITAT_WITH_IMAGE):
        params["name"] = extract_quote_author(message) or chat_context.get("user_name") or "Unbekannt"

    return params


def build_auto_search_query(message: str, params: Dict[str, Any]) -> str:
    """
    Search query for automatic web search.

    Prefers a specific extracted theme, then focused details, then the
    message with command phrases removed.
    """
    thema = (params.get("thema") or "").strip()
    if thema and thema.lower() not in GENERIC_THEMES:
        return thema

    details = (params.get("details") or "").strip()
    if MIN_QUERY_LENGTH < len(details) < MAX_QUERY_LENGTH and details != message:
        return details

    cleaned = message
    for pattern in COMMAND_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    cleaned = " ".join(cleaned.split())
    return cleaned[:MAX_QUERY_LENGTH]
