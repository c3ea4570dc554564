"""
Intent Classifier

Maps a chat message (plus conversation context) to one or more intents.
Tiers are tried in order and the first that yields something wins:

    1. ai       model call returning a JSON array of {agent, confidence, params}
    2. keyword  first registry entry with a keyword contained in the message
    3. context  transformation cue + previous agent → follow-up agent
    4. fallback single low-confidence "universal" intent

Only the AI tier can produce more than one intent.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from langsmith import traceable

from templates import get_template_loader
from motionflow.config import ClassifierConfig
from motionflow.ports import AIPort
from motionflow.routing.agents import (
    AGENT_REGISTRY,
    SHAREPIC_AGENTS,
    AgentKind,
    get_agent,
    is_known_agent,
)
from motionflow.utils import get_logger
from motionflow.utils.exceptions import ClassificationError
from motionflow.utils.json_utils import parse_json_array

logger = get_logger(__name__)

TRANSFORMATION_CUES = ("daraus", "davon", "das", "mache", "erstelle", "wandle um", "konvertiere")

# follow-up agent -> secondary keywords, checked in order
CONTEXT_FOLLOW_UPS = (
    (AgentKind.ZITAT, ("zitat", "quote", "zitier", "statement", "o-ton")),
    (AgentKind.INFO, ("info", "kernpunkte", "stichpunkte", "überblick")),
    (AgentKind.HEADLINE, ("headline", "schlagzeile", "aufmacher", "zuspitzung", "zugespitzt")),
    (AgentKind.LEICHTE_SPRACHE, ("leichte sprache", "einfach", "leichter", "verständlicher")),
)

QUESTION_STARTERS = (
    "was", "wer", "wie", "wo", "wann", "warum", "wieso", "weshalb", "welche", "welcher",
    "welches", "kannst", "können", "gibt es", "ist", "sind",
)


@dataclass
class Intent:
    agent: str
    route: str
    params: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent": self.agent,
            "route": self.route,
            "params": dict(self.params),
            "confidence": self.confidence,
        }


@dataclass
class ClassificationResult:
    """
    Outcome of classification.

    Attributes:
        intents: Non-empty ordered intents
        method: Tier that produced the intents (ai, keyword, context, fallback)
        confidence: Highest intent confidence
    """
    intents: List[Intent]
    method: str
    confidence: float = 0.0

    @property
    def is_multi_intent(self) -> bool:
        return len(self.intents) > 1

    @property
    def primary(self) -> Intent:
        return self.intents[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_multi_intent": self.is_multi_intent,
            "intents": [intent.to_dict() for intent in self.intents],
            "method": self.method,
            "confidence": self.confidence,
        }


def build_intent(agent: str, confidence: float, params: Optional[Dict[str, Any]] = None) -> Intent:
    """Intent for a registered agent with its registry params merged under ``params``."""
    spec = get_agent(agent)
    return Intent(
        agent=spec.kind.value,
        route=spec.route.value,
        params={**spec.params, **(params or {})},
        confidence=confidence,
    )


def normalize_message(message: str) -> str:
    return " ".join((message or "").lower().split())


def is_question_message(message: str) -> bool:
    """True for messages that ask for information rather than a generated text."""
    text = normalize_message(message)
    if not text:
        return False
    if text.endswith("?"):
        return True
    return any(text.startswith(starter + " ") for starter in QUESTION_STARTERS)


class IntentClassifier:
    """
    Tiered intent classifier.

    Attributes:
        config: Classifier tunables (history window, confidences)
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    @traceable(name="classify_intent")
    async def classify(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        ai_port: Optional[AIPort] = None,
    ) -> ClassificationResult:
        """
        Classify ``message``.

        Args:
            message: Raw user message
            context: Optional ``message_history``, ``last_agent``,
                ``has_image_attachment`` and ``single_intent_only``
            ai_port: Model access; the AI tier is skipped without it

        Returns:
            ClassificationResult with at least one intent
        """
        context = context or {}

        if ai_port is not None:
            try:
                intents = await self._classify_with_ai(message, context, ai_port)
                return self._result(intents, "ai")
            except ClassificationError as e:
                logger.info(f"[IntentClassifier] AI tier produced nothing, trying keywords: {e}")
            except Exception as e:
                logger.warning(f"[IntentClassifier] AI tier failed, trying keywords: {e}")

        normalized = normalize_message(message)

        intent = self._classify_by_keywords(normalized, context)
        if intent:
            return self._result([intent], "keyword")

        intent = self._classify_by_context(normalized, context)
        if intent:
            return self._result([intent], "context")

        logger.info("[IntentClassifier] No tier matched, using universal fallback")
        return self._result(
            [build_intent(AgentKind.UNIVERSAL.value, self.config.fallback_confidence)], "fallback"
        )

    # =========================================================================
    # Tiers
    # =========================================================================

    async def _classify_with_ai(
        self,
        message: str,
        context: Dict[str, Any],
        ai_port: AIPort,
    ) -> List[Intent]:
        has_image = bool(context.get("has_image_attachment"))
        prompt = get_template_loader().render_prompt(
            "intent_classification",
            message=message,
            agents=[{"name": spec.kind.value, "description": spec.description} for spec in AGENT_REGISTRY],
            history=self._recent_history(context.get("message_history") or []),
            has_image=has_image,
        )
        response = await ai_port.request({
            "type": "intent_classification",
            "system_prompt": "Du bist ein präziser Klassifikator für Nutzeranfragen.",
            "messages": [{"role": "user", "content": prompt}],
            "options": {"temperature": 0.1, "max_tokens": 500},
        })
        if not response or not response.get("success"):
            raise ClassificationError("AI classification request failed", {"error": (response or {}).get("error")})

        raw = parse_json_array(response.get("content") or "")
        if raw is None:
            raise ClassificationError("No JSON array in classification response")

        intents: List[Intent] = []
        seen = set()
        for item in raw:
            if not isinstance(item, dict):
                continue
            agent = item.get("agent")
            if not is_known_agent(agent):
                logger.info(f"[IntentClassifier] Dropping unknown agent '{agent}'")
                continue
            if agent == AgentKind.ZITAT.value and has_image:
                agent = AgentKind.ZITAT_WITH_IMAGE.value
            if agent in seen:
                continue
            seen.add(agent)
            params = item.get("params") if isinstance(item.get("params"), dict) else {}
            intents.append(build_intent(agent, self._confidence(item.get("confidence")), params))

        intents = self._keep_best_sharepic(intents)
        if context.get("single_intent_only") and len(intents) > 1:
            intents = [max(intents, key=lambda intent: intent.confidence)]
        if not intents:
            raise ClassificationError("Classification response contained no known agents")
        return intents

    def _classify_by_keywords(self, normalized: str, context: Dict[str, Any]) -> Optional[Intent]:
        for spec in AGENT_REGISTRY:
            if any(keyword in normalized for keyword in spec.keywords):
                agent = spec.kind.value
                if agent == AgentKind.ZITAT.value and context.get("has_image_attachment"):
                    agent = AgentKind.ZITAT_WITH_IMAGE.value
                return build_intent(agent, self.config.keyword_confidence)
        return None

    def _classify_by_context(self, normalized: str, context: Dict[str, Any]) -> Optional[Intent]:
        if not context.get("last_agent"):
            return None
        words = set(normalized.replace(",", " ").replace(".", " ").split())
        has_cue = any((cue in normalized) if " " in cue else (cue in words) for cue in TRANSFORMATION_CUES)
        if not has_cue:
            return None

        for kind, keywords in CONTEXT_FOLLOW_UPS:
            if any(keyword in normalized for keyword in keywords):
                agent = kind.value
                if kind is AgentKind.ZITAT and context.get("has_image_attachment"):
                    agent = AgentKind.ZITAT_WITH_IMAGE.value
                logger.info(f"[IntentClassifier] Follow-up on '{context['last_agent']}' → {agent}")
                return build_intent(agent, self.config.context_confidence)
        return None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _recent_history(self, history: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        recent = []
        limit = self.config.history_chars
        for turn in history[-self.config.history_turns:]:
            content = str(turn.get("content", ""))
            if len(content) > limit:
                content = content[:limit] + "..."
            recent.append({"role": str(turn.get("role", "user")), "content": content})
        return recent

    def _confidence(self, value: Any) -> float:
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            return self.config.default_confidence
        return min(1.0, max(0.0, confidence))

    @staticmethod
    def _keep_best_sharepic(intents: List[Intent]) -> List[Intent]:
        sharepics = [intent for intent in intents if intent.agent in SHAREPIC_AGENTS]
        if len(sharepics) <= 1:
            return intents
        best = max(sharepics, key=lambda intent: intent.confidence)
        return [intent for intent in intents if intent.agent not in SHAREPIC_AGENTS or intent is best]

    @staticmethod
    def _result(intents: List[Intent], method: str) -> ClassificationResult:
        return ClassificationResult(
            intents=intents,
            method=method,
            confidence=max(intent.confidence for intent in intents),
        )


async def classify_intent(
    message: str,
    context: Optional[Dict[str, Any]] = None,
    ai_port: Optional[AIPort] = None,
    config: Optional[ClassifierConfig] = None,
) -> ClassificationResult:
    """Module-level shortcut for ``IntentClassifier(config).classify(...)``."""
    return await IntentClassifier(config).classify(message, context, ai_port)
