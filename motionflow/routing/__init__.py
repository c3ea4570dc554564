"""
Intent routing: agent registry, tiered classification, parameter
extraction, single-intent pipeline and multi-intent dispatch.
"""
from .agents import AGENT_REGISTRY, AgentKind, AgentSpec, Route, get_agent, is_known_agent
from .classifier import ClassificationResult, Intent, IntentClassifier, build_intent, classify_intent
from .parameters import build_auto_search_query, extract_parameters
from .dispatcher import dispatch_multi_intent
from .pipeline import TextGenerationPipeline
from .orchestrator import ChatOrchestrator, summarize_results

__all__ = [
    "AGENT_REGISTRY",
    "AgentKind",
    "AgentSpec",
    "Route",
    "get_agent",
    "is_known_agent",
    "ClassificationResult",
    "Intent",
    "IntentClassifier",
    "build_intent",
    "classify_intent",
    "build_auto_search_query",
    "extract_parameters",
    "dispatch_multi_intent",
    "TextGenerationPipeline",
    "ChatOrchestrator",
    "summarize_results",
]
