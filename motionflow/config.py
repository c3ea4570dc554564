"""
Configuration - central configuration module

motionflow reads its tunables once at process start and hands the resulting
``AppConfig`` to every component that needs it.

Configuration sources:
    - templates/settings.yaml: tunable parameters (LLM, search, crawl, questions, ...)
    - environment variables (.env): API keys and external service settings

Environment variables:
    - DEEPSEEK_API_KEY / OPENAI_API_KEY: LLM API key
    - LLM_BASE_URL, LLM_MODEL: override the endpoint and model
    - MOTIONFLOW_LOG_LEVEL: override the log level
    - LANGFUSE_*: see motionflow.integrations.langfuse
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from templates import get_settings
from motionflow.utils.exceptions import ConfigurationError

load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent
TEMPLATE_DIR = PROJECT_ROOT / "templates"


# =============================================================================
# Config sections
# =============================================================================

@dataclass(frozen=True)
class LLMConfig:
    model: str = "deepseek-chat"
    api_key: str = ""
    base_url: str = "https://api.deepseek.com"
    temperature: float = 0.7
    max_tokens: int = 4000
    timeout: float = 120


@dataclass(frozen=True)
class SearchConfig:
    enabled: bool = True
    max_queries: int = 4
    max_results_per_query: int = 5
    total_max_results: int = 15
    language: str = "de-DE"
    party_suffix: str = "Bündnis 90 Die Grünen"


@dataclass(frozen=True)
class CrawlConfig:
    enabled: bool = True
    analyze_top_n: int = 10
    max_crawls: int = 3
    timeout_seconds: float = 5.0
    max_content_length: int = 50000


@dataclass(frozen=True)
class QuestionConfig:
    max_questions: int = 5
    placeholder_emoji: str = "❔"
    default_placeholder: str = "Eigene Antwort..."
    static_lead_types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GenerationConfig:
    max_tokens: int = 4000
    temperature: float = 0.3
    knowledge_source_limit: int = 5


@dataclass(frozen=True)
class ClassifierConfig:
    history_turns: int = 5
    history_chars: int = 100
    default_confidence: float = 0.8
    keyword_confidence: float = 0.9
    context_confidence: float = 0.8
    fallback_confidence: float = 0.3


@dataclass(frozen=True)
class DispatchConfig:
    intent_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class SessionConfig:
    ttl_minutes: int = 60


@dataclass(frozen=True)
class AppConfig:
    """
    Application configuration, constructed once and passed by reference.

    Construction validates every section and raises ``ConfigurationError``
    listing all problems at once.
    """
    title: str = "motionflow"
    log_level: str = "INFO"
    max_steps: int = 50
    llm: LLMConfig = field(default_factory=LLMConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    crawl: CrawlConfig = field(default_factory=CrawlConfig)
    questions: QuestionConfig = field(default_factory=QuestionConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    def __post_init__(self):
        problems = validate_config(self)
        if problems:
            raise ConfigurationError("Invalid configuration", {"problems": problems})


# =============================================================================
# Validation
# =============================================================================

def _check_unit_interval(name: str, value: float, problems: List[str]) -> None:
    if not 0.0 <= value <= 1.0:
        problems.append(f"{name} must be within [0, 1], got {value}")


def _check_positive(name: str, value: float, problems: List[str]) -> None:
    if value <= 0:
        problems.append(f"{name} must be positive, got {value}")


def validate_config(config: AppConfig) -> List[str]:
    """
    Validate an AppConfig without side effects.

    Args:
        config: Configuration to check

    Returns:
        List of human-readable problems; empty when the configuration is valid
    """
    problems: List[str] = []

    if not 0.0 <= config.llm.temperature <= 2.0:
        problems.append(f"llm.temperature must be within [0, 2], got {config.llm.temperature}")
    if not 0.0 <= config.generation.temperature <= 2.0:
        problems.append(
            f"generation.temperature must be within [0, 2], got {config.generation.temperature}"
        )
    _check_positive("llm.max_tokens", config.llm.max_tokens, problems)
    _check_positive("generation.max_tokens", config.generation.max_tokens, problems)
    _check_positive("max_steps", config.max_steps, problems)

    _check_positive("search.max_queries", config.search.max_queries, problems)
    _check_positive("search.max_results_per_query", config.search.max_results_per_query, problems)
    _check_positive("search.total_max_results", config.search.total_max_results, problems)

    _check_positive("crawl.analyze_top_n", config.crawl.analyze_top_n, problems)
    _check_positive("crawl.max_crawls", config.crawl.max_crawls, problems)
    _check_positive("crawl.timeout_seconds", config.crawl.timeout_seconds, problems)
    _check_positive("crawl.max_content_length", config.crawl.max_content_length, problems)
    if config.crawl.max_crawls > config.crawl.analyze_top_n:
        problems.append("crawl.max_crawls must not exceed crawl.analyze_top_n")

    _check_positive("questions.max_questions", config.questions.max_questions, problems)
    if not config.questions.placeholder_emoji:
        problems.append("questions.placeholder_emoji must not be empty")

    _check_positive("classifier.history_turns", config.classifier.history_turns, problems)
    _check_positive("classifier.history_chars", config.classifier.history_chars, problems)
    _check_unit_interval("classifier.default_confidence", config.classifier.default_confidence, problems)
    _check_unit_interval("classifier.keyword_confidence", config.classifier.keyword_confidence, problems)
    _check_unit_interval("classifier.context_confidence", config.classifier.context_confidence, problems)
    _check_unit_interval("classifier.fallback_confidence", config.classifier.fallback_confidence, problems)

    _check_positive("dispatch.intent_timeout_seconds", config.dispatch.intent_timeout_seconds, problems)
    _check_positive("session.ttl_minutes", config.session.ttl_minutes, problems)

    return problems


# =============================================================================
# Loading
# =============================================================================

def _section(settings: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = settings.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Settings section '{name}' must be a mapping")
    return value


def _build(section_cls, values: Dict[str, Any]):
    known = set(section_cls.__dataclass_fields__)
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in {section_cls.__name__}", {"keys": unknown}
        )
    return section_cls(**values)


def load_config(settings: Optional[Dict[str, Any]] = None) -> AppConfig:
    """
    Build the application configuration from settings.yaml and the environment.

    Args:
        settings: Pre-parsed settings mapping; read from templates/settings.yaml if omitted

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If a section is malformed or a value is out of range
    """
    if settings is None:
        settings = get_settings()

    app = _section(settings, "app")
    llm = dict(_section(settings, "llm"))
    llm["api_key"] = os.getenv("DEEPSEEK_API_KEY") or os.getenv("OPENAI_API_KEY", "")
    llm["base_url"] = os.getenv("LLM_BASE_URL", llm.get("base_url", LLMConfig.base_url))
    llm["model"] = os.getenv("LLM_MODEL", llm.get("model", LLMConfig.model))

    questions = dict(_section(settings, "questions"))
    questions["static_lead_types"] = tuple(questions.get("static_lead_types") or ())

    workflow = _section(settings, "workflow")

    return AppConfig(
        title=app.get("title", AppConfig.title),
        log_level=os.getenv("MOTIONFLOW_LOG_LEVEL", app.get("log_level", AppConfig.log_level)),
        max_steps=workflow.get("max_steps", AppConfig.max_steps),
        llm=_build(LLMConfig, llm),
        search=_build(SearchConfig, _section(settings, "search")),
        crawl=_build(CrawlConfig, _section(settings, "crawl")),
        questions=_build(QuestionConfig, questions),
        generation=_build(GenerationConfig, _section(settings, "generation")),
        classifier=_build(ClassifierConfig, _section(settings, "classifier")),
        dispatch=_build(DispatchConfig, _section(settings, "dispatch")),
        session=_build(SessionConfig, _section(settings, "session")),
    )
