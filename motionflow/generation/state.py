"""
State shapes for the interactive generation workflow.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict

from motionflow.engine import MergePolicy, SHALLOW_MERGE


class ConversationState(str, Enum):
    """Lifecycle of an interactive generation session."""
    INITIATED = "initiated"
    QUESTIONS_GENERATED = "questions_generated"
    QUESTIONS_ASKED = "questions_asked"
    ANSWERS_RECEIVED = "answers_received"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class Question(TypedDict, total=False):
    """
    A clarifying question offered to the user.

    Attributes:
        id: Stable identifier within a round
        text: Question text
        type: Category tag (scope, audience, budget, ...)
        options: Predefined answers
        option_emojis: One emoji per option, same length as options
        allow_custom: Free-text answer permitted
        allow_multi_select: Several options may be picked
        placeholder: Hint for the free-text answer
        provenance: "static" or "ai_generated"
    """
    id: str
    text: str
    type: str
    options: List[str]
    option_emojis: List[str]
    allow_custom: bool
    allow_multi_select: bool
    placeholder: str
    provenance: str


class SearchResult(TypedDict, total=False):
    title: str
    url: str
    snippet: str
    purpose: str
    content: str
    content_type: str
    word_count: int


class InteractiveState(TypedDict, total=False):
    """
    Shared state of one interactive generation run.

    Input fields:
        session_id, user_id, thema, details, request_type, generator_type,
        locale, use_web_search

    Pipeline fields:
        conversation_state: Current ConversationState value
        question_round: 0 before any question was asked
        questions: Question set of the current round
        needs_clarification / confidence_reason: Outcome of the clarification decision
        answers: Round label ("round1", ...) to question id to answer
        resume_value: Payload injected by the last resume
        search_queries / search_results: Web search outputs
        crawl_decisions / crawl_metadata: URL selection for full-content fetch
        answer_summary: Prose summary of the answers
        structured_answers: Clarification fields extracted from the answers
        enriched_context: Output of the enrichment collaborator
        final_result: Generated text
        error: Human-readable error message
        metadata: Append-only diagnostics
    """
    session_id: str
    user_id: str
    thema: str
    details: str
    request_type: str
    generator_type: str
    locale: str
    use_web_search: bool
    conversation_state: str
    question_round: int
    questions: List[Question]
    needs_clarification: bool
    confidence_reason: str
    answers: Dict[str, Dict[str, Any]]
    resume_value: Any
    search_queries: List[Dict[str, str]]
    search_results: List[SearchResult]
    crawl_decisions: List[Dict[str, Any]]
    crawl_metadata: Dict[str, Any]
    answer_summary: str
    structured_answers: Dict[str, Any]
    enriched_context: Dict[str, Any]
    final_result: Optional[str]
    error: Optional[str]
    metadata: Dict[str, Any]


INTERACTIVE_MERGE_POLICY = MergePolicy({
    "answers": SHALLOW_MERGE,
    "metadata": SHALLOW_MERGE,
    "enriched_context": SHALLOW_MERGE,
    "crawl_metadata": SHALLOW_MERGE,
})

# fields copied into the session store after every transition
SESSION_FIELDS = (
    "session_id",
    "user_id",
    "thema",
    "details",
    "request_type",
    "generator_type",
    "locale",
    "conversation_state",
    "question_round",
    "questions",
    "answers",
    "search_results",
    "enriched_context",
    "answer_summary",
    "final_result",
    "error",
    "metadata",
)
