"""
Interactive multi-turn generation: workflow nodes, question handling,
search/crawl enrichment and the public initiate/continue entry points.
"""
from .state import ConversationState, InteractiveState, Question, SearchResult, INTERACTIVE_MERGE_POLICY
from .workflow import InteractiveGenerationWorkflow, new_session_id
from .service import (
    initiate_interactive_generation,
    continue_interactive_generation,
    get_interactive_session,
)

__all__ = [
    "ConversationState",
    "InteractiveState",
    "Question",
    "SearchResult",
    "INTERACTIVE_MERGE_POLICY",
    "InteractiveGenerationWorkflow",
    "new_session_id",
    "initiate_interactive_generation",
    "continue_interactive_generation",
    "get_interactive_session",
]
