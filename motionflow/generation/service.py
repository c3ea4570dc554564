"""
Public entry points for interactive generation.

``initiate_interactive_generation`` starts a session and returns either the
questions to ask or, when no clarification is needed, the finished text.
``continue_interactive_generation`` resumes a suspended session with the
user's answers. Both always return a dict with a ``status`` discriminator.
"""
from typing import Any, Dict, Optional

from motionflow.config import AppConfig, SessionConfig, load_config
from motionflow.engine import INTERRUPT_KEY, CheckpointStore, InMemoryCheckpointStore
from motionflow.generation.state import ConversationState
from motionflow.generation.workflow import InteractiveGenerationWorkflow, new_session_id
from motionflow.ports import AIPort, CrawlPort, Enricher, PromptAssembler, SearchPort, SessionStore
from motionflow.sessions import InMemorySessionStore
from motionflow.utils import get_logger
from motionflow.utils.exceptions import MotionFlowError, SessionNotFoundError

logger = get_logger(__name__)

SESSION_NOT_FOUND = "Session not found or expired"

# Process-wide stores shared by every request
default_session_store = InMemorySessionStore(ttl_minutes=SessionConfig.ttl_minutes)
default_checkpoint_store = InMemoryCheckpointStore(max_age_minutes=SessionConfig.ttl_minutes)


def _public_result(state: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "session_id": state.get("session_id"),
        "conversation_state": state.get("conversation_state"),
        "metadata": dict(state.get("metadata") or {}),
    }


def _build_workflow(
    ai_port: AIPort,
    config: Optional[AppConfig],
    search_port: Optional[SearchPort],
    crawl_port: Optional[CrawlPort],
    enricher: Optional[Enricher],
    assembler: Optional[PromptAssembler],
    session_store: Optional[SessionStore],
    checkpoint_store: Optional[CheckpointStore],
) -> InteractiveGenerationWorkflow:
    return InteractiveGenerationWorkflow(
        ai_port=ai_port,
        config=config if config is not None else load_config(),
        search_port=search_port,
        crawl_port=crawl_port,
        enricher=enricher,
        assembler=assembler,
        session_store=session_store if session_store is not None else default_session_store,
        checkpoint_store=checkpoint_store if checkpoint_store is not None else default_checkpoint_store,
    )


async def initiate_interactive_generation(
    user_id: str,
    thema: str,
    details: str,
    request_type: str,
    ai_port: AIPort,
    generator_type: str = "antrag",
    locale: str = "de-DE",
    search_port: Optional[SearchPort] = None,
    crawl_port: Optional[CrawlPort] = None,
    enricher: Optional[Enricher] = None,
    assembler: Optional[PromptAssembler] = None,
    session_store: Optional[SessionStore] = None,
    checkpoint_store: Optional[CheckpointStore] = None,
    config: Optional[AppConfig] = None,
    use_web_search: bool = True,
    session_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Start an interactive generation session.

    Returns:
        ``status: "success"`` with ``questions`` when the session is waiting for
        answers, ``status: "completed"`` with ``final_result`` when no
        clarification was needed, or ``status: "error"`` with ``error``
    """
    session_id = session_id or new_session_id()

    try:
        workflow = _build_workflow(
            ai_port, config, search_port, crawl_port, enricher, assembler, session_store, checkpoint_store
        )
        state = await workflow.start({
            "session_id": session_id,
            "user_id": user_id,
            "thema": thema,
            "details": details,
            "request_type": request_type,
            "generator_type": generator_type,
            "locale": locale,
            "use_web_search": use_web_search,
        })
    except MotionFlowError as e:
        logger.error(f"Interactive generation {session_id} failed: {e}")
        return {"status": "error", "session_id": session_id, "conversation_state": "error", "error": e.message}

    result = _public_result(state)

    if state.get(INTERRUPT_KEY):
        payload = state[INTERRUPT_KEY][0]["value"]
        result.update({
            "status": "success",
            "conversation_state": payload["conversation_state"],
            "questions": payload["questions"],
            "question_round": payload["question_round"],
        })
        return result

    if state.get("conversation_state") == ConversationState.COMPLETED.value:
        result.update({"status": "completed", "final_result": state.get("final_result")})
        return result

    result.update({
        "status": "error",
        "conversation_state": ConversationState.ERROR.value,
        "error": state.get("error") or "Workflow ended in an unexpected state",
    })
    return result


async def continue_interactive_generation(
    user_id: str,
    session_id: str,
    answers: Dict[str, Any],
    ai_port: AIPort,
    search_port: Optional[SearchPort] = None,
    crawl_port: Optional[CrawlPort] = None,
    enricher: Optional[Enricher] = None,
    assembler: Optional[PromptAssembler] = None,
    session_store: Optional[SessionStore] = None,
    checkpoint_store: Optional[CheckpointStore] = None,
    config: Optional[AppConfig] = None,
) -> Dict[str, Any]:
    """
    Resume a session waiting for answers.

    Returns:
        ``status: "completed"`` with ``final_result``, ``status: "in_progress"``
        when the run suspended again, or ``status: "error"`` with ``error``
    """
    store = session_store if session_store is not None else default_session_store
    try:
        session = store.get(user_id, session_id)
        if session is None:
            raise SessionNotFoundError(SESSION_NOT_FOUND, {"session_id": session_id})

        workflow = _build_workflow(
            ai_port, config, search_port, crawl_port, enricher, assembler, store, checkpoint_store
        )
        if not workflow.graph.has_checkpoint(session_id):
            raise SessionNotFoundError(SESSION_NOT_FOUND, {"session_id": session_id})

        logger.info(f"Continuing session {session_id} with {len(answers or {})} answers")
        state = await workflow.resume(session_id, dict(answers or {}), session.get("question_round") or 1)
    except MotionFlowError as e:
        logger.error(f"Continue for session {session_id} failed: {e}")
        return {"status": "error", "session_id": session_id, "conversation_state": "error", "error": e.message}

    result = _public_result(state)
    if state.get(INTERRUPT_KEY):
        payload = state[INTERRUPT_KEY][0]["value"]
        result.update({"status": "in_progress", "questions": payload["questions"]})
    elif state.get("conversation_state") == ConversationState.COMPLETED.value:
        result.update({"status": "completed", "final_result": state.get("final_result")})
    else:
        result.update({
            "status": "error",
            "conversation_state": ConversationState.ERROR.value,
            "error": state.get("error") or "Workflow ended in an unexpected state",
        })
    return result


def get_interactive_session(
    user_id: str,
    session_id: str,
    session_store: Optional[SessionStore] = None,
) -> Optional[Dict[str, Any]]:
    """Stored snapshot of a session, or None."""
    store = session_store if session_store is not None else default_session_store
    return store.get(user_id, session_id)
