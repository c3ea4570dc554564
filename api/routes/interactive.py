"""
Interactive generation routes.
Start a session, answer its questions and inspect its stored state.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.dependencies import (
    get_ai_port,
    get_checkpoint_store,
    get_config,
    get_crawl_port,
    get_enricher,
    get_search_port,
    get_session_store,
    get_user_id,
)
from motionflow.config import AppConfig
from motionflow.engine import CheckpointStore
from motionflow.generation import (
    continue_interactive_generation,
    get_interactive_session,
    initiate_interactive_generation,
)
from motionflow.generation.service import SESSION_NOT_FOUND
from motionflow.ports import AIPort, CrawlPort, Enricher, SearchPort, SessionStore
from motionflow.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


class InitiateRequest(BaseModel):
    """Start of an interactive session."""
    thema: str
    details: str = ""
    request_type: str = "antrag"
    generator_type: str = "antrag"
    locale: str = "de-DE"
    use_web_search: bool = True


class ContinueRequest(BaseModel):
    """Answers for the current question round."""
    session_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)


class QuestionModel(BaseModel):
    id: str
    text: str
    type: str = "text"
    options: List[str] = Field(default_factory=list)
    option_emojis: List[str] = Field(default_factory=list)
    allow_custom: bool = True
    allow_multi_select: bool = False
    placeholder: Optional[str] = None
    provenance: Optional[str] = None


class InteractiveResponse(BaseModel):
    status: str
    session_id: Optional[str] = None
    conversation_state: Optional[str] = None
    questions: Optional[List[QuestionModel]] = None
    question_round: Optional[int] = None
    final_result: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


def _respond(result: Dict[str, Any]):
    """Successful results pass through; errors map to an HTTP status."""
    if result.get("status") != "error":
        return InteractiveResponse(**result)
    if result.get("error") == SESSION_NOT_FOUND:
        status_code = 404
    elif (result.get("metadata") or {}).get("error_type") == "ValidationError":
        status_code = 422
    else:
        status_code = 500
    body = InteractiveResponse(**result).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@router.post("/initiate", response_model=InteractiveResponse)
async def initiate(
    request: InitiateRequest,
    user_id: str = Depends(get_user_id),
    config: AppConfig = Depends(get_config),
    ai_port: AIPort = Depends(get_ai_port),
    search_port: Optional[SearchPort] = Depends(get_search_port),
    crawl_port: Optional[CrawlPort] = Depends(get_crawl_port),
    enricher: Optional[Enricher] = Depends(get_enricher),
    session_store: SessionStore = Depends(get_session_store),
    checkpoint_store: CheckpointStore = Depends(get_checkpoint_store),
):
    """Start an interactive session; returns questions or the finished text."""
    result = await initiate_interactive_generation(
        user_id=user_id,
        thema=request.thema,
        details=request.details,
        request_type=request.request_type,
        ai_port=ai_port,
        generator_type=request.generator_type,
        locale=request.locale,
        search_port=search_port,
        crawl_port=crawl_port,
        enricher=enricher,
        session_store=session_store,
        checkpoint_store=checkpoint_store,
        config=config,
        use_web_search=request.use_web_search,
    )
    return _respond(result)


@router.post("/continue", response_model=InteractiveResponse)
async def continue_session(
    request: ContinueRequest,
    user_id: str = Depends(get_user_id),
    config: AppConfig = Depends(get_config),
    ai_port: AIPort = Depends(get_ai_port),
    search_port: Optional[SearchPort] = Depends(get_search_port),
    crawl_port: Optional[CrawlPort] = Depends(get_crawl_port),
    enricher: Optional[Enricher] = Depends(get_enricher),
    session_store: SessionStore = Depends(get_session_store),
    checkpoint_store: CheckpointStore = Depends(get_checkpoint_store),
):
    """Answer the pending questions of a session."""
    result = await continue_interactive_generation(
        user_id=user_id,
        session_id=request.session_id,
        answers=request.answers,
        ai_port=ai_port,
        search_port=search_port,
        crawl_port=crawl_port,
        enricher=enricher,
        session_store=session_store,
        checkpoint_store=checkpoint_store,
        config=config,
    )
    return _respond(result)


@router.get("/session/{session_id}")
async def get_session(
    session_id: str,
    user_id: str = Depends(get_user_id),
    session_store: SessionStore = Depends(get_session_store),
):
    """Stored snapshot of a session owned by the caller."""
    session = get_interactive_session(user_id, session_id, session_store=session_store)
    if session is None:
        raise HTTPException(status_code=404, detail=SESSION_NOT_FOUND)
    return session
