"""
Chat routes.
Classify a message, or classify and generate in one call.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import get_orchestrator, get_user_id
from motionflow.routing import ChatOrchestrator
from motionflow.routing.orchestrator import summarize_results
from motionflow.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


class ChatMessage(BaseModel):
    """Chat history entry."""
    role: str  # "user" or "assistant"
    content: str


class ChatRequest(BaseModel):
    """Chat request model."""
    message: str
    message_history: List[ChatMessage] = Field(default_factory=list)
    last_agent: Optional[str] = None
    has_image_attachment: bool = False
    single_intent_only: bool = False
    use_automatic_search: Optional[bool] = None
    chat_context: Dict[str, Any] = Field(default_factory=dict)
    documents: List[Dict[str, Any]] = Field(default_factory=list)

    def to_context(self, user_id: str) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "message_history": [message.model_dump() for message in self.message_history],
            "last_agent": self.last_agent,
            "has_image_attachment": self.has_image_attachment,
            "single_intent_only": self.single_intent_only,
            "use_automatic_search": self.use_automatic_search,
            "chat_context": dict(self.chat_context),
            "documents": list(self.documents),
        }


class IntentModel(BaseModel):
    agent: str
    route: str
    params: Dict[str, Any] = Field(default_factory=dict)
    confidence: float


class ClassifyResponse(BaseModel):
    """Intent classification response."""
    is_multi_intent: bool
    intents: List[IntentModel]
    method: str
    confidence: float


@router.post("/classify", response_model=ClassifyResponse)
async def classify_message(
    request: ChatRequest,
    user_id: str = Depends(get_user_id),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """Classify a chat message without generating text."""
    result = await orchestrator.classify(request.message, request.to_context(user_id))
    return ClassifyResponse(**result.to_dict())


@router.post("/send")
async def send_message(
    request: ChatRequest,
    user_id: str = Depends(get_user_id),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """
    Classify a message and generate a response for every intent.
    Multi-intent responses also carry the combined text under ``content``.
    """
    try:
        result = await orchestrator.process(request.message, request.to_context(user_id))
    except Exception as e:
        logger.error(f"Chat processing failed for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error processing message: {e}")

    if result.get("multi_response"):
        result["content"] = summarize_results(result["results"])
    return result
