"""
Chat Orchestrator

LangGraph workflow that turns one chat message into generated text:

    START → classify → [route] → single_intent | multi_intent → END

``classify`` runs the tiered intent classifier. A single intent is sent
through the text generation pipeline directly; several intents are fanned
out through the multi-intent dispatcher.
"""
import uuid
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph
from langsmith import traceable

from motionflow.config import AppConfig
from motionflow.ports import AIPort, PromptAssembler, SearchPort
from motionflow.routing.classifier import ClassificationResult, IntentClassifier
from motionflow.routing.dispatcher import dispatch_multi_intent
from motionflow.routing.parameters import extract_parameters
from motionflow.routing.pipeline import TextGenerationPipeline
from motionflow.utils import get_logger
from motionflow.utils.exceptions import MotionFlowError

logger = get_logger(__name__)


class ChatState(TypedDict, total=False):
    """
    State passed between the orchestrator nodes.

    Fields:
        message: User message
        context: Request context (chat_context, message_history, last_agent,
            has_image_attachment, documents, use_automatic_search, ...)
        request_id: Identifier of this chat turn
        classification: ClassificationResult of the classify node
        response: Final response dict
    """
    message: str
    context: Dict[str, Any]
    request_id: str
    classification: ClassificationResult
    response: Dict[str, Any]


class ChatOrchestrator:
    """
    Orchestrates classification and generation for chat messages.

    Attributes:
        ai_port: Model access used for classification and generation
        config: Application configuration
        classifier: Tiered intent classifier
        pipeline: Single-intent text generation pipeline
        graph: Compiled LangGraph state graph
    """

    def __init__(
        self,
        ai_port: AIPort,
        config: AppConfig,
        search_port: Optional[SearchPort] = None,
        assembler: Optional[PromptAssembler] = None,
        pipeline: Optional[TextGenerationPipeline] = None,
    ):
        self.ai_port = ai_port
        self.config = config
        self.classifier = IntentClassifier(config.classifier)
        self.pipeline = pipeline or TextGenerationPipeline(ai_port, config, search_port, assembler)
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(ChatState)

        workflow.add_node("classify", self._classify_node)
        workflow.add_node("single_intent", self._single_intent_node)
        workflow.add_node("multi_intent", self._multi_intent_node)

        workflow.add_edge(START, "classify")
        workflow.add_conditional_edges(
            "classify",
            self._route_intents,
            {"single": "single_intent", "multi": "multi_intent"},
        )
        workflow.add_edge("single_intent", END)
        workflow.add_edge("multi_intent", END)

        return workflow.compile()

    # =========================================================================
    # Nodes
    # =========================================================================

    async def _classify_node(self, state: ChatState) -> Dict[str, Any]:
        context = state.get("context") or {}
        classification = await self.classifier.classify(state["message"], context, self.ai_port)
        logger.info(
            f"[classify] method={classification.method} "
            f"intents={[intent.agent for intent in classification.intents]}"
        )
        return {"classification": classification}

    @staticmethod
    def _route_intents(state: ChatState) -> str:
        return "multi" if state["classification"].is_multi_intent else "single"

    async def _single_intent_node(self, state: ChatState) -> Dict[str, Any]:
        intent = state["classification"].primary
        base_context = self._base_context(state)
        params = extract_parameters(state["message"], intent.agent, base_context.get("chat_context"))
        params.update(intent.params)

        try:
            output = await self.pipeline(intent, params, base_context)
        except MotionFlowError as e:
            logger.error(f"[single_intent] {intent.agent} failed: {e}")
            return {"response": {
                "success": False,
                "agent": intent.agent,
                "error": e.message,
                "confidence": intent.confidence,
            }}

        return {"response": {
            "success": True,
            "agent": intent.agent,
            "content": output["content"],
            "confidence": intent.confidence,
            "metadata": output.get("metadata") or {},
        }}

    async def _multi_intent_node(self, state: ChatState) -> Dict[str, Any]:
        response = await dispatch_multi_intent(
            state["classification"].intents,
            self._base_context(state),
            self.pipeline,
            self.config.dispatch,
        )
        return {"response": response}

    @staticmethod
    def _base_context(state: ChatState) -> Dict[str, Any]:
        context = state.get("context") or {}
        return {
            **context,
            "original_message": state["message"],
            "request_id": state["request_id"],
        }

    # =========================================================================
    # Public API
    # =========================================================================

    @traceable(name="chat_orchestrator")
    async def process(self, message: str, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Classify ``message`` and generate the response for every intent.

        Args:
            message: User message
            context: Optional request context

        Returns:
            Response dict (single result or multi-intent aggregate) with the
            classification under ``intent_result``
        """
        request_id = uuid.uuid4().hex[:12]
        final_state = await self.graph.ainvoke({
            "message": message,
            "context": dict(context or {}),
            "request_id": request_id,
        })

        response = dict(final_state["response"])
        response["intent_result"] = final_state["classification"].to_dict()
        response["request_id"] = request_id
        return response

    async def classify(self, message: str, context: Optional[Dict[str, Any]] = None) -> ClassificationResult:
        """Classification only, without generation."""
        return await self.classifier.classify(message, context or {}, self.ai_port)


def summarize_results(results: List[Dict[str, Any]]) -> str:
    """Plain-text rendering of multi-intent results, one section per agent."""
    sections = []
    for item in results:
        if item.get("success"):
            sections.append(f"## {item['agent']}\n\n{item.get('content', '')}")
        else:
            sections.append(f"## {item['agent']}\n\nFehler: {item.get('error', 'unbekannt')}")
    return "\n\n---\n\n".join(sections)
