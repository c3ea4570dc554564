"""
Single-intent text generation pipeline.

A small workflow on the graph engine:

    prepare_request → [auto_search] → generate → END

``auto_search`` only runs when a search port is configured and the caller
asked for automatic search. Without an explicit choice it runs for questions
that only matched the low-confidence universal fallback.
"""
from typing import Any, Dict, Optional

from motionflow.config import AppConfig
from motionflow.engine import END, START, MergePolicy, SHALLOW_MERGE, WorkflowGraph
from motionflow.generation.generators import build_system_role, generation_options, load_generator_config
from motionflow.ports import AIPort, PromptAssembler, SearchPort
from motionflow.prompting import TemplatePromptAssembler
from motionflow.routing.agents import AgentKind, Route
from motionflow.routing.classifier import Intent, is_question_message
from motionflow.routing.parameters import build_auto_search_query
from motionflow.utils import get_logger
from motionflow.utils.exceptions import GenerationError, MotionFlowError

logger = get_logger(__name__)

GENERATOR_FOR_ROUTE = {
    Route.ANTRAG_SIMPLE.value: "antrag",
}

# params that are already part of the request block
_REQUEST_KEYS = {"thema", "details", "original_message", "request_type", "type"}

PARAM_LABELS = {
    "platforms": "Plattformen",
    "zitatgeber": "Zitatgeber*in",
    "name": "Name",
    "original_text": "Originaltext",
    "text_only": "Nur Text",
}

PIPELINE_MERGE_POLICY = MergePolicy({"metadata": SHALLOW_MERGE})


def _describe_param(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


class TextGenerationPipeline:
    """
    Generates the text for one classified intent.

    Attributes:
        ai_port: Model access
        config: Application configuration
        search_port: Optional web search for automatic research
        assembler: Prompt assembly collaborator
    """

    def __init__(
        self,
        ai_port: AIPort,
        config: AppConfig,
        search_port: Optional[SearchPort] = None,
        assembler: Optional[PromptAssembler] = None,
    ):
        self.ai_port = ai_port
        self.config = config
        self.search_port = search_port
        self.assembler = assembler or TemplatePromptAssembler()
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = WorkflowGraph(PIPELINE_MERGE_POLICY)
        workflow.add_node("prepare_request", self._prepare_request_node)
        workflow.add_node("auto_search", self._auto_search_node)
        workflow.add_node("generate", self._generate_node)

        workflow.add_edge(START, "prepare_request")
        workflow.add_conditional_edges(
            "prepare_request",
            self._route_after_prepare,
            {"search": "auto_search", "generate": "generate", "end": END},
        )
        workflow.add_edge("auto_search", "generate")
        workflow.add_edge("generate", END)
        return workflow.compile(on_node_error=self._on_node_error, max_steps=self.config.max_steps)

    def _route_after_prepare(self, state: Dict[str, Any]) -> str:
        if state.get("error"):
            return "end"
        if self.search_port and state.get("use_automatic_search"):
            return "search"
        return "generate"

    def _wants_search(self, intent: Intent, base_context: Dict[str, Any]) -> bool:
        """Explicit caller choice, else search for open questions the classifier could not place."""
        requested = base_context.get("use_automatic_search")
        if requested is not None:
            return bool(requested)
        return (
            intent.agent == AgentKind.UNIVERSAL.value
            and intent.confidence <= self.config.classifier.fallback_confidence
            and is_question_message(base_context.get("original_message", ""))
        )

    @staticmethod
    def _on_node_error(node: str, error: Exception, state: Dict[str, Any]) -> Dict[str, Any]:
        message = error.message if isinstance(error, MotionFlowError) else str(error)
        return {"error": message, "metadata": {"error_node": node}}

    # =========================================================================
    # Nodes
    # =========================================================================

    def _prepare_request_node(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Pick the generator config and build the system role."""
        params = state["params"]
        generator_type = GENERATOR_FOR_ROUTE.get(state["route"], state["route"])
        generator = load_generator_config(generator_type)
        extension_key = params.get("request_type") or params.get("type") or state["agent"]

        extras = [
            f"- {PARAM_LABELS.get(key, key)}: {_describe_param(value)}"
            for key, value in params.items()
            if key not in _REQUEST_KEYS and value not in (None, "", [])
        ]
        return {
            "generator": generator,
            "system_role": build_system_role(generator, extension_key),
            "clarifications": "\n".join(extras),
            "metadata": {"generator_type": generator_type},
        }

    async def _auto_search_node(self, state: Dict[str, Any]) -> Dict[str, Any]:
        """Run one web search for the request; failures leave the knowledge empty."""
        query = build_auto_search_query(state["params"].get("original_message", ""), state["params"])
        if not query:
            return {"knowledge": []}
        try:
            response = await self.search_port.search(
                query,
                max_results=self.config.search.max_results_per_query,
                language=self.config.search.language,
            )
        except Exception as e:
            logger.warning(f"[auto_search] '{query[:50]}' failed: {e}")
            return {"knowledge": [], "metadata": {"auto_search_error": str(e)}}
        if not response.get("success"):
            return {"knowledge": [], "metadata": {"auto_search_error": response.get("error")}}

        knowledge = [
            f"{item.get('title', '')}: {item.get('snippet', '')}"
            for item in (response.get("results") or [])[:self.config.generation.knowledge_source_limit]
        ]
        return {"knowledge": knowledge, "metadata": {"search_query": query, "search_results": len(knowledge)}}

    async def _generate_node(self, state: Dict[str, Any]) -> Dict[str, Any]:
        params = state["params"]
        assembled = self.assembler.assemble({
            "system_role": state["system_role"],
            "request": {
                "thema": params.get("thema", ""),
                "details": params.get("details", ""),
                "request_type": state["agent"],
                "user_clarifications": state.get("clarifications", ""),
            },
            "documents": state.get("documents") or [],
            "knowledge": state.get("knowledge") or [],
        })
        options = generation_options(
            state["generator"], self.config.generation.max_tokens, self.config.generation.temperature
        )
        response = await self.ai_port.request({
            "type": state["agent"],
            "system_prompt": assembled["system"],
            "messages": assembled["messages"],
            "options": options,
        })
        if not response or not response.get("success"):
            raise GenerationError(f"Generation failed: {(response or {}).get('error') or 'unknown error'}")
        content = (response.get("content") or "").strip()
        if not content:
            raise GenerationError("Generation returned no content")
        return {"content": content, "metadata": {"content_length": len(content)}}

    # =========================================================================
    # Entry point
    # =========================================================================

    async def __call__(self, intent: Intent, params: Dict[str, Any], base_context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Generate text for ``intent``.

        Returns:
            ``{"content": str, "metadata": dict}``

        Raises:
            GenerationError: If generation failed
        """
        thread_id = f"{base_context.get('request_id', 'chat')}:{intent.agent}"
        state = await self.graph.ainvoke({
            "agent": intent.agent,
            "route": intent.route,
            "params": params,
            "documents": base_context.get("documents") or [],
            "use_automatic_search": self._wants_search(intent, base_context),
            "metadata": {},
        }, thread_id=thread_id)

        if state.get("error"):
            raise GenerationError(state["error"], {"agent": intent.agent})
        return {"content": state["content"], "metadata": state.get("metadata") or {}}
