"""
Interactive Generation Workflow

Node graph that drives one generation session from topic to final text,
pausing once to ask the user clarifying questions.

Flow:
    initiate → web_search → intelligent_crawler → content_enricher → generate_questions
        ├─ questions → await_answers (suspend) → analyze_answers → summarize_answers ─┐
        └─ none ───────────────────────────────────────────────────────────────────────┤
                                                document_enrichment → final_generation ┘

Every node catches its own errors. Stages with a sensible fallback (search,
crawl, questions, summary, enrichment) degrade and record the problem in
``metadata``; validation and final generation failures end the run with
``conversation_state == "error"``. Any transition out of an errored state
goes straight to END.
"""
import random
import string
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from templates import get_template_loader
from motionflow.config import AppConfig
from motionflow.engine import (
    END,
    START,
    CheckpointStore,
    CompiledWorkflow,
    ResumeCommand,
    WorkflowGraph,
    suspend,
)
from motionflow.generation.ai_calls import ask, tool_definition, tool_input
from motionflow.generation.answers import (
    extract_structured_answers,
    flatten_answers,
    skip_sentinel,
    summarize_answers,
)
from motionflow.generation.crawler import enrich_with_full_content, select_urls_for_crawl
from motionflow.generation.generators import build_system_role, generation_options, load_generator_config
from motionflow.generation.questions import (
    get_static_questions,
    merge_question_sources,
    normalize_question,
)
from motionflow.generation.search import (
    dedupe_and_interleave,
    format_search_context,
    generate_search_queries,
    run_search_queries,
)
from motionflow.generation.state import (
    INTERACTIVE_MERGE_POLICY,
    SESSION_FIELDS,
    ConversationState,
    InteractiveState,
)
from motionflow.ports import AIPort, CrawlPort, Enricher, PromptAssembler, SearchPort, SessionStore
from motionflow.prompting import TemplatePromptAssembler
from motionflow.utils import get_logger
from motionflow.utils.exceptions import GenerationError, MotionFlowError, ValidationError

logger = get_logger(__name__)

REQUIRED_FIELDS = ("thema", "details", "request_type", "user_id")
QUESTION_TOOL = "clarification_questions"

_BASE36 = string.digits + string.ascii_lowercase


def new_session_id() -> str:
    """``exp_<epoch ms>_<9 base36 chars>``; unique with high probability only."""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"exp_{int(time.time() * 1000)}_{suffix}"


def _now() -> str:
    return datetime.now().isoformat()


def _question_tool() -> Dict[str, Any]:
    return tool_definition(
        QUESTION_TOOL,
        "Entscheidet, ob Rückfragen nötig sind, und liefert sie.",
        {
            "needs_clarification": {"type": "boolean"},
            "confidence_reason": {"type": "string"},
            "questions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "text": {"type": "string"},
                        "type": {"type": "string"},
                        "options": {"type": "array", "items": {"type": "string"}},
                        "option_emojis": {"type": "array", "items": {"type": "string"}},
                        "allow_custom": {"type": "boolean"},
                        "allow_multi_select": {"type": "boolean"},
                        "placeholder": {"type": "string"},
                    },
                    "required": ["id", "text", "options"],
                },
            },
        },
        ["needs_clarification", "confidence_reason"],
    )


class InteractiveGenerationWorkflow:
    """
    Interactive generation workflow bound to one set of collaborators.

    Attributes:
        ai_port: Model access for planning, questions, summary and generation
        search_port: Web search (optional; search is skipped without it)
        crawl_port: Full-content fetching (optional; crawl stages are skipped without it)
        enricher: Context enrichment collaborator (optional)
        assembler: Prompt assembly collaborator
        session_store: Where session snapshots are written after each node
        graph: Compiled workflow
    """

    def __init__(
        self,
        ai_port: AIPort,
        config: AppConfig,
        search_port: Optional[SearchPort] = None,
        crawl_port: Optional[CrawlPort] = None,
        enricher: Optional[Enricher] = None,
        assembler: Optional[PromptAssembler] = None,
        session_store: Optional[SessionStore] = None,
        checkpoint_store: Optional[CheckpointStore] = None,
    ):
        self.ai_port = ai_port
        self.config = config
        self.search_port = search_port
        self.crawl_port = crawl_port
        self.enricher = enricher
        self.assembler = assembler or TemplatePromptAssembler()
        self.session_store = session_store
        self.graph = self._build_graph(checkpoint_store)

    # =========================================================================
    # Graph
    # =========================================================================

    def _build_graph(self, checkpoint_store: Optional[CheckpointStore]) -> CompiledWorkflow:
        workflow = WorkflowGraph(INTERACTIVE_MERGE_POLICY)

        workflow.add_node("initiate", self._initiate_node)
        workflow.add_node("web_search", self._web_search_node)
        workflow.add_node("intelligent_crawler", self._intelligent_crawler_node)
        workflow.add_node("content_enricher", self._content_enricher_node)
        workflow.add_node("generate_questions", self._generate_questions_node)
        workflow.add_node("await_answers", self._await_answers_node)
        workflow.add_node("analyze_answers", self._analyze_answers_node)
        workflow.add_node("summarize_answers", self._summarize_answers_node)
        workflow.add_node("document_enrichment", self._document_enrichment_node)
        workflow.add_node("final_generation", self._final_generation_node)

        workflow.add_edge(START, "initiate")
        self._link(workflow, "initiate", "web_search")
        self._link(workflow, "web_search", "intelligent_crawler")
        self._link(workflow, "intelligent_crawler", "content_enricher")
        self._link(workflow, "content_enricher", "generate_questions")
        workflow.add_conditional_edges(
            "generate_questions",
            self._route_after_questions,
            {"ask": "await_answers", "generate": "document_enrichment", "error": END},
        )
        self._link(workflow, "await_answers", "analyze_answers")
        self._link(workflow, "analyze_answers", "summarize_answers")
        self._link(workflow, "summarize_answers", "document_enrichment")
        self._link(workflow, "document_enrichment", "final_generation")
        workflow.add_edge("final_generation", END)

        return workflow.compile(
            checkpoint_store=checkpoint_store,
            on_node_error=self._on_node_error,
            after_node=self._persist,
            max_steps=self.config.max_steps,
        )

    @staticmethod
    def _link(workflow: WorkflowGraph, source: str, target: str) -> None:
        """Edge that leaves the graph instead when the session is in error."""
        workflow.add_conditional_edges(
            source,
            lambda state: END if state.get("conversation_state") == ConversationState.ERROR.value else target,
        )

    def _route_after_questions(self, state: InteractiveState) -> str:
        if state.get("conversation_state") == ConversationState.ERROR.value:
            return "error"
        if state.get("needs_clarification") and state.get("questions"):
            logger.info(f"Routing to await_answers with {len(state['questions'])} questions")
            return "ask"
        logger.info("No clarification needed, routing to document_enrichment")
        return "generate"

    # =========================================================================
    # Error handling and persistence
    # =========================================================================

    @staticmethod
    def _error_update(node: str, error: Exception) -> Dict[str, Any]:
        message = error.message if isinstance(error, MotionFlowError) else str(error)
        return {
            "conversation_state": ConversationState.ERROR.value,
            "error": message,
            "metadata": {
                "error_node": node,
                "error_type": type(error).__name__,
                "failed_at": _now(),
            },
        }

    def _on_node_error(self, node: str, error: Exception, state: Dict[str, Any]) -> Dict[str, Any]:
        return self._error_update(node, error)

    def _persist(self, node: str, state: Dict[str, Any]) -> None:
        """Write the session snapshot after every transition."""
        if self.session_store is None:
            return
        user_id, session_id = state.get("user_id"), state.get("session_id")
        if not user_id or not session_id:
            return

        snapshot = {key: state[key] for key in SESSION_FIELDS if key in state}
        snapshot["last_node"] = node
        try:
            if node == "initiate":
                self.session_store.set(user_id, snapshot)
            else:
                self.session_store.update(user_id, session_id, snapshot)
        except Exception as e:
            logger.error(f"[{node}] Failed to persist session {session_id}: {e}")

    # =========================================================================
    # Nodes
    # =========================================================================

    async def _initiate_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Validate the request and set up the session."""
        missing = [name for name in REQUIRED_FIELDS if not str(state.get(name) or "").strip()]
        if missing:
            logger.warning(f"[initiate] Missing required fields: {missing}")
            return self._error_update(
                "initiate",
                ValidationError(f"Missing required fields: {', '.join(missing)}", {"missing": missing}),
            )

        session_id = state.get("session_id") or new_session_id()
        logger.info(f"[initiate] Session {session_id} for '{state['thema'][:50]}' ({state['request_type']})")
        return {
            "session_id": session_id,
            "generator_type": state.get("generator_type") or "antrag",
            "locale": state.get("locale") or self.config.search.language,
            "conversation_state": ConversationState.INITIATED.value,
            "question_round": 0,
            "questions": [],
            "answers": {},
            "search_results": [],
            "enriched_context": {},
            "final_result": None,
            "error": None,
            "metadata": {"started_at": _now(), "started_at_ms": int(time.time() * 1000)},
        }

    async def _web_search_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Plan purposed queries, run them concurrently and interleave the results."""
        if not (state.get("use_web_search", True) and self.search_port and self.config.search.enabled):
            return {"search_results": [], "metadata": {"web_search": "skipped"}}

        try:
            queries, query_meta = await generate_search_queries(self.ai_port, state, self.config.search)
            logger.info(f"[web_search] Running {len(queries)} queries")
            groups = await run_search_queries(self.search_port, queries, self.config.search)
            results = dedupe_and_interleave(groups, self.config.search.total_max_results)
            failed = [group["error"] for group in groups if group.get("error")]

            logger.info(f"[web_search] {len(results)} unique results from {len(groups)} queries")
            metadata = {**query_meta, "web_search": "done", "search_result_count": len(results)}
            if failed:
                metadata["search_errors"] = failed
            return {"search_queries": queries, "search_results": results, "metadata": metadata}
        except Exception as e:
            logger.error(f"[web_search] Search failed, continuing without results: {e}")
            return {"search_results": [], "metadata": {"web_search": "failed", "web_search_error": str(e)}}

    async def _intelligent_crawler_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Pick the search results worth reading in full."""
        results = state.get("search_results") or []
        if not (self.config.crawl.enabled and self.crawl_port and results):
            return {"crawl_decisions": [], "crawl_metadata": {"method": "skipped"}}

        decisions, metadata = await select_urls_for_crawl(self.ai_port, results, state, self.config.crawl)
        logger.info(f"[intelligent_crawler] Selected {len(decisions)} of {metadata.get('analyzed', 0)} results")
        return {"crawl_decisions": decisions, "crawl_metadata": metadata}

    async def _content_enricher_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Fetch full content for the selected URLs."""
        decisions = state.get("crawl_decisions") or []
        if not decisions or not self.crawl_port:
            return {}

        try:
            enriched, stats = await enrich_with_full_content(
                self.crawl_port, state.get("search_results") or [], decisions, self.config.crawl
            )
        except Exception as e:
            logger.error(f"[content_enricher] Enrichment failed, keeping snippets: {e}")
            return {"crawl_metadata": {"enrichment_error": str(e)}}

        logger.info(f"[content_enricher] {stats['succeeded']}/{stats['attempted']} pages fetched")
        return {"search_results": enriched, "crawl_metadata": stats}

    async def _generate_questions_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Decide whether clarification is needed and produce the questions."""
        qcfg = self.config.questions
        prompt = get_template_loader().render_prompt(
            "question_generation",
            thema=state["thema"],
            details=state.get("details", ""),
            request_type=state["request_type"],
            search_context=format_search_context(state.get("search_results") or [], limit=8),
            max_questions=qcfg.max_questions,
            tool_name=QUESTION_TOOL,
        )

        try:
            response = await ask(self.ai_port, "question_generation", prompt, tools=[_question_tool()], temperature=0.4)
            data = tool_input(response, QUESTION_TOOL)
            if data is None:
                raise ValueError("model returned no question decision")
        except Exception as e:
            logger.warning(f"[generate_questions] Failed, proceeding without questions: {e}")
            return {
                "needs_clarification": False,
                "questions": [],
                "conversation_state": ConversationState.GENERATING.value,
                "metadata": {"skipped_questions": True, "question_generation_error": str(e)},
            }

        needs = bool(data.get("needs_clarification", data.get("needsClarification", True)))
        reason = str(data.get("confidence_reason", data.get("confidenceReason", "")))

        questions: List[Dict[str, Any]] = []
        if needs:
            ai_questions = [
                normalize_question(raw, index, "ai_generated", qcfg.placeholder_emoji, qcfg.default_placeholder)
                for index, raw in enumerate(data.get("questions") or [])
                if isinstance(raw, dict)
            ]
            static_questions = []
            if state["request_type"] in qcfg.static_lead_types:
                static_questions = get_static_questions(
                    state["request_type"], 1, qcfg.placeholder_emoji, qcfg.default_placeholder
                )
            questions = merge_question_sources(
                static_questions, ai_questions, len(static_questions) + qcfg.max_questions
            )

        if needs and questions:
            logger.info(f"[generate_questions] {len(questions)} questions generated")
            return {
                "needs_clarification": True,
                "confidence_reason": reason,
                "questions": questions,
                "conversation_state": ConversationState.QUESTIONS_GENERATED.value,
                "metadata": {"confidence_reason": reason},
            }

        logger.info(f"[generate_questions] No clarification needed: {reason[:80]}")
        return {
            "needs_clarification": False,
            "confidence_reason": reason,
            "questions": [],
            "conversation_state": ConversationState.GENERATING.value,
            "metadata": {"skipped_questions": True, "confidence_reason": reason},
        }

    async def _await_answers_node(self, state: InteractiveState):
        """Suspend with the question set; the run continues once answers arrive."""
        round_no = (state.get("question_round") or 0) + 1
        payload = {
            "session_id": state["session_id"],
            "conversation_state": ConversationState.QUESTIONS_ASKED.value,
            "question_round": round_no,
            "questions": state.get("questions") or [],
        }
        logger.info(f"[await_answers] Session {state['session_id']} waiting for round {round_no} answers")
        return suspend(
            payload,
            conversation_state=ConversationState.QUESTIONS_ASKED.value,
            question_round=round_no,
            metadata={"questions_asked_at": _now()},
        )

    async def _analyze_answers_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Record that answers arrived."""
        label = f"round{state.get('question_round') or 1}"
        round_answers = (state.get("answers") or {}).get(label)
        update: Dict[str, Any] = {}
        if round_answers is None and isinstance(state.get("resume_value"), dict):
            round_answers = state["resume_value"]
            update["answers"] = {label: round_answers}
        round_answers = round_answers or {}

        sentinel = skip_sentinel(state.get("locale"))
        answered = [qid for qid, value in round_answers.items() if value not in (None, "", [], sentinel)]
        logger.info(f"[analyze_answers] {len(answered)}/{len(round_answers)} answers in {label}")

        update.update({
            "conversation_state": ConversationState.ANSWERS_RECEIVED.value,
            "metadata": {"answers_received_at": _now(), "answer_count": len(answered)},
        })
        return update

    async def _summarize_answers_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Turn the question/answer transcript into one prose summary."""
        label = f"round{state.get('question_round') or 1}"
        try:
            summary = await summarize_answers(
                self.ai_port,
                state.get("questions") or [],
                (state.get("answers") or {}).get(label) or {},
                state["thema"],
                state["request_type"],
                state.get("locale"),
            )
        except Exception as e:
            logger.warning(f"[summarize_answers] Summary failed, continuing without it: {e}")
            return {
                "answer_summary": "",
                "conversation_state": ConversationState.GENERATING.value,
                "metadata": {"summary_error": str(e)},
            }

        return {"answer_summary": summary, "conversation_state": ConversationState.GENERATING.value}

    async def _document_enrichment_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Flatten answers, extract clarifications and run the enrichment collaborator."""
        flat = flatten_answers(state.get("answers") or {})
        structured = extract_structured_answers(flat, state.get("questions") or [], state.get("locale"))
        update: Dict[str, Any] = {
            "structured_answers": structured,
            "conversation_state": ConversationState.GENERATING.value,
        }
        if self.enricher is None:
            return update

        request = {
            "thema": state["thema"],
            "details": state.get("details", ""),
            "request_type": state["request_type"],
            "user_clarifications": structured,
        }
        try:
            enriched = await self.enricher.enrich(request, state["user_id"])
            update["enriched_context"] = dict(enriched or {})
            logger.info(f"[document_enrichment] {len(update['enriched_context'].get('documents') or [])} documents")
        except Exception as e:
            logger.warning(f"[document_enrichment] Enrichment failed, continuing with empty context: {e}")
            update["metadata"] = {"enrichment_error": str(e)}
        return update

    async def _final_generation_node(self, state: InteractiveState) -> Dict[str, Any]:
        """Assemble the prompt and generate the final text."""
        try:
            generator = load_generator_config(state.get("generator_type") or "antrag")
            enriched = state.get("enriched_context") or {}

            knowledge = list(enriched.get("knowledge") or [])
            limit = self.config.generation.knowledge_source_limit
            for result in (state.get("search_results") or [])[:limit]:
                body = result.get("content") if result.get("content_type") == "full" else result.get("snippet")
                knowledge.append(f"{result.get('title', '')}: {(body or '')[:3000]}")

            clarifications = state.get("answer_summary") or ""
            if not clarifications and state.get("structured_answers"):
                clarifications = "\n".join(
                    f"- {key}: {value}" for key, value in state["structured_answers"].items()
                    if isinstance(value, str)
                )

            assembled = self.assembler.assemble({
                "system_role": build_system_role(generator, state["request_type"]),
                "request": {
                    "thema": state["thema"],
                    "details": state.get("details", ""),
                    "request_type": state["request_type"],
                    "user_clarifications": clarifications,
                    "locale": state.get("locale"),
                },
                "documents": enriched.get("documents") or [],
                "knowledge": knowledge,
                "locale": state.get("locale"),
            })

            options = generation_options(
                generator, self.config.generation.max_tokens, self.config.generation.temperature
            )
            if assembled.get("tools"):
                options["tools"] = assembled["tools"]

            response = await self.ai_port.request({
                "type": state["request_type"],
                "system_prompt": assembled["system"],
                "messages": assembled["messages"],
                "options": options,
            })
            if not response or not response.get("success"):
                raise GenerationError(f"Generation failed: {(response or {}).get('error') or 'unknown error'}")
            content = (response.get("content") or "").strip()
            if not content:
                raise GenerationError("Generation returned no content")
        except Exception as e:
            logger.error(f"[final_generation] {e}")
            return self._error_update("final_generation", e)

        started = (state.get("metadata") or {}).get("started_at_ms")
        metadata = {"completed_at": _now(), "content_length": len(content)}
        if started:
            metadata["duration_ms"] = int(time.time() * 1000) - started
        logger.info(f"[final_generation] Generated {len(content)} chars for {state['session_id']}")
        return {
            "final_result": content,
            "conversation_state": ConversationState.COMPLETED.value,
            "metadata": metadata,
        }

    # =========================================================================
    # Entry points
    # =========================================================================

    async def start(self, initial_state: Dict[str, Any]) -> Dict[str, Any]:
        """Run from the entry point; the thread id is the (possibly new) session id."""
        state = dict(initial_state)
        state.setdefault("session_id", new_session_id())
        return await self.graph.ainvoke(state, thread_id=state["session_id"])

    async def resume(self, session_id: str, answers: Dict[str, Any], question_round: int = 1) -> Dict[str, Any]:
        """Resume a suspended session with the user's answers for ``question_round``."""
        command = ResumeCommand(
            resume=answers,
            update={
                "answers": {f"round{question_round}": answers},
                "conversation_state": ConversationState.ANSWERS_RECEIVED.value,
            },
        )
        return await self.graph.ainvoke(command, thread_id=session_id)
