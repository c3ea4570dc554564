"""
Multi-Intent Dispatcher

Runs one pipeline per intent concurrently. A failing or timed-out branch is
reported as a failed item and never cancels its siblings.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from motionflow.config import DispatchConfig
from motionflow.routing.classifier import Intent, build_intent
from motionflow.routing.parameters import extract_parameters
from motionflow.utils import get_logger
from motionflow.utils.exceptions import ClassificationError

logger = get_logger(__name__)

Pipeline = Callable[[Intent, Dict[str, Any], Dict[str, Any]], Awaitable[Dict[str, Any]]]


def _as_intent(intent: Union[Intent, Dict[str, Any]]) -> Intent:
    if isinstance(intent, Intent):
        return intent
    agent = intent.get("agent")
    try:
        confidence = float(intent.get("confidence", 0.0))
    except (TypeError, ValueError):
        raise ClassificationError(f"Invalid confidence for {agent}: {intent.get('confidence')!r}")
    try:
        return build_intent(agent, confidence, intent.get("params"))
    except KeyError:
        raise ClassificationError(f"Unknown agent: {agent}")


async def _run_intent(
    index: int,
    intent: Union[Intent, Dict[str, Any]],
    base_context: Dict[str, Any],
    pipeline: Pipeline,
    timeout: float,
) -> Dict[str, Any]:
    if isinstance(intent, Intent):
        item = {"agent": intent.agent, "confidence": intent.confidence, "processing_index": index}
    else:
        item = {"agent": intent.get("agent"), "confidence": intent.get("confidence"), "processing_index": index}
    try:
        intent = _as_intent(intent)
        item.update(agent=intent.agent, confidence=intent.confidence)
        params = extract_parameters(
            base_context.get("original_message", ""), intent.agent, base_context.get("chat_context")
        )
        params.update(intent.params)
        output = await asyncio.wait_for(pipeline(intent, params, base_context), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[dispatch] Intent {index} ({item['agent']}) timed out after {timeout}s")
        return {**item, "success": False, "error": f"Timed out after {timeout}s"}
    except Exception as e:
        logger.warning(f"[dispatch] Intent {index} ({item['agent']}) failed: {e}")
        return {**item, "success": False, "error": str(e)}

    return {
        **item,
        "success": True,
        "content": output.get("content"),
        "metadata": output.get("metadata") or {},
    }


async def dispatch_multi_intent(
    intents: List[Union[Intent, Dict[str, Any]]],
    base_context: Dict[str, Any],
    pipeline: Pipeline,
    config: Optional[DispatchConfig] = None,
) -> Dict[str, Any]:
    """
    Process several intents of one message concurrently.

    Args:
        intents: Classified intents (Intent objects or their dict form)
        base_context: Shared context; ``original_message`` and ``chat_context``
            are used to re-derive parameters for each intent
        pipeline: Async callable ``(intent, params, base_context) -> {content, metadata}``
        config: Per-intent timeout

    Returns:
        ``{success, multi_response, results, metadata}`` where ``success`` is
        true if any intent succeeded and ``results`` keeps the intent order
    """
    config = config or DispatchConfig()
    logger.info(f"[dispatch] Processing {len(intents)} intents in parallel")

    results = await asyncio.gather(*(
        _run_intent(index, intent, base_context, pipeline, config.intent_timeout_seconds)
        for index, intent in enumerate(intents)
    ))
    results = list(results)

    succeeded = sum(1 for result in results if result["success"])
    logger.info(f"[dispatch] {succeeded}/{len(results)} intents succeeded")
    return {
        "success": succeeded > 0,
        "multi_response": True,
        "results": results,
        "metadata": {
            "total_intents": len(results),
            "successful_intents": succeeded,
            "failed_intents": len(results) - succeeded,
            "execution_type": "parallel",
        },
    }
