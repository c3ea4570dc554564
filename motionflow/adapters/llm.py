"""
AI port over LangChain's ChatOpenAI.

Works with any OpenAI-compatible endpoint (DeepSeek by default). Tool
definitions are bound with ``bind_tools``; tool calls come back as
``{"name", "input"}``.
"""
from typing import Any, Dict, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from motionflow.config import LLMConfig
from motionflow.integrations.langfuse import build_run_config
from motionflow.ports import AIPort
from motionflow.utils import get_logger

logger = get_logger(__name__)


def to_openai_tool(tool: Dict[str, Any]) -> Dict[str, Any]:
    """``{name, description, input_schema}`` → OpenAI function tool."""
    return {
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool.get("description", ""),
            "parameters": tool.get("input_schema") or {"type": "object", "properties": {}},
        },
    }


def to_langchain_messages(system_prompt: str, messages: List[Dict[str, Any]]) -> List[BaseMessage]:
    converted: List[BaseMessage] = []
    if system_prompt:
        converted.append(SystemMessage(content=system_prompt))
    for message in messages or []:
        content = message.get("content", "")
        if message.get("role") == "assistant":
            converted.append(AIMessage(content=content))
        elif message.get("role") == "system":
            converted.append(SystemMessage(content=content))
        else:
            converted.append(HumanMessage(content=content))
    return converted


class LangChainAIPort(AIPort):
    """
    AI port backed by a LangChain chat model.

    Attributes:
        config: LLM settings
        llm: Chat model (ChatOpenAI unless one is injected)
    """

    def __init__(self, config: LLMConfig, llm: Optional[BaseChatModel] = None):
        self.config = config
        self.llm = llm or ChatOpenAI(
            model=config.model,
            api_key=config.api_key or None,
            base_url=config.base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
        )

    async def request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        request_type = request.get("type", "unknown")
        options = request.get("options") or {}
        messages = to_langchain_messages(request.get("system_prompt", ""), request.get("messages") or [])

        call_kwargs = {
            "max_tokens": options.get("max_tokens") or self.config.max_tokens,
            "temperature": options.get("temperature", self.config.temperature),
        }
        tools = options.get("tools") or []
        if tools:
            runnable = self.llm.bind_tools([to_openai_tool(tool) for tool in tools], **call_kwargs)
        else:
            runnable = self.llm.bind(**call_kwargs)

        run_config = build_run_config(
            session_id=options.get("session_id"),
            user_id=options.get("user_id"),
            request_type=request_type,
        )

        try:
            result = await runnable.ainvoke(messages, config=run_config or None)
        except Exception as e:
            logger.error(f"[LangChainAIPort] {request_type} request failed: {e}")
            return {"success": False, "content": "", "error": str(e)}

        content = result.content if isinstance(result.content, str) else str(result.content)
        tool_calls = [
            {"name": call.get("name"), "input": call.get("args") or {}}
            for call in getattr(result, "tool_calls", None) or []
        ]
        return {"success": True, "content": content, "tool_calls": tool_calls}
