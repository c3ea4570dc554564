"""
Helpers shared by the nodes that talk to the AI port.
"""
from typing import Any, Dict, List, Optional

from motionflow.ports import AIPort
from motionflow.utils.json_utils import coerce_tool_input, parse_json_object


def tool_definition(name: str, description: str, properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    """JSON-schema tool definition in the shape the AI port expects."""
    return {
        "name": name,
        "description": description,
        "input_schema": {
            "type": "object",
            "properties": properties,
            "required": required,
        },
    }


def tool_input(response: Dict[str, Any], tool_name: str) -> Optional[Dict[str, Any]]:
    """
    Structured arguments of the named tool call, if the model made one.

    Falls back to a JSON object embedded in the plain content for models that
    answer in text instead of calling the tool.
    """
    for call in response.get("tool_calls") or []:
        if call.get("name") == tool_name:
            return coerce_tool_input(call.get("input"))
    return parse_json_object(response.get("content") or "")


async def ask(
    ai_port: AIPort,
    request_type: str,
    prompt: str,
    system_prompt: str = "",
    **options: Any,
) -> Dict[str, Any]:
    """Single-message request; raises RuntimeError when the port reports failure."""
    response = await ai_port.request({
        "type": request_type,
        "system_prompt": system_prompt,
        "messages": [{"role": "user", "content": prompt}],
        "options": options,
    })
    if not response or not response.get("success"):
        raise RuntimeError((response or {}).get("error") or "AI request failed")
    return response
