"""
Default prompt assembly.

The system prompt is the generator role plus the current date; the user
message stacks the request block, attached documents and knowledge items,
separated by horizontal rules.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from templates import get_template_loader
from motionflow.ports import PromptAssembler

SECTION_SEPARATOR = "\n\n---\n\n"


class TemplatePromptAssembler(PromptAssembler):
    """Renders the request block through the ``request_block`` Jinja2 template."""

    def __init__(self, today: Optional[date] = None):
        self._today = today

    def assemble(self, context: Dict[str, Any]) -> Dict[str, Any]:
        today = self._today or date.today()
        system = f"{context.get('system_role', '')}\n\nAktuelles Datum: {today.strftime('%d.%m.%Y')}"

        sections: List[str] = [
            get_template_loader().render("prompts/request_block.j2", request=context.get("request") or {})
        ]

        documents = context.get("documents") or []
        if documents:
            rendered = "\n\n".join(
                f"### {doc.get('title') or doc.get('url') or 'Dokument'}\n{doc.get('content', '')}"
                for doc in documents
            )
            sections.append(f"<documents>\n{rendered}\n</documents>")

        knowledge = [item for item in (context.get("knowledge") or []) if item]
        if knowledge:
            sections.append("<knowledge>\n" + "\n\n".join(knowledge) + "\n</knowledge>")

        return {
            "system": system,
            "messages": [{"role": "user", "content": SECTION_SEPARATOR.join(sections)}],
            "tools": list(context.get("tools") or []),
        }
