"""
Answer processing: transcripts, flattening across rounds, structured
clarifications and the prose summary.
"""
import re
from typing import Any, Dict, List, Optional

from templates import get_template_loader
from motionflow.generation.ai_calls import ask
from motionflow.generation.state import Question
from motionflow.ports import AIPort
from motionflow.utils import get_logger

logger = get_logger(__name__)

SKIP_SENTINELS = {
    "de": "Überspringen",
    "en": "Skip",
}

# question type -> clarification field
STRUCTURED_FIELDS = {
    "scope": "scope",
    "audience": "audience",
    "tone": "tone",
    "facts": "facts",
    "structure": "structure",
    "action_type": "action_type",
    "pain_point": "pain_point",
    "beneficiaries": "beneficiaries",
    "budget": "budget",
    "history": "history",
    "urgency": "urgency",
}


def skip_sentinel(locale: Optional[str]) -> str:
    """Localized "skip" answer; unknown locales use German."""
    language = (locale or "de").split("-")[0].lower()
    return SKIP_SENTINELS.get(language, SKIP_SENTINELS["de"])


def _answer_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip() if value is not None else ""


def _is_skipped(value: Any, sentinel: str) -> bool:
    if isinstance(value, (list, tuple)):
        remaining = [v for v in value if str(v).strip() and str(v).strip() != sentinel]
        return not remaining
    text = _answer_text(value)
    return not text or text == sentinel


def build_transcript(questions: List[Question], answers: Dict[str, Any], locale: Optional[str] = None) -> str:
    """
    "Frage/Antwort" pairs for every answered question, in question order.

    Answers equal to the skip sentinel (or empty) are left out.
    """
    sentinel = skip_sentinel(locale)
    pairs = []
    for question in questions:
        value = answers.get(question["id"])
        if _is_skipped(value, sentinel):
            continue
        if isinstance(value, (list, tuple)):
            value = [v for v in value if str(v).strip() != sentinel]
        pairs.append(f"Frage: {question['text']}\nAntwort: {_answer_text(value)}")
    return "\n\n".join(pairs)


def _round_number(label: str) -> int:
    match = re.search(r"(\d+)$", label)
    return int(match.group(1)) if match else 0


def flatten_answers(answers: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Merge all rounds into one mapping; later rounds win on repeated ids."""
    flat: Dict[str, Any] = {}
    for label in sorted(answers or {}, key=_round_number):
        flat.update(answers[label] or {})
    return flat


def extract_structured_answers(
    answers: Dict[str, Any],
    questions: List[Question],
    locale: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Map answers onto clarification fields by question type.

    Questions of unmapped types (e.g. model-generated ones) are collected
    under ``additional`` keyed by question text.
    """
    sentinel = skip_sentinel(locale)
    structured: Dict[str, Any] = {}
    additional: Dict[str, str] = {}
    for question in questions:
        value = answers.get(question["id"])
        if _is_skipped(value, sentinel):
            continue
        field_name = STRUCTURED_FIELDS.get(question.get("type", ""))
        if field_name:
            structured[field_name] = _answer_text(value)
        else:
            additional[question["text"]] = _answer_text(value)
    if additional:
        structured["additional"] = additional
    return structured


async def summarize_answers(
    ai_port: AIPort,
    questions: List[Question],
    answers: Dict[str, Any],
    thema: str,
    request_type: str,
    locale: Optional[str] = None,
) -> str:
    """
    One coherent prose summary of the answers.

    An empty transcript returns "" without calling the model. Failures
    propagate to the caller.
    """
    transcript = build_transcript(questions, answers, locale)
    if not transcript:
        return ""

    prompt = get_template_loader().render_prompt(
        "answer_summary",
        transcript=transcript,
        thema=thema,
        request_type=request_type,
    )
    response = await ask(ai_port, "answer_summary", prompt, temperature=0.2, max_tokens=800)
    return (response.get("content") or "").strip()
