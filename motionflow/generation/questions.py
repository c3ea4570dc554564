"""
Clarifying questions: static bank, normalization and source merging.
"""
from typing import Any, Dict, Iterable, List, Optional

from templates import get_template_loader
from motionflow.generation.state import Question
from motionflow.utils import get_logger

logger = get_logger(__name__)

QUESTION_BANK_FILE = "questions.yaml"
DEFAULT_REQUEST_TYPE = "antrag"

STATIC = "static"
AI_GENERATED = "ai_generated"


def load_question_bank() -> Dict[str, Any]:
    """Question bank keyed by request type; YAML helper keys starting with "_" are dropped."""
    bank = get_template_loader().load_data(QUESTION_BANK_FILE)
    return {key: value for key, value in bank.items() if not key.startswith("_")}


def get_static_questions(
    request_type: str,
    round_no: int = 1,
    placeholder_emoji: str = "❔",
    default_placeholder: str = "",
) -> List[Question]:
    """
    Static questions for a request type and round.

    Unknown request types fall back to the "antrag" bank; unknown rounds yield
    no questions.
    """
    bank = load_question_bank()
    by_round = bank.get(request_type) or bank.get(DEFAULT_REQUEST_TYPE, {})
    raw = by_round.get(f"round{round_no}", [])
    return [
        normalize_question(item, index, STATIC, placeholder_emoji, default_placeholder)
        for index, item in enumerate(raw)
    ]


def pad_emojis(options: List[str], emojis: Optional[Iterable[str]], placeholder: str) -> List[str]:
    """Make the emoji list exactly as long as the options list."""
    emojis = [str(e) for e in (emojis or []) if e]
    if len(emojis) < len(options):
        emojis.extend([placeholder] * (len(options) - len(emojis)))
    return emojis[:len(options)]


def normalize_question(
    raw: Dict[str, Any],
    index: int,
    provenance: str = AI_GENERATED,
    placeholder_emoji: str = "❔",
    default_placeholder: str = "",
) -> Question:
    """
    Bring a static or model-produced question into the Question shape.

    Accepts both snake_case and camelCase keys (``optionEmojis``, ``emojis``,
    ``allowCustom``), defaults ``allow_custom`` to True and
    ``allow_multi_select`` to False, and pads or trims the emoji list.
    """
    options = [str(option).strip() for option in (raw.get("options") or []) if str(option).strip()]
    emojis = raw.get("option_emojis", raw.get("optionEmojis", raw.get("emojis")))

    question: Question = {
        "id": str(raw.get("id") or f"q{index + 1}"),
        "text": str(raw.get("text") or raw.get("question") or "").strip(),
        "type": str(raw.get("type") or raw.get("category") or provenance),
        "options": options,
        "option_emojis": pad_emojis(options, emojis, placeholder_emoji),
        "allow_custom": bool(raw.get("allow_custom", raw.get("allowCustom", True))),
        "allow_multi_select": bool(raw.get("allow_multi_select", raw.get("allowMultiSelect", False))),
        "placeholder": str(raw.get("placeholder") or default_placeholder),
        "provenance": provenance,
    }
    return question


def merge_question_sources(
    static_questions: List[Question],
    ai_questions: List[Question],
    max_questions: int,
) -> List[Question]:
    """Static questions first, then AI questions; duplicate ids and empty texts dropped."""
    merged: List[Question] = []
    seen = set()
    for question in list(static_questions) + list(ai_questions):
        if not question.get("text") or question["id"] in seen:
            continue
        seen.add(question["id"])
        merged.append(question)
        if len(merged) >= max_questions:
            break
    return merged
