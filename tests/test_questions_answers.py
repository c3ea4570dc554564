"""
Tests for question normalization, the static bank and answer processing.
"""
import asyncio

from fakes import FakeAIPort, text_reply
from motionflow.generation.answers import (
    build_transcript,
    extract_structured_answers,
    flatten_answers,
    skip_sentinel,
    summarize_answers,
)
from motionflow.generation.questions import (
    AI_GENERATED,
    STATIC,
    get_static_questions,
    merge_question_sources,
    normalize_question,
    pad_emojis,
)

QUESTIONS = [
    {"id": "q1", "text": "Welcher Bereich?", "type": "scope", "options": ["Innenstadt", "Stadtteil"]},
    {"id": "q2", "text": "Wie dringend?", "type": "urgency", "options": ["Sofort", "Später"]},
    {"id": "q3", "text": "Gibt es Vorbilder?", "type": "ai_generated", "options": []},
]


def test_static_bank_questions_have_one_emoji_per_option():
    questions = get_static_questions("antrag", 1)

    assert [q["id"] for q in questions] == [
        "q1_action_type", "q2_pain_point", "q3_beneficiaries", "q4_budget", "q5_history", "q6_urgency",
    ]
    for question in questions:
        assert len(question["options"]) == len(question["option_emojis"])
        assert question["provenance"] == STATIC
    assert questions[0]["allow_custom"] is False
    assert questions[2]["allow_multi_select"] is True


def test_static_bank_falls_back_to_antrag():
    assert [q["id"] for q in get_static_questions("unbekannt", 1)] == [
        q["id"] for q in get_static_questions("antrag", 1)
    ]
    assert get_static_questions("antrag", 7) == []
    kleine = get_static_questions("kleine_anfrage", 1)
    assert kleine[1]["options"][0] == "Fehlende Informationen und Transparenz"


def test_normalize_question_accepts_camel_case_and_defaults():
    question = normalize_question(
        {"question": " Wer ist Zielgruppe? ", "options": ["A", " ", "B", "C"], "emojis": ["🅰️"], "allowMultiSelect": True},
        index=2,
        placeholder_emoji="❔",
        default_placeholder="Eigene Antwort...",
    )

    assert question["id"] == "q3"
    assert question["text"] == "Wer ist Zielgruppe?"
    assert question["options"] == ["A", "B", "C"]
    assert question["option_emojis"] == ["🅰️", "❔", "❔"]
    assert question["allow_custom"] is True
    assert question["allow_multi_select"] is True
    assert question["placeholder"] == "Eigene Antwort..."
    assert question["provenance"] == AI_GENERATED


def test_pad_emojis_trims_extra_entries():
    assert pad_emojis(["a"], ["1", "2", "3"], "?") == ["1"]
    assert pad_emojis(["a", "b"], None, "?") == ["?", "?"]
    assert pad_emojis([], ["1"], "?") == []


def test_merge_puts_static_first_and_drops_duplicates():
    static = [normalize_question({"id": "s1", "text": "Statisch"}, 0, STATIC)]
    ai = [
        normalize_question({"id": "s1", "text": "Doppelt"}, 0),
        normalize_question({"id": "a1", "text": ""}, 1),
        normalize_question({"id": "a2", "text": "KI 1"}, 2),
        normalize_question({"id": "a3", "text": "KI 2"}, 3),
    ]
    merged = merge_question_sources(static, ai, max_questions=2)
    assert [q["id"] for q in merged] == ["s1", "a2"]


def test_skip_sentinel_is_localized():
    assert skip_sentinel("de-DE") == "Überspringen"
    assert skip_sentinel("en-GB") == "Skip"
    assert skip_sentinel("fr-FR") == "Überspringen"
    assert skip_sentinel(None) == "Überspringen"


def test_transcript_skips_sentinel_and_empty_answers():
    answers = {"q1": "Innenstadt", "q2": "Überspringen", "q3": ["Freiburg", "Überspringen"]}
    transcript = build_transcript(QUESTIONS, answers, "de-DE")

    assert transcript == (
        "Frage: Welcher Bereich?\nAntwort: Innenstadt\n\n"
        "Frage: Gibt es Vorbilder?\nAntwort: Freiburg"
    )
    assert build_transcript(QUESTIONS, {"q1": "", "q2": []}) == ""


def test_flatten_orders_rounds_numerically():
    answers = {"round10": {"q1": "zehn"}, "round2": {"q1": "zwei", "q2": "b"}, "round1": {"q3": "c"}}
    assert flatten_answers(answers) == {"q1": "zehn", "q2": "b", "q3": "c"}
    assert flatten_answers({}) == {}


def test_structured_answers_map_types_and_collect_rest():
    structured = extract_structured_answers(
        {"q1": ["Innenstadt", "Stadtteil"], "q2": "Skip", "q3": "Freiburg"},
        QUESTIONS,
        "en-US",
    )
    assert structured == {"scope": "Innenstadt, Stadtteil", "additional": {"Gibt es Vorbilder?": "Freiburg"}}


def test_summary_of_empty_transcript_skips_the_model():
    ai_port = FakeAIPort()
    summary = asyncio.run(summarize_answers(ai_port, QUESTIONS, {"q1": "Überspringen"}, "Thema", "antrag"))
    assert summary == ""
    assert ai_port.calls == []


def test_summary_uses_model_reply():
    ai_port = FakeAIPort({"answer_summary": text_reply("  Es geht um die Innenstadt.  ")})
    summary = asyncio.run(summarize_answers(ai_port, QUESTIONS, {"q1": "Innenstadt"}, "Thema", "antrag"))

    assert summary == "Es geht um die Innenstadt."
    assert "Frage: Welcher Bereich?" in ai_port.calls[0]["messages"][0]["content"]
