"""
Shared fixtures: default configuration, scripted ports and fresh stores.
"""
import pytest

from fakes import FakeAIPort, FakeCrawlPort, FakeSearchPort, text_reply, tool_reply
from motionflow.config import AppConfig
from motionflow.engine import InMemoryCheckpointStore
from motionflow.sessions import InMemorySessionStore

SEARCH_RESULTS = [
    {"title": "Radverkehr in Zahlen", "url": "https://example.org/rad-zahlen", "snippet": "Statistik zum Radverkehr"},
    {"title": "Grüne fordern Radwege", "url": "https://gruene.example/radwege", "snippet": "Beschluss der Fraktion"},
    {"title": "Radwege Münster", "url": "https://muenster.example/radwege/", "snippet": "Beispiel einer Kommune"},
]

CLARIFICATION = {
    "needs_clarification": True,
    "confidence_reason": "Umfang und Zielgruppe sind offen",
    "questions": [
        {
            "id": "q1",
            "text": "Welcher Bereich der Stadt ist betroffen?",
            "type": "scope",
            "options": ["Innenstadt", "Ganze Stadt", "Einzelne Straße"],
            "optionEmojis": ["🏙️"],
        },
        {
            "id": "q2",
            "text": "Wer soll besonders profitieren?",
            "type": "beneficiaries",
            "options": ["Schulkinder", "Pendler*innen"],
            "option_emojis": ["🎒", "🚲", "🚗"],
            "allowMultiSelect": True,
        },
    ],
}


def interactive_replies(**overrides):
    """Replies for one full interactive run; keyword arguments replace single entries."""
    replies = {
        "search_planning": tool_reply("plan_search_queries", {"queries": [
            {"query": "Radwege Ausbau Kommune", "purpose": "facts"},
            {"query": "Grüne Radwege Antrag", "purpose": "party_position"},
        ]}),
        "crawler_agent": text_reply(
            '{"selections": [{"index": 0, "url": "https://example.org/rad-zahlen", '
            '"reason": "Zahlen", "expected_value": "Statistik"}], "reasoning": "Fakten zuerst"}'
        ),
        "question_generation": tool_reply("clarification_questions", CLARIFICATION),
        "answer_summary": text_reply("Der Antrag betrifft die Innenstadt und richtet sich an Schulkinder."),
        "antrag": text_reply("# Antrag: Sichere Radwege\n\nDer Rat möge beschließen ..."),
    }
    replies.update(overrides)
    return replies


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def ai_port():
    return FakeAIPort(interactive_replies())


@pytest.fixture
def search_port():
    return FakeSearchPort(default_results=SEARCH_RESULTS)


@pytest.fixture
def crawl_port():
    return FakeCrawlPort(pages={"https://example.org/rad-zahlen": "Im Jahr 2023 stieg der Radverkehr um 12 Prozent."})


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def checkpoint_store():
    return InMemoryCheckpointStore()
