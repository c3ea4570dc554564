"""
API tests through FastAPI's TestClient with every collaborator overridden.
"""
import json

import pytest
from fastapi.testclient import TestClient

from api.dependencies import (
    get_ai_port,
    get_checkpoint_store,
    get_config,
    get_crawl_port,
    get_enricher,
    get_orchestrator,
    get_search_port,
    get_session_store,
)
from api.main import app
from conftest import SEARCH_RESULTS, interactive_replies
from fakes import FakeAIPort, FakeCrawlPort, FakeSearchPort, failed_reply, text_reply
from motionflow.config import AppConfig
from motionflow.engine import InMemoryCheckpointStore
from motionflow.routing import ChatOrchestrator
from motionflow.sessions import InMemorySessionStore

USER_HEADERS = {"X-User-ID": "user-42"}
INITIATE_BODY = {
    "thema": "Sichere Radwege zur Schule",
    "details": "Mehr geschützte Radwege im Schulumfeld",
    "request_type": "antrag",
}


class ExplodingOrchestrator:
    async def process(self, message, context=None):
        raise RuntimeError("graph exploded")


@pytest.fixture
def client():
    config = AppConfig()
    session_store = InMemorySessionStore()
    checkpoint_store = InMemoryCheckpointStore()
    chat_port = FakeAIPort({
        "intent_classification": text_reply(json.dumps([
            {"agent": "twitter", "confidence": 0.9},
            {"agent": "antrag", "confidence": 0.8},
        ])),
        "antrag": failed_reply("quota exceeded"),
    })

    app.dependency_overrides.update({
        get_config: lambda: config,
        get_ai_port: lambda: FakeAIPort(interactive_replies()),
        get_search_port: lambda: FakeSearchPort(default_results=SEARCH_RESULTS),
        get_crawl_port: lambda: FakeCrawlPort(pages={"https://example.org/rad-zahlen": "Radverkehr plus 12 Prozent."}),
        get_enricher: lambda: None,
        get_session_store: lambda: session_store,
        get_checkpoint_store: lambda: checkpoint_store,
        get_orchestrator: lambda: ChatOrchestrator(chat_port, config),
    })
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/health")
    assert response.json() == {"status": "healthy", "service": "motionflow"}


def test_interactive_round_trip(client):
    started = client.post("/api/interactive/initiate", json=INITIATE_BODY, headers=USER_HEADERS)

    assert started.status_code == 200
    body = started.json()
    assert body["status"] == "success"
    assert body["question_round"] == 1
    assert [q["id"] for q in body["questions"]] == ["q1", "q2"]
    assert body["questions"][0]["option_emojis"] == ["🏙️", "❔", "❔"]

    session_id = body["session_id"]
    stored = client.get(f"/api/interactive/session/{session_id}", headers=USER_HEADERS)
    assert stored.status_code == 200
    assert stored.json()["conversation_state"] == "questions_asked"

    finished = client.post(
        "/api/interactive/continue",
        json={"session_id": session_id, "answers": {"q1": "Innenstadt", "q2": ["Schulkinder"]}},
        headers=USER_HEADERS,
    )
    assert finished.status_code == 200
    assert finished.json()["status"] == "completed"
    assert finished.json()["final_result"].startswith("# Antrag: Sichere Radwege")

    again = client.post(
        "/api/interactive/continue",
        json={"session_id": session_id, "answers": {"q1": "Ganze Stadt"}},
        headers=USER_HEADERS,
    )
    assert again.status_code == 404


def test_sessions_are_private(client):
    session_id = client.post(
        "/api/interactive/initiate", json=INITIATE_BODY, headers=USER_HEADERS
    ).json()["session_id"]

    assert client.get(f"/api/interactive/session/{session_id}").status_code == 404
    response = client.post(
        "/api/interactive/continue",
        json={"session_id": session_id, "answers": {}},
        headers={"X-User-ID": "someone-else"},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Session not found or expired"


def test_unknown_session(client):
    response = client.post("/api/interactive/continue", json={"session_id": "exp_0_missing", "answers": {}})
    assert response.status_code == 404
    assert response.json()["status"] == "error"


def test_blank_thema_is_rejected(client):
    response = client.post("/api/interactive/initiate", json={**INITIATE_BODY, "thema": "   "})

    assert response.status_code == 422
    assert response.json()["metadata"]["error_type"] == "ValidationError"


def test_missing_thema_fails_request_validation(client):
    response = client.post("/api/interactive/initiate", json={"details": "ohne Thema"})
    assert response.status_code == 422


def test_chat_classify(client):
    response = client.post("/api/chat/classify", json={"message": "Tweet und Antrag zu Radwegen"})

    assert response.status_code == 200
    body = response.json()
    assert body["is_multi_intent"] is True
    assert body["method"] == "ai"
    assert [intent["agent"] for intent in body["intents"]] == ["twitter", "antrag"]


def test_chat_send_multi_intent(client):
    response = client.post(
        "/api/chat/send", json={"message": "Tweet und Antrag zu Radwegen"}, headers=USER_HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["multi_response"] is True
    assert body["metadata"]["successful_intents"] == 1
    assert body["metadata"]["failed_intents"] == 1
    assert "## twitter" in body["content"]
    assert "quota exceeded" in body["content"]


def test_chat_send_single_intent(client):
    response = client.post(
        "/api/chat/send", json={"message": "Tweet zu Radwegen", "single_intent_only": True}
    )

    body = response.json()
    assert body["success"] is True
    assert body["agent"] == "twitter"
    assert body["content"] == "Generierter Text (twitter)"


def test_chat_send_failure_is_500(client):
    app.dependency_overrides[get_orchestrator] = lambda: ExplodingOrchestrator()

    response = client.post("/api/chat/send", json={"message": "Hallo"})

    assert response.status_code == 500
    assert "graph exploded" in response.json()["detail"]
