"""
Tests for concurrent multi-intent dispatch.
"""
import asyncio

from motionflow.config import DispatchConfig
from motionflow.routing import build_intent, dispatch_multi_intent


def _context(message="Tweet und Antrag zu Radwegen"):
    return {"original_message": message, "request_id": "req1"}


def test_partial_failures_are_counted():
    async def pipeline(intent, params, base_context):
        if intent.agent in ("antrag", "info"):
            raise RuntimeError(f"{intent.agent} kaputt")
        return {"content": f"Text für {intent.agent}", "metadata": {"agent": intent.agent}}

    intents = [build_intent(agent, 0.9) for agent in ("twitter", "antrag", "instagram", "info")]
    response = asyncio.run(dispatch_multi_intent(intents, _context(), pipeline))

    assert response["success"] is True
    assert response["multi_response"] is True
    assert response["metadata"] == {
        "total_intents": 4,
        "successful_intents": 2,
        "failed_intents": 2,
        "execution_type": "parallel",
    }
    assert [item["processing_index"] for item in response["results"]] == [0, 1, 2, 3]
    assert [item["agent"] for item in response["results"]] == ["twitter", "antrag", "instagram", "info"]
    assert response["results"][0]["content"] == "Text für twitter"
    assert response["results"][1]["error"] == "antrag kaputt"
    assert "content" not in response["results"][1]


def test_all_failures_mean_no_success():
    async def pipeline(intent, params, base_context):
        raise ValueError("nope")

    response = asyncio.run(dispatch_multi_intent([build_intent("twitter", 0.5)], _context(), pipeline))
    assert response["success"] is False
    assert response["metadata"]["failed_intents"] == 1


def test_slow_branch_times_out_without_cancelling_siblings():
    async def pipeline(intent, params, base_context):
        if intent.agent == "antrag":
            await asyncio.sleep(5)
        return {"content": "fertig"}

    intents = [build_intent("antrag", 0.9), build_intent("twitter", 0.8)]
    response = asyncio.run(dispatch_multi_intent(
        intents, _context(), pipeline, DispatchConfig(intent_timeout_seconds=0.05)
    ))

    slow, fast = response["results"]
    assert slow["success"] is False
    assert slow["error"].startswith("Timed out after")
    assert fast["success"] is True
    assert fast["metadata"] == {}


def test_branches_get_their_own_parameters():
    seen = {}

    async def pipeline(intent, params, base_context):
        seen[intent.agent] = params
        return {"content": "ok"}

    intents = [
        {"agent": "twitter", "confidence": 0.9},
        {"agent": "kleine_anfrage", "confidence": 0.7, "params": {"thema": "Radwege"}},
    ]
    response = asyncio.run(dispatch_multi_intent(intents, _context("Tweet über Radverkehr"), pipeline))

    assert response["results"][1]["confidence"] == 0.7
    assert seen["twitter"]["platforms"] == ["twitter"]
    assert seen["twitter"]["thema"] == "Radverkehr"
    assert seen["kleine_anfrage"]["thema"] == "Radwege"
    assert seen["kleine_anfrage"]["request_type"] == "kleine_anfrage"
    assert seen["twitter"] is not seen["kleine_anfrage"]


def test_branches_run_concurrently():
    started = []

    async def pipeline(intent, params, base_context):
        started.append(intent.agent)
        await asyncio.sleep(0.05)
        return {"content": "ok", "metadata": {"started_before_finish": len(started)}}

    intents = [build_intent(agent, 0.9) for agent in ("twitter", "facebook", "linkedin")]
    response = asyncio.run(dispatch_multi_intent(intents, _context(), pipeline))

    assert all(item["metadata"]["started_before_finish"] == 3 for item in response["results"])


def test_unresolvable_intents_fail_alone():
    async def pipeline(intent, params, base_context):
        return {"content": f"Text für {intent.agent}"}

    intents = [
        build_intent("twitter", 0.9),
        {"agent": "gedicht", "confidence": 0.8},
        {"agent": "antrag", "confidence": "hoch"},
        {"agent": "instagram", "confidence": "0.7"},
    ]
    response = asyncio.run(dispatch_multi_intent(intents, _context(), pipeline))

    results = response["results"]
    assert len(results) == 4
    assert [item["success"] for item in results] == [True, False, False, True]
    assert results[1] == {
        "agent": "gedicht",
        "confidence": 0.8,
        "processing_index": 1,
        "success": False,
        "error": "Unknown agent: gedicht",
    }
    assert results[2]["agent"] == "antrag"
    assert results[2]["error"] == "Invalid confidence for antrag: 'hoch'"
    assert results[3]["confidence"] == 0.7
    assert response["metadata"]["failed_intents"] == 2
