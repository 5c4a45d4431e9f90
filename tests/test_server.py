"""Tests for the insight service: FastAPI routes and the OpenAI generator.

WHY: The playback client relies on the service's JSON contract: 400 for
missing fields, 200 with or without an insight, 500 with meta on
failure. The generator must turn every model problem into "no insight"
instead of a server error.

HOW: Routes are exercised with FastAPI's TestClient and the generator
dependency overridden by a mock. The generator itself is tested against
a fake AsyncOpenAI-shaped object, so the OpenAI API is never called.

RULES:
- No test needs OPENAI_API_KEY
- dependency_overrides is cleared after every test
"""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from openai import OpenAIError

from callscout.api.models import InsightRequest
from callscout.server.app import app, get_generator
from callscout.server.generator import (
    ANALYST_PROMPT,
    InsightGenerator,
    build_context_message,
    parse_model_reply,
)

from conftest import make_insight


VALID_BODY = {
    "conversationHistory": "Good afternoon, everyone.",
    "currentSentence": "Revenue grew twelve percent.",
    "timestamp": "01:02",
    "segmentId": "seg_2",
}

REQUEST = InsightRequest(
    conversation_history="Good afternoon, everyone.",
    current_sentence="Revenue grew twelve percent.",
    timestamp="01:02",
    segment_id="seg_2",
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def generator():
    """A stand-in generator whose generate() is an AsyncMock."""
    fake = MagicMock()
    fake.model = "test-model"
    fake.generate = AsyncMock(return_value=make_insight("seg_2", "Growth beat guidance."))
    return fake


@pytest.fixture
def client(generator):
    app.dependency_overrides[get_generator] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()


def _fake_openai(content=None, error=None):
    completion = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    create = AsyncMock(return_value=completion, side_effect=error)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


# ---------------------------------------------------------------------------
# POST /api/generate-insight
# ---------------------------------------------------------------------------


class TestGenerateInsight:

    def test_returns_insight_with_meta(self, client, generator):
        resp = client.post("/api/generate-insight", json=VALID_BODY)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["insight"]["segmentId"] == "seg_2"
        assert data["insight"]["text"] == "Growth beat guidance."
        assert isinstance(data["meta"]["processingTimeMs"], int)
        assert data["meta"]["timestamp"].endswith("Z")

        sent = generator.generate.await_args.args[0]
        assert sent == REQUEST

    def test_no_insight_omits_field(self, client, generator):
        generator.generate.return_value = None
        resp = client.post("/api/generate-insight", json=VALID_BODY)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert "insight" not in data

    def test_history_is_optional(self, client, generator):
        body = dict(VALID_BODY)
        del body["conversationHistory"]
        resp = client.post("/api/generate-insight", json=body)
        assert resp.status_code == 200
        assert generator.generate.await_args.args[0].conversation_history == ""

    @pytest.mark.parametrize("missing", ["currentSentence", "timestamp", "segmentId"])
    def test_missing_field_is_400(self, client, generator, missing):
        body = dict(VALID_BODY)
        del body[missing]
        resp = client.post("/api/generate-insight", json=body)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Missing required fields: {}".format(missing)
        generator.generate.assert_not_awaited()

    def test_400_lists_every_missing_field(self, client):
        resp = client.post("/api/generate-insight", json={"segmentId": "seg_2"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Missing required fields: currentSentence, timestamp"

    def test_empty_field_is_400(self, client):
        resp = client.post("/api/generate-insight", json=dict(VALID_BODY, currentSentence=""))
        assert resp.status_code == 400

    def test_generator_failure_is_500(self, client, generator):
        generator.generate.side_effect = RuntimeError("boom")
        resp = client.post("/api/generate-insight", json=VALID_BODY)
        assert resp.status_code == 500
        data = resp.json()
        assert data["detail"] == "Internal server error"
        assert "processingTimeMs" in data["meta"]


# ---------------------------------------------------------------------------
# GET /api/generate-insight
# ---------------------------------------------------------------------------


class TestHealth:

    def test_health(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        resp = client.get("/api/generate-insight")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["service"] == "ai-insight-generator"
        assert data["model"] == "test-model"
        assert data["apiKeyConfigured"] is True

    def test_health_without_key(self, client, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert client.get("/api/generate-insight").json()["apiKeyConfigured"] is False

    def test_openapi_schema_generates(self, client):
        schema = client.get("/openapi.json").json()
        assert "/api/generate-insight" in schema["paths"]
        assert set(schema["paths"]["/api/generate-insight"]) == {"get", "post"}


# ---------------------------------------------------------------------------
# parse_model_reply
# ---------------------------------------------------------------------------


class TestParseModelReply:

    def test_insight(self):
        insight = parse_model_reply(
            json.dumps({"hasInsight": True, "insight": "  Margins are under pressure.  "}),
            "seg_9",
        )
        assert insight.segment_id == "seg_9"
        assert insight.text == "Margins are under pressure."
        assert insight.id.startswith("insight_")
        assert insight.created_at.endswith("Z")

    @pytest.mark.parametrize("content", [
        None,
        "",
        "not json",
        "[]",
        json.dumps({"hasInsight": False, "insight": "ignored"}),
        json.dumps({"hasInsight": True, "insight": None}),
        json.dumps({"hasInsight": True, "insight": "   "}),
        json.dumps({"insight": "no flag"}),
    ])
    def test_no_insight(self, content):
        assert parse_model_reply(content, "seg_9") is None

    def test_ids_are_unique(self):
        reply = json.dumps({"hasInsight": True, "insight": "x"})
        ids = {parse_model_reply(reply, "seg_1").id for _ in range(50)}
        assert len(ids) == 50


# ---------------------------------------------------------------------------
# InsightGenerator
# ---------------------------------------------------------------------------


class TestInsightGenerator:

    def test_generate_sends_prompt_and_context(self):
        fake = _fake_openai(json.dumps({"hasInsight": True, "insight": "Guidance raised."}))
        gen = InsightGenerator(model="test-model", client=fake)

        insight = asyncio.run(gen.generate(REQUEST))

        assert insight.text == "Guidance raised."
        assert insight.segment_id == "seg_2"
        kwargs = fake.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": ANALYST_PROMPT}
        assert kwargs["messages"][1]["content"] == build_context_message(REQUEST)

    def test_context_message_contents(self):
        message = build_context_message(REQUEST)
        assert "Good afternoon, everyone." in message
        assert '"Revenue grew twelve percent."' in message

    def test_openai_error_means_no_insight(self):
        gen = InsightGenerator(client=_fake_openai(error=OpenAIError("rate limited")))
        assert asyncio.run(gen.generate(REQUEST)) is None

    def test_missing_key_means_no_insight(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert asyncio.run(InsightGenerator().generate(REQUEST)) is None

    def test_empty_choices(self):
        fake = _fake_openai()
        fake.chat.completions.create.return_value = SimpleNamespace(choices=[])
        assert asyncio.run(InsightGenerator(client=fake).generate(REQUEST)) is None
