"""Tests for the HTTP API (FastAPI routes and middleware)."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from clippy.errors import LoopExhausted
from clippy.server import app
from clippy.service import ChatService


@pytest.fixture
def client(fake_assistant, repository):
    app.state.chat = ChatService(fake_assistant, repository)
    yield TestClient(app)
    app.state.chat = None


class TestStartConversation:
    def test_returns_id_title_and_reply(self, client):
        response = client.post("/api/conversations", json={"message": "Hello"})
        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "A title"
        assert body["reply"] == "A reply"
        assert body["conversation_id"]

    def test_whitespace_message_is_400(self, client, fake_assistant):
        response = client.post("/api/conversations", json={"message": "   "})
        assert response.status_code == 400
        assert response.json()["detail"] == "message is required"
        assert fake_assistant.reply_calls == []

    def test_missing_message_is_422(self, client):
        assert client.post("/api/conversations", json={}).status_code == 422

    def test_reply_failure_is_500_without_internals(self, client, fake_assistant):
        fake_assistant.reply_result = RuntimeError("secret connection string")
        response = client.post("/api/conversations", json={"message": "Hello"})
        assert response.status_code == 500
        assert "secret" not in response.text
        assert response.json()["detail"] == "An internal error occurred. Please try again."

    def test_loop_exhaustion_is_500(self, client, fake_assistant):
        fake_assistant.reply_result = LoopExhausted(15)
        response = client.post("/api/conversations", json={"message": "Hello"})
        assert response.status_code == 500

    def test_slow_reply_is_504(self, client, fake_assistant):
        async def slow(conversation):
            await asyncio.sleep(1)
            return "too late"

        fake_assistant.reply_result = slow
        with patch("clippy.api.routes.REQUEST_TIMEOUT_SECONDS", 0.05):
            response = client.post("/api/conversations", json={"message": "Hello"})
        assert response.status_code == 504


class TestContinueConversation:
    def test_follow_up(self, client, fake_assistant):
        conversation_id = client.post("/api/conversations", json={"message": "Hello"}).json()["conversation_id"]
        fake_assistant.reply_result = "Follow-up answer"

        response = client.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"message": "And tomorrow?"},
        )
        assert response.status_code == 200
        assert response.json() == {"reply": "Follow-up answer"}

    def test_unknown_conversation_is_404(self, client):
        response = client.post("/api/conversations/missing/messages", json={"message": "Hi"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Conversation not found."


class TestReadEndpoints:
    def test_list_has_no_messages(self, client):
        client.post("/api/conversations", json={"message": "one"})
        client.post("/api/conversations", json={"message": "two"})

        response = client.get("/api/conversations")
        assert response.status_code == 200
        conversations = response.json()["conversations"]
        assert len(conversations) == 2
        assert all(c["messages"] == [] for c in conversations)

    def test_describe(self, client):
        conversation_id = client.post("/api/conversations", json={"message": "Hello"}).json()["conversation_id"]

        response = client.get(f"/api/conversations/{conversation_id}")
        assert response.status_code == 200
        conversation = response.json()["conversation"]
        assert conversation["title"] == "A title"
        assert [m["role"] for m in conversation["messages"]] == ["user", "assistant"]

    def test_describe_unknown_is_404(self, client):
        assert client.get("/api/conversations/missing").status_code == 404


class TestServiceState:
    def test_not_ready_is_503(self):
        app.state.chat = None
        response = TestClient(app).post("/api/conversations", json={"message": "Hello"})
        assert response.status_code == 503

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok", "service": "clippy-chat"}

    def test_root(self, client):
        assert client.get("/").json()["message"] == "Hi, my name is Clippy!"


class TestRequestId:
    def test_generated_when_absent(self, client):
        assert client.get("/api/health").headers["X-Request-ID"]

    def test_echoed_when_provided(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"
