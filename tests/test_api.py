"""HTTP route tests: body handling and status mapping."""

import json

import pytest
from fastapi.testclient import TestClient

from agent.gateway import GatewayError
from app import main
from app.main import app, get_controller
from config.settings import Settings

client = TestClient(app)

TIDES = {"topic": "tides", "summary": "The moon pulls the sea.", "fun_fact": "Bay of Fundy tides reach 16m."}


@pytest.fixture
def use_controller(make_controller):
    def install(*replies, **kwargs):
        controller, gateway = make_controller(*replies, **kwargs)
        app.dependency_overrides[get_controller] = lambda: controller
        return controller, gateway

    yield install
    app.dependency_overrides.clear()


class TestMemoryChat:
    def test_returns_structured_reply_and_remembers(self, use_controller):
        controller, _ = use_controller(json.dumps({**TIDES, "extra": "ignored"}))

        response = client.post("/chat/memory", json={"username": "alice", "message": "tell me about tides"})

        assert response.status_code == 200
        assert response.json() == TIDES
        assert controller.memory.size("alice") == 1

    def test_second_call_sees_first_exchange(self, use_controller):
        _, gateway = use_controller(json.dumps(TIDES))

        client.post("/chat/memory", json={"username": "alice", "message": "tell me about tides"})
        client.post("/chat/memory", json={"username": "alice", "message": "and the moon?"})

        roles = [m["role"] for m in gateway.calls[1]["messages"]]
        assert roles == ["system", "user", "assistant", "user"]

    @pytest.mark.parametrize(
        "body",
        [{"message": "hi"}, {"username": "alice"}, {}, {"username": "", "message": "hi"}, {"username": None, "message": "hi"}],
    )
    def test_missing_fields_are_400(self, use_controller, body):
        controller, gateway = use_controller(json.dumps(TIDES))
        response = client.post("/chat/memory", json=body)
        assert response.status_code == 400
        assert response.json() == {"detail": "Missing username or message"}
        assert gateway.calls == []

    def test_malformed_upstream_is_502_and_not_remembered(self, use_controller):
        controller, _ = use_controller("not json")
        response = client.post("/chat/memory", json={"username": "alice", "message": "hi"})
        assert response.status_code == 502
        assert response.json() == {"detail": "Invalid AI response format"}
        assert controller.memory.size("alice") == 0

    def test_gateway_failure_is_502(self, use_controller):
        use_controller(GatewayError("connection refused"))
        response = client.post("/chat/memory", json={"username": "alice", "message": "hi"})
        assert response.status_code == 502
        assert response.json() == {"detail": "AI service unavailable"}

    def test_timeout_is_504(self, use_controller):
        use_controller(json.dumps(TIDES), delays=[1.0], timeout_seconds=0.01)
        response = client.post("/chat/memory", json={"username": "alice", "message": "hi"})
        assert response.status_code == 504


class TestStatelessChat:
    def test_chat_returns_raw_reply(self, use_controller):
        use_controller("Tides come from the moon.")
        response = client.post("/chat", json={"message": "why tides?"})
        assert response.status_code == 200
        assert response.json() == {"reply": "Tides come from the moon."}

    def test_chat_requires_message(self, use_controller):
        use_controller("x")
        response = client.post("/chat", json={})
        assert response.status_code == 400
        assert response.json() == {"detail": "Message is required"}

    def test_structured_chat(self, use_controller):
        controller, _ = use_controller(json.dumps(TIDES))
        response = client.post("/chat/structured", json={"message": "tides"})
        assert response.status_code == 200
        assert response.json() == TIDES
        assert len(controller.memory) == 0


def test_missing_api_key_is_500(monkeypatch):
    monkeypatch.setattr(main, "get_settings", lambda: Settings(env={}))
    response = client.post("/chat/memory", json={"username": "alice", "message": "hi"})
    assert response.status_code == 500
    assert "GOOGLE_API_KEY" in response.json()["detail"]


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
