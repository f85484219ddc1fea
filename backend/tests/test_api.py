"""
HTTP tests for the widget, public settings and admin routers.

The real app is used with in-memory state, a fake completion client and
ManualScheduler-backed widget sessions, so no timer fires unless a test
advances a widget's clock.
"""

import asyncio
import json

import pytest
from starlette.testclient import TestClient

from chat_engine import (
    AGENT_PROFILES,
    ArchiveStatus,
    ChatSession,
    ManualScheduler,
    MessageKind,
    MessageStore,
    ResponseResolver,
    SessionStatus,
)
from config import runtime_config
from errors import ExternalServiceError
from routers.chat_widget import WIDGET_IDLE_TTL_S, WidgetHub, set_widget_hub
from services.activity_log import get_activity_entries
from services.settings_store import set_settings_store

ADMIN_TOKEN = "test-admin-token"
AUTH = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def api(settings, archiver, fake_client, monkeypatch):
    monkeypatch.setattr(runtime_config, "admin_token", ADMIN_TOKEN)
    set_settings_store(settings)
    hub = WidgetHub(
        settings=settings,
        archiver=archiver,
        resolver=ResponseResolver(settings, client=fake_client),
        scheduler_factory=ManualScheduler,
    )
    set_widget_hub(hub)

    from main import app

    with TestClient(app) as client:
        yield client, hub


def _archive(archiver, n, status=ArchiveStatus.COMPLETED, text="hello"):
    store = MessageStore()
    store.append(MessageKind.USER, text)
    session = ChatSession(
        chat_id=f"MC-{n}-ABCDEF",
        status=SessionStatus.CONNECTED,
        agent=AGENT_PROFILES[0],
        messages=store.items,
    )
    return archiver.archive(session, status)


class TestPublic:
    def test_public_settings(self, api, settings):
        client, _ = api
        resp = client.get("/api/settings/public")
        assert resp.status_code == 200
        assert resp.json() == {"settings": {"ai_agent_enabled": True, "chat": settings.settings.to_wire()}}

    def test_health(self, api):
        client, _ = api
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["ai_agent_enabled"] is True

    def test_security_headers(self, api):
        client, _ = api
        resp = client.get("/health")
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"


class TestWidget:
    def test_submit_queues_chat(self, api):
        client, hub = api
        resp = client.post("/api/chat/w1/messages", json={"message": "hi"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["accepted"] is True
        assert data["message"]["content"] == "hi"
        assert data["chat"]["status"] == "queued"
        assert [m["type"] for m in data["chat"]["messages"]] == ["user", "system"]
        assert len(hub) == 1

    def test_conversation_then_close(self, api, archiver):
        client, hub = api
        client.post("/api/chat/w1/messages", json={"message": "hi, my name is Rahim"})
        hub.find("w1").scheduler.advance(4000)  # assigned and greeted

        chat = client.get("/api/chat/w1").json()["chat"]
        assert chat["status"] == "connected"
        assert chat["agent"]["name"]
        assert chat["userName"] == "Rahim"

        resp = client.post("/api/chat/w1/close")
        assert resp.status_code == 200
        archived = resp.json()["archived"]
        assert archived["status"] == "closed_by_user"
        assert len(archiver) == 1

        # The closed widget no longer holds a session
        assert hub.find("w1") is None
        assert len(hub) == 0
        assert client.get("/api/chat/w1").status_code == 404

        chat = client.post("/api/chat/w1/messages", json={"message": "back again"}).json()["chat"]
        assert chat["status"] == "queued"
        assert [m["content"] for m in chat["messages"] if m["type"] == "user"] == ["back again"]

    def test_reset(self, api, archiver):
        client, _ = api
        client.post("/api/chat/w1/messages", json={"message": "hi"})
        assert client.post("/api/chat/w1/reset").json() == {"success": True}
        chat = client.get("/api/chat/w1").json()["chat"]
        assert chat["status"] == "idle"
        assert chat["messages"] == []
        assert len(archiver) == 0

    def test_close_unknown_widget(self, api):
        client, _ = api
        assert client.post("/api/chat/nobody/close").json() == {"success": True, "archived": None}

    def test_unknown_widget_snapshot(self, api):
        client, _ = api
        resp = client.get("/api/chat/nobody")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND_WIDGET"

    def test_empty_message(self, api):
        client, _ = api
        resp = client.post("/api/chat/w1/messages", json={"message": "   "})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_EMPTY_MESSAGE"

    def test_message_too_long(self, api, monkeypatch):
        monkeypatch.setattr(runtime_config, "max_message_length", 10)
        client, _ = api
        resp = client.post("/api/chat/w1/messages", json={"message": "x" * 11})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_OUT_OF_RANGE"

    def test_invalid_widget_id(self, api):
        client, _ = api
        resp = client.post(f"/api/chat/{'x' * 65}/messages", json={"message": "hi"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_INVALID_FORMAT"

    def test_disabled_chat(self, api, settings):
        settings.set_enabled(False)
        client, _ = api
        resp = client.post("/api/chat/w1/messages", json={"message": "hi"})
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "CHAT_DISABLED"

    def test_submit_rate_limited(self, api, monkeypatch):
        monkeypatch.setattr(runtime_config, "rate_limit_chat_msg", 2)
        client, _ = api
        responses = [client.post("/api/chat/w1/messages", json={"message": "hi"}) for _ in range(3)]
        assert [r.status_code for r in responses] == [200, 200, 429]
        assert responses[0].headers["X-RateLimit-Remaining"] == "1"
        assert responses[2].headers["X-RateLimit-Limit"] == "2"
        assert responses[2].headers["X-RateLimit-Remaining"] == "0"
        assert "Retry-After" in responses[2].headers

    def test_snapshot_polling_is_not_rate_limited(self, api, monkeypatch):
        monkeypatch.setattr(runtime_config, "rate_limit_chat_msg", 1)
        client, _ = api
        client.post("/api/chat/w1/messages", json={"message": "hi"})
        assert all(client.get("/api/chat/w1").status_code == 200 for _ in range(5))


class TestWidgetHub:
    """Session tracking without HTTP; the clock is a plain list of seconds."""

    @pytest.fixture
    def now(self):
        return [0.0]

    @pytest.fixture
    def hub(self, settings, archiver, fake_client, now):
        return WidgetHub(
            settings=settings,
            archiver=archiver,
            resolver=ResponseResolver(settings, client=fake_client),
            scheduler_factory=ManualScheduler,
            clock=lambda: now[0],
        )

    def test_release_forgets_widget(self, hub):
        hub.get_or_create("w1").submit("hi")
        controller = hub.release("w1")
        assert controller.status is SessionStatus.IDLE
        assert controller.timers.pending() == []
        assert hub.find("w1") is None
        assert hub.release("w1") is None

    def test_stale_idle_sessions_dropped_on_new_widget(self, hub, now):
        hub.get_or_create("idle-1")
        hub.get_or_create("busy").submit("hi")
        now[0] = WIDGET_IDLE_TTL_S + 1
        hub.get_or_create("fresh")
        assert hub.find("idle-1") is None
        assert hub.find("busy") is not None
        assert len(hub) == 2

    def test_recent_activity_keeps_session(self, hub, now):
        hub.get_or_create("w1")
        now[0] = WIDGET_IDLE_TTL_S - 10
        hub.find("w1")  # widget polled
        now[0] = WIDGET_IDLE_TTL_S + 1
        hub.get_or_create("w2")
        assert hub.find("w1") is not None

    def test_ended_sessions_are_evictable(self, hub, now):
        controller = hub.get_or_create("w1")

        async def scenario():
            controller.submit("hi")
            await controller.scheduler.advance_async(30_000)

        asyncio.run(scenario())
        assert controller.status is SessionStatus.ENDED
        now[0] += WIDGET_IDLE_TTL_S + 1
        hub.get_or_create("w2")
        assert hub.find("w1") is None


class TestAdminAuth:
    def test_missing_token_config(self, api, monkeypatch):
        monkeypatch.setattr(runtime_config, "admin_token", "")
        client, _ = api
        assert client.get("/api/admin/ai-agent/settings", headers=AUTH).status_code == 503

    def test_wrong_token(self, api):
        client, _ = api
        resp = client.get("/api/admin/ai-agent/settings", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_no_credentials(self, api):
        client, _ = api
        assert client.get("/api/admin/ai-agent/chats").status_code == 401


class TestAdminSettings:
    def test_get(self, api, settings):
        client, _ = api
        data = client.get("/api/admin/ai-agent/settings", headers=AUTH).json()
        assert data["success"] is True
        assert data["chat"] == settings.settings.to_wire()
        assert data["api_key_set"] is False

    def test_update_timing_and_key(self, api, settings):
        client, _ = api
        resp = client.put(
            "/api/admin/ai-agent/settings",
            headers=AUTH,
            json={"queueAssignTime": 2000, "api_key": "sk-test-1234567890"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["updated"] == ["queueAssignTime", "api_key"]
        assert data["settings"]["api_key_preview"] == "sk-t...7890"
        assert settings.settings.queue_assign_time == 2000
        assert settings.api_key == "sk-test-1234567890"

    def test_update_out_of_range(self, api, settings):
        client, _ = api
        resp = client.put("/api/admin/ai-agent/settings", headers=AUTH, json={"followUpTimeout": 5})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_OUT_OF_RANGE"
        assert settings.settings.follow_up_timeout == 5000

    def test_toggle(self, api, settings):
        client, _ = api
        resp = client.post("/api/admin/ai-agent/toggle", headers=AUTH, json={"enabled": False})
        assert resp.json()["enabled"] is False
        assert settings.enabled is False
        assert client.get("/api/settings/public").json()["settings"]["ai_agent_enabled"] is False

    def test_remove_key(self, api, settings):
        settings.set_api_key("sk-test-1234567890")
        client, _ = api
        assert client.delete("/api/admin/ai-agent/api-key", headers=AUTH).status_code == 200
        assert settings.has_credential is False


class TestValidate:
    def test_valid_key_is_stored(self, api, settings, fake_client, activity_log):
        client, _ = api
        resp = client.post("/api/admin/ai-agent/validate", headers=AUTH, json={"api_key": "sk-new-1234567890"})
        data = resp.json()
        assert data["success"] is True
        assert data["valid"] is True
        assert settings.api_key == "sk-new-1234567890"
        assert settings.api_key_valid is True
        fake_client.validate.assert_awaited_once_with("sk-new-1234567890")

        messages = [e["message"] for e in get_activity_entries()]
        assert messages[:2] == ["API key validated successfully!", "Validating API key..."]

    def test_invalid_key_not_stored(self, api, settings, fake_client):
        fake_client.validate.return_value = {"valid": False, "message": "Invalid API key"}
        client, _ = api
        data = client.post("/api/admin/ai-agent/validate", headers=AUTH, json={"api_key": "sk-bad"}).json()
        assert data == {"success": False, "valid": False, "message": "Invalid API key"}
        assert settings.api_key == ""

    def test_invalidates_stored_key(self, api, settings, fake_client):
        settings.set_api_key("sk-old-1234567890", valid=True)
        fake_client.validate.return_value = {"valid": False, "message": "Invalid API key"}
        client, _ = api
        client.post("/api/admin/ai-agent/validate", headers=AUTH, json={"api_key": "sk-old-1234567890"})
        assert settings.api_key_valid is False

    def test_service_failure(self, api, fake_client, activity_log):
        fake_client.validate.side_effect = ExternalServiceError(
            "Completion service unavailable", service="completion"
        )
        client, _ = api
        resp = client.post("/api/admin/ai-agent/validate", headers=AUTH, json={"api_key": "sk-abc"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["error"]["code"] == "EXTERNAL_COMPLETION_FAILED"
        assert data["error"]["action"] == "validate_api_key"
        assert get_activity_entries(kind="error")[0]["message"] == "Validation failed: Completion service unavailable"

    def test_blank_key(self, api, fake_client):
        client, _ = api
        resp = client.post("/api/admin/ai-agent/validate", headers=AUTH, json={"api_key": "  "})
        assert resp.status_code == 400
        fake_client.validate.assert_not_called()


class TestConnectionTest:
    def test_success_returns_reply(self, api, settings, fake_client, activity_log):
        client, _ = api
        resp = client.post("/api/admin/ai-agent/test", headers=AUTH, json={"api_key": " sk-try-1234567890 "})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "response": "Remote reply from the agent"}

        kwargs = fake_client.chat.await_args.kwargs
        assert kwargs["api_key"] == "sk-try-1234567890"
        assert kwargs["message"]
        assert kwargs["agent_name"]
        # Testing never stores the key
        assert settings.api_key == ""
        assert get_activity_entries(kind="success")[0]["message"] == "AI agent connection test passed"

    def test_blank_key(self, api, fake_client):
        client, _ = api
        resp = client.post("/api/admin/ai-agent/test", headers=AUTH, json={"api_key": ""})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_MISSING_PARAM"
        fake_client.chat.assert_not_called()

    def test_service_failure(self, api, fake_client, activity_log):
        fake_client.chat.side_effect = ExternalServiceError("Completion service unavailable", service="completion")
        client, _ = api
        resp = client.post("/api/admin/ai-agent/test", headers=AUTH, json={"api_key": "sk-abc"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["message"] == "Completion service unavailable"
        assert data["error"]["action"] == "test_connection"
        assert get_activity_entries(kind="error")[0]["message"] == "Connection test failed: Completion service unavailable"

    def test_requires_admin(self, api, fake_client):
        client, _ = api
        assert client.post("/api/admin/ai-agent/test", json={"api_key": "sk-abc"}).status_code == 401
        fake_client.chat.assert_not_called()


class TestAdminChats:
    def test_list_and_search(self, api, archiver):
        _archive(archiver, 1, text="VPS pricing")
        _archive(archiver, 2, ArchiveStatus.CLOSED_BY_USER, text="domain transfer")
        client, _ = api

        data = client.get("/api/admin/ai-agent/chats", headers=AUTH).json()
        assert data["count"] == 2
        assert data["total"] == 2
        assert [c["chatId"] for c in data["chats"]] == ["MC-2-ABCDEF", "MC-1-ABCDEF"]

        data = client.get("/api/admin/ai-agent/chats", headers=AUTH, params={"q": "vps"}).json()
        assert [c["chatId"] for c in data["chats"]] == ["MC-1-ABCDEF"]

        data = client.get("/api/admin/ai-agent/chats", headers=AUTH, params={"status": "closed_by_user"}).json()
        assert [c["chatId"] for c in data["chats"]] == ["MC-2-ABCDEF"]

        data = client.get("/api/admin/ai-agent/chats", headers=AUTH, params={"status": "all"}).json()
        assert data["count"] == 2

    def test_bad_status_filter(self, api):
        client, _ = api
        resp = client.get("/api/admin/ai-agent/chats", headers=AUTH, params={"status": "archived"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_INVALID_FORMAT"

    def test_get_and_delete_one(self, api, archiver):
        _archive(archiver, 1)
        client, _ = api

        assert client.get("/api/admin/ai-agent/chats/MC-1-ABCDEF", headers=AUTH).json()["chat"]["chatId"] == "MC-1-ABCDEF"
        assert client.delete("/api/admin/ai-agent/chats/MC-1-ABCDEF", headers=AUTH).json() == {
            "success": True,
            "deleted": "MC-1-ABCDEF",
        }
        resp = client.delete("/api/admin/ai-agent/chats/MC-1-ABCDEF", headers=AUTH)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND_CHAT"
        assert client.get("/api/admin/ai-agent/chats/MC-1-ABCDEF", headers=AUTH).status_code == 404

    def test_delete_all(self, api, archiver):
        _archive(archiver, 1)
        _archive(archiver, 2)
        client, _ = api
        assert client.delete("/api/admin/ai-agent/chats", headers=AUTH).json()["deleted"] == 2
        assert len(archiver) == 0

    def test_export(self, api, archiver):
        _archive(archiver, 1)
        client, _ = api
        resp = client.get("/api/admin/ai-agent/chats/export", headers=AUTH)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert 'attachment; filename="chat-history-' in resp.headers["content-disposition"]
        assert json.loads(resp.content)[0]["chatId"] == "MC-1-ABCDEF"


class TestAdminLogsAndConfig:
    def test_logs(self, api, activity_log, settings):
        settings.set_enabled(False)
        client, _ = api
        data = client.get("/api/admin/ai-agent/logs", headers=AUTH).json()
        assert data["logs"][0]["message"] == "AI Agent disabled"

        data = client.get("/api/admin/ai-agent/logs", headers=AUTH, params={"type": "error"}).json()
        assert data["count"] == 0

        assert client.delete("/api/admin/ai-agent/logs", headers=AUTH).json()["cleared"] >= 1
        assert client.get("/api/admin/ai-agent/logs", headers=AUTH).json()["count"] == 0

    def test_get_config_hides_token(self, api):
        client, _ = api
        config = client.get("/api/admin/config", headers=AUTH).json()["config"]
        assert "admin_token" not in config
        assert config["admin_token_set"] is True

    def test_update_config(self, api, monkeypatch):
        # Registered so monkeypatch restores the value afterwards
        monkeypatch.setattr(runtime_config, "archive_limit", runtime_config.archive_limit)
        monkeypatch.setattr(runtime_config, "max_message_length", runtime_config.max_message_length)
        client, _ = api
        data = client.put(
            "/api/admin/config",
            headers=AUTH,
            json={"archive_limit": 50, "max_message_length": 0},
        ).json()
        assert data["updated"] == ["archive_limit"]
        assert data["ignored"] == ["max_message_length"]
        assert runtime_config.archive_limit == 50

    def test_update_config_no_changes(self, api):
        client, _ = api
        assert client.put("/api/admin/config", headers=AUTH, json={}).json()["updated"] == []

    def test_status(self, api, archiver):
        _archive(archiver, 1)
        client, _ = api
        client.post("/api/chat/w1/messages", json={"message": "hi"})
        data = client.get("/api/admin/status", headers=AUTH).json()
        assert data["widgets"] == {"tracked": 1, "active": 1}
        assert data["archive"]["count"] == 1
        assert data["ai_agent"]["enabled"] is True
        assert data["redis"]["status"] == "connected"
