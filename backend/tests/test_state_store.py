"""
Tests for keyed state persistence.
"""

import json

from services.state_store import (
    JsonStateStore,
    MemoryStateStore,
    get_state_store,
    set_state_store,
)


class TestMemoryStateStore:
    def test_round_trip_is_a_copy(self):
        store = MemoryStateStore()
        value = {"chats": [1, 2]}
        store.save("k", value)
        value["chats"].append(3)
        assert store.load("k") == {"chats": [1, 2]}

    def test_default(self):
        assert MemoryStateStore().load("missing", "fallback") == "fallback"

    def test_fail_writes(self):
        store = MemoryStateStore({"k": 1})
        store.fail_writes = True
        assert store.save("k", 2) is False
        assert store.delete("k") is False
        assert store.load("k") == 1


class TestJsonStateStore:
    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "state" / "support_state.json"
        store = JsonStateStore(path)
        assert store.save("ai_agent_enabled", True) is True
        assert store.save("ai_agent_settings", {"queueAssignTime": 3000}) is True

        reloaded = JsonStateStore(path)
        assert reloaded.load("ai_agent_enabled") is True
        assert reloaded.load("ai_agent_settings") == {"queueAssignTime": 3000}
        assert json.loads(path.read_text(encoding="utf-8"))["ai_agent_enabled"] is True

    def test_delete(self, tmp_path):
        store = JsonStateStore(tmp_path / "s.json")
        store.save("k", 1)
        assert store.delete("k") is True
        assert store.delete("k") is True
        assert JsonStateStore(tmp_path / "s.json").load("k") is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonStateStore(path)
        assert store.load("k", "default") == "default"
        assert store.save("k", 1) is True

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert JsonStateStore(path).load("k") is None

    def test_unwritable_location_keeps_cache(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        store = JsonStateStore(blocker / "s.json")
        assert store.save("k", 1) is False
        assert store.load("k") == 1


class TestSingleton:
    def test_set_and_get(self):
        store = MemoryStateStore()
        set_state_store(store)
        assert get_state_store() is store
