import tempfile
from pathlib import Path

from mafc.domain.conversation import messages_from_payload, messages_to_payload
from mafc.domain.models import ChatMessage
from mafc.infrastructure.storage.json_store import STORAGE_KEYS, JsonKeyValueStore


def test_store_save_and_load():
    with tempfile.TemporaryDirectory() as d:
        store = JsonKeyValueStore(root=Path(d) / ".storage")
        assert store.load(STORAGE_KEYS["MODEL"], "gemini-2.5-flash") == "gemini-2.5-flash"
        store.save(STORAGE_KEYS["MODEL"], "gemini-2.5-pro")
        store.save(STORAGE_KEYS["API_KEY"], "AIza-key")

        reopened = JsonKeyValueStore(root=Path(d) / ".storage")
        assert reopened.load(STORAGE_KEYS["MODEL"], "") == "gemini-2.5-pro"
        assert reopened.load(STORAGE_KEYS["API_KEY"], "") == "AIza-key"
        assert not list((Path(d) / ".storage").glob("*.tmp"))


def test_store_clear():
    with tempfile.TemporaryDirectory() as d:
        store = JsonKeyValueStore(root=Path(d) / ".storage")
        store.save("a", 1)
        store.save("b", [1, 2])
        assert store.load("a", None) == 1
        assert store.load("b", None) == [1, 2]
        store.clear()
        assert store.load("b", "default") == "default"


def test_failed_replace_keeps_old_value_and_removes_tmp(monkeypatch):
    def fail_replace(src, dst):
        raise OSError("disk full")

    with tempfile.TemporaryDirectory() as d:
        root = Path(d) / ".storage"
        store = JsonKeyValueStore(root=root)
        store.save(STORAGE_KEYS["MODEL"], "gemini-2.5-flash")

        monkeypatch.setattr("mafc.infrastructure.storage.json_store.os.replace", fail_replace)
        store.save(STORAGE_KEYS["MODEL"], "gemini-2.5-pro")

        assert store.load(STORAGE_KEYS["MODEL"], "") == "gemini-2.5-flash"
        assert not list(root.glob("*.tmp"))


def test_store_corrupt_file_falls_back_to_default():
    with tempfile.TemporaryDirectory() as d:
        store = JsonKeyValueStore(root=Path(d) / ".storage")
        store.path.write_text("{not json", encoding="utf-8")
        assert store.load(STORAGE_KEYS["MESSAGES"], []) == []


def test_messages_payload_uses_frontend_field_names():
    msg = ChatMessage(id="m1", role="agent", content="hi", agent_name="Host", timestamp=1700000000000)
    user = ChatMessage(id="m2", role="user", content="yo", timestamp=1)
    payload = messages_to_payload([msg, user])
    assert payload[0] == {"id": "m1", "role": "agent", "content": "hi", "agentName": "Host", "timestamp": 1700000000000}
    assert "agentName" not in payload[1]

    restored = messages_from_payload(payload + [{"role": "agent"}, "junk", {"id": "x", "role": "bot"}])
    assert restored == [msg, user]
    assert messages_from_payload(None) == []
