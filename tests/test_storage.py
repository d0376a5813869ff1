import json

from relay_chat.client.storage import JsonFileStorage, MemoryStorage, StoredSession
from relay_chat.shared.dto import ChatMessage, Identity


def _session():
    alice = Identity(user_id="u1", username="Alice", avatar="pic")
    return StoredSession(identity=alice, chat=[ChatMessage.compose(alice, "hello\nworld")])


def test_json_storage_survives_restart(tmp_path):
    path = tmp_path / "state.json"
    JsonFileStorage(path).save_session(_session())

    loaded = JsonFileStorage(path).load_session()
    assert loaded.identity == Identity(user_id="u1", username="Alice", avatar="pic")
    assert [m.text for m in loaded.chat] == ["hello\nworld"]


def test_json_storage_writes_plain_payloads(tmp_path):
    path = tmp_path / "state.json"
    JsonFileStorage(path).save_session(_session())
    state = json.loads(path.read_text(encoding="utf-8"))
    assert state["identity"] == {"userId": "u1", "username": "Alice", "avatar": "pic"}
    assert state["chat"][0]["userId"] == "u1"


def test_json_storage_missing_or_corrupt_file(tmp_path):
    path = tmp_path / "state.json"
    assert JsonFileStorage(path).load_session() == StoredSession()
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileStorage(path).load_session() == StoredSession()


def test_json_storage_clear(tmp_path):
    storage = JsonFileStorage(tmp_path / "state.json")
    storage.save_session(_session())
    storage.clear_session()
    storage.clear_session()
    assert storage.load_session().identity is None


def test_from_state_skips_unusable_entries():
    loaded = StoredSession.from_state({"identity": "Alice", "chat": [{"id": "m1", "text": "ok"}, "junk"]})
    assert loaded.identity is None
    assert [m.id for m in loaded.chat] == ["m1"]


def test_memory_storage_counts_saves():
    storage = MemoryStorage()
    storage.save_session(_session())
    assert storage.saves == 1
    assert storage.load_session().identity.username == "Alice"
    storage.clear_session()
    assert storage.load_session() == StoredSession()
