import json

import pytest

from smart_qr_studio.history import HISTORY_KEY, HistoryStore
from smart_qr_studio.model import ValidationError, new_configuration


@pytest.fixture
def store(tmp_path) -> HistoryStore:
    return HistoryStore(tmp_path / "history.json")


def test_missing_file_is_empty(store) -> None:
    assert store.items() == []
    assert len(store) == 0


def test_add_is_newest_first_and_persisted(store) -> None:
    first = store.add(new_configuration(content="one"))
    second = store.add(new_configuration(content="two"))
    assert [i.id for i in store.items()] == [second.id, first.id]

    reloaded = HistoryStore(store.path)
    assert reloaded.items() == store.items()


def test_add_rejects_empty_content(store) -> None:
    with pytest.raises(ValidationError):
        store.add(new_configuration(content="  "))
    assert not store.path.exists()


def test_delete_keeps_order(store) -> None:
    items = [store.add(new_configuration(content=str(n))) for n in range(4)]
    assert store.delete(items[1].id)
    assert [i.config.content for i in store.items()] == ["3", "2", "0"]
    assert not store.delete("missing")


def test_update_keeps_id_and_position(store) -> None:
    older = store.add(new_configuration(content="old"))
    store.add(new_configuration(content="newer"))
    updated = store.update(older.id, new_configuration(content="edited"))
    assert updated.id == older.id
    assert [i.config.content for i in store.items()] == ["newer", "edited"]
    assert HistoryStore(store.path).get(older.id).config.content == "edited"


def test_update_missing_raises(store) -> None:
    with pytest.raises(KeyError):
        store.update("nope", new_configuration(content="x"))


def test_corrupt_file_yields_empty_history(tmp_path) -> None:
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    assert HistoryStore(path).items() == []


def test_bad_entries_yield_empty_history(tmp_path) -> None:
    path = tmp_path / "history.json"
    path.write_text(json.dumps({HISTORY_KEY: [{"content": "no id"}]}), encoding="utf-8")
    assert HistoryStore(path).items() == []


def test_other_slots_are_preserved(tmp_path) -> None:
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
    HistoryStore(path).add(new_configuration(content="x"))
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["theme"] == "dark"
    assert data[HISTORY_KEY][0]["content"] == "x"
    assert "createdAt" in data[HISTORY_KEY][0]
