import json

import pytest

from store import JsonFileStore, MemoryStore, PersistenceUnavailable, profile_store_path, read_flag


@pytest.mark.parametrize(
    "value,default,expected",
    [
        (None, True, True),
        ("false", True, False),
        ("anything", True, True),
        (None, False, False),
        ("true", False, True),
        ("True", False, False),
    ],
)
def test_read_flag(value, default, expected):
    assert read_flag(value, default) is expected


def test_memory_store_rejects_non_strings():
    with pytest.raises(TypeError):
        MemoryStore().set("isLoggedIn", True)


def test_json_store_survives_reopen(tmp_path):
    path = str(tmp_path / "profiles" / "alice.json")

    store = JsonFileStore(path)
    store.set("userName", "Alice")
    store.set("theme", "dark")

    reopened = JsonFileStore(path)
    assert reopened.get("userName") == "Alice"
    assert reopened.get("theme") == "dark"


def test_json_store_clear_empties_the_file(tmp_path):
    path = tmp_path / "bob.json"
    store = JsonFileStore(str(path))
    store.set("isLoggedIn", "true")

    store.clear()

    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_corrupt_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonFileStore(str(path))

    assert store.get("userName") is None


def test_unreadable_store_raises_persistence_unavailable(tmp_path):
    path = tmp_path / "blocked.json"
    path.mkdir()

    with pytest.raises(PersistenceUnavailable):
        JsonFileStore(str(path))


def test_unwritable_store_raises_persistence_unavailable(tmp_path):
    # A plain file sits where the profile directory should be.
    (tmp_path / "profiles").write_text("", encoding="utf-8")
    store = JsonFileStore(str(tmp_path / "profiles" / "carol.json"))

    with pytest.raises(PersistenceUnavailable):
        store.set("theme", "dark")


def test_profile_path_strips_unsafe_characters(tmp_path):
    assert profile_store_path(str(tmp_path), "../../etc/passwd") == str(tmp_path / "etcpasswd.json")
    assert profile_store_path(str(tmp_path), "///") == str(tmp_path / "default.json")


def test_two_handles_on_one_profile_see_each_others_writes(tmp_path):
    # Arrange: two connections open the same profile file
    path = str(tmp_path / "shared.json")
    first_tab = JsonFileStore(path)
    first_tab.set("userEmail", "x@y.z")
    first_tab.set("isLoggedIn", "true")
    second_tab = JsonFileStore(path)

    # Act: one signs out, the other keeps working
    first_tab.clear()
    second_tab.set("theme", "dark")

    # Assert: the cleared keys stay cleared
    assert second_tab.get("isLoggedIn") is None
    assert json.loads((tmp_path / "shared.json").read_text(encoding="utf-8")) == {"theme": "dark"}
    assert first_tab.get("theme") == "dark"
