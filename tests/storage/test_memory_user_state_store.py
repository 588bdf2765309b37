"""Unit tests for in-memory user state storage."""

from casual_companion.models import AffectState
from casual_companion.storage.user_state.memory import InMemoryUserStateStore
from casual_companion.user_state import UserState


def test_save_load_delete():
    store = InMemoryUserStateStore()
    state = UserState(user_id="alice")
    state.phrase_bank.add("hey there friend")

    store.save(state)
    loaded = store.load("alice")

    assert loaded == state
    assert store.delete("alice")
    assert store.load("alice") is None
    assert not store.delete("alice")


def test_unsaved_changes_stay_local():
    store = InMemoryUserStateStore()
    store.save(UserState(user_id="alice"))

    loaded = store.load("alice")
    loaded.affect = AffectState(valence=0.9, arousal=0.9)

    assert store.load("alice").affect == AffectState()
