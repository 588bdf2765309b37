"""Integration tests for the Redis user state store."""

from uuid import uuid4

import pytest

from casual_companion.models import AffectState
from casual_companion.user_state import UserState


@pytest.fixture
def redis_store(skip_if_no_redis):
    pytest.importorskip("redis")
    from casual_companion.storage.user_state.redis import RedisUserStateStore

    # Separate DB and key prefix for testing
    return RedisUserStateStore(db=15, key_prefix=f"test:{uuid4().hex[:8]}:")


@pytest.mark.integration
def test_redis_save_and_load(redis_store):
    state = UserState(user_id="test_user", affect=AffectState(mood="happy", valence=0.8))
    state.phrase_bank.add("oh no that sounds rough")
    state.topic_stack.push("chemistry exam")

    redis_store.save(state)
    try:
        loaded = redis_store.load("test_user")

        assert loaded == state
        assert loaded.affect.mood == "happy"
    finally:
        redis_store.delete("test_user")


@pytest.mark.integration
def test_redis_missing_and_delete(redis_store):
    assert redis_store.load("nobody") is None
    assert not redis_store.delete("nobody")


@pytest.mark.integration
def test_redis_unreadable_state_is_discarded(redis_store):
    redis_store.client.set(redis_store._get_key("test_user"), "{not json")
    try:
        assert redis_store.load("test_user") is None
    finally:
        redis_store.delete("test_user")
