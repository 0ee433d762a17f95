import json
from unittest.mock import MagicMock, patch

import pytest
import redis

from booking_assistant.config import Settings
from booking_assistant.models.context import ConversationContext
from booking_assistant.storage.session_store import (
    InMemorySessionStore, RedisSessionStore, create_session_store,
)


class TestInMemorySessionStore:

    def test_put_get_delete(self):
        store = InMemorySessionStore()
        context = ConversationContext(current_pnr="ABC123")

        assert store.get("s1") is None
        store.put("s1", context)
        assert store.get("s1") == context
        assert store.delete("s1") is True
        assert store.delete("s1") is False

    def test_lock_is_reusable(self):
        store = InMemorySessionStore()
        with store.lock("s1"):
            store.put("s1", ConversationContext())
        with store.lock("s1"):
            assert store.get("s1") == ConversationContext()

    def test_delete_releases_lock_entry(self):
        store = InMemorySessionStore()
        with store.lock("s1"):
            store.put("s1", ConversationContext())
        assert "s1" in store._locks

        with store.lock("s1"):
            store.delete("s1")
            # still held, so the entry stays until the holder leaves
            assert "s1" in store._locks
        assert "s1" not in store._locks

        store.put("s2", ConversationContext())
        with store.lock("s2"):
            pass
        store.delete("s2")
        assert store._locks == {}


class TestRedisSessionStore:

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def store(self, client):
        return RedisSessionStore(client, ttl_seconds=600, lock_timeout=60, blocking_timeout=5)

    def test_put_writes_json_with_ttl(self, store, client):
        store.put("s1", ConversationContext(user_id="u1", last_search_id="search_1"))

        key, ttl, raw = client.setex.call_args.args
        assert key == "session_context:s1"
        assert ttl == 600
        stored = json.loads(raw)
        assert stored["userId"] == "u1"
        assert stored["lastSearchId"] == "search_1"

    def test_get_reads_json(self, store, client):
        client.get.return_value = json.dumps({"currentPnr": "ABC123", "locale": "ar"})

        context = store.get("s1")

        client.get.assert_called_once_with("session_context:s1")
        assert context.current_pnr == "ABC123"
        assert context.locale == "ar"

    def test_get_missing_or_corrupt(self, store, client):
        client.get.return_value = None
        assert store.get("s1") is None

        client.get.return_value = "{not json"
        assert store.get("s1") is None

    def test_delete(self, store, client):
        client.delete.return_value = 1
        assert store.delete("s1") is True
        client.delete.return_value = 0
        assert store.delete("s1") is False

    def test_lock(self, store, client):
        session_lock = client.lock.return_value
        session_lock.acquire.return_value = True

        with store.lock("s1"):
            pass

        client.lock.assert_called_once_with("session_lock:s1", timeout=60, blocking_timeout=5)
        session_lock.release.assert_called_once()

    def test_lock_not_acquired(self, store, client):
        client.lock.return_value.acquire.return_value = False

        with pytest.raises(TimeoutError):
            with store.lock("s1"):
                pass

    def test_expired_lock_on_release_is_tolerated(self, store, client):
        session_lock = client.lock.return_value
        session_lock.acquire.return_value = True
        session_lock.release.side_effect = redis.exceptions.LockError("expired")

        with store.lock("s1"):
            pass

    @patch("booking_assistant.storage.session_store.redis.from_url")
    def test_from_settings_with_url(self, mock_from_url):
        store = RedisSessionStore.from_settings(Settings(redis_url="rediss://cache.example:6380", tool_timeout_seconds=20))

        mock_from_url.assert_called_once_with("rediss://cache.example:6380", decode_responses=True, ssl_cert_reqs=None)
        assert store.blocking_timeout == 25

    @patch("booking_assistant.storage.session_store.redis.from_url")
    def test_from_settings_plain_url(self, mock_from_url):
        RedisSessionStore.from_settings(Settings(redis_url="redis://localhost:6379"))

        mock_from_url.assert_called_once_with("redis://localhost:6379", decode_responses=True)


class TestCreateSessionStore:

    def test_defaults_to_memory(self):
        assert isinstance(create_session_store(Settings()), InMemorySessionStore)

    @patch("booking_assistant.storage.session_store.redis.Redis")
    def test_local_redis(self, mock_redis):
        store = create_session_store(Settings(use_local_redis=True, redis_host="redis", redis_port=6390))

        assert isinstance(store, RedisSessionStore)
        mock_redis.assert_called_once_with(host="redis", port=6390, db=0, decode_responses=True)
