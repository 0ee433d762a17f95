import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import redis

from booking_assistant.config import Settings
from booking_assistant.models.context import ConversationContext

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """
    Where conversation contexts live between turns.

    `lock(session_id)` gives per-session mutual exclusion for the
    read-modify-write of one turn; different sessions never block each other.
    """

    @abstractmethod
    def get(self, session_id: str) -> Optional[ConversationContext]:
        pass

    @abstractmethod
    def put(self, session_id: str, context: ConversationContext):
        pass

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        pass

    @abstractmethod
    def lock(self, session_id: str):
        """Context manager holding the session's lock"""
        pass


class _SessionLock:
    def __init__(self):
        self.lock = threading.Lock()
        # threads holding or waiting on the lock
        self.users = 0


class InMemorySessionStore(SessionStore):
    """
    Process-local store for development and tests; contexts do not expire.

    A session's lock entry lives while someone uses it or the session has a
    stored context, so deleted sessions do not leave locks behind.
    """

    def __init__(self):
        self._contexts: Dict[str, ConversationContext] = {}
        self._locks: Dict[str, _SessionLock] = {}
        self._guard = threading.Lock()

    def get(self, session_id: str) -> Optional[ConversationContext]:
        with self._guard:
            return self._contexts.get(session_id)

    def put(self, session_id: str, context: ConversationContext):
        with self._guard:
            self._contexts[session_id] = context

    def delete(self, session_id: str) -> bool:
        with self._guard:
            removed = self._contexts.pop(session_id, None) is not None
            entry = self._locks.get(session_id)
            if entry is not None and entry.users == 0:
                del self._locks[session_id]
            return removed

    @contextmanager
    def lock(self, session_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(session_id, _SessionLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0 and session_id not in self._contexts:
                    self._locks.pop(session_id, None)


class RedisSessionStore(SessionStore):
    """Contexts as JSON under `session_context:<id>` with a sliding TTL"""

    KEY_PREFIX = "session_context"
    LOCK_PREFIX = "session_lock"

    def __init__(self, client: "redis.Redis", ttl_seconds: int = 3600, lock_timeout: int = 60,
                 blocking_timeout: Optional[float] = 35):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.lock_timeout = lock_timeout
        self.blocking_timeout = blocking_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisSessionStore":
        if settings.redis_url:
            options = {"decode_responses": True}
            if settings.redis_url.startswith("rediss://"):
                # managed Redis (Heroku) serves self-signed certificates
                options["ssl_cert_reqs"] = None
            client = redis.from_url(settings.redis_url, **options)
        else:
            client = redis.Redis(host=settings.redis_host, port=settings.redis_port, db=0, decode_responses=True)
        return cls(client, ttl_seconds=settings.session_ttl_seconds,
                   blocking_timeout=settings.tool_timeout_seconds + 5)

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}:{session_id}"

    def get(self, session_id: str) -> Optional[ConversationContext]:
        raw = self.client.get(self._key(session_id))
        if not raw:
            return None
        try:
            return ConversationContext.from_dict(json.loads(raw))
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable context for session {session_id}: {e}")
            return None

    def put(self, session_id: str, context: ConversationContext):
        self.client.setex(self._key(session_id), self.ttl_seconds, json.dumps(context.to_dict()))

    def delete(self, session_id: str) -> bool:
        return bool(self.client.delete(self._key(session_id)))

    @contextmanager
    def lock(self, session_id: str) -> Iterator[None]:
        session_lock = self.client.lock(
            f"{self.LOCK_PREFIX}:{session_id}", timeout=self.lock_timeout, blocking_timeout=self.blocking_timeout,
        )
        if not session_lock.acquire():
            raise TimeoutError(f"Session {session_id} is busy with another request")
        try:
            yield
        finally:
            try:
                session_lock.release()
            except redis.exceptions.LockError as e:
                # lock expired while the turn was still running
                logger.warning(f"Lost session lock for {session_id}: {e}")


def create_session_store(settings: Settings) -> SessionStore:
    if settings.uses_redis:
        logger.info("Using Redis for conversation context storage")
        return RedisSessionStore.from_settings(settings)
    logger.info("Using local storage for conversation context")
    return InMemorySessionStore()
