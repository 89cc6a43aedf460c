from __future__ import annotations

import json
from typing import Any

import structlog
from redis.asyncio import Redis

from aiquiz.quiz.types import QuizResult, QuizSetup

logger = structlog.get_logger(__name__)

SETUP_KEY = "quizSetup"
RESULTS_KEY = "quizResults"
KEY_PREFIX = "aiquiz:browser_session"
VALID_BACKENDS = {"redis", "memory"}


class SessionStorage:
    """Browser-session scoped hand-off between the setup, session and review stages.

    Subclasses provide raw string access; the typed helpers define what each
    stage writes and reads.
    """

    async def get_item(self, browser_session_id: str, key: str) -> str | None:
        raise NotImplementedError

    async def set_item(self, browser_session_id: str, key: str, value: str) -> None:
        raise NotImplementedError

    async def remove_item(self, browser_session_id: str, key: str) -> None:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

    async def write_setup(self, browser_session_id: str, setup: QuizSetup) -> None:
        await self.set_item(browser_session_id, SETUP_KEY, json.dumps(setup.to_record()))

    async def read_setup(self, browser_session_id: str) -> QuizSetup | None:
        record = await self._read_record(browser_session_id, SETUP_KEY)
        if record is None:
            return None
        try:
            return QuizSetup.from_record(record)
        except (KeyError, TypeError, ValueError):
            logger.warning("session_storage_setup_invalid", browser_session_id=browser_session_id)
            return None

    async def write_results(self, browser_session_id: str, result: QuizResult) -> None:
        await self.set_item(browser_session_id, RESULTS_KEY, json.dumps(result.to_record()))

    async def read_results(self, browser_session_id: str) -> QuizResult | None:
        record = await self._read_record(browser_session_id, RESULTS_KEY)
        if record is None:
            return None
        try:
            return QuizResult.from_record(record)
        except (KeyError, TypeError, ValueError):
            logger.warning("session_storage_results_invalid", browser_session_id=browser_session_id)
            return None

    async def _read_record(self, browser_session_id: str, key: str) -> dict[str, Any] | None:
        raw = await self.get_item(browser_session_id, key)
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("session_storage_parse_failed", key=key, browser_session_id=browser_session_id)
            return None
        return parsed if isinstance(parsed, dict) else None


class InMemorySessionStorage(SessionStorage):
    def __init__(self) -> None:
        self._items: dict[tuple[str, str], str] = {}

    async def get_item(self, browser_session_id: str, key: str) -> str | None:
        return self._items.get((browser_session_id, key))

    async def set_item(self, browser_session_id: str, key: str, value: str) -> None:
        self._items[(browser_session_id, key)] = value

    async def remove_item(self, browser_session_id: str, key: str) -> None:
        self._items.pop((browser_session_id, key), None)


class RedisSessionStorage(SessionStorage):
    def __init__(self, client: Redis, *, ttl_seconds: int) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, *, ttl_seconds: int) -> RedisSessionStorage:
        return cls(Redis.from_url(url, decode_responses=True), ttl_seconds=ttl_seconds)

    @staticmethod
    def _key(browser_session_id: str, key: str) -> str:
        return f"{KEY_PREFIX}:{browser_session_id}:{key}"

    async def get_item(self, browser_session_id: str, key: str) -> str | None:
        value = await self._client.get(self._key(browser_session_id, key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set_item(self, browser_session_id: str, key: str, value: str) -> None:
        await self._client.set(self._key(browser_session_id, key), value, ex=self._ttl_seconds)

    async def remove_item(self, browser_session_id: str, key: str) -> None:
        await self._client.delete(self._key(browser_session_id, key))

    async def ping(self) -> bool:
        return await self._client.ping() is True

    async def aclose(self) -> None:
        await self._client.aclose()


def build_session_storage(settings: object) -> SessionStorage:
    backend = str(getattr(settings, "session_storage_backend", "redis")).strip().lower()
    if backend not in VALID_BACKENDS:
        raise ValueError(f"unsupported session storage backend: {backend!r}")
    if backend == "memory":
        return InMemorySessionStorage()
    return RedisSessionStorage.from_url(
        getattr(settings, "redis_url"),
        ttl_seconds=int(getattr(settings, "session_storage_ttl_seconds")),
    )
