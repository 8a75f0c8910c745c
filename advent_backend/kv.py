"""
Key-value store abstraction for chat session documents.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Values are JSON documents.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

from advent_backend.errors import BackendError


class KvStore(Protocol):
    """Minimal JSON document interface over a key-value namespace."""

    def get_json(self, key: str) -> Optional[Any]:
        ...

    def put_json(self, key: str, value: Any) -> None:
        ...


@dataclass
class InMemoryKvStore:
    """Dict-backed store for testing/dev."""

    items: dict[str, str] = field(default_factory=dict)

    def get_json(self, key: str) -> Optional[Any]:
        raw = self.items.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def put_json(self, key: str, value: Any) -> None:
        self.items[key] = json.dumps(value)

    def reset(self) -> None:
        self.items.clear()


@dataclass
class RedisKvStore:
    """Redis-backed store; every key is namespaced with `key_prefix`."""

    url: str
    key_prefix: str = "harper-advent:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self._key(key))
        except redis_exceptions.RedisError as exc:
            raise BackendError("kv", str(exc)) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise BackendError("kv", f"Invalid JSON stored at {key}") from exc

    def put_json(self, key: str, value: Any) -> None:
        try:
            self.client.set(self._key(key), json.dumps(value))
        except redis_exceptions.RedisError as exc:
            raise BackendError("kv", str(exc)) from exc
