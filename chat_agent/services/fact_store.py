# This module persists long-lived user facts (cross-thread memory).
# Date: 2026-10-19
# Version: 1.0.0

import itertools
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from chat_agent.core.errors import FactStoreError
from chat_agent.models.common import MemoryFact, utc_now_iso
from chat_agent.utils.logger import console

DEFAULT_SEARCH_LIMIT = 50


def namespace_key(namespace: List[str]) -> str:
    return ":".join(namespace)


def recency_score(created_at: str) -> float:
    """
    Seconds since the epoch for an ISO-8601 timestamp. A trailing `Z` is read
    as UTC, and so is a timestamp without an offset.
    """
    if created_at.endswith(("Z", "z")):
        created_at = created_at[:-1] + "+00:00"
    moment = datetime.fromisoformat(created_at)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


class FactStore(ABC):
    """
    Namespaced store of MemoryFact records. Reads are newest-first and bounded.
    A put with an existing key overwrites the text and keeps the creation time.
    """

    @abstractmethod
    async def search(self, namespace: List[str], limit: int = DEFAULT_SEARCH_LIMIT) -> List[MemoryFact]:
        ...

    @abstractmethod
    async def put(self, namespace: List[str], key: str, value: Dict[str, Any]) -> None:
        """Stores `value["fact"]` under `key`; `value["created_at"]` is optional."""

    @abstractmethod
    async def delete(self, namespace: List[str], key: str) -> bool:
        ...

    async def close(self) -> None:
        return None


class InMemoryFactStore(FactStore):

    def __init__(self) -> None:
        self._facts: Dict[str, Dict[str, Tuple[int, MemoryFact]]] = {}
        self._sequence = itertools.count()

    async def search(self, namespace: List[str], limit: int = DEFAULT_SEARCH_LIMIT) -> List[MemoryFact]:
        rows = self._facts.get(namespace_key(namespace), {}).values()
        # Insertion order breaks ties between facts created in the same instant.
        ordered = sorted(rows, key=lambda row: (recency_score(row[1].created_at), row[0]), reverse=True)
        return [fact.model_copy() for _, fact in ordered[:limit]]

    async def put(self, namespace: List[str], key: str, value: Dict[str, Any]) -> None:
        bucket = self._facts.setdefault(namespace_key(namespace), {})
        existing = bucket.get(key)
        if existing is not None:
            sequence, fact = existing
            bucket[key] = (sequence, fact.model_copy(update={"text": value["fact"]}))
            return
        fact = MemoryFact(
            id=key,
            namespace=list(namespace),
            text=value["fact"],
            created_at=value.get("created_at") or utc_now_iso(),
        )
        bucket[key] = (next(self._sequence), fact)

    async def delete(self, namespace: List[str], key: str) -> bool:
        return self._facts.get(namespace_key(namespace), {}).pop(key, None) is not None


class RedisFactStore(FactStore):
    """
    Keeps one hash of facts per namespace plus a sorted set scored by creation
    time, so that recency-limited reads are a single range query.
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "chat_agent"):
        self._redis_client = redis_client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, key_prefix: str = "chat_agent") -> "RedisFactStore":
        client = from_url(redis_url, decode_responses=True)
        console.info("Async Redis client for the memory store initialized.")
        return cls(client, key_prefix)

    def _keys(self, namespace: List[str]) -> Tuple[str, str]:
        base = f"{self._key_prefix}:facts:{namespace_key(namespace)}"
        return f"{base}:data", f"{base}:recency"

    async def search(self, namespace: List[str], limit: int = DEFAULT_SEARCH_LIMIT) -> List[MemoryFact]:
        data_key, recency_key = self._keys(namespace)
        try:
            fact_ids = await self._redis_client.zrevrange(recency_key, 0, limit - 1)
            if not fact_ids:
                return []
            documents = await self._redis_client.hmget(data_key, fact_ids)
        except RedisError as e:
            raise FactStoreError(f"Could not search memories for '{namespace_key(namespace)}'", cause=e) from e

        return [MemoryFact.model_validate_json(doc) for doc in documents if doc]

    async def put(self, namespace: List[str], key: str, value: Dict[str, Any]) -> None:
        data_key, recency_key = self._keys(namespace)
        try:
            existing = await self._redis_client.hget(data_key, key)
            if existing:
                fact = MemoryFact.model_validate_json(existing).model_copy(update={"text": value["fact"]})
            else:
                fact = MemoryFact(
                    id=key,
                    namespace=list(namespace),
                    text=value["fact"],
                    created_at=value.get("created_at") or utc_now_iso(),
                )
            score = recency_score(fact.created_at)
            async with self._redis_client.pipeline(transaction=True) as pipe:
                pipe.hset(data_key, key, fact.model_dump_json())
                pipe.zadd(recency_key, {key: score})
                await pipe.execute()
        except RedisError as e:
            raise FactStoreError(f"Could not save memory '{key}'", cause=e) from e

    async def delete(self, namespace: List[str], key: str) -> bool:
        data_key, recency_key = self._keys(namespace)
        try:
            async with self._redis_client.pipeline(transaction=True) as pipe:
                pipe.hdel(data_key, key)
                pipe.zrem(recency_key, key)
                removed, _ = await pipe.execute()
        except RedisError as e:
            raise FactStoreError(f"Could not delete memory '{key}'", cause=e) from e
        return bool(removed)

    async def close(self) -> None:
        await self._redis_client.aclose()
