"""Integration tests for the Redis-backed stores.

Tests skip gracefully when no Redis server is reachable at REDIS_URL.
"""

import os
from uuid import uuid4

import pytest
import pytest_asyncio
import redis.asyncio as redis
from redis.exceptions import RedisError

from chat_agent.models.common import ConversationState, Message, memory_namespace
from chat_agent.services.checkpoint_store import RedisCheckpointStore
from chat_agent.services.fact_store import RedisFactStore

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/15")


@pytest_asyncio.fixture
async def redis_client():
    client = redis.from_url(REDIS_URL, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError):
        await client.aclose()
        pytest.skip("Redis is not available")
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def key_prefix(redis_client):
    prefix = f"test_{uuid4().hex}"
    yield prefix
    keys = [key async for key in redis_client.scan_iter(f"{prefix}:*")]
    if keys:
        await redis_client.delete(*keys)


@pytest.mark.integration
class TestRedisCheckpointStore:
    @pytest.mark.asyncio
    async def test_roundtrip_and_listing(self, redis_client, key_prefix):
        store = RedisCheckpointStore(redis_client, key_prefix)
        state = ConversationState(thread_key="u1:t1").extend([Message(role="user", content="hi")])

        assert (await store.get("u1:t1")).messages == []
        await store.put(state)
        await store.put(ConversationState(thread_key="u2:t1"))

        assert (await store.get("u1:t1")).messages == state.messages
        assert [s.thread_key for s in await store.list(prefix="u1:")] == ["u1:t1"]
        assert await store.delete("u1:t1")
        assert await store.list(prefix="u1:") == []


@pytest.mark.integration
class TestRedisFactStore:
    @pytest.mark.asyncio
    async def test_newest_first_and_isolated(self, redis_client, key_prefix):
        store = RedisFactStore(redis_client, key_prefix)
        ns = memory_namespace("alice")
        await store.put(ns, "m1", {"fact": "User likes tea", "created_at": "2026-01-01T00:00:00+00:00"})
        await store.put(ns, "m2", {"fact": "User's name is Alice", "created_at": "2026-01-02T00:00:00+00:00"})

        assert [f.text for f in await store.search(ns)] == ["User's name is Alice", "User likes tea"]
        assert await store.search(memory_namespace("bob")) == []

    @pytest.mark.asyncio
    async def test_overwrite_and_delete(self, redis_client, key_prefix):
        store = RedisFactStore(redis_client, key_prefix)
        ns = memory_namespace("alice")
        await store.put(ns, "m1", {"fact": "old"})
        await store.put(ns, "m1", {"fact": "new"})

        assert [f.text for f in await store.search(ns)] == ["new"]
        assert await store.delete(ns, "m1")
        assert await store.search(ns) == []
