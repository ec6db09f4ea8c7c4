# This module persists thread checkpoints (the latest conversation state of each thread).
# Date: 2026-10-19
# Version: 1.0.0

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from chat_agent.core.errors import CheckpointStoreError
from chat_agent.models.common import ConversationState
from chat_agent.utils.logger import console


class CheckpointStore(ABC):
    """
    Durable mapping from thread key to the latest ConversationState.
    A thread that was never written reads as an empty history.
    """

    @abstractmethod
    async def get(self, thread_key: str) -> ConversationState:
        ...

    @abstractmethod
    async def put(self, state: ConversationState) -> None:
        ...

    @abstractmethod
    async def list(self, prefix: Optional[str] = None) -> List[ConversationState]:
        """Enumerates every known thread, optionally restricted to keys starting with `prefix`."""

    @abstractmethod
    async def delete(self, thread_key: str) -> bool:
        ...

    async def close(self) -> None:
        return None


class InMemoryCheckpointStore(CheckpointStore):
    """Dict-backed store for tests and single-process development."""

    def __init__(self) -> None:
        self._states: Dict[str, ConversationState] = {}

    async def get(self, thread_key: str) -> ConversationState:
        state = self._states.get(thread_key)
        if state is None:
            return ConversationState(thread_key=thread_key)
        return state.model_copy()

    async def put(self, state: ConversationState) -> None:
        self._states[state.thread_key] = state.model_copy()

    async def list(self, prefix: Optional[str] = None) -> List[ConversationState]:
        return [
            state.model_copy()
            for key, state in self._states.items()
            if prefix is None or key.startswith(prefix)
        ]

    async def delete(self, thread_key: str) -> bool:
        return self._states.pop(thread_key, None) is not None


class RedisCheckpointStore(CheckpointStore):
    """
    Persists each thread as a JSON document in Redis and tracks the known
    thread keys in a set. Checkpoints never expire; deletion is explicit.
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "chat_agent"):
        self._redis_client = redis_client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, key_prefix: str = "chat_agent") -> "RedisCheckpointStore":
        client = from_url(redis_url, decode_responses=True)
        console.info("Async Redis client for thread checkpoints initialized.")
        return cls(client, key_prefix)

    def _key(self, thread_key: str) -> str:
        return f"{self._key_prefix}:checkpoint:{thread_key}"

    @property
    def _index_key(self) -> str:
        return f"{self._key_prefix}:checkpoints"

    async def get(self, thread_key: str) -> ConversationState:
        try:
            state_json = await self._redis_client.get(self._key(thread_key))
        except RedisError as e:
            console.exception(f"Failed to read checkpoint '{thread_key}' from Redis.", kind=CheckpointStoreError.kind)
            raise CheckpointStoreError(f"Could not read thread '{thread_key}'", cause=e) from e

        if not state_json:
            console.info(f"Thread '{thread_key}' not found in Redis. Starting an empty history.")
            return ConversationState(thread_key=thread_key)
        return ConversationState.model_validate_json(state_json)

    async def put(self, state: ConversationState) -> None:
        try:
            async with self._redis_client.pipeline(transaction=True) as pipe:
                pipe.set(self._key(state.thread_key), state.model_dump_json())
                pipe.sadd(self._index_key, state.thread_key)
                await pipe.execute()
            console.info(f"Thread '{state.thread_key}' saved to Redis ({len(state.messages)} messages).")
        except RedisError as e:
            console.exception(f"Failed to save thread '{state.thread_key}' to Redis.", kind=CheckpointStoreError.kind)
            raise CheckpointStoreError(f"Could not write thread '{state.thread_key}'", cause=e) from e

    async def list(self, prefix: Optional[str] = None) -> List[ConversationState]:
        try:
            thread_keys = sorted(await self._redis_client.smembers(self._index_key))
            if prefix is not None:
                thread_keys = [key for key in thread_keys if key.startswith(prefix)]
            if not thread_keys:
                return []
            documents = await self._redis_client.mget([self._key(key) for key in thread_keys])
        except RedisError as e:
            console.exception("Failed to enumerate threads in Redis.", kind=CheckpointStoreError.kind)
            raise CheckpointStoreError("Could not list threads", cause=e) from e

        return [ConversationState.model_validate_json(doc) for doc in documents if doc]

    async def delete(self, thread_key: str) -> bool:
        try:
            async with self._redis_client.pipeline(transaction=True) as pipe:
                pipe.delete(self._key(thread_key))
                pipe.srem(self._index_key, thread_key)
                deleted, _ = await pipe.execute()
        except RedisError as e:
            console.exception(f"Failed to delete thread '{thread_key}' from Redis.", kind=CheckpointStoreError.kind)
            raise CheckpointStoreError(f"Could not delete thread '{thread_key}'", cause=e) from e
        return bool(deleted)

    async def close(self) -> None:
        await self._redis_client.aclose()
