# chat_agent/core/orchestrator.py
# Turn processing: load the thread, recall memories, run the respond/act loop,
# learn new facts and write the thread back.
# Date: 2026-10-19
# Version: 1.0.0

import asyncio
import weakref
from uuid import uuid4
from typing import List, Optional, Sequence

from chat_agent.core.config import Settings
from chat_agent.core.errors import ChatAgentError
from chat_agent.core.graph import ToolExecutionLoop
from chat_agent.core.memory_manager import MemoryManager, render_memory_section
from chat_agent.core.tool_registry import ToolRegistry
from chat_agent.models.common import (
    ConversationState, MemoryFact, Message, ThreadSummary,
    append_messages, make_thread_key, parse_thread_key,
)
from chat_agent.services.checkpoint_store import CheckpointStore, InMemoryCheckpointStore, RedisCheckpointStore
from chat_agent.services.fact_store import FactStore, InMemoryFactStore, RedisFactStore
from chat_agent.services.llm_connector import LanguageModel, OpenAIChatModel
from chat_agent.services.tool_provider import LocalToolProvider, McpToolProvider, ToolProvider
from chat_agent.utils.logger import console

SYSTEM_PROMPT = "You are a helpful AI assistant with memory. You remember things users tell you about themselves across conversations."

DEFAULT_THREAD_TITLE = "New Chat"


def build_system_prompt(facts: Sequence[MemoryFact]) -> str:
    """The fixed system prompt, followed by the user's known facts when there are any."""
    section = render_memory_section(facts)
    if not section:
        return SYSTEM_PROMPT
    return f"{SYSTEM_PROMPT}\n\n{section}"


def visible_messages(messages: Sequence[Message]) -> List[Message]:
    """User messages and final assistant answers; tool traffic and system prompts are hidden."""
    return [
        m for m in messages
        if m.role == "user" or (m.role == "assistant" and not m.tool_calls)
    ]


def summarize_thread(state: ConversationState) -> ThreadSummary:
    _, thread_id = parse_thread_key(state.thread_key)
    first_user_message = next((m for m in state.messages if m.role == "user"), None)
    title = first_user_message.text()[:50] if first_user_message else ""
    return ThreadSummary(
        id=thread_id,
        full_thread_id=state.thread_key,
        title=title or DEFAULT_THREAD_TITLE,
        message_count=len(state.messages),
    )


class ChatAgent:
    """
    Processes one turn at a time per thread. Turns on the same thread are
    serialized inside this process; callers running several processes must
    serialize turns per thread themselves.
    """

    def __init__(self, model: LanguageModel, registry: ToolRegistry,
                 checkpoints: CheckpointStore, memory: MemoryManager,
                 max_round_trips: int = 10,
                 tool_provider: Optional[ToolProvider] = None):
        self.registry = registry
        self.checkpoints = checkpoints
        self.memory = memory
        self.loop = ToolExecutionLoop(model, registry, max_round_trips=max_round_trips)
        self._tool_provider = tool_provider
        self._thread_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, thread_key: str) -> asyncio.Lock:
        lock = self._thread_locks.get(thread_key)
        if lock is None:
            lock = asyncio.Lock()
            self._thread_locks[thread_key] = lock
        return lock

    async def process_turn(self, thread_id: str, user_id: Optional[str], new_message: str) -> Message:
        """
        Runs one turn and returns only the final assistant message. Every
        intermediate tool call and tool result is persisted with the thread.

        Raises:
            ModelInvocationError: The model failed; nothing is persisted.
            ToolLoopExceededError: The model kept calling tools; nothing is persisted.
            CheckpointStoreError: The thread could not be read or written.
            ValueError: The user ID contains a colon.
        """
        thread_key = make_thread_key(user_id, thread_id)
        lock = self._lock_for(thread_key)
        async with lock:
            state = await self.checkpoints.get(thread_key)
            known_facts = await self.memory.recall(user_id)

            user_message = Message(role="user", content=new_message)
            update = [user_message]
            if state.has_system_message:
                working = append_messages(state.messages, update)
            else:
                system_message = Message(role="system", content=build_system_prompt(known_facts))
                working = [system_message] + append_messages(state.messages, update)
                if not state.messages:
                    update = [system_message, user_message]

            try:
                result = await self.loop.run(working)
            except ChatAgentError as e:
                console.error(f"Turn failed for thread '{thread_key}': {e}", kind=e.kind)
                raise

            await self.memory.remember(user_id, append_messages(working, result.new_messages), known_facts)

            await self.checkpoints.put(state.extend(append_messages(update, result.new_messages)))
            console.success(f"Turn completed for thread '{thread_key}' after {result.round_trips} tool round-trips.")
            return result.final

    async def get_thread(self, user_id: Optional[str], thread_id: str) -> ConversationState:
        return await self.checkpoints.get(make_thread_key(user_id, thread_id))

    async def list_threads(self, user_id: str) -> List[ThreadSummary]:
        states = await self.checkpoints.list(prefix=make_thread_key(user_id, ""))
        states = [s for s in states if parse_thread_key(s.thread_key)[0] == user_id]
        states.sort(key=lambda s: s.updated_at, reverse=True)
        return [summarize_thread(state) for state in states]

    async def delete_thread(self, user_id: Optional[str], thread_id: str) -> bool:
        thread_key = make_thread_key(user_id, thread_id)
        async with self._lock_for(thread_key):
            deleted = await self.checkpoints.delete(thread_key)
        console.info(f"Deleted thread: {thread_key}" if deleted else f"Thread not found: {thread_key}")
        return deleted

    async def list_memories(self, user_id: str) -> List[MemoryFact]:
        return await self.memory.list_memories(user_id)

    async def forget(self, user_id: str, memory_id: str) -> bool:
        return await self.memory.forget(user_id, memory_id)

    @staticmethod
    def new_thread_id() -> str:
        """Generates a new thread ID. The thread itself is created by its first message."""
        return str(uuid4())

    async def close(self) -> None:
        await self.checkpoints.close()
        await self.memory.store.close()
        if self._tool_provider is not None:
            await self._tool_provider.close()


async def build_agent(settings: Settings) -> ChatAgent:
    """Wires the agent from settings and loads the tool registry once."""
    if settings.STORAGE_BACKEND == "redis":
        checkpoints: CheckpointStore = RedisCheckpointStore.from_url(settings.REDIS_URL, settings.REDIS_KEY_PREFIX)
        facts: FactStore = RedisFactStore.from_url(settings.REDIS_URL, settings.REDIS_KEY_PREFIX)
    else:
        checkpoints = InMemoryCheckpointStore()
        facts = InMemoryFactStore()

    if settings.TOOL_SERVER_URL:
        provider: ToolProvider = McpToolProvider(settings.TOOL_SERVER_URL)
    else:
        provider = LocalToolProvider.discover()
    registry = await ToolRegistry.load(provider, timeout=settings.TOOL_TIMEOUT_SECONDS)

    model = OpenAIChatModel.from_settings(settings)
    memory = MemoryManager(model, facts,
                           search_limit=settings.MEMORY_SEARCH_LIMIT,
                           window=settings.MEMORY_WINDOW)
    return ChatAgent(model, registry, checkpoints, memory,
                     max_round_trips=settings.MAX_TOOL_ROUND_TRIPS,
                     tool_provider=provider)
