"""End-to-end tests of turn processing with scripted model and in-memory stores."""

import asyncio

import pytest

from chat_agent.core.errors import CheckpointStoreError, ModelInvocationError, ToolLoopExceededError
from chat_agent.core.orchestrator import SYSTEM_PROMPT, build_system_prompt, visible_messages
from chat_agent.models.common import Message, ToolCall, memory_namespace
from chat_agent.services.checkpoint_store import InMemoryCheckpointStore

from conftest import assistant, tool_request


class TestProcessTurn:
    @pytest.mark.asyncio
    async def test_history_is_append_only(self, agent, model, checkpoint_store):
        model.queue(assistant("one"), assistant("two"), assistant("three"))
        snapshots = []
        for text in ["first", "second", "third"]:
            await agent.process_turn("t1", "u1", text)
            snapshots.append((await checkpoint_store.get("u1:t1")).messages)

        for before, after in zip(snapshots, snapshots[1:]):
            assert len(after) > len(before)
            assert after[:len(before)] == before

    @pytest.mark.asyncio
    async def test_first_turn_persists_system_then_user(self, agent, model, checkpoint_store):
        model.queue(assistant("hello"))

        await agent.process_turn("t1", "u1", "hi")

        messages = (await checkpoint_store.get("u1:t1")).messages
        assert [m.role for m in messages] == ["system", "user", "assistant"]
        assert messages[0].content == SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_system_prompt_chosen_once_per_thread(self, agent, model, checkpoint_store):
        await agent.process_turn("t1", "u1", "hi")
        await agent.process_turn("t1", "u1", "again")

        messages = (await checkpoint_store.get("u1:t1")).messages
        assert [m.role for m in messages].count("system") == 1
        assert model.calls[1][0].role == "system"

    @pytest.mark.asyncio
    async def test_tool_round_trip_is_persisted_but_hidden(self, agent, model, checkpoint_store):
        call = ToolCall(id="call_1", name="echo", arguments={"text": "ping"})
        model.queue(tool_request(call), assistant("pong"))

        final = await agent.process_turn("t1", "u1", "echo ping")

        assert final.role == "assistant"
        assert final.content == "pong"
        assert not final.tool_calls
        messages = (await checkpoint_store.get("u1:t1")).messages
        assert [m.role for m in messages[1:]] == ["user", "assistant", "tool", "assistant"]
        assert messages[2].tool_calls[0].id == "call_1"
        assert messages[3].tool_call_id == "call_1"
        assert "ping" in messages[3].content
        assert [m.content for m in visible_messages(messages)] == ["echo ping", "pong"]

    @pytest.mark.asyncio
    async def test_thread_isolation_between_users(self, agent, model):
        model.queue(assistant("for A"))
        await agent.process_turn("1", "A", "secret of A")

        state_b = await agent.get_thread("B", "1")
        assert state_b.messages == []

    @pytest.mark.asyncio
    async def test_failed_turn_persists_nothing(self, agent, model, checkpoint_store):
        async def broken(messages, tools=None):
            raise ModelInvocationError("provider down")

        model.complete = broken
        with pytest.raises(ModelInvocationError):
            await agent.process_turn("t1", "u1", "hi")

        assert await checkpoint_store.list() == []

    @pytest.mark.asyncio
    async def test_tool_loop_exceeded(self, make_agent, model, checkpoint_store):
        agent = make_agent(max_round_trips=1)
        call = ToolCall(id="c", name="echo", arguments={"text": "again"})
        model.queue(tool_request(call), tool_request(call), tool_request(call))

        with pytest.raises(ToolLoopExceededError):
            await agent.process_turn("t1", "u1", "loop forever")

        assert (await checkpoint_store.get("u1:t1")).messages == []

    @pytest.mark.asyncio
    async def test_checkpoint_write_failure_is_fatal(self, model, registry, fact_store):
        from chat_agent.core.memory_manager import MemoryManager
        from chat_agent.core.orchestrator import ChatAgent

        class ReadOnlyStore(InMemoryCheckpointStore):
            async def put(self, state):
                raise CheckpointStoreError("disk full")

        agent = ChatAgent(model, registry, ReadOnlyStore(), MemoryManager(model, fact_store))

        with pytest.raises(CheckpointStoreError):
            await agent.process_turn("t1", "u1", "hi")

    @pytest.mark.asyncio
    async def test_extraction_failure_still_persists_turn(self, agent, model, checkpoint_store):
        model.extraction_error = RuntimeError("unexpected response shape")
        model.queue(assistant("hello"))

        final = await agent.process_turn("t1", "u1", "hi")

        assert final.content == "hello"
        messages = (await checkpoint_store.get("u1:t1")).messages
        assert [m.role for m in messages] == ["system", "user", "assistant"]

    @pytest.mark.asyncio
    async def test_same_thread_turns_are_serialized(self, agent, model, checkpoint_store):
        await asyncio.gather(*(agent.process_turn("t1", "u1", f"msg {i}") for i in range(5)))

        messages = (await checkpoint_store.get("u1:t1")).messages
        assert [m.role for m in messages].count("user") == 5
        assert len(messages) == 1 + 5 * 2


class TestMemoryAcrossThreads:
    @pytest.mark.asyncio
    async def test_empty_memory_has_no_remember_section(self, agent, model):
        await agent.process_turn("t1", "newcomer", "hi")

        system = model.calls[0][0]
        assert system.content == SYSTEM_PROMPT
        assert "remember about this user" not in system.content

    @pytest.mark.asyncio
    async def test_alice_likes_tea(self, agent, model, fact_store):
        model.extraction = '["User\'s name is Alice", "User likes tea"]'
        model.queue(assistant("Nice to meet you, Alice!"))

        await agent.process_turn("thread-1", "alice", "My name is Alice and I like tea.")

        stored = {f.text for f in await fact_store.search(memory_namespace("alice"))}
        assert stored == {"User's name is Alice", "User likes tea"}

        model.extraction = "[]"
        model.queue(assistant("You like tea."))
        final = await agent.process_turn("thread-2", "alice", "What do I like?")

        system = model.calls[-1][0]
        assert "- User's name is Alice" in system.content
        assert "- User likes tea" in system.content
        assert final.content == "You like tea."

    @pytest.mark.asyncio
    async def test_facts_are_isolated_per_user(self, agent, model, fact_store):
        model.extraction = '["User likes tea"]'
        await agent.process_turn("1", "A", "I like tea")

        model.extraction = "[]"
        await agent.process_turn("1", "B", "hello")

        assert await fact_store.search(memory_namespace("B")) == []
        assert "User likes tea" not in model.calls[-1][0].content

    @pytest.mark.asyncio
    async def test_extraction_sees_tool_traffic(self, agent, model):
        call = ToolCall(id="w", name="echo", arguments={"text": "sunny"})
        model.queue(tool_request(call), assistant("It is sunny."))

        await agent.process_turn("t1", "u1", "weather?")

        prompt = model.extraction_calls[0]
        assert "User: weather?" in prompt
        assert 'Assistant: "sunny"' in prompt


class TestThreads:
    @pytest.mark.asyncio
    async def test_list_threads_only_for_owner(self, agent, model):
        await agent.process_turn("t1", "u1", "Planning a trip to Lisbon next spring with friends")
        await agent.process_turn("t2", "u1", "second")
        await agent.process_turn("t1", "u2", "other user")

        threads = await agent.list_threads("u1")

        assert {t.id for t in threads} == {"t1", "t2"}
        lisbon = next(t for t in threads if t.id == "t1")
        assert lisbon.full_thread_id == "u1:t1"
        assert lisbon.title == "Planning a trip to Lisbon next spring with friends"[:50]
        assert lisbon.message_count == 3

    @pytest.mark.asyncio
    async def test_user_id_with_colon_is_rejected(self, agent, checkpoint_store):
        with pytest.raises(ValueError):
            await agent.process_turn("c", "a:b", "secret of user a:b")
        with pytest.raises(ValueError):
            await agent.get_thread("a:b", "c")

        assert await checkpoint_store.list() == []
        assert await agent.list_threads("a") == []

    @pytest.mark.asyncio
    async def test_thread_id_may_contain_colon(self, agent):
        await agent.process_turn("b:c", "a", "hello")

        threads = await agent.list_threads("a")

        assert [(t.id, t.full_thread_id) for t in threads] == [("b:c", "a:b:c")]
        assert len((await agent.get_thread("a", "b:c")).messages) == 3

    @pytest.mark.asyncio
    async def test_delete_thread(self, agent):
        await agent.process_turn("t1", "u1", "hi")

        assert await agent.delete_thread("u1", "t1")
        assert await agent.list_threads("u1") == []


def test_build_system_prompt_lists_facts_verbatim():
    from chat_agent.models.common import MemoryFact

    facts = [MemoryFact(id="1", namespace=["a", "memories"], text="User likes tea")]
    prompt = build_system_prompt(facts)
    assert prompt.startswith(SYSTEM_PROMPT)
    assert "- User likes tea" in prompt
    assert build_system_prompt([]) == SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_build_agent_without_tool_server_uses_packaged_tools():
    from chat_agent.core.config import Settings
    from chat_agent.core.orchestrator import build_agent

    agent = await build_agent(Settings(STORAGE_BACKEND="memory", TOOL_SERVER_URL=None))
    try:
        assert "get_weather" in agent.registry
    finally:
        await agent.close()
