# The respond/act graph: a tagged state driven by a pure transition function.
# Date: 2026-10-19
# Version: 1.0.0

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Sequence

from chat_agent.core.errors import ToolExecutionError, ToolLoopExceededError, ToolNotFoundError
from chat_agent.core.tool_registry import ToolRegistry
from chat_agent.models.common import Message, ToolCall, append_messages
from chat_agent.services.llm_connector import LanguageModel
from chat_agent.utils.logger import console


class NodeState(str, Enum):
    RESPOND = "respond"
    ACT = "act"
    DONE = "done"


def next_state(current: NodeState, messages: Sequence[Message]) -> NodeState:
    """
    After `respond`, go to `act` when the last message is an assistant message
    with pending tool calls, otherwise finish. After `act`, always respond again.
    """
    if current is NodeState.ACT:
        return NodeState.RESPOND
    if current is NodeState.RESPOND and messages and messages[-1].has_pending_tool_calls:
        return NodeState.ACT
    return NodeState.DONE


def serialize_tool_result(result: Any) -> str:
    return json.dumps(result, ensure_ascii=False, default=str)


@dataclass
class LoopResult:
    """Messages produced during one turn, in causal order, plus the final answer."""
    new_messages: List[Message]
    final: Message
    round_trips: int


class ToolExecutionLoop:
    """
    Alternates model calls and tool dispatch until the model answers without
    requesting tools, or until `max_round_trips` tool rounds have been spent.
    """

    def __init__(self, model: LanguageModel, registry: ToolRegistry, max_round_trips: int = 10):
        self.model = model
        self.registry = registry
        self.max_round_trips = max_round_trips

    async def respond(self, messages: Sequence[Message]) -> List[Message]:
        response = await self.model.complete(list(messages), tools=self.registry.get_definitions() or None)
        return [response]

    async def act(self, messages: Sequence[Message]) -> List[Message]:
        calls = messages[-1].tool_calls
        console.info(f"Executing {len(calls)} tools internally...")
        return [await self._execute(call) for call in calls]

    async def _execute(self, call: ToolCall) -> Message:
        tool = self.registry.get(call.name)
        if tool is None:
            console.warning(f"Model requested unknown tool '{call.name}'.", kind=ToolNotFoundError.kind)
            return Message(role="tool", tool_call_id=call.id, content=f"Error: Tool {call.name} not found")
        try:
            result = await tool.invoke(call.arguments)
        except asyncio.TimeoutError:
            console.error(f"Tool {call.name} timed out.", kind=ToolExecutionError.kind)
            return Message(role="tool", tool_call_id=call.id,
                           content=f"Error executing tool: timed out after {tool.timeout}s")
        except Exception as e:
            console.exception(f"Error executing tool {call.name}.", kind=ToolExecutionError.kind)
            return Message(role="tool", tool_call_id=call.id, content=f"Error executing tool: {e}")
        return Message(role="tool", tool_call_id=call.id, content=serialize_tool_result(result))

    async def run(self, messages: Sequence[Message]) -> LoopResult:
        sequence = list(messages)
        produced: List[Message] = []
        round_trips = 0
        state = NodeState.RESPOND

        while state is not NodeState.DONE:
            if state is NodeState.RESPOND:
                update = await self.respond(sequence)
            else:
                if round_trips >= self.max_round_trips:
                    raise ToolLoopExceededError(self.max_round_trips)
                round_trips += 1
                console.rule(f"Tool round-trip {round_trips}")
                update = await self.act(sequence)
            sequence = append_messages(sequence, update)
            produced = append_messages(produced, update)
            state = next_state(state, sequence)

        return LoopResult(new_messages=produced, final=sequence[-1], round_trips=round_trips)
