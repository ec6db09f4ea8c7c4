"""Shared test fixtures: a scripted model, in-process tools and in-memory stores."""

from typing import Any, Callable, Dict, List, Optional

import pytest
from pydantic import BaseModel, Field

from chat_agent.core.memory_manager import MemoryManager
from chat_agent.core.orchestrator import ChatAgent
from chat_agent.core.tool_registry import RegisteredTool, ToolRegistry
from chat_agent.models.common import Message, ToolCall
from chat_agent.services.checkpoint_store import InMemoryCheckpointStore
from chat_agent.services.fact_store import InMemoryFactStore
from chat_agent.services.llm_connector import LanguageModel
from chat_agent.services.tool_provider import LocalToolProvider
from chat_agent.tools.base_tool import BaseTool


def is_extraction_prompt(messages: List[Message]) -> bool:
    return (
        len(messages) == 1
        and messages[0].role == "user"
        and isinstance(messages[0].content, str)
        and messages[0].content.startswith("Extract any personal facts")
    )


class ScriptedModel(LanguageModel):
    """Replays queued answers for tool-bound calls and a fixed reply for fact extraction."""

    def __init__(self, answers: Optional[List[Message]] = None, extraction: str = "[]"):
        self.answers = list(answers or [])
        self.extraction = extraction
        self.calls: List[List[Message]] = []
        self.tools_seen: List[Optional[List[Dict[str, Any]]]] = []
        self.extraction_calls: List[str] = []
        self.extraction_error: Optional[Exception] = None

    def queue(self, *answers: Message) -> None:
        self.answers.extend(answers)

    async def complete(self, messages, tools=None):
        if is_extraction_prompt(messages):
            self.extraction_calls.append(messages[0].content)
            if self.extraction_error is not None:
                raise self.extraction_error
            return Message(role="assistant", content=self.extraction)
        self.calls.append(list(messages))
        self.tools_seen.append(tools)
        if not self.answers:
            return Message(role="assistant", content="ok")
        return self.answers.pop(0)


def assistant(content: str = "") -> Message:
    return Message(role="assistant", content=content)


def tool_request(*calls: ToolCall, content: str = "") -> Message:
    return Message(role="assistant", content=content, tool_calls=list(calls))


class EchoInput(BaseModel):
    text: str = Field(..., description="Text to echo back.")


class EchoTool(BaseTool):
    name = "echo"
    description = "Echoes its argument."
    args_schema = EchoInput

    async def execute(self, text: str) -> str:
        return text


class ExplodingInput(BaseModel):
    pass


class ExplodingTool(BaseTool):
    name = "explode"
    description = "Always fails."
    args_schema = ExplodingInput

    async def execute(self) -> str:
        raise RuntimeError("kaboom")


@pytest.fixture
def model() -> ScriptedModel:
    return ScriptedModel()


@pytest.fixture
def fact_store() -> InMemoryFactStore:
    return InMemoryFactStore()


@pytest.fixture
def checkpoint_store() -> InMemoryCheckpointStore:
    return InMemoryCheckpointStore()


@pytest.fixture
def tool_provider() -> LocalToolProvider:
    return LocalToolProvider([EchoTool(), ExplodingTool()])


@pytest.fixture
def registry(tool_provider) -> ToolRegistry:
    tools = [EchoTool(), ExplodingTool()]
    return ToolRegistry([RegisteredTool(tool.get_descriptor(), tool_provider) for tool in tools])


@pytest.fixture
def make_agent(model, registry, checkpoint_store, fact_store) -> Callable[..., ChatAgent]:
    """Factory fixture so tests can tweak the round-trip cap."""

    def _make(max_round_trips: int = 10) -> ChatAgent:
        memory = MemoryManager(model, fact_store)
        return ChatAgent(model, registry, checkpoint_store, memory, max_round_trips=max_round_trips)

    return _make


@pytest.fixture
def agent(make_agent) -> ChatAgent:
    return make_agent()
