# The module defines the conversation, tool and memory models shared across the agent.
# Date: 2026-10-19
# Version: 1.0.0

import json
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Literal, Tuple

Role = Literal["system", "user",
               "assistant", "tool"]

MEMORY_NAMESPACE_SUFFIX = "memories"
THREAD_KEY_SEPARATOR = ":"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ToolCall(BaseModel):
    """
    Represents a tool call requested by the language model.
    Attributes:
        id (str): Opaque ID, unique within the assistant message that created it.
        name (str): The name of the tool to invoke.
        arguments (dict): The structured, tool-specific arguments.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="The unique ID for the tool call.")
    name: str = Field(..., description="The name of the tool to invoke.")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="The arguments for the tool.")


class Message(BaseModel):
    """
    Represents a single conversational turn. Messages are immutable once created.
    Attributes:
        role (Role): The role of the message sender (system, user, assistant, or tool).
        content (Any): Text or a JSON-serializable structure.
        tool_calls (List[ToolCall]): Tool calls requested by the assistant, empty otherwise.
        tool_call_id (Optional[str]): The ID of the tool call this message answers.
    """
    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="The role of the message sender.")
    content: Any = Field(default=None, description="The content of the message.")
    tool_calls: List[ToolCall] = Field(default_factory=list, description="A list of tool calls requested by the assistant.")
    tool_call_id: Optional[str] = Field(default=None, description="The ID of the tool call this message is a result of.")

    @property
    def has_pending_tool_calls(self) -> bool:
        return self.role == "assistant" and len(self.tool_calls) > 0

    def text(self) -> str:
        """Returns the content as plain text, serializing structured payloads."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, ensure_ascii=False)


def append_messages(current: List[Message], update: List[Message]) -> List[Message]:
    """The conversation reducer: concatenation only, never replace or reorder."""
    return list(current) + list(update)


class ConversationState(BaseModel):
    """
    The persisted snapshot of a thread: an ordered, append-only sequence of messages.
    """
    thread_key: str
    messages: List[Message] = Field(default_factory=list, description="The history of messages in the thread.")
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    def extend(self, update: List[Message]) -> "ConversationState":
        return self.model_copy(update={
            "messages": append_messages(self.messages, update),
            "updated_at": utc_now_iso(),
        })

    @property
    def has_system_message(self) -> bool:
        return any(m.role == "system" for m in self.messages)


class MemoryFact(BaseModel):
    """
    A short natural-language statement about a user, retained across threads.
    Attributes:
        id (str): Unique per fact.
        namespace (List[str]): Conceptually [user_id, "memories"].
        text (str): The fact itself, e.g. "User's name is John".
        created_at (str): ISO-8601 creation timestamp.
    """
    id: str
    namespace: List[str]
    text: str
    created_at: str = Field(default_factory=utc_now_iso)


class ToolDescriptor(BaseModel):
    """Describes a tool exposed by the tool provider."""
    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})

    def get_definition(self) -> Dict[str, Any]:
        """
        Returns the descriptor in a format compliant with OpenAI's
        function-calling specification.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            }
        }


class ThreadSummary(BaseModel):
    id: str
    full_thread_id: str
    title: str
    message_count: int


def memory_namespace(user_id: str) -> List[str]:
    return [user_id, MEMORY_NAMESPACE_SUFFIX]


def make_thread_key(user_id: Optional[str], thread_id: str) -> str:
    """
    Builds the composite checkpoint key `user_id:thread_id`.

    Raises:
        ValueError: If the user ID contains a colon, since the key is split on the first one.
    """
    if not user_id:
        return thread_id
    if THREAD_KEY_SEPARATOR in user_id:
        raise ValueError(f"User ID must not contain '{THREAD_KEY_SEPARATOR}': {user_id!r}")
    return f"{user_id}{THREAD_KEY_SEPARATOR}{thread_id}"


def parse_thread_key(thread_key: str) -> Tuple[str, str]:
    """Splits a composite key on the first colon into (user_id, thread_id)."""
    user_id, _, thread_id = thread_key.partition(THREAD_KEY_SEPARATOR)
    return user_id, thread_id
