# The module defines the error taxonomy of the chat agent.
# Date: 2026-10-19
# Version: 1.0.0

from typing import Optional


class ChatAgentError(Exception):
    """
    Base class for every failure raised by the agent.
    Attributes:
        kind (str): A short machine-readable label kept in logs for diagnosis.
    """
    kind: str = "agent"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ModelInvocationError(ChatAgentError):
    """The language model could not produce a completion. Fatal for the turn."""
    kind = "model_invocation"


class ToolLoopExceededError(ChatAgentError):
    """The model kept requesting tools past the allowed number of round-trips."""
    kind = "tool_loop_exceeded"

    def __init__(self, max_round_trips: int):
        super().__init__(f"Tool loop exceeded {max_round_trips} round-trips without a final answer.")
        self.max_round_trips = max_round_trips


class ToolNotFoundError(ChatAgentError):
    kind = "tool_not_found"

    def __init__(self, tool_name: str):
        super().__init__(f"Tool {tool_name} not found")
        self.tool_name = tool_name


class ToolExecutionError(ChatAgentError):
    kind = "tool_invocation"


class ToolProviderError(ChatAgentError):
    """The tool provider could not be reached or answered with an error."""
    kind = "tool_provider"


class StoreError(ChatAgentError):
    kind = "persistence"


class FactStoreError(StoreError):
    kind = "fact_store"


class CheckpointStoreError(StoreError):
    """Reading or writing a thread checkpoint failed. Fatal for the turn."""
    kind = "checkpoint_store"
