# chat_agent/services/llm_connector.py
# Date: 2026-10-19
# Version: 1.0.0

import json
from abc import ABC, abstractmethod
from openai import AsyncOpenAI, APIError
from typing import List, Optional, Dict, Any
from chat_agent.core.config import Settings
from chat_agent.core.errors import ModelInvocationError
from chat_agent.models.common import Message, ToolCall
from chat_agent.utils.logger import console


class LanguageModel(ABC):
    """
    A chat completion capability. Used for answering with tools bound and for
    fact extraction with a single user prompt and no tools.
    """

    @abstractmethod
    async def complete(self, messages: List[Message], tools: Optional[List[Dict[str, Any]]] = None) -> Message:
        """
        Returns the next assistant message, optionally carrying tool calls.

        Raises:
            ModelInvocationError: If the provider could not produce a completion.
        """


def to_openai_message(message: Message) -> Dict[str, Any]:
    """Converts a conversation message into the OpenAI chat wire format."""
    payload: Dict[str, Any] = {"role": message.role}
    if message.role == "assistant" and message.tool_calls:
        payload["content"] = message.text() or None
        payload["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
            }
            for call in message.tool_calls
        ]
    else:
        payload["content"] = message.text()
    if message.role == "tool":
        payload["tool_call_id"] = message.tool_call_id
    return payload


def _parse_arguments(raw: Optional[str], tool_name: str) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError:
        console.warning(f"Model sent malformed arguments for tool '{tool_name}': {raw!r}")
        return {}
    return arguments if isinstance(arguments, dict) else {"value": arguments}


def from_openai_message(response_message: Any) -> Message:
    """Converts an OpenAI `ChatCompletionMessage` into an immutable Message."""
    tool_calls = [
        ToolCall(
            id=call.id,
            name=call.function.name,
            arguments=_parse_arguments(call.function.arguments, call.function.name),
        )
        for call in (response_message.tool_calls or [])
    ]
    return Message(role="assistant", content=response_message.content or "", tool_calls=tool_calls)


class OpenAIChatModel(LanguageModel):
    """
    Chat model served by any OpenAI-compatible endpoint (OpenRouter by default).
    """

    def __init__(self, api_key: str, base_url: str, model: str,
                 temperature: float = 0.7, timeout: Optional[float] = None):
        self._model = model
        self._temperature = temperature
        client_kwargs: Dict[str, Any] = {"api_key": api_key, "base_url": base_url}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = AsyncOpenAI(**client_kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIChatModel":
        return cls(
            api_key=settings.LLM_API_KEY,
            base_url=settings.LLM_BASE_URL,
            model=settings.LLM_MODEL,
            temperature=settings.LLM_TEMPERATURE,
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )

    async def complete(self, messages: List[Message], tools: Optional[List[Dict[str, Any]]] = None) -> Message:
        request_params: Dict[str, Any] = {
            "model": self._model,
            "messages": [to_openai_message(m) for m in messages],
            "temperature": self._temperature,
        }
        if tools:
            request_params["tools"] = tools
            request_params["tool_choice"] = "auto"

        try:
            response = await self._client.chat.completions.create(**request_params)
        except APIError as e:
            message = str(e.body) if e.body is not None else str(e)
            if isinstance(e.body, dict):
                message = e.body.get('message', message)
            console.error(f"An API error occurred: {message}", kind=ModelInvocationError.kind)
            raise ModelInvocationError(f"Error from LLM provider: {message}", cause=e) from e
        except Exception as e:
            console.exception("An unexpected error occurred while calling the LLM.", kind=ModelInvocationError.kind)
            raise ModelInvocationError(f"An unexpected error occurred: {e}", cause=e) from e

        if not response.choices:
            raise ModelInvocationError("LLM provider returned no choices.")
        return from_openai_message(response.choices[0].message)
