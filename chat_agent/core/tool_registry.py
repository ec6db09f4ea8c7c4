# Loads the tools offered by the tool provider once and resolves them by name.
# Date: 2026-10-19
# Version: 1.0.0

import asyncio
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from chat_agent.models.common import ToolDescriptor
from chat_agent.services.tool_provider import ToolProvider
from chat_agent.utils.logger import console


@dataclass(frozen=True)
class RegisteredTool:
    """A tool descriptor bound to the provider that can invoke it."""
    descriptor: ToolDescriptor
    provider: ToolProvider
    timeout: Optional[float] = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def invoke(self, arguments: Dict[str, Any]) -> Any:
        call = self.provider.invoke(self.name, arguments)
        if self.timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.timeout)


class ToolRegistry:
    """
    An immutable name-to-tool mapping, populated once per process from the tool
    provider. Every registered tool is offered to the model on every call.
    """
    def __init__(self, tools: List[RegisteredTool]):
        self._tools: Mapping[str, RegisteredTool] = MappingProxyType({tool.name: tool for tool in tools})

    @classmethod
    async def load(cls, provider: ToolProvider, timeout: Optional[float] = None) -> "ToolRegistry":
        """Queries the provider for its tools and freezes the result."""
        descriptors = await provider.list_tools()
        registry = cls([RegisteredTool(descriptor, provider, timeout) for descriptor in descriptors])
        console.success(f"Tool discovery complete. Found {len(registry)} tools: {registry.names}")
        return registry

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tools

    @property
    def names(self) -> List[str]:
        return list(self._tools.keys())

    def get(self, tool_name: str) -> Optional[RegisteredTool]:
        return self._tools.get(tool_name)

    def get_definitions(self) -> List[Dict[str, Any]]:
        """Returns the list of all tool definitions for the LLM."""
        return [tool.descriptor.get_definition() for tool in self._tools.values()]
