# This module connects the agent to the providers that expose callable tools.
# Date: 2026-10-19
# Version: 1.0.0

import asyncio
import inspect
import pkgutil
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Any, AsyncContextManager, Callable, Dict, List, Optional, Tuple
from mcp import ClientSession, types
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError

from chat_agent.core.errors import ToolExecutionError, ToolNotFoundError, ToolProviderError
from chat_agent.models.common import ToolDescriptor
from chat_agent.tools.base_tool import BaseTool
from chat_agent.utils.logger import console


class ToolProvider(ABC):
    """A source of named callable tools."""

    @abstractmethod
    async def list_tools(self) -> List[ToolDescriptor]:
        ...

    @abstractmethod
    async def invoke(self, name: str, arguments: Dict[str, Any]) -> Any:
        """
        Calls a tool and returns its result.

        Raises:
            ToolNotFoundError: If the provider does not know the tool.
            ToolExecutionError: If the tool reports a failure.
        """

    async def close(self) -> None:
        return None


class LocalToolProvider(ToolProvider):
    """Serves BaseTool instances that run inside the agent process."""

    def __init__(self, tools: List[BaseTool]):
        self._tools: Dict[str, BaseTool] = {tool.name: tool for tool in tools}

    @classmethod
    def discover(cls) -> "LocalToolProvider":
        """
        Scans the chat_agent.tools package, imports all modules, finds classes that
        inherit from BaseTool, and creates an instance of each.
        """
        from chat_agent import tools as tools_package

        found: List[BaseTool] = []
        for _, modname, _ in pkgutil.iter_modules(tools_package.__path__, f"{tools_package.__name__}."):
            if modname.endswith(".base_tool"):
                continue
            try:
                module = __import__(modname, fromlist="dummy")
            except Exception as e:
                console.error(f"Failed to load tools from module {modname}: {e}")
                continue
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, BaseTool) and obj is not BaseTool and obj.__module__ == module.__name__:
                    found.append(obj())
        return cls(found)

    async def list_tools(self) -> List[ToolDescriptor]:
        return [tool.get_descriptor() for tool in self._tools.values()]

    async def invoke(self, name: str, arguments: Dict[str, Any]) -> Any:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return await tool.invoke(arguments)


class McpToolProvider(ToolProvider):
    """
    Client for a Model Context Protocol server over streamable HTTP, built on
    the `mcp` SDK. One session is opened lazily on first use and reused by
    every call until `close()`.

    `transport` may be given to connect over something other than HTTP; it
    must return an async context manager yielding the read and write streams
    first, as `streamablehttp_client` does.
    """

    def __init__(self, url: str, timeout: Optional[float] = 60.0,
                 transport: Optional[Callable[[], AsyncContextManager[Tuple[Any, ...]]]] = None):
        self._url = url
        self._timeout = timedelta(seconds=timeout) if timeout else None
        self._transport = transport or self._http_transport
        self._session: Optional[ClientSession] = None
        self._stack: Optional[AsyncExitStack] = None
        self._session_lock = asyncio.Lock()

    def _http_transport(self) -> AsyncContextManager[Tuple[Any, ...]]:
        if self._timeout is None:
            return streamablehttp_client(self._url)
        return streamablehttp_client(self._url, timeout=self._timeout)

    async def _ensure_session(self) -> ClientSession:
        async with self._session_lock:
            if self._session is not None:
                return self._session
            stack = AsyncExitStack()
            try:
                streams = await stack.enter_async_context(self._transport())
                read_stream, write_stream = streams[0], streams[1]
                session = await stack.enter_async_context(
                    ClientSession(read_stream, write_stream, read_timeout_seconds=self._timeout)
                )
                await session.initialize()
            except Exception as e:
                await stack.aclose()
                raise ToolProviderError(f"Could not open MCP session with {self._url}: {e}", cause=e) from e
            self._stack, self._session = stack, session
            console.info(f"MCP session established with {self._url}")
            return session

    async def list_tools(self) -> List[ToolDescriptor]:
        session = await self._ensure_session()
        descriptors: List[ToolDescriptor] = []
        cursor: Optional[str] = None
        while True:
            try:
                result = await session.list_tools(cursor=cursor)
            except McpError as e:
                raise ToolProviderError(f"MCP tools/list failed: {e}", cause=e) from e
            for tool in result.tools:
                descriptors.append(ToolDescriptor(
                    name=tool.name,
                    description=tool.description or "",
                    parameters=tool.inputSchema or {"type": "object", "properties": {}},
                ))
            cursor = result.nextCursor
            if not cursor:
                return descriptors

    async def invoke(self, name: str, arguments: Dict[str, Any]) -> Any:
        session = await self._ensure_session()
        try:
            result = await session.call_tool(name, arguments)
        except McpError as e:
            raise ToolProviderError(f"MCP call to '{name}' failed: {e}", cause=e) from e
        texts = [item.text for item in result.content if isinstance(item, types.TextContent)]
        if result.isError:
            raise ToolExecutionError("\n".join(texts) or f"Tool {name} reported an error")
        structured = getattr(result, "structuredContent", None)
        if structured is not None:
            return structured
        if len(texts) == len(result.content):
            return "\n".join(texts)
        return [item.model_dump(mode="json", exclude_none=True) for item in result.content]

    async def close(self) -> None:
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            await stack.aclose()
