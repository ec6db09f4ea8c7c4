# The module is to define the base class for in-process tools.
# Date: 2026-10-19
# Version: 1.0.0

from abc import ABC, abstractmethod
from pydantic import BaseModel
from typing import Any, Type
from chat_agent.models.common import ToolDescriptor


class BaseTool(ABC):
    """
    Abstract Base Class for tools that run inside the agent process.

    Attributes:
        name (str): The name of the tool, used for identification.
        description (str): A brief description of what the tool does.
        args_schema (Type[BaseModel]): A Pydantic model defining the arguments
            that the tool accepts, which will be validated before execution.
    """
    name: str
    description: str
    args_schema: Type[BaseModel]

    @abstractmethod
    async def execute(self, **kwargs) -> Any:
        """
        The core logic of the tool. This method must be implemented by all subclasses.

        Args:
            **kwargs: The arguments for the tool, validated against args_schema.

        Returns:
            Any JSON-serializable result.
        """
        pass

    async def invoke(self, arguments: dict) -> Any:
        """Validates the raw arguments against args_schema, then executes the tool."""
        validated = self.args_schema.model_validate(arguments or {})
        return await self.execute(**validated.model_dump())

    def get_descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters=self.args_schema.model_json_schema(),
        )
