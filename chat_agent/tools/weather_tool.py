# The module defines a demo weather tool, available when no tool server is configured.
# Date: 2026-10-19
# Version: 1.0.0

from pydantic import BaseModel, Field
from typing import Type
from .base_tool import BaseTool
from chat_agent.utils.logger import console

class GetWeatherInput(BaseModel):
    """
    Input model for the GetWeatherTool.
    Attributes:
        location (str): Location to get weather for.
    """
    location: str = Field(..., description="Location to get weather for")

class GetWeatherTool(BaseTool):
    """
    Reports the weather for a location. The forecast is canned, which makes the
    tool handy for exercising the tool loop end to end.
    """
    name: str = "get_weather"
    description: str = "Get weather for location"
    args_schema: Type[BaseModel] = GetWeatherInput

    async def execute(self, location: str) -> str:
        console.info(f"Executing tool '{self.name}' for location: '{location}'")
        return f"It's always sunny in {location}"
