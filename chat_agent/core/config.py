# The module is to define the configuration settings for the application.
# Date: 2026-10-19
# Version: 1.0.0

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Literal, Optional

class Settings(BaseSettings):
    """
    The Settings class is used to define the configuration settings for the application.
    It inherits from BaseSettings, which allows it to load environment variables
    and provides type validation for the settings.
    Attributes:
        LLM_API_KEY (str): API key for the OpenAI-compatible endpoint.
        LLM_BASE_URL (str): Base URL of the OpenAI-compatible endpoint.
        LLM_MODEL (str): Model identifier.
        LLM_TEMPERATURE (float): Sampling temperature for answers.
        LLM_TIMEOUT_SECONDS (Optional[float]): Per-call timeout for the model; expiry fails the turn.
        STORAGE_BACKEND (str): 'redis' for durable storage, 'memory' for a single process.
        REDIS_URL (str): Connection URL for the Redis backend.
        REDIS_KEY_PREFIX (str): Prefix for every key written by the stores.
        TOOL_SERVER_URL (Optional[str]): MCP endpoint of the tool provider. Local tools are used when unset.
        TOOL_TIMEOUT_SECONDS (Optional[float]): Per-call timeout for tools; expiry is reported to the model.
        MAX_TOOL_ROUND_TRIPS (int): Maximum model/tool round-trips in a single turn.
        MEMORY_SEARCH_LIMIT (int): Maximum number of facts loaded per user.
        MEMORY_WINDOW (int): Number of trailing messages used for fact extraction.
        PORT (int): Port used by the development server.
    """
    # LLM
    LLM_API_KEY: str = "not-set"
    LLM_BASE_URL: str = "https://openrouter.ai/api/v1"
    LLM_MODEL: str = "openai/gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.7
    LLM_TIMEOUT_SECONDS: Optional[float] = None

    # STORAGE
    STORAGE_BACKEND: Literal["redis", "memory"] = "redis"
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "chat_agent"

    # TOOL PROVIDER
    TOOL_SERVER_URL: Optional[str] = None
    TOOL_TIMEOUT_SECONDS: Optional[float] = None

    # AGENT
    MAX_TOOL_ROUND_TRIPS: int = 10
    MEMORY_SEARCH_LIMIT: int = 50
    MEMORY_WINDOW: int = 6

    PORT: int = 3001


    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'

# lru_cache to cache the settings instance.
@lru_cache
def get_settings():
    return Settings()


if __name__ == "__main__":
    settings = get_settings()
    print(settings.model_dump_json(indent=4))
