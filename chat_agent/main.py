# The module provides the FastAPI application that serves the chat agent.
# Date: 2026-10-19
# Version: 1.0.0

from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
from fastapi import FastAPI
from chat_agent.api.v1.api import api_router
from chat_agent.core.config import get_settings
from chat_agent.core.orchestrator import ChatAgent, build_agent
from chat_agent.utils.logger import console


def create_app(agent: Optional[ChatAgent] = None) -> FastAPI:
    """
    Builds the application. When no agent is given, one is wired from the
    settings at startup and its tool registry is loaded exactly once.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_agent = agent is None
        if owns_agent:
            settings = get_settings()
            console.display_data_as_table({
                "model": settings.LLM_MODEL,
                "storage": settings.STORAGE_BACKEND,
                "tool server": settings.TOOL_SERVER_URL or "local tools",
                "max tool round-trips": settings.MAX_TOOL_ROUND_TRIPS,
            }, title="Chat agent configuration")
            app.state.agent = await build_agent(settings)
        else:
            app.state.agent = agent
        yield
        if owns_agent:
            await app.state.agent.close()

    app = FastAPI(
        title="Chat Agent",
        version="1.0.0",
        description="A tool-calling chat agent with per-thread history and cross-thread user memory.",
        lifespan=lifespan,
    )

    @app.get("/", summary="Health Check", tags=["Status"])
    def read_root():
        """Root endpoint to check if the service is alive."""
        return {"status": "ok"}

    # Include the v1 router with a global '/v1' prefix
    app.include_router(api_router, prefix="/v1")
    return app


def run():
    settings = get_settings()
    uvicorn.run(create_app(), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
