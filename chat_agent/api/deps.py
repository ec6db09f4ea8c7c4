# Request-scoped access to the agent built at application startup.
# Date: 2026-10-19
# Version: 1.0.0

from fastapi import Request
from chat_agent.core.orchestrator import ChatAgent


def get_agent(request: Request) -> ChatAgent:
    return request.app.state.agent
