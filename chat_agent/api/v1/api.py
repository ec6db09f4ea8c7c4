# The module is to define the API router for the application.
# Date: 2026-10-19
# Version: 1.0.0

from fastapi import APIRouter
from chat_agent.api.v1.endpoints import chat, threads, memories

api_router = APIRouter()

# Include the chat router with a '/chat' prefix
api_router.include_router(chat.router, prefix="/chat", tags=["Conversation"])

# Thread and memory routes carry their own paths (/users/..., /threads/...)
api_router.include_router(threads.router, tags=["Thread Management"])
api_router.include_router(memories.router, tags=["Memory Management"])
