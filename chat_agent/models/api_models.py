# The module is to define the API models for the application.
# Date: 2026-10-19
# Version: 1.0.0

from pydantic import BaseModel, Field
from typing import Any, List, Optional
from chat_agent.models.common import Role

class ChatRequest(BaseModel):
    """
    Defines the request body for the /v1/chat endpoint.
    Attributes:
        message (str): The user's text input.
        user_id (Optional[str]): Opaque user identifier; a new one is minted when missing.
        thread_id (Optional[str]): Thread identifier within the user; a new one is minted when missing.
    """
    message: str = Field(default="", description="The user's text input.")
    user_id: Optional[str] = Field(default=None, description="The opaque ID of the user.")
    thread_id: Optional[str] = Field(default=None, description="The ID of the conversation thread.")

class ChatResponse(BaseModel):
    """
    Defines the response body for the /v1/chat endpoint.
    Attributes:
        reply (str): The final assistant answer.
        user_id (str): The user the turn was processed for.
        thread_id (str): The thread the turn was appended to.
    """
    reply: str
    user_id: str
    thread_id: str

class NewThreadResponse(BaseModel):
    thread_id: str
    full_thread_id: str
    user_id: str

class HistoryMessage(BaseModel):
    role: Role
    content: Any

class ThreadHistoryResponse(BaseModel):
    thread_id: str
    messages: List[HistoryMessage]

class DeleteResponse(BaseModel):
    success: bool

class MemoryResponse(BaseModel):
    id: str
    fact: str
    created_at: str
