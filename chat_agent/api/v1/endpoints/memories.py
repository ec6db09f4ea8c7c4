# The module is to define the API endpoints for inspecting and forgetting user memories.
# Date: 2026-10-19
# Version: 1.0.0

from typing import List
from fastapi import APIRouter, Depends, HTTPException
from chat_agent.api.deps import get_agent
from chat_agent.core.errors import ChatAgentError
from chat_agent.core.orchestrator import ChatAgent
from chat_agent.models.api_models import DeleteResponse, MemoryResponse
from chat_agent.utils.logger import console

router = APIRouter()

@router.get("/users/{user_id}/memories",
            response_model=List[MemoryResponse])
async def list_memories(user_id: str, agent: ChatAgent = Depends(get_agent)):
    """Lists what the agent remembers about a user, newest first."""
    try:
        facts = await agent.list_memories(user_id)
    except ChatAgentError as e:
        console.error(f"Error listing memories: {e}", kind=e.kind)
        raise HTTPException(status_code=500, detail="Failed to get memories")
    return [MemoryResponse(id=f.id, fact=f.text, created_at=f.created_at) for f in facts]

@router.delete("/users/{user_id}/memories/{memory_id}",
               response_model=DeleteResponse)
async def forget_memory(user_id: str, memory_id: str, agent: ChatAgent = Depends(get_agent)):
    try:
        deleted = await agent.forget(user_id, memory_id)
    except ChatAgentError as e:
        console.error(f"Error deleting memory: {e}", kind=e.kind)
        raise HTTPException(status_code=500, detail="Failed to delete memory")
    if not deleted:
        raise HTTPException(status_code=404, detail="Memory not found")
    return DeleteResponse(success=True)
