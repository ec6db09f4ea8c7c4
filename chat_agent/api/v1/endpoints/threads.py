# The module is to define the API endpoints for thread management.
# Date: 2026-10-19
# Version: 1.0.0

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from chat_agent.api.deps import get_agent
from chat_agent.core.errors import ChatAgentError
from chat_agent.core.orchestrator import ChatAgent, visible_messages
from chat_agent.models.api_models import DeleteResponse, HistoryMessage, NewThreadResponse, ThreadHistoryResponse
from chat_agent.models.common import ThreadSummary, make_thread_key
from chat_agent.utils.logger import console

router = APIRouter()

@router.get("/users/{user_id}/threads",
            response_model=List[ThreadSummary])
async def list_threads(user_id: str, agent: ChatAgent = Depends(get_agent)):
    """Lists every thread owned by the user, most recently updated first."""
    try:
        return await agent.list_threads(user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ChatAgentError as e:
        console.error(f"Error getting threads: {e}", kind=e.kind)
        raise HTTPException(status_code=500, detail="Failed to get threads")

@router.post("/users/{user_id}/threads",
             response_model=NewThreadResponse)
def create_thread(user_id: str):
    """
    Returns a new thread ID for the user. Nothing is stored until the first message.
    """
    thread_id = ChatAgent.new_thread_id()
    try:
        full_thread_id = make_thread_key(user_id, thread_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    console.info(f"New thread ID issued for user '{user_id}': {thread_id}")
    return NewThreadResponse(
        thread_id=thread_id,
        full_thread_id=full_thread_id,
        user_id=user_id,
    )

@router.get("/threads/{thread_id}",
            response_model=ThreadHistoryResponse)
async def get_thread(thread_id: str, user_id: Optional[str] = None, agent: ChatAgent = Depends(get_agent)):
    """Returns the user-visible history of a thread."""
    try:
        state = await agent.get_thread(user_id, thread_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ChatAgentError as e:
        console.error(f"Error getting thread: {e}", kind=e.kind)
        raise HTTPException(status_code=500, detail="Failed to get thread")
    return ThreadHistoryResponse(
        thread_id=thread_id,
        messages=[HistoryMessage(role=m.role, content=m.content) for m in visible_messages(state.messages)],
    )

@router.delete("/threads/{thread_id}",
               response_model=DeleteResponse)
async def delete_thread(thread_id: str, user_id: Optional[str] = None, agent: ChatAgent = Depends(get_agent)):
    try:
        await agent.delete_thread(user_id, thread_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ChatAgentError as e:
        console.error(f"Error deleting thread: {e}", kind=e.kind)
        raise HTTPException(status_code=500, detail="Failed to delete thread")
    return DeleteResponse(success=True)
