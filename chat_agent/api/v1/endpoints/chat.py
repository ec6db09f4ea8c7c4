# The module is to define the API endpoints for chat interactions.
# Date: 2026-10-19
# Version: 1.0.0

import json
from uuid import uuid4
from fastapi import APIRouter, Depends, HTTPException
from chat_agent.api.deps import get_agent
from chat_agent.core.errors import ChatAgentError
from chat_agent.core.orchestrator import ChatAgent
from chat_agent.utils.logger import console
from chat_agent.models.api_models import ChatRequest, ChatResponse

router = APIRouter()

@router.post("",
          response_model=ChatResponse)
async def chat(request: ChatRequest, agent: ChatAgent = Depends(get_agent)):
    """
    Handles a single turn in a conversation. Missing user or thread IDs are
    minted here; the thread itself is created by its first message.
    """
    if not request.message:
        raise HTTPException(status_code=400, detail="Message is required")

    user_id = request.user_id or str(uuid4())
    thread_id = request.thread_id or str(uuid4())
    console.info(f"Received chat request for thread '{user_id}:{thread_id}'")

    try:
        final_message = await agent.process_turn(thread_id, user_id, request.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ChatAgentError as e:
        console.error(f"Error in chat: {e}", kind=e.kind)
        raise HTTPException(status_code=500, detail="Failed to process chat")

    reply = final_message.content if isinstance(final_message.content, str) else json.dumps(final_message.content)
    return ChatResponse(reply=reply, user_id=user_id, thread_id=thread_id)
