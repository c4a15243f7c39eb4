from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from servicehub.api.errors import HANDLED_ERRORS, http_error
from servicehub.dependencies.auth import CurrentActor
from servicehub.dependencies.services import ChatAssistantDep

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=8000)


class ChatResponse(BaseModel):
    reply: str


@router.post("", response_model=ChatResponse)
async def chat(payload: ChatRequest, assistant: ChatAssistantDep, actor: CurrentActor) -> ChatResponse:
    try:
        reply = await assistant.reply(payload.message)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except HANDLED_ERRORS as exc:
        raise http_error(exc) from exc
    return ChatResponse(reply=reply)
