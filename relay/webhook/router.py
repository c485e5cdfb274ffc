from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from relay.dependencies import get_services
from relay.models import InboundMessage, OutboundReply, UserConversation
from relay.pipeline import handle_message

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/messages", response_model=OutboundReply)
async def incoming_message(message: InboundMessage, request: Request) -> OutboundReply:
    """Entry point for the transport: one inbound text, at most one reply."""
    services = get_services(request)
    reply = await handle_message(message.user_id, message.text, services)
    return OutboundReply(user_id=message.user_id, reply=reply)


@router.get("/conversations", response_model=list[UserConversation])
async def list_conversations(request: Request) -> list[UserConversation]:
    return await get_services(request).conversation.list_all()
