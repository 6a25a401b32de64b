"""
Direct message routes
"""
from fastapi import APIRouter, Depends, status

from ...schemas import (
    CurrentUser,
    ConversationsResponse,
    DirectMessageResponse,
    MessageCreate,
    ThreadResponse,
)
from ...application.messaging import MessagingService
from ...dependencies import get_current_user, get_messaging_service
from .. import presenters


router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])


@router.get("/conversations", response_model=ConversationsResponse)
async def get_conversations(
    current_user: CurrentUser = Depends(get_current_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    """People you have exchanged messages with, most recent first"""
    partners = await messaging.conversations(current_user.id)
    return ConversationsResponse(
        conversations=[presenters.public_profile(u) for u in partners],
        count=len(partners),
    )


@router.get("/{partner_id}", response_model=ThreadResponse)
async def get_thread(
    partner_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    """
    Get the conversation with a user

    - Oldest message first
    - 403 unless one of you follows the other
    """
    messages, partner = await messaging.get_thread(current_user.id, partner_id)
    return ThreadResponse(
        messages=[DirectMessageResponse.model_validate(m) for m in messages],
        receiver=presenters.public_profile(partner),
    )


@router.post(
    "/{partner_id}",
    response_model=DirectMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    partner_id: int,
    message_data: MessageCreate,
    current_user: CurrentUser = Depends(get_current_user),
    messaging: MessagingService = Depends(get_messaging_service),
):
    message = await messaging.send_message(current_user.id, partner_id, message_data.content)
    return DirectMessageResponse.model_validate(message)
