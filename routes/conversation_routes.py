from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from loguru import logger

from conversation_service import (
    get_conversation,
    list_conversations,
    send_message,
    serialize_conversation,
)
from dataBase import get_db
from dependencies import get_current_user
from errors import BookShareError, INTERNAL_ERROR_MESSAGE
from models.conversation_models import SendMessage

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("")
async def get_conversations(
    bookId: Optional[str] = None,
    ownerId: Optional[str] = None,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    """One conversation when ``bookId`` and ``ownerId`` are given, otherwise all of them."""
    try:
        if bookId and ownerId:
            conversation = await get_conversation(db, user["id"], bookId, ownerId)
            return {
                "success": True,
                "conversation": serialize_conversation(conversation) if conversation else None,
            }

        conversations = await list_conversations(db, user["id"])
        return {
            "success": True,
            "conversations": [serialize_conversation(c) for c in conversations],
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Conversations fetch error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


async def _send(payload: SendMessage, user, db):
    try:
        result = await send_message(db, user["id"], payload.bookId, payload.ownerId, payload.message)
        return {
            "success": True,
            "message": result["message"],
            "conversation": serialize_conversation(result["conversation"]),
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Message send error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.post("")
async def start_conversation(
    payload: SendMessage, user=Depends(get_current_user), db=Depends(get_db)
):
    return await _send(payload, user, db)


@router.post("/messages")
async def post_message(payload: SendMessage, user=Depends(get_current_user), db=Depends(get_db)):
    return await _send(payload, user, db)
