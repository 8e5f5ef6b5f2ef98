from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
from loguru import logger

from dataBase import get_db
from dependencies import get_current_user
from errors import BookShareError, INTERNAL_ERROR_MESSAGE
from exchange_service import apply_action, list_exchanges, request_exchange, serialize_exchange
from models.exchange_models import ExchangeRequest, ExchangeResponse

router = APIRouter(prefix="/exchanges", tags=["exchanges"])

ACTION_MESSAGES = {
    "accept": "Exchange request accepted",
    "reject": "Exchange request rejected",
    "complete": "Exchange marked as completed",
    "cancel": "Exchange request cancelled",
}


@router.get("")
async def get_user_exchanges(
    type: Optional[str] = None,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        exchanges = await list_exchanges(db, user["id"], type)
        return {
            "success": True,
            "message": f"Found {len(exchanges)} exchanges",
            "total_exchanges": len(exchanges),
            "exchanges": exchanges,
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Exchanges fetch error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_exchange(
    exchange: ExchangeRequest,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        created = await request_exchange(
            db, user["id"], exchange.requestedBookId, exchange.offeredBookId, exchange.message
        )
        return {
            "success": True,
            "message": "Exchange request sent successfully",
            "exchange": serialize_exchange(created),
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Exchange creation error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.patch("/{exchange_id}")
async def respond_to_exchange(
    exchange_id: str,
    response: ExchangeResponse,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        updated = await apply_action(
            db, exchange_id, user["id"], response.action, response.responseMessage
        )
        return {
            "success": True,
            "message": ACTION_MESSAGES[response.action],
            "exchange": serialize_exchange(updated),
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Exchange update error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)
