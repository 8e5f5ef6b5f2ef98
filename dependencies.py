"""
Dependency injection for FastAPI routes: settings, database, image store
and the authenticated caller.
"""

from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, Header, Request
from loguru import logger

from config import Settings
from dataBase import get_db
from errors import Forbidden, NotFound, Unauthorized
from image_store import ImageStore
from utils import decode_access_token


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    db=Depends(get_db),
) -> Dict[str, Any]:
    """Resolve the bearer token to a live, approved user document."""
    token = None
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            token = credentials.strip()
    if not token:
        raise Unauthorized("Access token required")

    payload = decode_access_token(token, settings)
    if not payload or not payload.get("id"):
        raise Forbidden("Invalid or expired token")

    try:
        user_id = ObjectId(payload["id"])
    except (InvalidId, TypeError):
        raise Forbidden("Invalid or expired token")

    user = await db.users.find_one({"_id": user_id})
    if not user:
        raise NotFound("User not found")

    if not user.get("isAdmin") and not user.get("isApproved"):
        raise Forbidden("Your account is waiting for admin approval")

    user["id"] = str(user["_id"])
    user["tokenIsAdmin"] = bool(payload.get("isAdmin"))
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not (user["tokenIsAdmin"] and user.get("isAdmin")):
        logger.warning("Non-admin {} tried an admin endpoint", user["id"])
        raise Forbidden("Admin access required")
    return user
