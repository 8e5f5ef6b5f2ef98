from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from config import Settings
from dataBase import get_db
from dependencies import get_settings
from errors import BookShareError, INTERNAL_ERROR_MESSAGE
from models.login_model import AdminLogin, LoginUser
from models.register_model import RegisterUser
from user_service import (
    authenticate_admin,
    authenticate_user,
    ensure_default_admin,
    issue_token,
    register_user,
    serialize_user,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    registration: RegisterUser,
    db=Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        user = await register_user(db, settings, registration)
        return {
            "success": True,
            "message": "Account created successfully. Please wait for admin approval before logging in.",
            "user": serialize_user(user),
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Signup error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.post("/login")
async def login(
    credentials: LoginUser,
    db=Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        user = await authenticate_user(db, credentials.email, credentials.password)
        return {
            "success": True,
            "message": "Login successful",
            "user": serialize_user(user),
            "token": issue_token(user, settings),
            "token_type": "bearer",
            "expires_in": settings.access_token_expire_minutes * 60,
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Login error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.post("/admin")
async def admin_login(
    credentials: AdminLogin,
    db=Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        user = await authenticate_admin(
            db, settings, credentials.email, credentials.password, credentials.adminCode
        )
        return {
            "success": True,
            "message": "Admin authentication successful",
            "user": serialize_user(user),
            "token": issue_token(user, settings),
            "token_type": "bearer",
            "expires_in": settings.access_token_expire_minutes * 60,
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Admin login error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.post("/init")
async def init_database(db=Depends(get_db), settings: Settings = Depends(get_settings)):
    try:
        admin = await ensure_default_admin(db, settings)
        return {
            "success": True,
            "message": "Database initialized successfully",
            "adminConfigured": admin is not None,
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Database initialization error")
        raise HTTPException(status_code=500, detail="Failed to initialize database")
