from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from book_service import delete_book, find_book
from dataBase import get_db
from dependencies import get_image_store, require_admin
from errors import BookShareError, INTERNAL_ERROR_MESSAGE, Forbidden, NotFound
from models.admin_models import ApprovalAction, ApprovalRequest, UserListStatus
from user_service import (
    admin_dashboard,
    delete_user,
    get_user,
    list_users,
    review_signup,
    serialize_user,
)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/users")
async def get_users(status: UserListStatus = UserListStatus.ALL, db=Depends(get_db)):
    try:
        users = await list_users(db, status)
        return {"success": True, "users": users, "totalUsers": len(users)}
    except BookShareError:
        raise
    except Exception:
        logger.exception("Users fetch error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.post("/users/{user_id}/approve")
async def approve_user(
    user_id: str,
    review: ApprovalRequest,
    db=Depends(get_db),
    image_store=Depends(get_image_store),
):
    try:
        user = await review_signup(db, image_store, user_id, review.action)
        if review.action == ApprovalAction.APPROVE:
            return {
                "success": True,
                "message": "User approved successfully",
                "user": serialize_user(user),
            }
        return {"success": True, "message": "User registration rejected and removed"}
    except BookShareError:
        raise
    except Exception:
        logger.exception("User approval error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.delete("/users/{user_id}")
async def remove_user(user_id: str, db=Depends(get_db), image_store=Depends(get_image_store)):
    try:
        user = await get_user(db, user_id)
        if user.get("isAdmin"):
            raise Forbidden("Cannot delete admin users")

        deleted_books = await delete_user(db, image_store, user)
        return {
            "success": True,
            "message": (
                f"User deleted successfully. {deleted_books} books and associated "
                "images were also removed."
            ),
            "deletedBooks": deleted_books,
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("User deletion error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.delete("/books/{book_id}")
async def remove_book(book_id: str, db=Depends(get_db), image_store=Depends(get_image_store)):
    try:
        book = await find_book(db, book_id)
        if not book:
            raise NotFound("Book not found")
        await delete_book(db, image_store, book)
        return {"success": True, "message": "Book deleted successfully"}
    except BookShareError:
        raise
    except Exception:
        logger.exception("Admin book deletion error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.get("/dashboard")
async def get_dashboard(db=Depends(get_db)):
    try:
        dashboard = await admin_dashboard(db)
        return {"success": True, **dashboard}
    except BookShareError:
        raise
    except Exception:
        logger.exception("Dashboard stats fetch error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)
