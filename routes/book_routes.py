from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
from loguru import logger

from book_service import (
    create_book,
    delete_book,
    get_owned_book,
    list_catalog,
    list_user_books,
    serialize_book,
    update_book,
)
from dataBase import get_db
from dependencies import get_current_user, get_image_store
from errors import BookShareError, INTERNAL_ERROR_MESSAGE
from models.post_book_model import BookCondition, BookGenre, PostBookModel
from models.update_book_model import UpdateBookModel
from user_service import user_dashboard

router = APIRouter(tags=["books"])


@router.get("/books")
async def get_catalog(
    genre: Optional[BookGenre] = None,
    city: Optional[str] = None,
    condition: Optional[BookCondition] = None,
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db=Depends(get_db),
):
    try:
        catalog = await list_catalog(
            db,
            genre=genre.value if genre else None,
            city=city,
            condition=condition.value if condition else None,
            search=search,
            skip=skip,
            limit=limit,
        )
        return {
            "success": True,
            "total_books": catalog["total"],
            "returned_books": len(catalog["books"]),
            "skip": skip,
            "limit": limit,
            "books": catalog["books"],
        }
    except BookShareError:
        raise
    except Exception:
        logger.exception("Books fetch error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.get("/user/books")
async def get_my_books(user=Depends(get_current_user), db=Depends(get_db)):
    try:
        books = await list_user_books(db, user["id"])
        return {"success": True, "message": "Books retrieved successfully", "books": books}
    except BookShareError:
        raise
    except Exception:
        logger.exception("Books fetch error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.post("/user/books", status_code=status.HTTP_201_CREATED)
async def add_new_book(book: PostBookModel, user=Depends(get_current_user), db=Depends(get_db)):
    try:
        created = await create_book(db, user["id"], book)
        return {"success": True, "message": "Book added successfully", "book": serialize_book(created)}
    except BookShareError:
        raise
    except Exception:
        logger.exception("Book creation error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.put("/user/books/{book_id}")
async def edit_book(
    book_id: str,
    updated_data: UpdateBookModel,
    user=Depends(get_current_user),
    db=Depends(get_db),
    image_store=Depends(get_image_store),
):
    try:
        updated = await update_book(db, image_store, book_id, user["id"], updated_data)
        return {"success": True, "message": "Book updated successfully", "book": serialize_book(updated)}
    except BookShareError:
        raise
    except Exception:
        logger.exception("Book update error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.delete("/user/books/{book_id}")
async def remove_book(
    book_id: str,
    user=Depends(get_current_user),
    db=Depends(get_db),
    image_store=Depends(get_image_store),
):
    try:
        book = await get_owned_book(db, book_id, user["id"])
        await delete_book(db, image_store, book)
        return {"success": True, "message": "Book deleted successfully"}
    except BookShareError:
        raise
    except Exception:
        logger.exception("Book deletion error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)


@router.get("/user/dashboard")
async def get_dashboard(user=Depends(get_current_user), db=Depends(get_db)):
    try:
        dashboard = await user_dashboard(db, user["id"])
        return {"success": True, **dashboard}
    except BookShareError:
        raise
    except Exception:
        logger.exception("User dashboard stats fetch error")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_MESSAGE)
