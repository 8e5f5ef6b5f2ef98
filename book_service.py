import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from loguru import logger

from errors import NotFound, ValidationFailed
from image_store import ImageStore
from models.post_book_model import MAX_BOOK_IMAGES, BookStatus, PostBookModel
from models.update_book_model import UpdateBookModel
from utils import full_name, to_object_id, utcnow

# optional listing details a partial update may remove
CLEARABLE_FIELDS = ("isbn", "description", "location")


def serialize_book(book) -> dict:
    return {
        "id": str(book["_id"]),
        "title": book.get("title"),
        "author": book.get("author"),
        "isbn": book.get("isbn"),
        "genre": book.get("genre"),
        "condition": book.get("condition"),
        "description": book.get("description"),
        "images": book.get("images", []),
        "location": book.get("location"),
        "city": book.get("city"),
        "status": book.get("status"),
        "createdAt": book.get("createdAt"),
    }


async def find_book(db, book_id: str) -> Optional[Dict[str, Any]]:
    try:
        oid = ObjectId(book_id)
    except (InvalidId, TypeError):
        return None
    return await db.books.find_one({"_id": oid})


async def list_catalog(
    db,
    genre: Optional[str] = None,
    city: Optional[str] = None,
    condition: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> Dict[str, Any]:
    """Available books, newest first, each with its owner's public details."""
    query: Dict[str, Any] = {"status": BookStatus.AVAILABLE.value}
    if genre:
        query["genre"] = genre
    if city:
        query["city"] = {"$regex": f"^{re.escape(city)}$", "$options": "i"}
    if condition:
        query["condition"] = condition
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"author": pattern}]

    books = []
    cursor = db.books.find(query).sort([("createdAt", -1), ("_id", -1)]).skip(skip).limit(limit)
    async for book in cursor:
        books.append(book)
    total = await db.books.count_documents(query)

    owner_ids = []
    for book in books:
        try:
            owner_ids.append(ObjectId(book["userId"]))
        except (InvalidId, TypeError):
            continue
    owners = {}
    async for user in db.users.find({"_id": {"$in": owner_ids}}, {"password": 0}):
        owners[str(user["_id"])] = user

    items = []
    for book in books:
        owner = owners.get(book["userId"])
        item = serialize_book(book)
        item["owner"] = {
            "id": book["userId"],
            "name": full_name(owner) if owner else "Unknown User",
            "email": owner.get("email") if owner else None,
        }
        items.append(item)
    return {"total": total, "books": items}


async def list_user_books(db, user_id: str) -> List[Dict[str, Any]]:
    books = []
    async for book in db.books.find({"userId": user_id}).sort([("createdAt", -1), ("_id", -1)]):
        books.append(serialize_book(book))
    return books


async def create_book(db, user_id: str, book: PostBookModel) -> Dict[str, Any]:
    book_data = book.model_dump(mode="json")
    now = utcnow()
    book_data.update({
        "userId": user_id,
        "status": BookStatus.AVAILABLE.value,
        "createdAt": now,
        "updatedAt": now,
    })
    # optional fields that were left blank are not stored
    book_data = {key: value for key, value in book_data.items() if value is not None}

    result = await db.books.insert_one(book_data)
    book_data["_id"] = result.inserted_id
    logger.info("Book {} added by {}", result.inserted_id, user_id)
    return book_data


async def get_owned_book(db, book_id: str, user_id: str) -> Dict[str, Any]:
    book = await db.books.find_one({"_id": to_object_id(book_id, "Book"), "userId": user_id})
    if not book:
        raise NotFound("Book not found or unauthorized")
    return book


async def update_book(
    db, image_store: ImageStore, book_id: str, user_id: str, changes: UpdateBookModel
) -> Dict[str, Any]:
    existing = await get_owned_book(db, book_id, user_id)

    update_fields = {}
    cleared_fields = {}
    for key, value in changes.model_dump(mode="json", exclude_unset=True).items():
        if value is not None:
            update_fields[key] = value
        elif key in CLEARABLE_FIELDS:
            cleared_fields[key] = ""
    if not update_fields and not cleared_fields:
        raise ValidationFailed("No fields provided to update")

    removed_images: List[str] = []
    if "images" in update_fields:
        images = update_fields["images"]
        if not images:
            raise ValidationFailed("At least one image is required")
        if len(images) > MAX_BOOK_IMAGES:
            raise ValidationFailed(f"Maximum {MAX_BOOK_IMAGES} images allowed")
        removed_images = [url for url in existing.get("images", []) if url not in images]

    update_fields["updatedAt"] = utcnow()
    update = {"$set": update_fields}
    if cleared_fields:
        update["$unset"] = cleared_fields
    await db.books.update_one({"_id": existing["_id"]}, update)

    if removed_images:
        await image_store.delete_many(removed_images)

    return await db.books.find_one({"_id": existing["_id"]})


async def delete_book(db, image_store: ImageStore, book: Dict[str, Any]) -> None:
    """Delete a book document, then its images (best-effort)."""
    await db.books.delete_one({"_id": book["_id"]})
    await image_store.delete_many(book.get("images", []))
    logger.info("Book {} deleted", book["_id"])


async def delete_books_for_user(db, image_store: ImageStore, user_id: str) -> int:
    images: List[str] = []
    async for book in db.books.find({"userId": user_id}, {"images": 1}):
        images.extend(book.get("images", []))

    await image_store.delete_many(images)
    result = await db.books.delete_many({"userId": user_id})
    return result.deleted_count


async def book_counts(db, query: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
    """Total and per-status book counts for ``query``."""
    query = dict(query or {})
    counts = {"totalBooks": await db.books.count_documents(query)}
    for status in BookStatus:
        counts[f"{status.value}Books"] = await db.books.count_documents(
            dict(query, status=status.value)
        )
    return counts
