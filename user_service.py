"""Accounts: signup, login checks, approval, cascade removal, dashboards."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from pymongo.errors import DuplicateKeyError

from book_service import book_counts, delete_books_for_user
from config import Settings
from errors import Conflict, Forbidden, NotFound, Unauthorized
from image_store import ImageStore
from models.admin_models import ApprovalAction, UserListStatus
from models.exchange_models import ExchangeStatus
from models.register_model import RegisterUser
from utils import (
    create_access_token,
    format_relative_time,
    full_name,
    hash_password,
    to_object_id,
    utcnow,
    verify_password,
)

PENDING_APPROVAL_MESSAGE = (
    "Your signup request is still pending. Please wait for admin approval."
)


def serialize_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(user["_id"]),
        "email": user["email"],
        "firstName": user.get("firstName"),
        "lastName": user.get("lastName"),
        "mobileNumber": user.get("mobileNumber"),
        "profileImage": user.get("profileImage"),
        "isAdmin": user.get("isAdmin", False),
        "isApproved": user.get("isApproved", False),
        "createdAt": user.get("createdAt"),
    }


def issue_token(user: Dict[str, Any], settings: Settings) -> str:
    return create_access_token(
        {"id": str(user["_id"]), "email": user["email"], "isAdmin": user.get("isAdmin", False)},
        settings,
    )


async def create_user(
    db,
    settings: Settings,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    is_admin: bool = False,
) -> Dict[str, Any]:
    """Insert a user. Admins are approved immediately, everyone else waits."""
    email = email.strip().lower()
    if await db.users.find_one({"email": email}):
        raise Conflict("An account with this email already exists")

    now = utcnow()
    user = {
        "email": email,
        "firstName": first_name,
        "lastName": last_name,
        "password": hash_password(password, settings.bcrypt_rounds),
        "isAdmin": is_admin,
        "isApproved": is_admin,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db.users.insert_one(user)
    except DuplicateKeyError:
        raise Conflict("An account with this email already exists")
    user["_id"] = result.inserted_id
    logger.info("User {} created (admin={})", result.inserted_id, is_admin)
    return user


async def register_user(db, settings: Settings, registration: RegisterUser) -> Dict[str, Any]:
    return await create_user(
        db,
        settings,
        registration.firstName,
        registration.lastName,
        registration.email,
        registration.password,
    )


async def _check_credentials(db, email: str, password: str, failure: str) -> Dict[str, Any]:
    user = await db.users.find_one({"email": email.strip().lower()})
    if not user or not verify_password(password, user["password"]):
        logger.info("Failed login for {}", email)
        raise Unauthorized(failure)
    return user


async def authenticate_user(db, email: str, password: str) -> Dict[str, Any]:
    user = await _check_credentials(db, email, password, "Invalid email or password")
    if user.get("isAdmin"):
        raise Forbidden("Admin users must use the admin login portal")
    if not user.get("isApproved"):
        raise Forbidden(PENDING_APPROVAL_MESSAGE)
    return user


async def authenticate_admin(
    db, settings: Settings, email: str, password: str, admin_code: str
) -> Dict[str, Any]:
    if admin_code != settings.admin_code:
        logger.warning("Admin login with a wrong admin code for {}", email)
        raise Unauthorized("Invalid admin code")

    user = await db.users.find_one({"email": email.strip().lower()})
    if not user:
        raise Unauthorized("Invalid admin credentials")
    if not user.get("isAdmin"):
        raise Forbidden("Access denied. Admin privileges required.")
    if not verify_password(password, user["password"]):
        raise Unauthorized("Invalid admin credentials")
    return user


async def ensure_default_admin(db, settings: Settings) -> Optional[Dict[str, Any]]:
    """Create the configured default admin unless it already exists."""
    if not settings.default_admin_email or not settings.default_admin_password:
        return None
    existing = await db.users.find_one({"email": settings.default_admin_email.lower()})
    if existing:
        logger.info("Default admin already exists")
        return existing
    admin = await create_user(
        db,
        settings,
        "Admin",
        "User",
        settings.default_admin_email,
        settings.default_admin_password,
        is_admin=True,
    )
    logger.info("Default admin created: {}", admin["email"])
    return admin


async def get_user(db, user_id: str) -> Dict[str, Any]:
    user = await db.users.find_one({"_id": to_object_id(user_id, "User")})
    if not user:
        raise NotFound("User not found")
    return user


async def delete_user(db, image_store: ImageStore, user: Dict[str, Any]) -> int:
    """Remove a user with their books and images. Returns the number of books removed."""
    user_id = str(user["_id"])
    deleted_books = await delete_books_for_user(db, image_store, user_id)
    if user.get("profileImage"):
        await image_store.delete_many([user["profileImage"]])
    await db.users.delete_one({"_id": user["_id"]})
    logger.info("User {} deleted with {} book(s)", user_id, deleted_books)
    return deleted_books


async def review_signup(
    db, image_store: ImageStore, user_id: str, action: ApprovalAction
) -> Optional[Dict[str, Any]]:
    """Approve a pending user, or reject (delete) them. Returns the approved user."""
    user = await get_user(db, user_id)
    if user.get("isAdmin"):
        raise Forbidden("Cannot modify admin users")

    if action == ApprovalAction.APPROVE:
        await db.users.update_one(
            {"_id": user["_id"]}, {"$set": {"isApproved": True, "updatedAt": utcnow()}}
        )
        logger.info("User {} approved", user_id)
        return await db.users.find_one({"_id": user["_id"]})

    await delete_user(db, image_store, user)
    logger.info("User {} rejected", user_id)
    return None


async def list_users(db, status: UserListStatus = UserListStatus.ALL) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"isAdmin": False}
    if status == UserListStatus.PENDING:
        query["isApproved"] = False
    elif status == UserListStatus.APPROVED:
        query["isApproved"] = True

    users = []
    cursor = db.users.find(query, {"password": 0}).sort([("createdAt", -1), ("_id", -1)])
    async for user in cursor:
        item = serialize_user(user)
        item["updatedAt"] = user.get("updatedAt")
        stats = await book_counts(db, {"userId": item["id"]})
        stats["successfulExchanges"] = stats["exchangedBooks"]
        item["stats"] = stats
        users.append(item)
    return users


async def user_dashboard(db, user_id: str) -> Dict[str, Any]:
    stats = await book_counts(db, {"userId": user_id})
    stats["booksShared"] = stats["exchangedBooks"]
    stats["booksReceived"] = await db.exchanges.count_documents({
        "status": ExchangeStatus.COMPLETED.value,
        "$or": [{"requesterId": user_id}, {"ownerId": user_id}],
    })
    stats["activeExchanges"] = stats["pendingBooks"]

    recent = []
    cursor = db.books.find({"userId": user_id}).sort([("createdAt", -1), ("_id", -1)]).limit(5)
    async for book in cursor:
        recent.append({
            "id": str(book["_id"]),
            "title": book.get("title"),
            "author": book.get("author"),
            "status": book.get("status"),
            "addedAt": format_relative_time(book.get("createdAt")),
        })
    return {"stats": stats, "recentBooks": recent}


def _month_start(moment: datetime, months_back: int = 0) -> datetime:
    year, month = moment.year, moment.month - months_back
    while month < 1:
        month += 12
        year -= 1
    return datetime(year, month, 1)


async def admin_dashboard(db) -> Dict[str, Any]:
    now = utcnow()
    non_admin = {"isAdmin": False}

    stats: Dict[str, Any] = {
        "totalUsers": await db.users.count_documents(non_admin),
        "pendingUsers": await db.users.count_documents(dict(non_admin, isApproved=False)),
    }
    stats.update(await book_counts(db))
    stats["activeExchanges"] = await db.exchanges.count_documents(
        {"status": ExchangeStatus.ACCEPTED.value}
    )
    stats["completedExchanges"] = await db.exchanges.count_documents(
        {"status": ExchangeStatus.COMPLETED.value}
    )

    this_month = _month_start(now)
    before = await db.users.count_documents(dict(non_admin, createdAt={"$lt": this_month}))
    joined = await db.users.count_documents(dict(non_admin, createdAt={"$gte": this_month}))
    stats["monthlyGrowth"] = round(joined / before * 100, 1) if before else 0.0

    recent_users = []
    cursor = db.users.find(non_admin, {"password": 0}).sort([("createdAt", -1), ("_id", -1)]).limit(5)
    async for user in cursor:
        recent_users.append({
            "id": str(user["_id"]),
            "name": full_name(user),
            "email": user["email"],
            "joined": format_relative_time(user.get("createdAt"), now),
            "status": "approved" if user.get("isApproved") else "pending",
        })

    recent_books = []
    cursor = db.books.find().sort([("createdAt", -1), ("_id", -1)]).limit(5)
    async for book in cursor:
        owner = await db.users.find_one({"_id": to_object_id(book["userId"], "User")})
        recent_books.append({
            "id": str(book["_id"]),
            "title": book.get("title"),
            "author": book.get("author"),
            "addedBy": full_name(owner) if owner else "Unknown User",
            "addedAt": format_relative_time(book.get("createdAt"), now),
            "status": book.get("status"),
        })

    return {"stats": stats, "recentUsers": recent_users, "recentBooks": recent_books}
