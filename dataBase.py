import motor.motor_asyncio
from fastapi import Request
from loguru import logger
from pymongo import ASCENDING, DESCENDING

from config import Settings


def create_client(settings: Settings) -> motor.motor_asyncio.AsyncIOMotorClient:
    return motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_url)


def get_database(client, settings: Settings):
    return client[settings.mongo_db_name]


async def ensure_indexes(db) -> None:
    """Create the indexes the queries below rely on. Safe to run repeatedly."""
    await db.users.create_index([("email", ASCENDING)], unique=True)
    await db.users.create_index([("createdAt", DESCENDING)])

    await db.books.create_index([("userId", ASCENDING)])
    await db.books.create_index([("genre", ASCENDING)])
    await db.books.create_index([("city", ASCENDING)])
    await db.books.create_index([("status", ASCENDING)])
    await db.books.create_index([("createdAt", DESCENDING)])

    await db.exchanges.create_index(
        [("requesterId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)]
    )
    await db.exchanges.create_index(
        [("ownerId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)]
    )
    await db.exchanges.create_index([("requestedBookId", ASCENDING), ("status", ASCENDING)])
    await db.exchanges.create_index([("offeredBookId", ASCENDING), ("status", ASCENDING)])

    await db.conversations.create_index(
        [("bookId", ASCENDING), ("interestedUserId", ASCENDING), ("ownerId", ASCENDING)],
        unique=True,
    )
    await db.conversations.create_index(
        [("interestedUserId", ASCENDING), ("lastMessageAt", DESCENDING)]
    )
    await db.conversations.create_index([("ownerId", ASCENDING), ("lastMessageAt", DESCENDING)])
    logger.info("MongoDB indexes ensured")


def get_db(request: Request):
    """FastAPI dependency returning the database bound at startup."""
    return request.app.state.db
