"""
Pytest configuration and fixtures for BookShare API tests.
"""

from typing import AsyncGenerator, Dict, Iterable, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from config import Settings
from dataBase import ensure_indexes
from image_store import ImageStore
from main import create_app
from user_service import create_user, issue_token
from utils import utcnow

IMAGE_BASE = "https://res.cloudinary.com/demo/image/upload/v1712/book-exchange/books"


# =============================================================================
# Test doubles
# =============================================================================

class RecordingImageStore(ImageStore):
    """Records deletions; URLs listed in ``fail_on`` raise like a CDN outage."""

    def __init__(self, fail_on: Iterable[str] = ()):
        self.deleted: List[str] = []
        self.fail_on = set(fail_on)

    async def delete(self, url: str) -> None:
        if url in self.fail_on:
            raise RuntimeError("CDN unavailable")
        self.deleted.append(url)


# =============================================================================
# Core fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        mongo_db_name="bookshare_test",
        jwt_secret="test-secret-that-is-long-enough-for-hs256",
        admin_code="TEST-ADMIN",
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["bookshare_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def image_store() -> RecordingImageStore:
    return RecordingImageStore()


@pytest.fixture
def app(settings, db, image_store):
    return create_app(settings, db=db, image_store=image_store)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Data factories
# =============================================================================

@pytest.fixture
def make_user(db, settings):
    counter = {"n": 0}

    async def _make_user(
        first_name: str = "Test",
        last_name: str = "User",
        email: Optional[str] = None,
        password: str = "Passw0rd!",
        approved: bool = True,
        admin: bool = False,
    ) -> Dict:
        counter["n"] += 1
        email = email or f"{first_name.lower()}{counter['n']}@example.com"
        user = await create_user(db, settings, first_name, last_name, email, password, is_admin=admin)
        if approved != user["isApproved"]:
            await db.users.update_one({"_id": user["_id"]}, {"$set": {"isApproved": approved}})
            user["isApproved"] = approved
        user["id"] = str(user["_id"])
        return user

    return _make_user


@pytest.fixture
def make_book(db):
    counter = {"n": 0}

    async def _make_book(owner: Dict, title: Optional[str] = None, status: str = "available", **extra) -> Dict:
        counter["n"] += 1
        now = utcnow()
        book = {
            "userId": str(owner["_id"]),
            "title": title or f"Book {counter['n']}",
            "author": "Some Author",
            "genre": "Fiction",
            "condition": "good",
            "images": [f"{IMAGE_BASE}/book{counter['n']}.jpg"],
            "city": "Lisbon",
            "status": status,
            "createdAt": now,
            "updatedAt": now,
        }
        book.update(extra)
        result = await db.books.insert_one(book)
        book["_id"] = result.inserted_id
        book["id"] = str(result.inserted_id)
        return book

    return _make_book


@pytest.fixture
def auth_headers(settings):
    def _headers(user: Dict) -> Dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user, settings)}"}

    return _headers


@pytest.fixture
def book_payload() -> Dict:
    return {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "isbn": "9780441478125",
        "genre": "Science Fiction",
        "condition": "excellent",
        "description": "A classic of speculative fiction.",
        "city": "Porto",
        "images": [f"{IMAGE_BASE}/lefthand-1.jpg", f"{IMAGE_BASE}/lefthand-2.jpg"],
    }
