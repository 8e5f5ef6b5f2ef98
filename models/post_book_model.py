from pydantic import BaseModel, Field, HttpUrl, field_validator
from typing import List, Optional
from enum import Enum

MAX_BOOK_IMAGES = 5
ISBN_PATTERN = r"^(?:\d{9}[\dX]|\d{13})$"


class BookGenre(str, Enum):
    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    SCIENCE_FICTION = "Science Fiction"
    FANTASY = "Fantasy"
    MYSTERY = "Mystery"
    ROMANCE = "Romance"
    THRILLER = "Thriller"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    SCIENCE = "Science"
    PHILOSOPHY = "Philosophy"
    SELF_HELP = "Self-Help"
    CHILDREN = "Children"
    YOUNG_ADULT = "Young Adult"
    CLASSIC = "Classic"
    POETRY = "Poetry"
    DRAMA = "Drama"
    OTHER = "Other"


class BookCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class BookStatus(str, Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    EXCHANGED = "exchanged"


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class PostBookModel(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    author: str = Field(min_length=1, max_length=100)
    isbn: Optional[str] = Field(default=None, pattern=ISBN_PATTERN)
    genre: BookGenre
    condition: BookCondition = BookCondition.GOOD
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    images: List[HttpUrl] = Field(min_length=1, max_length=MAX_BOOK_IMAGES)

    @field_validator("title", "author", "city", mode="before")
    @classmethod
    def strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("isbn", "description", "location", mode="before")
    @classmethod
    def strip_optional(cls, value):
        return _blank_to_none(value)
