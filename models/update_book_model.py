from pydantic import BaseModel, Field, HttpUrl, field_validator
from typing import List, Optional

from models.post_book_model import (
    BookCondition,
    BookGenre,
    BookStatus,
    ISBN_PATTERN,
    MAX_BOOK_IMAGES,
    _blank_to_none,
)


class UpdateBookModel(BaseModel):
    """Partial update; only the fields sent are changed.

    ``images`` replaces the whole list. URLs dropped from it are removed
    from the CDN. ``isbn``, ``description`` and ``location`` are cleared by
    sending null or an empty string.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    author: Optional[str] = Field(default=None, min_length=1, max_length=100)
    isbn: Optional[str] = Field(default=None, pattern=ISBN_PATTERN)
    genre: Optional[BookGenre] = None
    condition: Optional[BookCondition] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[BookStatus] = None
    images: Optional[List[HttpUrl]] = Field(default=None, max_length=MAX_BOOK_IMAGES)

    @field_validator("title", "author", "city", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("isbn", "description", "location", mode="before")
    @classmethod
    def blank_clears(cls, value):
        return _blank_to_none(value)
