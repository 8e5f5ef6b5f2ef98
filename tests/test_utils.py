"""
Tests for helpers: tokens, ids, relative times, image CDN ids.
"""

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from errors import NotFound
from image_store import NullImageStore, create_image_store, public_id_from_url
from utils import (
    create_access_token,
    decode_access_token,
    format_relative_time,
    hash_password,
    to_object_id,
    verify_password,
)


class TestPublicId:

    @pytest.mark.parametrize(
        "url, expected",
        [
            (
                "https://res.cloudinary.com/demo/image/upload/v1712/book-exchange/books/dune.jpg",
                "book-exchange/books/dune",
            ),
            (
                "https://res.cloudinary.com/demo/image/upload/c_fill,w_300/v99/book-exchange/a.b.png",
                "book-exchange/a.b",
            ),
            ("https://res.cloudinary.com/demo/image/upload/cover", "cover"),
            ("https://example.com/images/cover.jpg", None),
        ],
    )
    def test_public_id_from_url(self, url, expected):
        assert public_id_from_url(url) == expected


class TestImageStore:

    async def test_delete_many_counts_successes(self, image_store):
        image_store.fail_on.add("b")

        assert await image_store.delete_many(["a", "b", "c"]) == 2
        assert image_store.deleted == ["a", "c"]

    def test_without_credentials_deletion_is_disabled(self, settings):
        assert isinstance(create_image_store(settings), NullImageStore)

    async def test_disabled_store_keeps_no_state(self):
        store = NullImageStore()

        assert await store.delete_many(f"{n}.jpg" for n in range(1000)) == 1000
        assert vars(store) == {}


class TestTokens:

    def test_round_trip(self, settings):
        token = create_access_token({"id": "abc", "isAdmin": True}, settings)

        payload = decode_access_token(token, settings)

        assert payload["id"] == "abc"
        assert payload["isAdmin"] is True
        assert payload["exp"] > payload["iat"]

    def test_expired_or_foreign_token_is_none(self, settings):
        expired = create_access_token({"id": "abc"}, settings, timedelta(seconds=-1))
        foreign = create_access_token({"id": "abc"}, replace(settings, jwt_secret="another-secret-of-sufficient-length"))

        assert decode_access_token(expired, settings) is None
        assert decode_access_token(foreign, settings) is None


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("Secret123", rounds=4)

        assert hashed != "Secret123"
        assert verify_password("Secret123", hashed)
        assert not verify_password("Secret124", hashed)


class TestObjectIds:

    def test_malformed_id_is_not_found(self):
        with pytest.raises(NotFound, match="Book not found"):
            to_object_id("nope", "Book")

    def test_valid_id(self):
        assert str(to_object_id("64b7f0c2a1b2c3d4e5f60718")) == "64b7f0c2a1b2c3d4e5f60718"


class TestRelativeTime:

    NOW = datetime(2024, 6, 15, 12, 0, 0)

    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(seconds=30), "just now"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=3), "3 hours ago"),
            (timedelta(days=2), "2 days ago"),
            (timedelta(days=15), "2 weeks ago"),
            (timedelta(days=95), "3 months ago"),
        ],
    )
    def test_buckets(self, delta, expected):
        assert format_relative_time(self.NOW - delta, self.NOW) == expected

    def test_missing_timestamp(self):
        assert format_relative_time(None) == ""
