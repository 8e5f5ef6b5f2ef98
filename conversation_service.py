"""
Book-scoped conversations.

A conversation belongs to one book and one (interested user, owner) pair.
Who plays which role is decided when a message is sent, by comparing the
sender with the book's current owner, so the same two people get separate
threads for separate books.
"""

from typing import Any, Dict, List, Optional

from loguru import logger
from pymongo.errors import DuplicateKeyError

from book_service import find_book
from errors import NotFound, ValidationFailed
from utils import full_name, to_object_id, utcnow

MAX_MESSAGE_LENGTH = 2000


def serialize_conversation(conversation: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(conversation["_id"]),
        "bookId": conversation["bookId"],
        "bookTitle": conversation["bookTitle"],
        "interestedUserId": conversation["interestedUserId"],
        "interestedUserName": conversation["interestedUserName"],
        "ownerId": conversation["ownerId"],
        "ownerName": conversation["ownerName"],
        "messages": conversation.get("messages", []),
        "lastMessageAt": conversation.get("lastMessageAt"),
        "createdAt": conversation.get("createdAt"),
        "updatedAt": conversation.get("updatedAt"),
    }


async def _get_user(db, user_id: str, label: str) -> Dict[str, Any]:
    user = await db.users.find_one({"_id": to_object_id(user_id, label)})
    if not user:
        raise NotFound(f"{label} not found")
    return user


async def send_message(
    db, sender_id: str, book_id: Optional[str], other_id: Optional[str], text: Optional[str]
) -> Dict[str, Any]:
    """Append a message to the conversation about ``book_id``, creating it if needed.

    ``other_id`` is the other participant. Returns ``{"message", "conversation"}``.
    """
    if not book_id or not other_id or not text or not text.strip():
        raise ValidationFailed("Missing required fields")

    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationFailed(f"Message too long (max {MAX_MESSAGE_LENGTH} characters)")

    if sender_id == other_id:
        raise ValidationFailed("Cannot message yourself")

    book = await find_book(db, book_id)
    if not book:
        raise NotFound("Book not found")

    sender = await _get_user(db, sender_id, "User")
    other = await _get_user(db, other_id, "Owner")

    sender_is_owner = book["userId"] == sender_id
    if sender_is_owner:
        interested, owner = other, sender
    else:
        if book["userId"] != other_id:
            raise ValidationFailed("The recipient does not own this book")
        interested, owner = sender, other

    now = utcnow()
    message = {
        "senderId": sender_id,
        "senderName": full_name(sender),
        "text": text.strip(),
        "createdAt": now,
    }
    key = {
        "bookId": book_id,
        "interestedUserId": str(interested["_id"]),
        "ownerId": str(owner["_id"]),
    }

    conversation = await _append(db, key, message, now)
    if conversation is None:
        try:
            document = dict(
                key,
                bookTitle=book["title"],
                interestedUserName=full_name(interested),
                ownerName=full_name(owner),
                messages=[message],
                lastMessageAt=now,
                createdAt=now,
                updatedAt=now,
            )
            result = await db.conversations.insert_one(document)
            document["_id"] = result.inserted_id
            conversation = document
            logger.info("Conversation {} started about book {}", result.inserted_id, book_id)
        except DuplicateKeyError:
            # someone else opened the thread between our lookup and insert
            conversation = await _append(db, key, message, now)

    return {"message": message, "conversation": conversation}


async def _append(db, key: Dict[str, str], message: Dict[str, Any], now) -> Optional[Dict[str, Any]]:
    result = await db.conversations.update_one(
        key,
        {
            "$push": {"messages": message},
            "$set": {"lastMessageAt": now, "updatedAt": now},
        },
    )
    if result.matched_count == 0:
        return None
    return await db.conversations.find_one(key)


async def get_conversation(db, user_id: str, book_id: str, other_id: str) -> Optional[Dict[str, Any]]:
    """The conversation about ``book_id`` between the two users, whichever role each has."""
    return await db.conversations.find_one({
        "bookId": book_id,
        "$or": [
            {"interestedUserId": user_id, "ownerId": other_id},
            {"interestedUserId": other_id, "ownerId": user_id},
        ],
    })


async def list_conversations(db, user_id: str) -> List[Dict[str, Any]]:
    conversations = []
    cursor = db.conversations.find(
        {"$or": [{"interestedUserId": user_id}, {"ownerId": user_id}]}
    ).sort([("lastMessageAt", -1), ("_id", -1)])
    async for conversation in cursor:
        conversations.append(conversation)
    return conversations
