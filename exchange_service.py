"""
Exchange lifecycle.

    pending  -> accepted | rejected | cancelled
    accepted -> completed | cancelled

Accepting reserves both books (status ``pending``) and rejects every other
pending exchange that touches either of them. Completing marks both books
``exchanged``; cancelling an accepted exchange releases them again.

None of this runs in a transaction: two owners accepting overlapping
exchanges at the same moment both win and the last write sticks.
Authorization always uses the ids recorded on the exchange.
"""

from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from loguru import logger

from book_service import find_book
from errors import Conflict, Forbidden, NotFound, ValidationFailed
from models.exchange_models import ExchangeAction, ExchangeStatus
from models.post_book_model import BookStatus
from utils import full_name, to_object_id, utcnow

AUTO_REJECT_MESSAGE = "The book is no longer available for exchange"

OPEN_STATUSES = (ExchangeStatus.PENDING.value, ExchangeStatus.ACCEPTED.value)


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text.strip() or None


def serialize_exchange(exchange: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(exchange["_id"]),
        "requestedBook": {
            "id": exchange["requestedBookId"],
            "title": exchange["requestedBookTitle"],
        },
        "offeredBook": {
            "id": exchange["offeredBookId"],
            "title": exchange["offeredBookTitle"],
        },
        "requester": {"id": exchange["requesterId"], "name": exchange["requesterName"]},
        "owner": {"id": exchange["ownerId"], "name": exchange["ownerName"]},
        "status": exchange["status"],
        "message": exchange.get("message"),
        "responseMessage": exchange.get("responseMessage"),
        "createdAt": exchange.get("createdAt"),
        "updatedAt": exchange.get("updatedAt"),
    }


async def _find_user(db, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        oid = ObjectId(user_id)
    except (InvalidId, TypeError):
        return None
    return await db.users.find_one({"_id": oid})


async def _set_book_status(db, book_ids: Iterable[str], status: BookStatus) -> None:
    oids = []
    for book_id in book_ids:
        try:
            oids.append(ObjectId(book_id))
        except (InvalidId, TypeError):
            continue
    await db.books.update_many(
        {"_id": {"$in": oids}},
        {"$set": {"status": status.value, "updatedAt": utcnow()}},
    )


async def request_exchange(
    db,
    requester_id: str,
    requested_book_id: str,
    offered_book_id: str,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a pending exchange of ``offered_book_id`` for ``requested_book_id``."""
    requested_book = await find_book(db, requested_book_id)
    if not requested_book:
        raise NotFound("Requested book not found")

    offered_book = await find_book(db, offered_book_id)
    if not offered_book:
        raise NotFound("Offered book not found")

    if offered_book["userId"] != requester_id:
        raise Forbidden("You can only offer your own books")

    if requested_book["userId"] == requester_id:
        raise ValidationFailed("You cannot request your own book")

    if requested_book.get("status") != BookStatus.AVAILABLE.value:
        raise Conflict("This book is not available for exchange")

    existing = await db.exchanges.find_one({
        "requestedBookId": requested_book_id,
        "offeredBookId": offered_book_id,
        "requesterId": requester_id,
        "status": ExchangeStatus.PENDING.value,
    })
    if existing:
        raise Conflict("You already have a pending exchange request for this book")

    requester = await _find_user(db, requester_id)
    owner = await _find_user(db, requested_book["userId"])
    if not requester or not owner:
        raise NotFound("User not found")

    now = utcnow()
    exchange = {
        "requestedBookId": requested_book_id,
        "requestedBookTitle": requested_book["title"],
        "offeredBookId": offered_book_id,
        "offeredBookTitle": offered_book["title"],
        "requesterId": requester_id,
        "requesterName": full_name(requester),
        "ownerId": requested_book["userId"],
        "ownerName": full_name(owner),
        "status": ExchangeStatus.PENDING.value,
        "createdAt": now,
        "updatedAt": now,
    }
    cleaned = _clean(message)
    if cleaned:
        exchange["message"] = cleaned

    result = await db.exchanges.insert_one(exchange)
    exchange["_id"] = result.inserted_id
    logger.info(
        "Exchange {} requested by {}: {} for {}",
        result.inserted_id, requester_id, offered_book_id, requested_book_id,
    )
    return exchange


async def get_exchange(db, exchange_id: str) -> Dict[str, Any]:
    exchange = await db.exchanges.find_one({"_id": to_object_id(exchange_id, "Exchange")})
    if not exchange:
        raise NotFound("Exchange not found")
    return exchange


async def _save(db, exchange: Dict[str, Any], status: ExchangeStatus, response_message=None):
    update = {"status": status.value, "updatedAt": utcnow()}
    if response_message:
        update["responseMessage"] = response_message
    await db.exchanges.update_one({"_id": exchange["_id"]}, {"$set": update})
    return await db.exchanges.find_one({"_id": exchange["_id"]})


async def accept_exchange(db, exchange, actor_id: str, response_message: Optional[str] = None):
    if exchange["ownerId"] != actor_id:
        raise Forbidden("Only the book owner can accept this request")
    if exchange["status"] != ExchangeStatus.PENDING.value:
        raise Conflict("This exchange request is no longer pending")

    requested_book = await find_book(db, exchange["requestedBookId"])
    if not requested_book or requested_book.get("status") != BookStatus.AVAILABLE.value:
        raise Conflict("Your book is no longer available")

    offered_book = await find_book(db, exchange["offeredBookId"])
    if not offered_book or offered_book.get("status") != BookStatus.AVAILABLE.value:
        raise Conflict("The offered book is no longer available")

    book_ids = [exchange["requestedBookId"], exchange["offeredBookId"]]
    updated = await _save(db, exchange, ExchangeStatus.ACCEPTED, _clean(response_message))
    await _set_book_status(db, book_ids, BookStatus.PENDING)

    competing = await db.exchanges.update_many(
        {
            "_id": {"$ne": exchange["_id"]},
            "status": ExchangeStatus.PENDING.value,
            "$or": [
                {"requestedBookId": {"$in": book_ids}},
                {"offeredBookId": {"$in": book_ids}},
            ],
        },
        {
            "$set": {
                "status": ExchangeStatus.REJECTED.value,
                "responseMessage": AUTO_REJECT_MESSAGE,
                "updatedAt": utcnow(),
            }
        },
    )
    logger.info(
        "Exchange {} accepted by {}; {} competing request(s) rejected",
        exchange["_id"], actor_id, competing.modified_count,
    )
    return updated


async def reject_exchange(db, exchange, actor_id: str, response_message: Optional[str] = None):
    if exchange["ownerId"] != actor_id:
        raise Forbidden("Only the book owner can reject this request")
    if exchange["status"] != ExchangeStatus.PENDING.value:
        raise Conflict("This exchange request is no longer pending")

    logger.info("Exchange {} rejected by {}", exchange["_id"], actor_id)
    return await _save(db, exchange, ExchangeStatus.REJECTED, _clean(response_message))


async def complete_exchange(db, exchange, actor_id: str):
    if actor_id not in (exchange["ownerId"], exchange["requesterId"]):
        raise Forbidden("Only the participants can complete this exchange")
    if exchange["status"] != ExchangeStatus.ACCEPTED.value:
        raise Conflict("Only accepted exchanges can be completed")

    updated = await _save(db, exchange, ExchangeStatus.COMPLETED)
    await _set_book_status(
        db, [exchange["requestedBookId"], exchange["offeredBookId"]], BookStatus.EXCHANGED
    )
    logger.info("Exchange {} completed by {}", exchange["_id"], actor_id)
    return updated


async def cancel_exchange(db, exchange, actor_id: str):
    if exchange["requesterId"] != actor_id:
        raise Forbidden("Only the requester can cancel this exchange")

    previous_status = exchange["status"]
    if previous_status == ExchangeStatus.COMPLETED.value:
        raise Conflict("Completed exchanges cannot be cancelled")
    if previous_status not in OPEN_STATUSES:
        raise Conflict(f"This exchange request is already {previous_status}")

    updated = await _save(db, exchange, ExchangeStatus.CANCELLED)
    if previous_status == ExchangeStatus.ACCEPTED.value:
        await _set_book_status(
            db, [exchange["requestedBookId"], exchange["offeredBookId"]], BookStatus.AVAILABLE
        )
    logger.info("Exchange {} cancelled by {} (was {})", exchange["_id"], actor_id, previous_status)
    return updated


async def apply_action(
    db,
    exchange_id: str,
    actor_id: str,
    action: str,
    response_message: Optional[str] = None,
) -> Dict[str, Any]:
    """Run one lifecycle transition and return the updated exchange document."""
    try:
        action = ExchangeAction(action)
    except ValueError:
        raise ValidationFailed("Invalid action")

    exchange = await get_exchange(db, exchange_id)

    if action == ExchangeAction.ACCEPT:
        return await accept_exchange(db, exchange, actor_id, response_message)
    if action == ExchangeAction.REJECT:
        return await reject_exchange(db, exchange, actor_id, response_message)
    if action == ExchangeAction.COMPLETE:
        return await complete_exchange(db, exchange, actor_id)
    return await cancel_exchange(db, exchange, actor_id)


async def list_exchanges(db, user_id: str, kind: Optional[str] = None) -> List[Dict[str, Any]]:
    """Exchanges the user sent, received, or both, newest first, with live book previews."""
    if kind == "sent":
        query = {"requesterId": user_id}
    elif kind == "received":
        query = {"ownerId": user_id}
    else:
        query = {"$or": [{"requesterId": user_id}, {"ownerId": user_id}]}

    exchanges = []
    async for exchange in db.exchanges.find(query).sort([("createdAt", -1), ("_id", -1)]):
        exchanges.append(exchange)

    book_ids = set()
    for exchange in exchanges:
        book_ids.add(exchange["requestedBookId"])
        book_ids.add(exchange["offeredBookId"])
    oids = []
    for book_id in book_ids:
        try:
            oids.append(ObjectId(book_id))
        except (InvalidId, TypeError):
            continue

    books = {}
    async for book in db.books.find({"_id": {"$in": oids}}, {"images": 1, "status": 1}):
        books[str(book["_id"])] = book

    results = []
    for exchange in exchanges:
        item = serialize_exchange(exchange)
        for key, book_id in (
            ("requestedBook", exchange["requestedBookId"]),
            ("offeredBook", exchange["offeredBookId"]),
        ):
            book = books.get(book_id)
            images = book.get("images") if book else None
            item[key]["image"] = images[0] if images else ""
            item[key]["status"] = book.get("status", "unknown") if book else "unknown"
        item["isSender"] = exchange["requesterId"] == user_id
        results.append(item)
    return results
