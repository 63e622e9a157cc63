"""
Message intake, retrieval and deletion.

Messages live inside their owner's `user` document. Intake appends with a
single `$push`, so concurrent senders never overwrite each other, and
deletion always filters on the owner id together with the message id.
"""

import logging
from typing import List, Optional

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo.database import Database

from accounts import require_owner
from auth import Principal, to_object_id
from database import as_utc, now, store_errors
from errors import NotFoundError, RejectedError, ValidationError
from schemas import Message as MessageSchema, MessageContent

logger = logging.getLogger(__name__)


def _serialize(message: dict) -> dict:
    return {
        "id": str(message["_id"]),
        "content": message["content"],
        "createdAt": as_utc(message["createdAt"]).isoformat(),
    }


@store_errors
def send_message(db: Database, target_username: str, content: str) -> dict:
    """Deliver an anonymous message. Unauthenticated.

    Only an acknowledgement comes back; the sender learns nothing about the
    recipient beyond whether the message was accepted.
    """
    try:
        data = MessageContent(content=content)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc

    users = db["user"]
    user = users.find_one({"username": target_username, "isVerified": True}, {"_id": 1})
    if not user:
        raise NotFoundError("User not found")

    message = MessageSchema(content=data.content, createdAt=now()).model_dump()
    message["_id"] = ObjectId()
    # The acceptance flag is part of the filter so the check and the append
    # happen in one atomic update
    res = users.update_one(
        {"_id": user["_id"], "isAcceptingMessages": True},
        {"$push": {"messages": message}},
    )
    if res.matched_count == 0:
        logger.info("Message rejected: %s is not accepting messages", target_username)
        raise RejectedError("User is not accepting messages")
    return {"success": True, "message": "Message sent successfully"}


@store_errors
def list_messages(db: Database, principal: Optional[Principal], account_id: str) -> List[dict]:
    require_owner(principal, account_id)
    user = db["user"].find_one({"_id": to_object_id(account_id)}, {"messages": 1})
    if not user:
        raise NotFoundError("User not found")
    messages = sorted(user.get("messages", []), key=lambda m: as_utc(m["createdAt"]), reverse=True)
    return [_serialize(m) for m in messages]


@store_errors
def delete_message(db: Database, principal: Optional[Principal], account_id: str, message_id: str) -> None:
    require_owner(principal, account_id)
    owner_id = to_object_id(account_id)
    mid = to_object_id(message_id)
    if owner_id is None or mid is None:
        raise NotFoundError("Message not found or already deleted")

    res = db["user"].update_one(
        {"_id": owner_id, "messages._id": mid},
        {"$pull": {"messages": {"_id": mid}}},
    )
    if res.modified_count == 0:
        raise NotFoundError("Message not found or already deleted")
    logger.info("Message %s deleted by %s", message_id, account_id)
