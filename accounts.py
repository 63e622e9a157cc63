"""
Account provisioning and the message-acceptance toggle.
"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import Principal, hash_password, to_object_id
from database import now, store_errors
from errors import AuthError, ConflictError, NotFoundError, ValidationError
from schemas import SignUpRequest, User as UserSchema, UsernameQuery

logger = logging.getLogger(__name__)

AVAILABLE = "available"
TAKEN = "taken"


def public_identity(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "username": user["username"],
        "email": user["email"],
        "isVerified": user.get("isVerified", False),
        "isAcceptingMessages": user.get("isAcceptingMessages", False),
    }


def require_owner(principal: Optional[Principal], account_id: str) -> None:
    if principal is None or principal.account_id != account_id:
        raise AuthError("Not allowed")


@store_errors
def create_account(db: Database, username: str, email: str, password: str) -> dict:
    try:
        data = SignUpRequest(username=username, email=email, password=password)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc

    users = db["user"]
    email = str(data.email).lower()
    # Unverified accounts do not hold their username
    if users.find_one({"username": data.username, "isVerified": True}, {"_id": 1}):
        raise ConflictError("username", "Username is already taken")
    if users.find_one({"email": email}, {"_id": 1}):
        raise ConflictError("email", "User already exists with this email")

    user_doc = UserSchema(
        username=data.username,
        email=email,
        password_hash=hash_password(data.password),
        isVerified=True,
        isAcceptingMessages=True,
    ).model_dump()
    user_doc.update({"created_at": now(), "updated_at": now()})
    try:
        res = users.insert_one(user_doc)
    except DuplicateKeyError as exc:
        raise ConflictError("email", "User already exists with this email") from exc

    user_doc["_id"] = res.inserted_id
    logger.info("Account created: %s", data.username)
    return public_identity(user_doc)


@store_errors
def check_username_available(db: Database, username: str) -> str:
    try:
        data = UsernameQuery(username=username)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc

    if db["user"].find_one({"username": data.username, "isVerified": True}, {"_id": 1}):
        return TAKEN
    return AVAILABLE


@store_errors
def get_acceptance(db: Database, principal: Optional[Principal], account_id: str) -> bool:
    require_owner(principal, account_id)
    user = db["user"].find_one({"_id": to_object_id(account_id)}, {"isAcceptingMessages": 1})
    if not user:
        raise NotFoundError("User not found")
    return bool(user.get("isAcceptingMessages", False))


@store_errors
def set_acceptance(db: Database, principal: Optional[Principal], account_id: str, value: bool) -> bool:
    require_owner(principal, account_id)
    res = db["user"].update_one(
        {"_id": to_object_id(account_id)},
        {"$set": {"isAcceptingMessages": bool(value), "updated_at": now()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("User not found")
    return bool(value)
