"""
Credentials and sessions

Passwords are stored as `salt$digest` with PBKDF2-SHA256. A successful
login issues an opaque bearer token kept in the `session` collection; the
token resolves back to a `Principal` on every authenticated request.
"""

import hashlib
import hmac
import logging
import os
import secrets
from datetime import timedelta
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, Header
from pydantic import BaseModel
from pymongo.database import Database

from database import as_utc, create_document, get_db, now, store_errors
from errors import AuthError
from schemas import Session as SessionSchema

logger = logging.getLogger(__name__)

SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "30"))
HASH_ITERATIONS = 260_000


class Principal(BaseModel):
    account_id: str
    username: str


def hash_password(password: str, salt: Optional[str] = None) -> str:
    if salt is None:
        salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), HASH_ITERATIONS).hex()
    return f"{salt}${digest}"


def verify_password(password: str, stored_hash: str) -> bool:
    try:
        salt, _ = stored_hash.split("$")
    except ValueError:
        return False
    return hmac.compare_digest(hash_password(password, salt), stored_hash)


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


@store_errors
def login(db: Database, identifier: str, password: str) -> dict:
    """Check credentials and open a session.

    `identifier` may be either the username or the email address.
    """
    user = db["user"].find_one({
        "$or": [{"email": identifier.strip().lower()}, {"username": identifier}],
        "isVerified": True,
    })
    if not user or not verify_password(password, user.get("password_hash", "")):
        raise AuthError("Invalid username/email or password")

    token = secrets.token_urlsafe(32)
    session_doc = SessionSchema(
        user_id=str(user["_id"]),
        token=token,
        expires_at=now() + timedelta(days=SESSION_TTL_DAYS),
    ).model_dump()
    create_document(db, "session", session_doc)
    logger.info("Session opened for %s", user["username"])
    return {"token": token, "principal": Principal(account_id=str(user["_id"]), username=user["username"])}


@store_errors
def logout(db: Database, token: str) -> None:
    db["session"].delete_one({"token": token})


@store_errors
def resolve_principal(db: Database, token: str) -> Principal:
    session = db["session"].find_one({"token": token})
    if not session or as_utc(session["expires_at"]) < now():
        raise AuthError("Session expired")
    oid = to_object_id(session["user_id"])
    user = db["user"].find_one({"_id": oid}, {"username": 1}) if oid else None
    if not user:
        raise AuthError("User not found")
    return Principal(account_id=str(user["_id"]), username=user["username"])


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthError("Not authenticated")
    return authorization.split(" ", 1)[1]


def get_current_principal(token: str = Depends(bearer_token), db: Database = Depends(get_db)) -> Principal:
    return resolve_principal(db, token)
