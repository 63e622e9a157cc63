"""
MongoDB connection handle

The application owns exactly one `MongoConnection`. It is opened on startup
(or on first use) and closed on shutdown; request handlers receive the
database through the `get_db` dependency.
"""

import functools
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import StoreError

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "anon_messages")


class MongoConnection:
    def __init__(self, url: Optional[str] = DATABASE_URL, name: str = DATABASE_NAME):
        self.url = url
        self.name = name
        self._client: Optional[MongoClient] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> Database:
        if self._client is None:
            if not self.url:
                raise StoreError("Database not configured")
            client = None
            try:
                client = MongoClient(self.url, serverSelectionTimeoutMS=5000)
                # The client is only kept once its indexes exist
                ensure_indexes(client[self.name])
            except PyMongoError as exc:
                logger.error("Database connection failed: %s", exc)
                if client is not None:
                    client.close()
                raise StoreError("Database connection failed") from exc
            self._client = client
            logger.info("Connected to database %s", self.name)
        return self._client[self.name]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Database connection closed")


connection = MongoConnection()


def get_db() -> Database:
    return connection.connect()


def ensure_indexes(db: Database) -> None:
    users = db["user"]
    users.create_index("email", unique=True)
    users.create_index([("username", ASCENDING), ("isVerified", ASCENDING)])
    db["session"].create_index("token", unique=True)


def now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # The driver hands back naive UTC datetimes unless tz_aware is set
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_document(db: Database, collection_name: str, data: dict) -> str:
    doc = dict(data)
    doc.update({"created_at": now(), "updated_at": now()})
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def store_errors(func):
    """Re-raise driver failures from a service call as StoreError."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PyMongoError as exc:
            logger.error("Store failure in %s: %s", func.__name__, exc)
            raise StoreError("Database unavailable. Please try again later.") from exc

    return wrapper
