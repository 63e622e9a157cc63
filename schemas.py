"""
Database Schemas for the anonymous messaging service

Each Pydantic model maps to a MongoDB collection with the model name lowercased.
- User -> user (messages are embedded in the user document)
- Session -> session

The request models below carry the input rules shared by the services.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, EmailStr, Field

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
USERNAME_MIN, USERNAME_MAX = 2, 20
PASSWORD_MIN = 6
CONTENT_MIN, CONTENT_MAX = 5, 300
OPTION_MAX, TOPIC_MAX = 30, 100


class Message(BaseModel):
    content: str = Field(..., min_length=CONTENT_MIN, max_length=CONTENT_MAX)
    createdAt: datetime


class User(BaseModel):
    username: str
    email: EmailStr
    password_hash: str = Field(..., description="PBKDF2-SHA256 hash of password with salt")
    isVerified: bool = True
    isAcceptingMessages: bool = True
    messages: List[Message] = Field(default_factory=list)


class Session(BaseModel):
    user_id: str
    token: str
    expires_at: datetime


# ---------- Input rules ----------

class UsernameQuery(BaseModel):
    username: str = Field(..., min_length=USERNAME_MIN, max_length=USERNAME_MAX, pattern=USERNAME_PATTERN)


class SignUpRequest(UsernameQuery):
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN)


class MessageContent(BaseModel):
    content: str = Field(..., min_length=CONTENT_MIN, max_length=CONTENT_MAX)


# ---------- API payloads ----------
# Left unconstrained so that the services own validation and report it
# through the common error shape.

class SignUpPayload(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class LoginPayload(BaseModel):
    identifier: str
    password: str


class AcceptMessagesPayload(BaseModel):
    acceptMessages: bool


class SendMessagePayload(BaseModel):
    username: str
    content: str = ""


class GenerateMessagePayload(BaseModel):
    tone: str = Field("friendly", max_length=OPTION_MAX)
    length: str = Field("medium", max_length=OPTION_MAX)
    messageType: str = Field("general", max_length=OPTION_MAX)
    topic: str = Field("", max_length=TOPIC_MAX)
