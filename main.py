import logging
import os

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

import accounts
import auth
import messages
import suggestions
from auth import Principal, bearer_token, get_current_principal
from database import connection, get_db
from errors import ServiceError, StoreError, ValidationError
from schemas import (
    AcceptMessagesPayload,
    GenerateMessagePayload,
    LoginPayload,
    SendMessagePayload,
    SignUpPayload,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("anon_messages")

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")

app = FastAPI(title="Anonymous Messages API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError.from_pydantic(exc)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# ---------- Startup / shutdown ----------

@app.on_event("startup")
def open_database():
    if not connection.url:
        logger.warning("DATABASE_URL not set; store operations will fail until it is configured")
        return
    try:
        connection.connect()
    except StoreError as e:
        # First request will retry the connection and the indexes
        logger.error("Database startup failed: %s", e.message)


@app.on_event("shutdown")
def close_database():
    connection.close()


# ---------- Public endpoints ----------

@app.get("/")
def root():
    return {"service": "Anonymous Messages API", "status": "ok"}


@app.get("/test")
def test_database():
    resp = {"backend": "running", "database": "not configured"}
    try:
        db = get_db()
        resp["database"] = "connected"
        resp["collections"] = db.list_collection_names()
    except StoreError as e:
        resp["database"] = e.message
    except Exception as e:
        resp["database"] = f"error: {str(e)[:80]}"
    return resp


# ---------- Account endpoints ----------

@app.post("/sign-up", status_code=status.HTTP_201_CREATED)
def sign_up(payload: SignUpPayload, db: Database = Depends(get_db)):
    user = accounts.create_account(db, payload.username, payload.email, payload.password)
    return {"success": True, "message": "Account created successfully. You can now sign in.", "user": user}


@app.get("/check-username-unique")
def check_username_unique(username: str = Query(""), db: Database = Depends(get_db)):
    result = accounts.check_username_available(db, username)
    if result == accounts.TAKEN:
        return {"success": False, "message": "Username is already taken"}
    return {"success": True, "message": "Username is unique"}


# ---------- Auth endpoints ----------

@app.post("/auth/login")
def login(payload: LoginPayload, db: Database = Depends(get_db)):
    session = auth.login(db, payload.identifier, payload.password)
    principal = session["principal"]
    return {
        "success": True,
        "token": session["token"],
        "user": {"id": principal.account_id, "username": principal.username},
    }


@app.post("/auth/logout")
def logout(token: str = Depends(bearer_token), db: Database = Depends(get_db)):
    auth.logout(db, token)
    return {"success": True, "message": "Signed out"}


@app.get("/auth/me")
def me(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)):
    accepting = accounts.get_acceptance(db, principal, principal.account_id)
    return {
        "id": principal.account_id,
        "username": principal.username,
        "isAcceptingMessages": accepting,
        "profileUrl": f"{PUBLIC_BASE_URL.rstrip('/')}/u/{principal.username}",
    }


# ---------- Acceptance endpoints ----------

@app.get("/accept-messages")
def get_accept_messages(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)):
    accepting = accounts.get_acceptance(db, principal, principal.account_id)
    return {"success": True, "isAcceptingMessages": accepting}


@app.post("/accept-messages")
def set_accept_messages(payload: AcceptMessagesPayload, principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)):
    accepting = accounts.set_acceptance(db, principal, principal.account_id, payload.acceptMessages)
    return {
        "success": True,
        "message": "Message acceptance status updated successfully",
        "isAcceptingMessages": accepting,
    }


# ---------- Message endpoints ----------

@app.post("/send-message")
def send_message(payload: SendMessagePayload, db: Database = Depends(get_db)):
    return messages.send_message(db, payload.username, payload.content)


@app.get("/get-messages")
def get_messages(principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)):
    items = messages.list_messages(db, principal, principal.account_id)
    return {"success": True, "messages": items}


@app.delete("/delete-message/{message_id}")
def delete_message(message_id: str, principal: Principal = Depends(get_current_principal), db: Database = Depends(get_db)):
    messages.delete_message(db, principal, principal.account_id, message_id)
    return {"success": True, "message": "Message deleted"}


# ---------- Suggestion endpoints ----------

@app.get("/suggest-messages")
def suggest_messages():
    result = suggestions.suggest_messages()
    return {"success": True, **result}


@app.post("/generate-message")
def generate_message(payload: GenerateMessagePayload):
    text = suggestions.generate_message(
        tone=payload.tone,
        length=payload.length,
        message_type=payload.messageType,
        topic=payload.topic,
    )
    return {"success": True, "message": text}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
