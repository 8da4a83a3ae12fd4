"""
Identity & credential service: registration, login, and the password-reset
token lifecycle, mounted under /api/auth.

Bearer tokens are stateless; logout does not revoke them and they stay valid
until they expire.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import config
from database import create_document, get_db, serialize_doc, utcnow
from errors import BadInput, Conflict, InvalidOrExpired, Unauthorized
from mailer import NotificationGateway
from schemas import (
    USER_PRIVATE_FIELDS,
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    User,
)
from security import (
    create_token,
    hash_password,
    hash_reset_token,
    new_reset_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()

USERS = "users"
FORGOT_PASSWORD_ACK = "If an account with that email exists, a password reset link has been sent"


def get_notifier(request: Request) -> NotificationGateway:
    return request.app.state.notifier


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def public_user(doc: dict) -> dict:
    user = {key: value for key, value in doc.items() if key not in USER_PRIVATE_FIELDS}
    return serialize_doc(user)


def issue_session(user: dict) -> dict:
    token = create_token(str(user["_id"]), user["email"])
    return {"token": token, "user": public_user(user)}


def register_user(db: Database, email: Optional[str], password: Optional[str], name: Optional[str] = None) -> dict:
    email = normalize_email(email)
    if not email or not password:
        raise BadInput("Email and password required")

    if db[USERS].find_one({"email": email}):
        raise Conflict("Email already registered")

    try:
        user = User(email=email, name=(name or "").strip() or "New User", password_hash=hash_password(password))
    except ValueError:
        raise BadInput("Invalid email address")

    try:
        doc = create_document(db, USERS, user)
    except DuplicateKeyError:
        # lost a race against a concurrent registration
        raise Conflict("Email already registered")
    return issue_session(doc)


def authenticate(db: Database, email: Optional[str], password: Optional[str]) -> dict:
    email = normalize_email(email)
    if not email or not password:
        raise BadInput("Email and password required")

    user = db[USERS].find_one({"email": email})
    # same work and same answer whether the account is missing or the password is wrong
    if not verify_password(password, user.get("passwordHash") if user else None):
        raise Unauthorized("Invalid credentials")
    return issue_session(user)


def request_password_reset(db: Database, notifier: NotificationGateway, email: Optional[str]) -> None:
    email = normalize_email(email)
    if not email:
        raise BadInput("Email is required")

    user = db[USERS].find_one({"email": email})
    if not user:
        return

    reset_token = new_reset_token()
    db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "passwordResetToken": hash_reset_token(reset_token),
            "passwordResetExpires": utcnow() + timedelta(minutes=config.RESET_TOKEN_TTL_MINUTES),
        }},
    )

    reset_url = f"{config.FRONTEND_URL.rstrip('/')}/reset-password/{reset_token}"
    logger.info("Sending password reset email to %s", email)
    result = notifier.send_password_reset(email, reset_url)
    if not result.success:
        logger.warning("Failed to send password reset email to %s: %s", email, result.message)


def find_user_by_reset_token(db: Database, token: Optional[str]) -> dict:
    if not token:
        raise BadInput("Token is required")
    user = db[USERS].find_one({
        "passwordResetToken": hash_reset_token(token),
        "passwordResetExpires": {"$gt": utcnow()},
    })
    if not user:
        raise InvalidOrExpired()
    return user


def reset_password(db: Database, token: Optional[str], password: Optional[str], confirm_password: Optional[str]) -> None:
    if not token or not password or not confirm_password:
        raise BadInput("Token, password, and password confirmation are required")
    if password != confirm_password:
        raise BadInput("Passwords do not match")
    if len(password) < config.MIN_PASSWORD_LENGTH:
        raise BadInput(f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters long")

    user = find_user_by_reset_token(db, token)
    # matching on the token digest makes a second use of the same token a no-op
    result = db[USERS].update_one(
        {"_id": user["_id"], "passwordResetToken": user["passwordResetToken"]},
        {"$set": {
            "passwordHash": hash_password(password),
            "passwordResetToken": None,
            "passwordResetExpires": None,
        }},
    )
    if result.modified_count == 0:
        raise InvalidOrExpired()
    logger.info("Password successfully reset for user %s", user["email"])


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    return register_user(db, payload.email, payload.password, payload.name)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    return authenticate(db, payload.email, payload.password)


@router.post("/logout")
def logout():
    return {"message": "Logged out"}


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, db: Database = Depends(get_db),
                    notifier: NotificationGateway = Depends(get_notifier)):
    request_password_reset(db, notifier, payload.email)
    return {"message": FORGOT_PASSWORD_ACK}


@router.post("/reset-password")
def reset_password_route(payload: ResetPasswordRequest, db: Database = Depends(get_db)):
    reset_password(db, payload.token, payload.password, payload.confirm_password)
    return {"message": "Password has been successfully reset. Please login with your new password."}


@router.get("/verify-reset-token/{token}")
def verify_reset_token(token: str, db: Database = Depends(get_db)):
    find_user_by_reset_token(db, token)
    return {"message": "Token is valid"}
