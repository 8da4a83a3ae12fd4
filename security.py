"""
Credential primitives: bcrypt password hashes, signed bearer tokens and
one-way digests for password-reset tokens.
"""
import hashlib
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Header
from jose import jwt, JWTError
from passlib.context import CryptContext

import config
from database import utcnow
from errors import Forbidden, Unauthorized

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Compared against when the account does not exist, so a miss costs one
# bcrypt verification just like a wrong password does.
_DUMMY_HASH = pwd_context.hash("photoflow-placeholder-password")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        pwd_context.verify(password, _DUMMY_HASH)
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def create_token(user_id: str, email: str) -> str:
    now = utcnow()
    payload = {
        "sub": user_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=config.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALG)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])
    except JWTError:
        raise Forbidden("Invalid or expired token")


def new_reset_token() -> str:
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def get_current_user(authorization: Optional[str] = Header(None)) -> dict:
    """Decode `Authorization: Bearer <token>` into its claims {sub, email, ...}."""
    token = None
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            token = credentials.strip()
    if not token:
        raise Unauthorized("Access token required")
    claims = decode_token(token)
    if not claims.get("sub"):
        raise Forbidden("Invalid or expired token")
    return claims
