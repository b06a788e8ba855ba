"""
backend/auth_context.py

Shared authentication primitives for FastAPI dependency injection.

Contains:
- auth_error: HTTPException carrying a stable identity error code
- hash_password / verify_password: salted PBKDF2 password hashing
- create_access_token / verify_token: HS256 JWT issue and verification
- AuthContext: immutable identity of the caller
- require_auth_context: FastAPI dependency for auth enforcement

This module MUST NOT import backend.main to avoid circular dependencies.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

try:
    from backend.config import (
        SECRET_KEY,
        ALGORITHM,
        ACCESS_TOKEN_MINUTES,
        PASSWORD_HASH_ITERATIONS,
        IS_DEV,
    )
    from backend.db import get_db_connection, fetch_one
except ModuleNotFoundError:
    from config import (
        SECRET_KEY,
        ALGORITHM,
        ACCESS_TOKEN_MINUTES,
        PASSWORD_HASH_ITERATIONS,
        IS_DEV,
    )
    from db import get_db_connection, fetch_one

# auto_error=False so a missing header yields our own 401 with a code
security = HTTPBearer(auto_error=False)


# ---------------------------------------------------------
# Error helper
# ---------------------------------------------------------
def auth_error(status_code: int, code: str, message: str) -> HTTPException:
    """Build an HTTPException whose detail is {"code", "message"}."""
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


# ---------------------------------------------------------
# Password hashing
# ---------------------------------------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, PASSWORD_HASH_ITERATIONS)
    return "pbkdf2_sha256${}${}${}".format(
        PASSWORD_HASH_ITERATIONS,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


def verify_password(password: str, password_hash: str) -> bool:
    try:
        _scheme, iterations, salt_b64, digest_b64 = password_hash.split("$")
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(digest_b64)
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, int(iterations))
    return hmac.compare_digest(digest, expected)


# ---------------------------------------------------------
# JWT tokens
# ---------------------------------------------------------
def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    payload = dict(data)
    minutes = ACCESS_TOKEN_MINUTES if expires_minutes is None else expires_minutes
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify JWT access token and return decoded payload.

    Raises:
        HTTPException(401): If token is expired or invalid
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise auth_error(401, "auth/invalid-credential", "Token expired")
    except jwt.InvalidTokenError:
        raise auth_error(401, "auth/invalid-credential", "Invalid token")


# ---------------------------------------------------------
# AuthContext
# ---------------------------------------------------------
class AuthContext(BaseModel):
    """
    Identity of the caller, derived from server-side JWT verification.
    This is the ONLY source of the owner reference written onto records.
    Never trust user ids from request bodies or query params.
    """
    user_id: str
    email: str


def resolve_auth_context(token: str) -> AuthContext:
    """Verify a raw token and load the user it names. Used by HTTP and WebSocket routes."""
    payload = verify_token(token)
    user_id = payload.get("sub")
    if not user_id:
        print("[AUTH] Missing sub in token payload")
        raise auth_error(401, "auth/invalid-credential", "Invalid token payload")

    with get_db_connection() as conn:
        row = fetch_one(conn, "SELECT id, email FROM users WHERE id = :id", {"id": user_id})

    if not row:
        print(f"[AUTH] User not found: user_id={user_id}")
        raise auth_error(401, "auth/invalid-credential", "User not found")

    ctx = AuthContext(user_id=row["id"], email=row["email"])
    if IS_DEV:
        print(f"[AUTH] Authenticated: user_id={ctx.user_id}")
    return ctx


def require_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """
    Auth dependency for protected routes.

    Usage:
        @router.get("/protected")
        def protected_route(ctx: AuthContext = Depends(require_auth_context)):
            ...

    Raises:
        HTTPException(401): If the token is missing, invalid, expired, or the user is gone
    """
    if credentials is None or not credentials.credentials:
        raise auth_error(401, "auth/invalid-credential", "Not authenticated")
    return resolve_auth_context(credentials.credentials)
