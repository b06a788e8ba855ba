"""
backend/routes_auth.py

Identity endpoints: register, login, current user, logout.

Every failure carries a stable error code in detail["code"] so the client
can map it to fixed user-facing text:
- auth/invalid-email
- auth/weak-password
- auth/email-already-in-use
- auth/user-not-found
- auth/wrong-password
- auth/invalid-credential (bad/expired token, see auth_context)
"""

from __future__ import annotations

import re
import sqlite3
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError

try:
    from backend.auth_context import (
        AuthContext,
        auth_error,
        create_access_token,
        hash_password,
        require_auth_context,
        verify_password,
    )
    from backend.config import MIN_PASSWORD_LENGTH
    from backend.db import commit, execute_query, fetch_one, get_db_connection
    from backend.schemas import CredentialsRequest, TokenResponse, UserProfile
except ModuleNotFoundError:
    from auth_context import (
        AuthContext,
        auth_error,
        create_access_token,
        hash_password,
        require_auth_context,
        verify_password,
    )
    from config import MIN_PASSWORD_LENGTH
    from db import commit, execute_query, fetch_one, get_db_connection
    from schemas import CredentialsRequest, TokenResponse, UserProfile


router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(raw_email: str) -> str:
    email = raw_email.strip().lower()
    if not EMAIL_RE.match(email):
        raise auth_error(400, "auth/invalid-email", "The email address is badly formatted.")
    return email


def _token_response(user_id: str, email: str) -> TokenResponse:
    token = create_access_token({"sub": user_id, "email": email})
    return TokenResponse(access_token=token, user={"id": user_id, "email": email})


@router.post("/register", response_model=TokenResponse)
def register(req: CredentialsRequest):
    email = normalize_email(req.email)

    if len(req.password) < MIN_PASSWORD_LENGTH:
        raise auth_error(
            400,
            "auth/weak-password",
            f"Password should be at least {MIN_PASSWORD_LENGTH} characters.",
        )

    user_id = uuid.uuid4().hex
    now = datetime.now(timezone.utc).isoformat()

    with get_db_connection() as conn:
        existing = fetch_one(conn, "SELECT id FROM users WHERE email = :email", {"email": email})
        if existing:
            raise auth_error(400, "auth/email-already-in-use", "Email already registered")

        try:
            execute_query(
                conn,
                "INSERT INTO users (id, email, password_hash, created_at) "
                "VALUES (:id, :email, :password_hash, :created_at)",
                {"id": user_id, "email": email, "password_hash": hash_password(req.password), "created_at": now},
            )
            commit(conn)
        except (sqlite3.IntegrityError, IntegrityError):
            # Lost a race with a concurrent registration of the same email
            raise auth_error(400, "auth/email-already-in-use", "Email already registered")

    print(f"[REGISTER] User created with id={user_id}")
    return _token_response(user_id, email)


@router.post("/login", response_model=TokenResponse)
def login(req: CredentialsRequest):
    email = normalize_email(req.email)

    with get_db_connection() as conn:
        row = fetch_one(
            conn,
            "SELECT id, email, password_hash FROM users WHERE email = :email",
            {"email": email},
        )

    if not row:
        print("[LOGIN] User not found by email")
        raise auth_error(401, "auth/user-not-found", "No account exists for this email.")

    if not verify_password(req.password, row["password_hash"]):
        print(f"[LOGIN] Password rejected for user_id={row['id']}")
        raise auth_error(401, "auth/wrong-password", "Incorrect password.")

    print(f"[LOGIN] Signed in user_id={row['id']}")
    return _token_response(row["id"], row["email"])


@router.get("/me", response_model=UserProfile)
def get_me(ctx: AuthContext = Depends(require_auth_context)):
    return UserProfile(id=ctx.user_id, email=ctx.email)


@router.post("/logout")
def logout():
    """Stateless JWT: the client discards its token."""
    return {"message": "Logged out successfully"}
