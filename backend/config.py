# backend/config.py
# Environment-aware configuration for the Xotorkota-Prohori backend

import os
from typing import Literal

# Environment detection
ENV: Literal["dev", "staging", "prod"] = os.environ.get("ENV", "dev")  # type: ignore
IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

# JWT configuration
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_MINUTES = int(os.environ.get("ACCESS_TOKEN_MINUTES", "1440"))

# Password policy (mirrors the hosted identity provider)
MIN_PASSWORD_LENGTH = 6
PASSWORD_HASH_ITERATIONS = int(os.environ.get("PASSWORD_HASH_ITERATIONS", "120000"))

# Database configuration
# DATABASE_URL takes precedence (managed Postgres), SQLite otherwise
DATABASE_URL = os.environ.get("DATABASE_URL", "").strip()
DATABASE_PATH = os.environ.get("DATABASE_PATH", "prohori.db")

# Generative model
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "").strip()
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")

# CORS origins (expand for staging/prod)
CORS_ORIGINS = [
    "http://localhost:8501",  # Streamlit default
    "http://127.0.0.1:8501",
]

if IS_STAGING or IS_PROD:
    extra_origins = os.environ.get("CORS_ORIGINS", "")
    if extra_origins:
        CORS_ORIGINS.extend(o.strip() for o in extra_origins.split(",") if o.strip())

IS_POSTGRES = DATABASE_URL.startswith(("postgres://", "postgresql://"))

print(f"[CONFIG] Environment: {ENV}")
print(f"[CONFIG] Database: {'PostgreSQL' if IS_POSTGRES else 'SQLite (local dev)'}")
print(f"[CONFIG] Gemini model: {GEMINI_MODEL} (key {'set' if GEMINI_API_KEY else 'missing'})")
