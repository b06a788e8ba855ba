# ---------------------------------------------------------
# backend/main.py
# Xotorkota-Prohori - community flood response backend
#
# Run: uvicorn backend.main:app --reload (from repo root)
#
# - FastAPI + SQLite (PostgreSQL when DATABASE_URL is set)
# - /auth/*                      : register, login, me, logout (JWT)
# - /collections/{collection}    : create / list records
# - /ws/collections/{collection} : live snapshots, newest first
# - /ai/generate                 : prompt -> text via Gemini
# ---------------------------------------------------------

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

try:
    from backend.config import CORS_ORIGINS, IS_PROD
    from backend.db import init_db
    from backend import routes_ai, routes_auth, routes_records
except ModuleNotFoundError:
    from config import CORS_ORIGINS, IS_PROD
    from db import init_db
    import routes_ai, routes_auth, routes_records


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Xotorkota-Prohori API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if IS_PROD else ["*"],  # Restrict origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# API ENDPOINT CLASSIFICATION
# ============================================================================
#
# [PUBLIC]
#   • /health
#   • /auth/register, /auth/login, /auth/logout
#
# [AUTH_ONLY] - bearer token (or ?token= on WebSockets)
#   • /auth/me
#   • /collections/{collection}      (GET list, POST create)
#   • /ws/collections/{collection}   (live query)
#   • /ai/generate
#
# Records are append-only: there is no update or delete route.
# ============================================================================

app.include_router(routes_auth.router)
app.include_router(routes_records.router)
app.include_router(routes_ai.router)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}
