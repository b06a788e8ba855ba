"""
backend/schemas.py

Pydantic request/response schemas for identity, records and generation.
Create schemas carry only user-entered fields: ids, timestamps and owner
references are assigned server-side and never accepted from clients.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field, validator

try:
    from backend.models import AlertStatus, Availability, Record, Severity, Urgency
except ModuleNotFoundError:
    from models import AlertStatus, Availability, Record, Severity, Urgency


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


def _non_empty(v):
    if not v:
        raise ValueError("must not be empty")
    return v


# ========================================================================
# IDENTITY SCHEMAS
# ========================================================================

class CredentialsRequest(BaseModel):
    """Email + password, used by both register and login."""
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=1024)


class TokenResponse(BaseModel):
    access_token: str
    user: Dict[str, Any]


class UserProfile(BaseModel):
    id: str
    email: str


# ========================================================================
# RECORD SCHEMAS
# ========================================================================

class FloodAlertCreate(BaseModel):
    location: str = Field(..., max_length=200)
    status: AlertStatus
    severity: Severity

    @validator("location", pre=True)
    def trim_location(cls, v):
        return _strip(v)

    @validator("location")
    def validate_location(cls, v):
        return _non_empty(v)


class _ResourceCreate(BaseModel):
    item: str = Field(..., max_length=200)
    quantity: int = Field(..., ge=1)
    location: str = Field(..., max_length=200)
    contact: str = Field(..., max_length=200)

    @validator("item", "location", "contact", pre=True)
    def trim_text(cls, v):
        return _strip(v)

    @validator("item", "location", "contact")
    def validate_text(cls, v):
        return _non_empty(v)


class ResourceRequestCreate(_ResourceCreate):
    urgency: Urgency = Urgency.low


class ResourceOfferCreate(_ResourceCreate):
    availability: Availability = Availability.immediate


class RecordListResponse(BaseModel):
    records: List[Record] = Field(default_factory=list)


# ========================================================================
# GENERATION SCHEMAS
# ========================================================================

class GenerateRequest(BaseModel):
    """The prompt is forwarded verbatim; only blank prompts are rejected."""
    prompt: str = Field(..., max_length=100_000)

    @validator("prompt")
    def validate_prompt_non_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("prompt must not be empty")
        return v


class GenerateResponse(BaseModel):
    text: str
