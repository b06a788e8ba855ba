"""
backend/routes_ai.py

Generative text gateway. Clients build the prompt; this route only forwards
it to the model with the server-held API key.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

try:
    from backend.auth_context import AuthContext, require_auth_context
    from backend.genai import GenerationFailed, GenerationUnavailable, generate_text
    from backend.schemas import GenerateRequest, GenerateResponse
except ModuleNotFoundError:
    from auth_context import AuthContext, require_auth_context
    from genai import GenerationFailed, GenerationUnavailable, generate_text
    from schemas import GenerateRequest, GenerateResponse


router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/generate", response_model=GenerateResponse)
async def generate(req: GenerateRequest, ctx: AuthContext = Depends(require_auth_context)):
    print(f"[GENAI] Generation requested by user_id={ctx.user_id} ({len(req.prompt)} chars)")
    try:
        text = await run_in_threadpool(generate_text, req.prompt)
    except GenerationUnavailable:
        raise HTTPException(status_code=503, detail="Text generation is not configured")
    except GenerationFailed:
        raise HTTPException(status_code=502, detail="Text generation failed")
    return GenerateResponse(text=text)
