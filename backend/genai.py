"""
backend/genai.py

Thin wrapper over the hosted Gemini model: prompt text in, completion text
out. No streaming, tools or structured output.
"""

from __future__ import annotations

from typing import Optional

from google import genai

try:
    from backend.config import GEMINI_API_KEY, GEMINI_MODEL, IS_DEV
except ModuleNotFoundError:
    from config import GEMINI_API_KEY, GEMINI_MODEL, IS_DEV


class GenerationUnavailable(RuntimeError):
    """No API key configured."""


class GenerationFailed(RuntimeError):
    """The provider errored or returned no text."""


_client: Optional[genai.Client] = None


def get_client() -> genai.Client:
    global _client
    if not GEMINI_API_KEY:
        raise GenerationUnavailable("GEMINI_API_KEY is not set")
    if _client is None:
        _client = genai.Client(api_key=GEMINI_API_KEY)
    return _client


def generate_text(prompt: str) -> str:
    client = get_client()
    try:
        response = client.models.generate_content(model=GEMINI_MODEL, contents=prompt)
    except Exception as e:
        # Prompt text is never logged
        print(f"[GENAI] generate_content failed: {type(e).__name__}")
        raise GenerationFailed(str(e)) from e

    text = response.text
    if not text:
        print("[GENAI] Empty response from model")
        raise GenerationFailed("Model returned no text")

    if IS_DEV:
        print(f"[GENAI] Generated {len(text)} chars with {GEMINI_MODEL}")
    return text
