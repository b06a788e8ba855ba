"""
frontend/generative.py
Generative-text client: prompt in, completion text out.
"""

try:
    from frontend.api_client import ApiClient, ServiceError
    from frontend.config import GENERATE_TIMEOUT, IS_DEV
except ModuleNotFoundError:
    from api_client import ApiClient, ServiceError
    from config import GENERATE_TIMEOUT, IS_DEV


class GenerationError(Exception):
    """The model call failed or returned nothing usable."""


class GenerativeClient:
    def __init__(self, api: ApiClient):
        self.api = api

    def generate(self, prompt: str) -> str:
        try:
            data = self.api.post("/ai/generate", json={"prompt": prompt}, timeout=GENERATE_TIMEOUT)
        except ServiceError as e:
            # Prompts carry user contact details; log the status only
            print(f"[GENAI] Generation failed: status={e.status}")
            raise GenerationError(e.message) from e

        text = (data or {}).get("text")
        if not text:
            raise GenerationError("Empty response from model")
        if IS_DEV:
            print(f"[GENAI] Received {len(text)} chars")
        return text
