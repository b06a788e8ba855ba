# frontend/config.py
# Environment-aware configuration for the Xotorkota-Prohori frontend

import os
from typing import Literal

# Environment detection - normalize to lowercase
_raw_env = os.environ.get("ENV", "local").lower()
ENV: Literal["local", "staging", "production"] = _raw_env if _raw_env in ("local", "staging", "production") else "production"  # type: ignore

IS_LOCAL = (ENV == "local")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "production")
IS_DEV = IS_LOCAL


def validate_api_url(url: str, env: str) -> None:
    """
    Validate the backend URL according to environment security rules.

    Raises:
        ValueError: If the URL violates the constraints for the environment
    """
    if not url:
        raise ValueError("API base URL cannot be empty")

    # Production/staging must use HTTPS and never localhost
    if env in ("staging", "production"):
        if not url.startswith("https://"):
            raise ValueError(f"Production/staging must use HTTPS. Got: {url}")
        if "127.0.0.1" in url or "localhost" in url:
            raise ValueError(f"Production/staging cannot use localhost URLs. Got: {url}")


def get_api_base_url() -> str:
    """
    Backend URL, highest priority first:
    1. BACKEND_URL environment variable
    2. Local dev default (http://127.0.0.1:8000) ONLY if ENV == "local"

    Raises:
        RuntimeError: If production/staging has no configured URL
    """
    backend_url = os.environ.get("BACKEND_URL", "").strip()
    if backend_url:
        url = backend_url.rstrip("/")
        validate_api_url(url, ENV)
        return url

    if ENV == "local":
        return "http://127.0.0.1:8000"

    raise RuntimeError(
        f"Backend URL not configured for {ENV.upper()} environment. "
        f"Set BACKEND_URL to the backend service URL (HTTPS)."
    )


def ws_url_for(http_url: str) -> str:
    """http(s)://host -> ws(s)://host"""
    if http_url.startswith("https://"):
        return "wss://" + http_url[len("https://"):]
    if http_url.startswith("http://"):
        return "ws://" + http_url[len("http://"):]
    return http_url


try:
    BACKEND_URL = get_api_base_url()
except RuntimeError as e:
    # Fail loudly on the first API call rather than at import
    print(f"[CONFIG] CRITICAL: {e}")
    BACKEND_URL = ""

WS_URL = ws_url_for(BACKEND_URL)

REQUEST_TIMEOUT = int(os.environ.get("REQUEST_TIMEOUT", "20"))
GENERATE_TIMEOUT = int(os.environ.get("GENERATE_TIMEOUT", "60"))
LIVE_REFRESH_SECONDS = float(os.environ.get("LIVE_REFRESH_SECONDS", "1.0"))

print(f"[CONFIG] Environment: {ENV}")
print(f"[CONFIG] Backend URL: {BACKEND_URL}")
