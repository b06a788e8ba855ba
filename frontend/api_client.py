"""
frontend/api_client.py
Centralized HTTP client for all backend requests.

This module ensures:
1. Protected calls automatically attach the Authorization header
2. Transport failures and non-2xx responses surface as one typed error
3. Tokens never appear in logs or error messages
"""

from typing import Any, Callable, Dict, Literal, Optional

import requests

try:
    from frontend.config import IS_DEV, REQUEST_TIMEOUT
except ModuleNotFoundError:
    from config import IS_DEV, REQUEST_TIMEOUT


PUBLIC_PATHS = ("/auth/login", "/auth/register", "/auth/logout", "/health")


def is_public_endpoint(path: str) -> bool:
    return path in PUBLIC_PATHS


class ServiceError(Exception):
    """
    A backend call failed.

    status is None for transport failures (timeout, refused connection).
    code is the backend's stable error code when it sent one (e.g. "auth/wrong-password").
    """

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def __repr__(self) -> str:
        return f"ServiceError(status={self.status!r}, code={self.code!r}, message={self.message!r})"


def _error_from_response(resp: requests.Response) -> ServiceError:
    try:
        body = resp.json()
    except ValueError:
        return ServiceError(f"HTTP {resp.status_code}", status=resp.status_code)

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        return ServiceError(
            detail.get("message") or f"HTTP {resp.status_code}",
            status=resp.status_code,
            code=detail.get("code"),
        )
    if isinstance(detail, list) and detail:
        # FastAPI validation errors: report the first one
        first = detail[0]
        field = ".".join(str(p) for p in first.get("loc", [])[1:])
        msg = first.get("msg", "Invalid value")
        return ServiceError(f"{field}: {msg}" if field else msg, status=resp.status_code)
    if isinstance(detail, str):
        return ServiceError(detail, status=resp.status_code)
    return ServiceError(f"HTTP {resp.status_code}", status=resp.status_code)


class ApiClient:
    """
    Thin wrapper over requests bound to one backend.

    token_provider is called per request so a sign-in/sign-out is picked up
    without rebuilding the client.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider or (lambda: None)
        self.session = session or requests.Session()

    def auth_headers(self) -> Dict[str, str]:
        token = self.token_provider()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def request(
        self,
        method: Literal["GET", "POST", "PUT", "DELETE"],
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Perform one call and return the decoded JSON body.

        Raises:
            ServiceError: on configuration, transport or non-2xx failures
        """
        if not self.base_url:
            raise ServiceError("Backend URL is not configured")

        headers = {"Accept": "application/json"}
        if not is_public_endpoint(path):
            headers.update(self.auth_headers())

        url = f"{self.base_url}{path}"
        timeout = timeout or REQUEST_TIMEOUT

        try:
            resp = self.session.request(method, url, json=json, params=params, headers=headers, timeout=timeout)
        except requests.exceptions.Timeout:
            if IS_DEV:
                print(f"[API] Timeout on {method} {path}")
            raise ServiceError(f"Request timed out after {timeout}s")
        except requests.exceptions.ConnectionError:
            if IS_DEV:
                print(f"[API] Connection error on {method} {path}")
            raise ServiceError(f"Cannot connect to backend at {self.base_url}")
        except requests.exceptions.RequestException as e:
            # Never log the exception text: it can echo request headers
            print(f"[API] Unexpected error on {method} {path}: {type(e).__name__}")
            raise ServiceError("Unexpected network error")

        if resp.status_code >= 400:
            err = _error_from_response(resp)
            if IS_DEV:
                print(f"[API] {method} {path} -> {resp.status_code} code={err.code}")
            raise err

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            raise ServiceError("Backend returned invalid JSON", status=resp.status_code)

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self.request("POST", path, json=json, **kwargs)
