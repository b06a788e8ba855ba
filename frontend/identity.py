"""
frontend/identity.py
Identity client: sign-in, sign-up, sign-out and an observable current user.

State is {user, loading}. `loading` is True until the first resolve()
settles; resolution always settles to either a user or absent.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

try:
    from frontend.api_client import ApiClient, ServiceError
    from frontend.config import IS_DEV
except ModuleNotFoundError:
    from api_client import ApiClient, ServiceError
    from config import IS_DEV


LOGIN_ERRORS = {
    "auth/user-not-found": "Invalid email or password.",
    "auth/wrong-password": "Invalid email or password.",
    "auth/invalid-credential": "Invalid email or password.",
    "auth/invalid-email": "Invalid email format.",
}
LOGIN_FALLBACK = "An error occurred during login. Please try again."

SIGNUP_ERRORS = {
    "auth/email-already-in-use": "The email address is already in use by another account.",
    "auth/invalid-email": "The email address is not valid.",
    "auth/weak-password": "The password is too weak (should be at least 6 characters).",
}
SIGNUP_FALLBACK = "An error occurred during signup. Please try again."


def auth_error_message(code: Optional[str], flow: str) -> str:
    """
    Map an identity error code to the fixed user-facing message.

    flow is "login" or "signup"; unknown codes (including None) get the
    flow's generic message.
    """
    if flow == "signup":
        return SIGNUP_ERRORS.get(code, SIGNUP_FALLBACK)
    return LOGIN_ERRORS.get(code, LOGIN_FALLBACK)


class AuthError(Exception):
    def __init__(self, code: Optional[str], message: str = ""):
        super().__init__(message or code or "auth error")
        self.code = code


@dataclass(frozen=True)
class IdentityState:
    user: Optional[Dict[str, Any]]
    loading: bool


Listener = Callable[[IdentityState], None]


class IdentityClient:
    def __init__(self, api: ApiClient):
        self.api = api
        self._token: Optional[str] = None
        self._user: Optional[Dict[str, Any]] = None
        self._loading = True
        self._listeners: List[Listener] = []

    # -- state ---------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._user

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def state(self) -> IdentityState:
        return IdentityState(user=self._user, loading=self._loading)

    def observe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener` now with the current state and again on every change.
        Returns a function that stops observing (safe to call twice).
        """
        self._listeners.append(listener)
        listener(self.state)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, token: Optional[str], user: Optional[Dict[str, Any]]):
        self._token = token
        self._user = user
        self._loading = False
        state = self.state
        for listener in list(self._listeners):
            listener(state)

    # -- operations ----------------------------------------------------

    def resolve(self, token: Optional[str] = None) -> IdentityState:
        """
        Settle the current identity from a stored token.

        A missing, rejected or unverifiable token resolves to absent.
        """
        if not token:
            self._set(None, None)
            return self.state

        self._token = token
        try:
            user = self.api.get("/auth/me")
        except ServiceError as e:
            print(f"[AUTH] Could not resolve stored session (status={e.status}); treating as signed out")
            self._set(None, None)
            return self.state

        self._set(token, {"id": user["id"], "email": user["email"]})
        return self.state

    def _authenticate(self, path: str, email: str, password: str) -> Dict[str, Any]:
        try:
            data = self.api.post(path, json={"email": email, "password": password})
        except ServiceError as e:
            if IS_DEV:
                print(f"[AUTH] {path} failed: status={e.status} code={e.code}")
            raise AuthError(e.code, e.message) from e

        user = data.get("user") or {}
        self._set(data["access_token"], {"id": user.get("id"), "email": user.get("email")})
        if IS_DEV:
            print(f"[AUTH] Signed in as user_id={user.get('id')}")
        return self._user

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """Raises AuthError with the backend's code on failure."""
        return self._authenticate("/auth/login", email, password)

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        """Creates the account and signs in. Raises AuthError on failure."""
        return self._authenticate("/auth/register", email, password)

    def sign_out(self) -> None:
        # Tokens are stateless; the local drop is what signs the user out
        try:
            self.api.post("/auth/logout")
        except ServiceError as e:
            print(f"[AUTH] Logout call failed (status={e.status}); clearing local session anyway")
        self._set(None, None)
