"""
frontend/auth.py
Session-state glue between Streamlit and the identity client.

Every Streamlit rerun executes the script top to bottom, so anything that
must outlive a rerun lives in st.session_state:
- "app_state": the AppState (clients, dispatcher, route, notifications)
  built once per browser session
- "auth_token": the bearer token, kept in sync with the identity client

init_auth_state() MUST be called at the top of main() on every rerun.
"""

from typing import Any, Dict, Optional

import streamlit as st

try:
    from frontend.api_client import ApiClient
    from frontend.config import BACKEND_URL, WS_URL
    from frontend.generative import GenerativeClient
    from frontend.identity import IdentityClient, IdentityState
    from frontend.store import StoreClient
    from frontend.view_sync import AppState
except ModuleNotFoundError:
    from api_client import ApiClient
    from config import BACKEND_URL, WS_URL
    from generative import GenerativeClient
    from identity import IdentityClient, IdentityState
    from store import StoreClient
    from view_sync import AppState


def build_app_state(backend_url: str = BACKEND_URL, ws_url: str = WS_URL) -> AppState:
    api = ApiClient(backend_url)
    identity = IdentityClient(api)
    api.token_provider = lambda: identity.token
    store = StoreClient(api, ws_url, lambda: identity.token)
    return AppState(identity=identity, store=store, generative=GenerativeClient(api))


def init_auth_state() -> AppState:
    """
    Ensure the per-session AppState exists. Idempotent.
    """
    ss = st.session_state
    ss.setdefault("auth_token", None)

    if "app_state" not in ss:
        app = build_app_state()

        def remember_token(state: IdentityState) -> None:
            if not state.loading:
                ss["auth_token"] = app.identity.token

        app.identity.observe(remember_token)
        ss["app_state"] = app
    return ss["app_state"]


def resolve_identity() -> None:
    """Settle a still-loading identity from the stored token."""
    app = get_app_state()
    if app.identity.loading:
        app.identity.resolve(st.session_state.get("auth_token"))


def get_app_state() -> AppState:
    return st.session_state["app_state"]


def is_authenticated() -> bool:
    app: Optional[AppState] = st.session_state.get("app_state")
    return bool(app and app.identity.user)


def get_current_user() -> Optional[Dict[str, Any]]:
    app: Optional[AppState] = st.session_state.get("app_state")
    return app.identity.user if app else None
