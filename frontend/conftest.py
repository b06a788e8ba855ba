# frontend/conftest.py
# In-memory collaborators for controller tests. No network, no Streamlit.

import itertools
import sys
import threading
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from frontend.identity import IdentityClient  # noqa: E402
from frontend.records import parse_record  # noqa: E402
from frontend.view_sync import AppState, Dispatcher  # noqa: E402


class FakeApi:
    """Answers (method, path) from a table; an Exception value is raised."""

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.token_provider = lambda: None

    def _answer(self, method, path, body):
        self.calls.append((method, path, body))
        result = self.routes.get((method, path))
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, path, **kwargs):
        return self._answer("GET", path, None)

    def post(self, path, json=None, **kwargs):
        return self._answer("POST", path, json)


class FakeSubscription:
    def __init__(self, collection, on_snapshot, on_error):
        self.collection = collection
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.unsubscribe_calls = 0

    @property
    def active(self):
        return self.unsubscribe_calls == 0

    def emit(self, records):
        """Deliver a snapshot the way the reader thread would."""
        if self.active:
            self.on_snapshot(records)

    def fail(self, error):
        if self.active:
            self.on_error(error)

    def unsubscribe(self):
        self.unsubscribe_calls += 1


class FakeStore:
    def __init__(self, owner_id="user-1"):
        self.owner_id = owner_id
        self.created = []
        self.subscriptions = []
        self.fail_with = None
        self._ids = itertools.count(1)

    def create(self, collection, fields):
        if self.fail_with is not None:
            raise self.fail_with
        n = next(self._ids)
        kind = {"flood_alerts": "alert", "resource_requests": "request", "resource_offers": "offer"}[collection]
        owner = "reported_by" if kind == "alert" else "user_id"
        data = dict(fields, kind=kind, id=f"r{n}", timestamp=f"2026-10-19T10:00:{n:02d}+00:00")
        data[owner] = self.owner_id
        if kind != "alert":
            data["status"] = "pending"
        record = parse_record(data)
        self.created.append((collection, dict(fields)))
        return record

    def subscribe(self, collection, on_snapshot, on_error=None):
        sub = FakeSubscription(collection, on_snapshot, on_error)
        self.subscriptions.append(sub)
        return sub

    def open(self, collection):
        return [s for s in self.subscriptions if s.collection == collection and s.active]


class FakeGenerative:
    """Returns `text` (or raises `error`). With `gate` set, blocks until released."""

    def __init__(self, text="generated text"):
        self.text = text
        self.error = None
        self.prompts = []
        self.gate = None
        self.started = threading.Event()

    def generate(self, prompt):
        self.prompts.append(prompt)
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.text


def run_inline(fn):
    fn()


@pytest.fixture
def fake_api():
    api = FakeApi()
    api.routes[("GET", "/auth/me")] = {"id": "user-1", "email": "u@example.com"}
    api.routes[("POST", "/auth/logout")] = {"ok": True}
    return api


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def generative():
    return FakeGenerative()


@pytest.fixture
def app(fake_api, store, generative):
    """AppState whose background jobs run inline; results still go through the dispatcher."""
    identity = IdentityClient(fake_api)
    return AppState(identity=identity, store=store, generative=generative,
                    dispatcher=Dispatcher(), spawn=run_inline)


@pytest.fixture
def signed_in(app):
    app.identity.resolve("token-1")
    assert app.identity.user is not None
    return app


@pytest.fixture
def make_record():
    counter = itertools.count(1)

    def make(kind, **fields):
        n = next(counter)
        base = {"id": f"x{n}", "timestamp": f"2026-10-19T09:{n:02d}:00+00:00"}
        if kind == "alert":
            base.update(location="Village A", status="ongoing", severity="high", reported_by="user-1")
        elif kind == "request":
            base.update(item="Water", quantity=50, location="Zone 3", contact="98640 00000",
                        urgency="high", status="pending", user_id="user-1")
        else:
            base.update(item="Boats", quantity=2, location="Zone 1", contact="boat@example.com",
                        availability="immediate", status="pending", user_id="user-2")
        base.update(fields)
        base["kind"] = kind
        return parse_record(base)

    return make
