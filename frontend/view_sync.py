"""
frontend/view_sync.py
Identity-gated live views.

Threading model
---------------
All view state is owned by the UI thread (the Streamlit script run).
Subscription reader threads and background jobs never touch view state
directly: they post callables to the Dispatcher, and the UI thread runs
them in order with run_pending(). Deliveries therefore never run in
parallel with handlers, only interleaved with them.

Lifecycle
---------
PageController.mount() observes identity:
- loading          -> view_status "loading", no data access
- resolved absent  -> release subscriptions, navigate("login"), "redirect"
- resolved present -> open every declared subscription, "ready"
PageController.unmount() cancels the page Lifetime (late results are
dropped), stops observing identity, and releases each subscription once.
"""

import itertools
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

try:
    from frontend.api_client import ServiceError
    from frontend.config import IS_DEV
    from frontend.generative import GenerationError, GenerativeClient
    from frontend.identity import IdentityClient, IdentityState
    from frontend.records import ALERTS, OFFERS, REQUESTS, Record
    from frontend.store import StoreClient, Subscription
except ModuleNotFoundError:
    from api_client import ServiceError
    from config import IS_DEV
    from generative import GenerationError, GenerativeClient
    from identity import IdentityClient, IdentityState
    from records import ALERTS, OFFERS, REQUESTS, Record
    from store import StoreClient, Subscription


ROUTES = ("dashboard", "alerts", "resources", "summarize", "login", "signup")

COLLECTION_LABELS = {
    ALERTS: "flood alerts",
    REQUESTS: "resource requests",
    OFFERS: "resource offers",
}

# Failures a background job may raise that handlers turn into messages
EXPECTED_ERRORS: Tuple[Type[Exception], ...] = (ServiceError, GenerationError)


class Dispatcher:
    """UI-thread mailbox. post() is thread-safe; run_pending() is UI-thread only."""

    def __init__(self):
        self._queue: "queue.Queue[Tuple[Callable[..., Any], tuple]]" = queue.Queue()

    def post(self, fn: Callable[..., Any], *args) -> None:
        self._queue.put((fn, args))

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def run_pending(self) -> int:
        """Run everything posted so far, in order. Returns how many ran."""
        ran = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return ran
            fn(*args)
            ran += 1


class Lifetime:
    """Cancellation token for one mounted page."""

    def __init__(self):
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def guard(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Wrap fn so calls after cancel() are dropped."""

        def guarded(*args, **kwargs):
            if self._cancelled.is_set():
                if IS_DEV:
                    print(f"[VIEW] Dropped late call to {getattr(fn, '__name__', fn)}")
                return None
            return fn(*args, **kwargs)

        return guarded


@dataclass
class Notification:
    id: int
    level: str  # success | error | warning | info
    message: str


def spawn_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


class AppState:
    """
    Everything a page controller needs, passed in explicitly.

    `matching` is shared by every page: while one match request is in flight
    all match triggers are disabled.
    """

    def __init__(
        self,
        identity: IdentityClient,
        store: StoreClient,
        generative: GenerativeClient,
        dispatcher: Optional[Dispatcher] = None,
        spawn: Callable[[Callable[[], None]], None] = spawn_thread,
        route: str = "dashboard",
    ):
        self.identity = identity
        self.store = store
        self.generative = generative
        self.dispatcher = dispatcher or Dispatcher()
        self.spawn = spawn
        self.route = route
        self.notifications: List[Notification] = []
        self.matching = False
        self._ids = itertools.count(1)

    def navigate(self, route: str) -> None:
        if IS_DEV and route != self.route:
            print(f"[VIEW] navigate {self.route} -> {route}")
        self.route = route

    def notify(self, message: str, level: str = "success") -> Notification:
        notification = Notification(id=next(self._ids), level=level, message=message)
        self.notifications.append(notification)
        return notification

    def dismiss(self, notification_id: int) -> None:
        self.notifications = [n for n in self.notifications if n.id != notification_id]


class LiveList:
    """One view list fed by one live query. Each delivery replaces it wholesale."""

    def __init__(self, collection: str):
        self.collection = collection
        self.items: List[Record] = []
        self.loaded = False
        self.error: Optional[Exception] = None
        self.version = 0

    def replace(self, records: Sequence[Record]) -> None:
        self.items = list(records)
        self.loaded = True
        self.error = None
        self.version += 1

    def fail(self, error: Exception) -> None:
        # Keep the last good snapshot on screen
        self.error = error

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


class PageController:
    """
    Base for every page. Subclasses declare `collections` to subscribe to
    and set `public = True` for pages shown only when signed out.
    """

    route = ""
    collections: Sequence[str] = ()
    public = False

    def __init__(self, app: AppState):
        self.app = app
        self.lists: Dict[str, LiveList] = {c: LiveList(c) for c in self.collections}
        self.lifetime = Lifetime()
        self.view_status = "loading"
        self.mounted = False
        self._subscriptions: Dict[str, Subscription] = {}
        self._stop_observing: Optional[Callable[[], None]] = None

    # -- lifecycle -----------------------------------------------------

    def mount(self) -> None:
        if self.mounted:
            return
        if self.lifetime.cancelled:
            self.lifetime = Lifetime()
        self.mounted = True
        self._stop_observing = self.app.identity.observe(self._on_identity)

    def unmount(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        self.lifetime.cancel()
        if self._stop_observing is not None:
            self._stop_observing()
            self._stop_observing = None
        self._release_subscriptions()

    def _on_identity(self, state: IdentityState) -> None:
        if not self.mounted:
            return
        if state.loading:
            self.view_status = "loading"
            return

        if self.public:
            if state.user is not None:
                self.view_status = "redirect"
                self.app.navigate("alerts")
            else:
                self.view_status = "ready"
            return

        if state.user is None:
            self._release_subscriptions()
            self.view_status = "redirect"
            self.app.navigate("login")
            return

        self.view_status = "ready"
        self._open_subscriptions()

    # -- live queries --------------------------------------------------

    def _open_subscriptions(self) -> None:
        lifetime = self.lifetime
        post = self.app.dispatcher.post
        for collection in self.collections:
            if collection in self._subscriptions:
                continue
            live = self.lists[collection]
            on_snapshot = lifetime.guard(live.replace)
            on_error = lifetime.guard(self._on_live_error(live))
            self._subscriptions[collection] = self.app.store.subscribe(
                collection,
                on_snapshot=lambda records, cb=on_snapshot: post(cb, records),
                on_error=lambda error, cb=on_error: post(cb, error),
            )

    def _on_live_error(self, live: LiveList) -> Callable[[Exception], None]:
        def handle(error: Exception) -> None:
            live.fail(error)
            label = COLLECTION_LABELS.get(live.collection, live.collection)
            self.app.notify(f"Live updates for {label} are unavailable. Please try again.", "error")

        return handle

    def _release_subscriptions(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, {}
        for subscription in subscriptions.values():
            subscription.unsubscribe()

    @property
    def open_subscriptions(self) -> int:
        return len(self._subscriptions)

    # -- background work -----------------------------------------------

    def run_async(
        self,
        work: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_failure: Callable[[Exception], None],
        always: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Run `work` off the UI thread and hand its outcome back through the
        dispatcher. `always` runs even after unmount; the success/failure
        handlers only while this page is still mounted. Unexpected
        exceptions are re-raised on the UI thread.
        """
        lifetime = self.lifetime
        dispatcher = self.app.dispatcher

        def finish(result: Any, error: Optional[BaseException]) -> None:
            if always is not None:
                always()
            if error is not None and not isinstance(error, EXPECTED_ERRORS):
                raise error
            if lifetime.cancelled:
                if IS_DEV:
                    print(f"[VIEW] Dropped late result for {self.route or type(self).__name__}")
                return
            if error is None:
                on_success(result)
            else:
                on_failure(error)

        def job() -> None:
            try:
                result = work()
            except Exception as e:
                dispatcher.post(finish, None, e)
            else:
                dispatcher.post(finish, result, None)

        self.app.spawn(job)
