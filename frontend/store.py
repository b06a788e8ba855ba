"""
frontend/store.py
Document store client: create records and open live queries.

A live query is a Subscription: one background thread reading a WebSocket
that delivers the full ordered snapshot of a collection (newest first) on
connect and after every insert. Callers must pair every subscribe() with
exactly one unsubscribe(), or use the Subscription as a context manager.
"""

import json
import threading
from typing import Any, Callable, List, Mapping, Optional
from urllib.parse import quote

import pydantic
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException
from websockets.sync.client import connect as ws_connect

try:
    from frontend.api_client import ApiClient, ServiceError
    from frontend.config import IS_DEV
    from frontend.records import Record, parse_record, parse_snapshot
except ModuleNotFoundError:
    from api_client import ApiClient, ServiceError
    from config import IS_DEV
    from records import Record, parse_record, parse_snapshot


SnapshotCallback = Callable[[List[Record]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    def __init__(
        self,
        collection: str,
        open_connection: Callable[[], Any],
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.collection = collection
        self._open_connection = open_connection
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        # Held while a callback runs so unsubscribe() cannot return mid-delivery
        self._lock = threading.RLock()
        self._released = False
        self._conn = None
        self._thread = threading.Thread(target=self._run, name=f"live-{collection}", daemon=True)

    @property
    def active(self) -> bool:
        return not self._released

    def start(self) -> "Subscription":
        self._thread.start()
        return self

    def _deliver(self, records: List[Record]):
        with self._lock:
            if not self._released:
                self._on_snapshot(records)

    def _fail(self, error: Exception):
        with self._lock:
            if self._released:
                return
            print(f"[LIVE] Subscription to {self.collection} failed: {error}")
            if self._on_error is not None:
                self._on_error(error)

    def _run(self):
        try:
            conn = self._open_connection()
        except (OSError, WebSocketException) as e:
            self._fail(ServiceError(f"Cannot open live query on {self.collection}: {type(e).__name__}"))
            return

        with self._lock:
            if self._released:
                conn.close()
                return
            self._conn = conn

        try:
            for message in conn:
                payload = json.loads(message)
                if not isinstance(payload, dict):
                    raise ValueError("snapshot message is not an object")
                if payload.get("type") != "snapshot":
                    continue
                self._deliver(parse_snapshot(payload.get("records", [])))
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else None
            self._fail(ServiceError(f"Live query on {self.collection} closed", status=code))
        except (ValueError, pydantic.ValidationError) as e:
            self._fail(ServiceError(f"Malformed snapshot on {self.collection}: {type(e).__name__}"))
        finally:
            conn.close()

    def unsubscribe(self, timeout: float = 5.0) -> None:
        """
        Release the live query. Idempotent. After this returns no callback
        of this subscription will run.
        """
        with self._lock:
            if self._released:
                return
            self._released = True
            conn = self._conn
        if conn is not None:
            conn.close()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)
        if IS_DEV:
            print(f"[LIVE] Released subscription to {self.collection}")

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()


class StoreClient:
    def __init__(
        self,
        api: ApiClient,
        ws_base_url: str,
        token_provider: Callable[[], Optional[str]],
        connect: Callable[..., Any] = ws_connect,
    ):
        self.api = api
        self.ws_base_url = ws_base_url.rstrip("/")
        self.token_provider = token_provider
        self._connect = connect

    def create(self, collection: str, fields: Mapping[str, Any]) -> Record:
        """
        Write one record. The backend assigns id, timestamp and owner.

        Raises:
            ServiceError: if the write fails
        """
        data = self.api.post(f"/collections/{collection}", json=dict(fields))
        try:
            return parse_record(data)
        except pydantic.ValidationError:
            raise ServiceError(f"Backend returned a malformed {collection} record")

    def _live_url(self, collection: str) -> str:
        token = self.token_provider() or ""
        return f"{self.ws_base_url}/ws/collections/{collection}?token={quote(token)}"

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Open a live query over `collection`, ordered newest first. Callbacks
        run on the subscription's reader thread.
        """
        url = self._live_url(collection)
        # The URL carries the token: never log it
        subscription = Subscription(collection, lambda: self._connect(url), on_snapshot, on_error)
        if IS_DEV:
            print(f"[LIVE] Subscribing to {collection}")
        return subscription.start()
