"""
backend/live.py

Live query fan-out. Each open WebSocket subscribes to one collection; every
insert into that collection pushes the full ordered snapshot to all of its
subscribers. Subscribers never receive diffs.
"""

import asyncio
from typing import Any, Callable, Dict, List

from fastapi import WebSocket
from fastapi.concurrency import run_in_threadpool

try:
    from backend.config import IS_DEV
except ModuleNotFoundError:
    from config import IS_DEV


def snapshot_message(collection: str, records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "snapshot", "collection": collection, "records": records}


class SnapshotHub:
    def __init__(self):
        self.subscribers: Dict[str, List[WebSocket]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, collection: str) -> asyncio.Lock:
        if collection not in self._locks:
            self._locks[collection] = asyncio.Lock()
        return self._locks[collection]

    async def connect(self, collection: str, websocket: WebSocket, load_snapshot: Callable[[], List[Dict[str, Any]]]):
        """Register a subscriber and send it the current snapshot."""
        async with self._lock(collection):
            self.subscribers.setdefault(collection, []).append(websocket)
            records = await run_in_threadpool(load_snapshot)
            await websocket.send_json(snapshot_message(collection, records))
        if IS_DEV:
            print(f"[LIVE] +1 subscriber on {collection} ({len(self.subscribers[collection])} open)")

    def disconnect(self, collection: str, websocket: WebSocket):
        connections = self.subscribers.get(collection, [])
        if websocket in connections:
            connections.remove(websocket)
            if IS_DEV:
                print(f"[LIVE] -1 subscriber on {collection} ({len(connections)} open)")

    def count(self, collection: str) -> int:
        return len(self.subscribers.get(collection, []))

    async def publish(self, collection: str, records: List[Dict[str, Any]]):
        message = snapshot_message(collection, records)
        for connection in list(self.subscribers.get(collection, [])):
            try:
                await connection.send_json(message)
            except Exception as e:
                # Peer went away between receive loops; drop it
                print(f"[LIVE] Dropping subscriber on {collection}: {type(e).__name__}")
                self.disconnect(collection, connection)

    async def refresh(self, collection: str, load_snapshot: Callable[[], List[Dict[str, Any]]]):
        """
        Re-read the collection off the event loop and push it. Serialized per
        collection so that subscribers never see an older snapshot after a
        newer one.
        """
        async with self._lock(collection):
            records = await run_in_threadpool(load_snapshot)
            await self.publish(collection, records)


hub = SnapshotHub()
