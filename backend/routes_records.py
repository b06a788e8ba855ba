"""
backend/routes_records.py

Record collections: create, list, and live query over WebSocket.

Security guarantees:
- All endpoints require authentication (bearer token, or ?token= for WebSockets)
- Owner reference comes from the auth context only
- Server assigns id and timestamp
- No update or delete routes exist
"""

from __future__ import annotations

from functools import partial
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

try:
    from backend.auth_context import AuthContext, require_auth_context, resolve_auth_context
    from backend.config import IS_DEV
    from backend.db import get_db_connection
    from backend.live import hub
    from backend.models import COLLECTIONS
    from backend.schemas import (
        FloodAlertCreate,
        RecordListResponse,
        ResourceOfferCreate,
        ResourceRequestCreate,
    )
    from backend.store import insert_record, list_records
except ModuleNotFoundError:
    from auth_context import AuthContext, require_auth_context, resolve_auth_context
    from config import IS_DEV
    from db import get_db_connection
    from live import hub
    from models import COLLECTIONS
    from schemas import (
        FloodAlertCreate,
        RecordListResponse,
        ResourceOfferCreate,
        ResourceRequestCreate,
    )
    from store import insert_record, list_records


router = APIRouter(tags=["records"])

# WebSocket close codes (4000-4999 are application-defined)
WS_UNAUTHORIZED = 4401
WS_UNKNOWN_COLLECTION = 4404


def load_snapshot(collection: str) -> List[Dict[str, Any]]:
    with get_db_connection() as conn:
        return list_records(conn, collection)


def _insert(collection: str, fields, owner_id: str) -> Dict[str, Any]:
    with get_db_connection() as conn:
        return insert_record(conn, collection, fields, owner_id)


async def _create(collection: str, fields, ctx: AuthContext) -> Dict[str, Any]:
    record = await run_in_threadpool(_insert, collection, fields, ctx.user_id)

    if IS_DEV:
        print(f"[RECORDS] Created {collection}/{record['id']} by user_id={ctx.user_id}")

    # Subscribers learn about the write through the live query, not the response
    await hub.refresh(collection, partial(load_snapshot, collection))
    return record


@router.post("/collections/flood_alerts", status_code=201)
async def create_flood_alert(
    request: FloodAlertCreate,
    ctx: AuthContext = Depends(require_auth_context),
):
    return await _create("flood_alerts", request, ctx)


@router.post("/collections/resource_requests", status_code=201)
async def create_resource_request(
    request: ResourceRequestCreate,
    ctx: AuthContext = Depends(require_auth_context),
):
    return await _create("resource_requests", request, ctx)


@router.post("/collections/resource_offers", status_code=201)
async def create_resource_offer(
    request: ResourceOfferCreate,
    ctx: AuthContext = Depends(require_auth_context),
):
    return await _create("resource_offers", request, ctx)


@router.post("/collections/{collection}", dependencies=[Depends(require_auth_context)])
def create_in_unknown_collection(collection: str = Path(...)):
    raise HTTPException(status_code=404, detail="Unknown collection")


@router.get(
    "/collections/{collection}",
    response_model=RecordListResponse,
    dependencies=[Depends(require_auth_context)],
)
def get_collection(collection: str = Path(...)):
    if collection not in COLLECTIONS:
        raise HTTPException(status_code=404, detail="Unknown collection")
    return {"records": load_snapshot(collection)}


@router.websocket("/ws/collections/{collection}")
async def live_collection(websocket: WebSocket, collection: str, token: str = Query("")):
    """
    Live query over one collection, newest first.

    Sends the current snapshot on connect and a full new snapshot after every
    insert. The client never sends anything meaningful; the receive loop only
    exists to notice the disconnect.
    """
    await websocket.accept()

    try:
        ctx = await run_in_threadpool(resolve_auth_context, token)
    except HTTPException:
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    if collection not in COLLECTIONS:
        await websocket.close(code=WS_UNKNOWN_COLLECTION)
        return

    await hub.connect(collection, websocket, partial(load_snapshot, collection))
    if IS_DEV:
        print(f"[LIVE] user_id={ctx.user_id} subscribed to {collection}")

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(collection, websocket)
