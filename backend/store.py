"""
backend/store.py

Append-only document collections.

Each collection maps to one table. Records get a server-assigned id and
timestamp and the creator's identity at insert time; nothing here updates
or deletes a row. Listings are always newest-first.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel

try:
    from backend.db import commit, execute_query, fetch_all
    from backend.models import COLLECTIONS, OWNER_FIELD, RECORD_MODELS, LifecycleStatus, RecordKind
except ModuleNotFoundError:
    from db import commit, execute_query, fetch_all
    from models import COLLECTIONS, OWNER_FIELD, RECORD_MODELS, LifecycleStatus, RecordKind


class UnknownCollectionError(KeyError):
    pass


def kind_for(collection: str) -> RecordKind:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise UnknownCollectionError(collection)


def server_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def insert_record(conn, collection: str, fields: BaseModel, owner_id: str) -> Dict[str, Any]:
    """
    Insert one record and return it as stored (with kind discriminant).

    id, timestamp, owner and lifecycle status are set here and never taken
    from the caller's fields.
    """
    kind = kind_for(collection)
    row: Dict[str, Any] = fields.model_dump(mode="json")
    row["id"] = uuid.uuid4().hex
    row["timestamp"] = server_timestamp()
    row[OWNER_FIELD[kind]] = owner_id
    if kind != RecordKind.alert:
        row["status"] = LifecycleStatus.pending.value

    columns = ", ".join(row.keys())
    placeholders = ", ".join(f":{key}" for key in row.keys())
    execute_query(conn, f"INSERT INTO {collection} ({columns}) VALUES ({placeholders})", row)
    commit(conn)

    return RECORD_MODELS[kind](**row).model_dump(mode="json")


def list_records(conn, collection: str) -> List[Dict[str, Any]]:
    """Full ordered snapshot of a collection, newest first."""
    kind = kind_for(collection)
    model = RECORD_MODELS[kind]
    rows = fetch_all(conn, f"SELECT * FROM {collection} ORDER BY timestamp DESC, id DESC")
    return [model(**row).model_dump(mode="json") for row in rows]
