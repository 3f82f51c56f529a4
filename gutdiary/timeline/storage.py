# -*- coding: utf-8 -*-
"""Timeline storage helpers (SQLite, one JSON document per entry)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from ..app_db import db_conn
from ..config import settings
from .models import LoggedFoodItem, TimelineEntry, timeline_entry_adapter

log = logging.getLogger(__name__)


def utc(ts: datetime) -> datetime:
    """Naive timestamps are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ts_key(ts: datetime) -> str:
    return utc(ts).isoformat(timespec="microseconds")


def _load(row) -> Optional[TimelineEntry]:
    try:
        return timeline_entry_adapter.validate_json(row["payload_json"])
    except ValidationError:
        log.warning("skipping unreadable timeline entry %s", row["id"], exc_info=True)
        return None


def save_entry(user_id: str, entry: TimelineEntry) -> TimelineEntry:
    """Insert or replace the entry document."""
    entry = entry.model_copy(update={"timestamp": utc(entry.timestamp)})
    now = ts_key(utc_now())
    payload_json = entry.model_dump_json(by_alias=True, exclude_none=True)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO timeline_entries (id, user_id, entry_type, timestamp, payload_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                entry_type = excluded.entry_type,
                timestamp = excluded.timestamp,
                payload_json = excluded.payload_json,
                updated_at = excluded.updated_at
            WHERE timeline_entries.user_id = excluded.user_id
            """,
            (entry.id, user_id, entry.entry_type, ts_key(entry.timestamp), payload_json, now, now),
        )
    return entry


def list_entries(
    user_id: str,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    entry_type: Optional[str] = None,
) -> List[TimelineEntry]:
    """Entries newest first; ``start``/``end`` are inclusive."""
    sql = "SELECT id, payload_json FROM timeline_entries WHERE user_id = ?"
    params: list = [user_id]
    if start is not None:
        sql += " AND timestamp >= ?"
        params.append(ts_key(start))
    if end is not None:
        sql += " AND timestamp <= ?"
        params.append(ts_key(end))
    if entry_type:
        sql += " AND entry_type = ?"
        params.append(entry_type)
    sql += " ORDER BY timestamp DESC, created_at DESC"

    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(sql, params).fetchall()
    entries = [_load(r) for r in rows]
    return [e for e in entries if e is not None]


def get_entry(user_id: str, entry_id: str) -> Optional[TimelineEntry]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT id, payload_json FROM timeline_entries WHERE id = ? AND user_id = ?",
            (entry_id, user_id),
        ).fetchone()
    return _load(row) if row else None


def require_entry(user_id: str, entry_id: str) -> TimelineEntry:
    entry = get_entry(user_id, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Timeline entry not found")
    return entry


def require_food_item(user_id: str, entry_id: str) -> LoggedFoodItem:
    entry = require_entry(user_id, entry_id)
    if not isinstance(entry, LoggedFoodItem):
        raise HTTPException(status_code=404, detail="Food item not found")
    return entry


def delete_entry(user_id: str, entry_id: str) -> bool:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "DELETE FROM timeline_entries WHERE id = ? AND user_id = ?",
            (entry_id, user_id),
        )
        return cur.rowcount > 0
