# -*- coding: utf-8 -*-
"""Safe foods storage helpers (SQLite)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException

from ..app_db import db_conn
from ..config import settings
from .models import SafeFood


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def list_safe_foods(user_id: str) -> List[SafeFood]:
    """Oldest first, in the order they were marked."""
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT payload_json FROM safe_foods WHERE user_id = ? ORDER BY created_at ASC",
            (user_id,),
        ).fetchall()
    return [SafeFood.model_validate_json(r["payload_json"]) for r in rows]


def find_safe_food(
    user_id: str, *, name: str, ingredients: str, portion_size: str, portion_unit: str
) -> Optional[SafeFood]:
    for sf in list_safe_foods(user_id):
        if (sf.name, sf.ingredients, sf.portion_size, sf.portion_unit) == (name, ingredients, portion_size, portion_unit):
            return sf
    return None


def add_safe_food(user_id: str, safe_food: SafeFood) -> SafeFood:
    now = _iso_now()
    if safe_food.created_at is None:
        safe_food = safe_food.model_copy(update={"created_at": datetime.fromisoformat(now)})
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT INTO safe_foods (id, user_id, name, payload_json, created_at) VALUES (?, ?, ?, ?, ?)",
            (
                safe_food.id,
                user_id,
                safe_food.name,
                safe_food.model_dump_json(by_alias=True, exclude_none=True),
                now,
            ),
        )
    return safe_food


def delete_safe_food(user_id: str, safe_food_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM safe_foods WHERE id = ? AND user_id = ?", (safe_food_id, user_id))
        if cur.rowcount == 0:
            raise HTTPException(status_code=404, detail="Safe food not found")
