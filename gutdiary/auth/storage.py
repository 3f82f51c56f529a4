# -*- coding: utf-8 -*-
"""Auth — profile storage helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..app_db import db_conn
from ..config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _row_to_user(row: Any) -> Dict[str, Any]:
    user = dict(row)
    user["premium"] = bool(user.get("premium"))
    return user


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None


def get_or_create_user(user_id: str, *, email: Optional[str] = None, display_name: Optional[str] = None) -> Dict[str, Any]:
    """Profiles are created on the first authenticated request of an identity."""
    email_norm = email.lower().strip() if email else None
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT OR IGNORE INTO users (id, email, display_name, premium, created_at) VALUES (?, ?, ?, 0, ?)",
            (user_id, email_norm, display_name, _utc_now()),
        )
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row_to_user(row)


def update_display_name(user_id: str, display_name: Optional[str]) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        conn.execute("UPDATE users SET display_name = ? WHERE id = ?", (display_name, user_id))
    return get_user_by_id(user_id)


def set_premium(user_id: str, premium: bool) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        conn.execute("UPDATE users SET premium = ? WHERE id = ?", (1 if premium else 0, user_id))
    return get_user_by_id(user_id)
