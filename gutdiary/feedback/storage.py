# -*- coding: utf-8 -*-
"""Feedback storage helpers (SQLite)."""

from __future__ import annotations

from typing import List

from fastapi import HTTPException

from ..app_db import db_conn
from ..config import settings
from ..timeline.storage import ts_key
from .models import FeedbackSubmission


def save_submission(submission: FeedbackSubmission) -> FeedbackSubmission:
    payload_json = submission.model_dump_json(by_alias=True, exclude_none=True)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO feedback_submissions (id, user_id, status, timestamp, payload_json)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                status = excluded.status,
                payload_json = excluded.payload_json
            """,
            (submission.id, submission.user_id, submission.status, ts_key(submission.timestamp), payload_json),
        )
    return submission


def list_submissions(*, limit: int = 200) -> List[FeedbackSubmission]:
    """Newest first."""
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT payload_json FROM feedback_submissions ORDER BY timestamp DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [FeedbackSubmission.model_validate_json(r["payload_json"]) for r in rows]


def require_submission(submission_id: str) -> FeedbackSubmission:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT payload_json FROM feedback_submissions WHERE id = ?",
            (submission_id,),
        ).fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return FeedbackSubmission.model_validate_json(row["payload_json"])
