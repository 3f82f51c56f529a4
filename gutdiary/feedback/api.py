# -*- coding: utf-8 -*-
"""Feedback — API endpoints."""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user, require_admin
from ..flows.api import raise_for_flow_error
from ..flows.client import ModelClient, get_model_client
from ..flows.errors import FlowError
from ..flows.feedback import process_feedback
from ..timeline.storage import utc_now
from .models import FeedbackListResponse, FeedbackSubmission, FeedbackSubmitRequest
from .storage import list_submissions, require_submission, save_submission

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feedback", tags=["Feedback"])


def _flow_input(submission: FeedbackSubmission) -> dict:
    return {
        "feedbackText": submission.feedback_text,
        "category": submission.category,
        "userId": submission.user_id,
        "route": submission.route,
    }


@router.post("", response_model=FeedbackSubmission, response_model_exclude_none=True, status_code=201, summary="Submit feedback")
async def submit(
    request: FeedbackSubmitRequest,
    user: dict = Depends(get_current_user),
    client: ModelClient = Depends(get_model_client),
    analyze: bool = Query(False, description="Run the AI triage right away; failures do not block the submission."),
):
    submission = FeedbackSubmission(
        id=str(uuid4()),
        user_id=user["id"],
        timestamp=utc_now(),
        feedback_text=request.feedback_text.strip(),
        category=(request.category or "").strip() or "Not specified",
        route=request.route,
    )
    if analyze:
        try:
            analysis = await process_feedback(_flow_input(submission), client=client)
        except FlowError as exc:
            log.warning("feedback triage skipped for %s: %s", submission.id, exc)
        else:
            submission = submission.model_copy(update={"ai_analysis": analysis})
    return save_submission(submission)


@router.get("", response_model=FeedbackListResponse, response_model_exclude_none=True, summary="List feedback (admin)")
def list_feedback(
    user: dict = Depends(require_admin),  # noqa: ARG001
    limit: int = Query(200, ge=1, le=1000),
):
    items = list_submissions(limit=limit)
    return FeedbackListResponse(count=len(items), items=items)


@router.post(
    "/{submission_id}/process",
    response_model=FeedbackSubmission,
    response_model_exclude_none=True,
    summary="Run the AI triage on a submission (admin)",
)
async def process(
    submission_id: str,
    user: dict = Depends(require_admin),  # noqa: ARG001
    client: ModelClient = Depends(get_model_client),
):
    submission = require_submission(submission_id)
    try:
        analysis = await process_feedback(_flow_input(submission), client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)
    return save_submission(submission.model_copy(update={"ai_analysis": analysis, "status": "processed"}))
