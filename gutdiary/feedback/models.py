# -*- coding: utf-8 -*-
"""Feedback — Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from ..flows.feedback import ProcessedFeedbackOutput
from ..schema import CamelModel, Text

FeedbackStatus = Literal["new", "processed"]


class FeedbackSubmitRequest(CamelModel):
    feedback_text: Text = Field(..., max_length=5000)
    category: Optional[str] = Field(None, max_length=64)
    route: Optional[str] = Field(None, max_length=512)


class FeedbackSubmission(CamelModel):
    id: str
    user_id: str
    timestamp: datetime
    feedback_text: str
    category: str = "Not specified"
    route: Optional[str] = None
    status: FeedbackStatus = "new"
    ai_analysis: Optional[ProcessedFeedbackOutput] = None


class FeedbackListResponse(CamelModel):
    count: int
    items: List[FeedbackSubmission] = Field(default_factory=list)
