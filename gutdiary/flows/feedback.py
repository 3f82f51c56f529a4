# -*- coding: utf-8 -*-
"""User feedback triage flow."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from ..schema import CamelModel, Text, choice
from .base import Flow
from .client import ModelClient
from .parsing import as_str_list

FEEDBACK_CATEGORIES = (
    "UI Bug",
    "Functional Bug",
    "UX Friction",
    "Performance Issue",
    "Feature Request",
    "Positive Praise",
    "Documentation/Help",
    "Security Concern",
    "Other Technical Issue",
    "General Comment",
    "Billing/Subscription",
)
NEXT_ACTIONS = (
    "Log Bug Ticket",
    "Add to Feature Roadmap",
    "Discuss with UX Team",
    "Monitor for Similar Reports",
    "Requires Clarification from User",
    "Acknowledge & Thank User",
    "No Action Needed (Low Priority/Invalid)",
    "Investigate Technical Issue",
    "Review Documentation",
)

FeedbackCategory = choice(*FEEDBACK_CATEGORIES)
NextAction = choice(*NEXT_ACTIONS)
Sentiment = choice("Positive", "Negative", "Neutral", "Mixed")
Feasibility = choice("Easy", "Moderate", "Hard", "Unknown")
Validity = choice("High", "Medium", "Low", "Unclear")


class ProcessFeedbackInput(CamelModel):
    feedback_text: Text = Field(..., max_length=5000)
    category: Optional[str] = Field(None, description='User-selected category, e.g. "bug", "suggestion".')
    user_id: Optional[str] = None
    route: Optional[str] = Field(None, description="Page the feedback was submitted from.")


class ProcessedFeedbackOutput(CamelModel):
    ai_suggested_category: FeedbackCategory
    summary_title: str = Field(..., min_length=1, description="Concise title, max 10 words.")
    detailed_summary: Optional[str] = None
    sentiment: Sentiment
    feasibility: Feasibility
    validity: Validity = Field(..., description="How well-described, relevant and actionable the feedback is.")
    recommended_next_action: NextAction
    keywords: Optional[List[str]] = None
    is_bug: Optional[bool] = None
    is_feature_request: Optional[bool] = None


def render_prompt(inp: ProcessFeedbackInput) -> str:
    return f"""User ID: {inp.user_id or "anonymous"}
Route Submitted From: {inp.route or "unknown"}
User-Selected Category: {inp.category or "none"}
Feedback Text:
\"\"\"
{inp.feedback_text}
\"\"\"

Analyze the feedback and provide:
1. aiSuggestedCategory: one of {", ".join(FEEDBACK_CATEGORIES)}. Prefer the user's category if it is sensible.
2. summaryTitle: a very short descriptive title (max 10 words).
3. detailedSummary: (optional) the core issue or request.
4. sentiment: Positive, Negative, Neutral, or Mixed.
5. feasibility: Easy, Moderate, Hard, or Unknown.
6. validity: High, Medium, Low, or Unclear.
7. recommendedNextAction: one of {", ".join(NEXT_ACTIONS)}.
8. keywords: (optional) a few relevant keywords.
9. isBug: true if the feedback clearly describes a software bug.
10. isFeatureRequest: true if the feedback clearly requests a new feature or enhancement.

If the feedback is vague, reflect that in validity and recommend "Requires Clarification from User".
If the feedback is praise, recommend "Acknowledge & Thank User"."""


def normalize_feedback(obj: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(obj)
    if "keywords" in out:
        out["keywords"] = as_str_list(out["keywords"]) or None
    return out


FEEDBACK_FLOW: Flow[ProcessFeedbackInput, ProcessedFeedbackOutput] = Flow(
    "process_feedback",
    input_model=ProcessFeedbackInput,
    output_model=ProcessedFeedbackOutput,
    render=render_prompt,
    system="You are an expert AI assistant for analyzing user feedback for a web application.",
    normalize=normalize_feedback,
)


async def process_feedback(data: Any, *, client: Optional[ModelClient] = None) -> ProcessedFeedbackOutput:
    return await FEEDBACK_FLOW.run(data, client=client)
