# -*- coding: utf-8 -*-
"""Short wellness tip flow."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from ..schema import CamelModel, choice
from .base import Flow
from .client import ModelClient
from .errors import FlowError, ModelOutputError
from .parsing import first_present, strip_code_fences

DEFAULT_RECOMMENDATION = "Could not generate a recommendation at this time. Keep logging to get personalized tips!"

RequestType = choice("general_wellness", "diet_tip", "activity_nudge", "mindfulness_reminder")


class UserRecommendationInput(CamelModel):
    user_id: Optional[str] = None
    request_type: Optional[RequestType] = None
    recent_food_log_summary: Optional[str] = Field(None, max_length=2000, description="e.g. 'Logged 3 meals, 1 high FODMAP.'")
    recent_symptom_summary: Optional[str] = Field(None, max_length=2000, description="e.g. 'Reported bloating twice recently.'")


class UserRecommendationOutput(CamelModel):
    recommendation_text: str = Field(..., description="A short, actionable, and insightful tip (1-2 sentences).")


_TIP_TYPES = {
    "general_wellness": "hydration, sleep, stress, general healthy habits",
    "diet_tip": "practical diet or nutrition advice",
    "activity_nudge": "encourage physical activity",
    "mindfulness_reminder": "simple mindfulness or stress relief",
}


def render_prompt(inp: UserRecommendationInput) -> str:
    context = []
    if inp.user_id:
        context.append(f"User ID: {inp.user_id} (for your reference, do not include in output)")
    if inp.recent_food_log_summary:
        context.append(f"Recent food activity: {inp.recent_food_log_summary}")
    if inp.recent_symptom_summary:
        context.append(f"Recent symptoms: {inp.recent_symptom_summary}")
    if inp.request_type:
        context.append(f"Requested tip type: {inp.request_type} ({_TIP_TYPES[inp.request_type]})")
    context_block = "\n".join(context) or "(no additional context)"

    return f"""Generate a short, friendly, and actionable recommendation or tip for a user focused on their well-being (1-2 sentences).

Context available (use if relevant to make the tip more specific):
{context_block}

Instructions:
1. If recent food or symptom context is given, make the tip subtly relevant to it, especially if it aligns with the requested tip type.
   Example: recent symptoms mention bloating and the type is general_wellness -> "Feeling bloated? Slowing down your eating pace can make a difference."
2. If a tip type is requested, prioritize a tip in that category.
3. Otherwise give a generally useful wellness tip, e.g. "Drinking enough water throughout the day is key for energy and digestion."
4. Keep it positive, encouraging, and directly actionable. Avoid being preachy.

Output only the recommendation text itself."""


_TIP_KEYS = ("recommendationText", "recommendation_text", "recommendation", "tip", "text")


def normalize_recommendation(obj: Dict[str, Any]) -> Dict[str, Any]:
    text = first_present(obj, _TIP_KEYS)
    return {"recommendationText": "" if text is None else str(text).strip()}


def plain_text_tip(text: str, inp: UserRecommendationInput) -> Optional[Dict[str, Any]]:  # noqa: ARG001
    return {"recommendationText": strip_code_fences(text).strip().strip('"').strip()}


def require_tip(out: UserRecommendationOutput, inp: UserRecommendationInput) -> UserRecommendationOutput:  # noqa: ARG001
    if not out.recommendation_text.strip():
        raise ModelOutputError("Model returned an empty recommendation", empty=True)
    return out


def default_tip(exc: FlowError, inp: UserRecommendationInput) -> UserRecommendationOutput:  # noqa: ARG001
    if isinstance(exc, ModelOutputError) and exc.empty:
        return UserRecommendationOutput(recommendation_text=DEFAULT_RECOMMENDATION)
    return UserRecommendationOutput(
        recommendation_text=f"Could not generate a recommendation: {str(exc) or 'Unknown error'}. Keep logging for future tips!"
    )


RECOMMENDATION_FLOW: Flow[UserRecommendationInput, UserRecommendationOutput] = Flow(
    "get_user_recommendation",
    input_model=UserRecommendationInput,
    output_model=UserRecommendationOutput,
    render=render_prompt,
    json_mode=False,
    normalize=normalize_recommendation,
    parse_text=plain_text_tip,
    finalize=require_tip,
    fallback=default_tip,
    reply_keys=_TIP_KEYS,
)


async def get_user_recommendation(data: Any, *, client: Optional[ModelClient] = None) -> UserRecommendationOutput:
    return await RECOMMENDATION_FLOW.run(data, client=client)
