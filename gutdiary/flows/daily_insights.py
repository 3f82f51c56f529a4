# -*- coding: utf-8 -*-
"""Daily insights flow — trigger, micronutrient and overall feedback for one day."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from pydantic import Field

from ..schema import CamelModel
from .base import Flow
from .client import ModelClient
from .errors import FlowError, ModelOutputError
from .parsing import first_present

DEFAULT_TRIGGER = "Could not determine trigger insights due to an analysis error."
DEFAULT_MICRONUTRIENT = "Micronutrient feedback unavailable due to an analysis error."
DEFAULT_SUMMARY = "Could not determine overall summary due to an analysis error."

_TRIGGER_RE = re.compile(r"Trigger Insights\**:\**\s*(.*?)(?=\**Micronutrient Feedback\**:|\**Overall Summary\**:|$)", re.S | re.I)
_MICRO_RE = re.compile(r"Micronutrient Feedback\**:\**\s*(.*?)(?=\**Overall Summary\**:|$)", re.S | re.I)
_SUMMARY_RE = re.compile(r"Overall Summary\**:\**\s*(.*)", re.S | re.I)


class DailyInsightsInput(CamelModel):
    food_log: str = Field(..., description="The food items the user logged for the day.")
    symptoms: str = Field(..., description="The symptoms the user experienced during the day.")
    micronutrient_summary: Optional[str] = Field(
        None, description='e.g. "High in Vitamin C, low in Iron. Adequate Vitamin D."'
    )


class DailyInsightsOutput(CamelModel):
    trigger_insights: str = Field(..., description="Potential trigger foods or high-risk meals.")
    micronutrient_feedback: Optional[str] = Field(None, description="Areas of concern or sufficiency in micronutrient intake.")
    overall_summary: str = Field(..., description="A general view of the logged day.")


def render_prompt(inp: DailyInsightsInput) -> str:
    micro = f"Micronutrient Summary: {inp.micronutrient_summary}\n" if inp.micronutrient_summary else ""
    return f"""Analyze the following food log, symptoms, and micronutrient summary to provide personalized insights to the user.

Food Log: {inp.food_log}
Symptoms: {inp.symptoms}
{micro}
Provide the following insights:
1. Trigger Insights: Identify potential trigger foods or high-risk meals (e.g. "You had 3 high-risk meals today" or "Garlic appears to trigger symptoms.").
2. Micronutrient Feedback: Based on the micronutrient summary, provide feedback (e.g. "Your Vitamin C intake was good, but you might need more Iron."). If no summary is provided, state that micronutrient feedback is unavailable.
3. Overall Summary: Give a brief, general overview of the day, considering all provided information.

Respond in a structured format. For example:
Trigger Insights: Your analysis here.
Micronutrient Feedback: Your analysis here.
Overall Summary: Your analysis here."""


def normalize_insights(obj: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    trigger = first_present(obj, ("triggerInsights", "trigger_insights"))
    micro = first_present(obj, ("micronutrientFeedback", "micronutrient_feedback"))
    summary = first_present(obj, ("overallSummary", "overall_summary"))
    if trigger is not None:
        out["triggerInsights"] = str(trigger)
    if micro is not None:
        out["micronutrientFeedback"] = str(micro)
    if summary is not None:
        out["overallSummary"] = str(summary)
    return out


def parse_labelled_sections(text: str, inp: DailyInsightsInput) -> Optional[Dict[str, Any]]:
    """Map a 'Trigger Insights: ... Overall Summary: ...' reply onto the output fields."""
    trigger = _TRIGGER_RE.search(text)
    micro = _MICRO_RE.search(text)
    summary = _SUMMARY_RE.search(text)
    if micro:
        micro_text = micro.group(1).strip()
    elif inp.micronutrient_summary:
        micro_text = "Could not parse micronutrient feedback."
    else:
        micro_text = "Micronutrient feedback not available."
    return {
        "triggerInsights": trigger.group(1).strip() if trigger else "Could not determine trigger insights.",
        "micronutrientFeedback": micro_text,
        "overallSummary": summary.group(1).strip() if summary else "Could not determine overall summary.",
    }


def default_insights(exc: FlowError, inp: DailyInsightsInput) -> DailyInsightsOutput:  # noqa: ARG001
    summary = DEFAULT_SUMMARY
    if not (isinstance(exc, ModelOutputError) and exc.empty):
        summary = f"Error during daily insights analysis: {str(exc) or 'Unknown error'}."
    return DailyInsightsOutput(
        trigger_insights=DEFAULT_TRIGGER,
        micronutrient_feedback=DEFAULT_MICRONUTRIENT,
        overall_summary=summary,
    )


DAILY_INSIGHTS_FLOW: Flow[DailyInsightsInput, DailyInsightsOutput] = Flow(
    "get_daily_insights",
    input_model=DailyInsightsInput,
    output_model=DailyInsightsOutput,
    render=render_prompt,
    json_mode=False,
    normalize=normalize_insights,
    parse_text=parse_labelled_sections,
    fallback=default_insights,
)


async def get_daily_insights(data: Any, *, client: Optional[ModelClient] = None) -> DailyInsightsOutput:
    return await DAILY_INSIGHTS_FLOW.run(data, client=client)
