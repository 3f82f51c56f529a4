# -*- coding: utf-8 -*-
"""Symptom correlation flow — food/symptom pattern insights."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..schema import CamelModel, choice
from .base import Flow
from .client import ModelClient
from .fodmap import FodmapScore
from .parsing import as_str_list, first_present

InsightType = choice("potential_trigger", "potential_safe", "observation", "no_clear_pattern")
Confidence = choice("low", "medium", "high")


class Symptom(CamelModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class CorrelationFoodItem(CamelModel):
    id: str
    name: str
    ingredients: str = ""
    portion_size: str
    portion_unit: str
    timestamp: datetime
    overall_fodmap_risk: Optional[FodmapScore] = None


class CorrelationSymptomLog(CamelModel):
    id: str
    linked_food_item_ids: Optional[List[str]] = None
    symptoms: List[Symptom]
    severity: Optional[float] = Field(None, ge=1, le=5)
    notes: Optional[str] = None
    timestamp: datetime


class SafeFoodRef(CamelModel):
    name: str
    portion_size: str
    portion_unit: str


class SymptomCorrelationInput(CamelModel):
    food_log: List[CorrelationFoodItem] = Field(default_factory=list)
    symptom_log: List[CorrelationSymptomLog] = Field(default_factory=list)
    safe_foods: Optional[List[SafeFoodRef]] = None


class Insight(CamelModel):
    type: InsightType
    title: str = Field(..., min_length=1, description="Concise title for the insight card.")
    description: str = Field(..., min_length=1, description="Explanation of the pattern found.")
    related_food_names: Optional[List[str]] = None
    related_symptoms: Optional[List[str]] = None
    confidence: Optional[Confidence] = None
    suggestion_to_user: Optional[str] = Field(None, description="An actionable suggestion, e.g. 'Try logging more consistently.'")


class SymptomCorrelationOutput(CamelModel):
    insights: List[Insight]


MORE_DATA_NEEDED = Insight(
    type="observation",
    title="More Data Needed",
    description="Log more meals and symptoms to receive personalized insights.",
    confidence="low",
)


def _food_line(item: CorrelationFoodItem) -> str:
    risk = f" Overall Risk: {item.overall_fodmap_risk}" if item.overall_fodmap_risk else ""
    return (
        f"- Food: {item.name} (Portion: {item.portion_size} {item.portion_unit}, "
        f"Ingredients: {item.ingredients}, Logged: {item.timestamp.isoformat()}{risk})"
    )


def _symptom_line(log: CorrelationSymptomLog) -> str:
    extra = ""
    if log.severity is not None:
        extra += f", Severity: {log.severity:g}"
    if log.notes:
        extra += f", Notes: {log.notes}"
    names = ", ".join(s.name for s in log.symptoms)
    return f"- Symptoms: {names} (Logged: {log.timestamp.isoformat()}{extra})"


def render_prompt(inp: SymptomCorrelationInput) -> str:
    foods = "\n".join(_food_line(f) for f in inp.food_log) or "(No food items logged for this period)"
    symptoms = "\n".join(_symptom_line(s) for s in inp.symptom_log) or "(No symptoms logged for this period)"
    safe = ""
    if inp.safe_foods:
        lines = "\n".join(f"- {sf.name} (Portion: {sf.portion_size} {sf.portion_unit})" for sf in inp.safe_foods)
        safe = f"\nUser's Marked Safe Foods (generally tolerated at these portions):\n{lines}\n"

    return f"""Analyze the provided food log and symptom log. Look for correlations, considering timing, ingredients, portion sizes, and frequency.

User's Food Log (chronological):
{foods}

User's Symptom Log (chronological):
{symptoms}
{safe}
Examples of insights:
- Potential Trigger: Bloating was reported 3 out of 4 times within 2-4 hours after meals containing garlic. (confidence: medium)
- Potential Safe Food: 'Oats with berries' was logged 5 times without subsequent symptoms; consider marking it as safe. (confidence: medium)
- No Clear Pattern: no clear link between specific foods and reported headaches yet. (confidence: low, suggestion: log food and symptoms consistently for a week)

Prioritize stronger correlations. Assume a typical symptom onset window of 1-4 hours after a meal, but be flexible.
A food on the safe list is less likely to be a trigger unless eaten in much larger portions than saved.
Each insight needs 'type' (potential_trigger, potential_safe, observation, no_clear_pattern), 'title', 'description', and where applicable 'relatedFoodNames', 'relatedSymptoms', 'confidence' and 'suggestionToUser'.
Focus on the 2-3 most relevant insights. If data is too sparse, return one 'observation' insight saying more data is needed."""


def sparse_data(inp: SymptomCorrelationInput) -> Optional[SymptomCorrelationOutput]:
    if len(inp.food_log) < 3 and len(inp.symptom_log) < 1:
        return SymptomCorrelationOutput(insights=[MORE_DATA_NEEDED])
    return None


def normalize_correlations(obj: Dict[str, Any]) -> Dict[str, Any]:
    insights = first_present(obj, ("insights", "Insights"))
    if insights is None and "title" in obj:
        insights = [obj]
    if not isinstance(insights, list):
        return {"insights": insights}
    rows: List[Dict[str, Any]] = []
    for item in insights:
        if not isinstance(item, dict):
            continue
        row = dict(item)
        for camel, snake in (("relatedFoodNames", "related_food_names"), ("relatedSymptoms", "related_symptoms")):
            value = first_present(row, (camel, snake))
            row.pop(snake, None)
            if value is not None:
                row[camel] = as_str_list(value)
        if isinstance(row.get("confidence"), str):
            row["confidence"] = row["confidence"].strip().lower()
        rows.append(row)
    return {"insights": rows}


CORRELATION_FLOW: Flow[SymptomCorrelationInput, SymptomCorrelationOutput] = Flow(
    "get_symptom_correlations",
    input_model=SymptomCorrelationInput,
    output_model=SymptomCorrelationOutput,
    render=render_prompt,
    system="You are an AI assistant helping a user with IBS identify patterns between their food intake and symptoms.",
    short_circuit=sparse_data,
    normalize=normalize_correlations,
)


async def get_symptom_correlations(data: Any, *, client: Optional[ModelClient] = None) -> SymptomCorrelationOutput:
    return await CORRELATION_FLOW.run(data, client=client)
