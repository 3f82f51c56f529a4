# -*- coding: utf-8 -*-
"""Personalized dietitian flow — free-form question answered from the user's own logs."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..schema import CamelModel, choice
from .base import Flow
from .client import ModelClient
from .correlation import SafeFoodRef
from .errors import FlowError, ModelOutputError
from .fodmap import FodmapScore
from .parsing import first_present

NO_RESPONSE_TEXT = (
    "I apologize, the AI dietitian couldn't generate a specific response at this time. "
    "This might be due to a temporary issue or the nature of the query. "
    "Please try rephrasing or check back later."
)

UserFeedback = choice("safe", "unsafe")


class DietitianFoodItem(CamelModel):
    name: str
    original_name: Optional[str] = None
    ingredients: str = ""
    portion_size: str
    portion_unit: str
    timestamp: datetime
    overall_fodmap_risk: Optional[FodmapScore] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    user_feedback: Optional[UserFeedback] = None
    source_description: Optional[str] = Field(None, description="Original user text for AI-logged meals.")


class DietitianSymptomName(CamelModel):
    name: str


class DietitianSymptomLog(CamelModel):
    symptoms: List[DietitianSymptomName]
    severity: Optional[float] = None
    notes: Optional[str] = None
    timestamp: datetime
    linked_food_item_ids: Optional[List[str]] = None


class DietitianProfile(CamelModel):
    display_name: Optional[str] = None
    safe_foods: Optional[List[SafeFoodRef]] = None
    premium: Optional[bool] = None


class PersonalizedDietitianInput(CamelModel):
    user_question: str = Field(..., min_length=1, max_length=2000)
    food_log: List[DietitianFoodItem] = Field(default_factory=list)
    symptom_log: List[DietitianSymptomLog] = Field(default_factory=list)
    user_profile: Optional[DietitianProfile] = None


class PersonalizedDietitianOutput(CamelModel):
    ai_response: str = Field(..., description="Personalized answer, plain text or simple Markdown.")


def _na(value: Any, suffix: str = "") -> str:
    if value is None:
        return "N/A"
    if isinstance(value, float):
        return f"{value:g}{suffix}"
    return f"{value}{suffix}"


def _profile_block(profile: Optional[DietitianProfile]) -> str:
    if profile is None:
        return "(No user profile information provided)"
    if profile.safe_foods:
        safe = "\n".join(f"  - {sf.name} ({sf.portion_size} {sf.portion_unit})" for sf in profile.safe_foods)
    else:
        safe = "  (No specific safe foods marked by user)"
    return (
        f"Display Name: {profile.display_name or 'N/A'}\n"
        f"Premium User: {'Yes' if profile.premium else 'No'}\n"
        f"Marked Safe Foods (name, portion):\n{safe}"
    )


def _food_block(item: DietitianFoodItem) -> str:
    lines = [
        f"- Meal: {item.name} (Portion: {item.portion_size} {item.portion_unit}, Ingredients: {item.ingredients})",
        f"  Logged: {item.timestamp.isoformat()}",
    ]
    if item.source_description:
        lines.append(f'  Original Description: "{item.source_description}"')
    lines.append(f"  FODMAP Risk: {_na(item.overall_fodmap_risk)}")
    lines.append(
        f"  Nutrition (Approx.): Calories: {_na(item.calories)}, Protein: {_na(item.protein, 'g')}, "
        f"Carbs: {_na(item.carbs, 'g')}, Fat: {_na(item.fat, 'g')}"
    )
    lines.append(f"  User Feedback: {item.user_feedback or 'None'}")
    return "\n".join(lines)


def _symptom_block(log: DietitianSymptomLog) -> str:
    lines = [
        f"- Symptoms: {', '.join(s.name for s in log.symptoms)}",
        f"  Logged: {log.timestamp.isoformat()}",
        f"  Severity: {_na(log.severity)}",
    ]
    if log.notes:
        lines.append(f'  Notes: "{log.notes}"')
    if log.linked_food_item_ids:
        lines.append(f"  Linked to {len(log.linked_food_item_ids)} food(s).")
    return "\n".join(lines)


def render_prompt(inp: PersonalizedDietitianInput) -> str:
    foods = "\n".join(_food_block(f) for f in inp.food_log) or "(No food items logged recently or provided for analysis)"
    symptoms = "\n".join(_symptom_block(s) for s in inp.symptom_log) or "(No symptoms logged recently or provided for analysis)"
    return f"""User's Question:
"{inp.user_question}"

User's Profile Information:
{_profile_block(inp.user_profile)}

User's Recent Food Log (chronological):
{foods}

User's Recent Symptom Log (chronological):
{symptoms}

INSTRUCTIONS:
1. Analyze the question in the context of ALL provided data (profile, food log, symptom log).
2. Give a comprehensive, empathetic, and insightful answer, like a knowledgeable and caring personal dietitian.
3. For questions about triggers, look for patterns between food intake and symptoms (timing, ingredients, FODMAP levels, user feedback on foods).
4. For questions about improving diet, suggest specific, actionable changes based on the logs.
5. If the data is insufficient, say so, give the best general advice, and suggest what data would help.
6. Use paragraphs, and Markdown bullet points for multiple suggestions.
7. Refer to specific foods and symptoms from the logs when relevant. Do not just repeat the input data.
8. Avoid definitive medical diagnoses; frame suggestions as possibilities to explore or discuss with a healthcare professional.

Return a JSON object with a single key "aiResponse" whose value is your answer as a string."""


_ANSWER_KEYS = ("aiResponse", "ai_response", "response", "answer")


def normalize_answer(obj: Dict[str, Any]) -> Dict[str, Any]:
    answer = first_present(obj, _ANSWER_KEYS)
    return {"aiResponse": "" if answer is None else str(answer)}


def plain_text_answer(text: str, inp: PersonalizedDietitianInput) -> Optional[Dict[str, Any]]:  # noqa: ARG001
    return {"aiResponse": text.strip()}


def require_answer(out: PersonalizedDietitianOutput, inp: PersonalizedDietitianInput) -> PersonalizedDietitianOutput:  # noqa: ARG001
    if not out.ai_response.strip():
        raise ModelOutputError("Model returned an empty aiResponse", empty=True)
    return out


def dietitian_unavailable(exc: FlowError, inp: PersonalizedDietitianInput) -> PersonalizedDietitianOutput:  # noqa: ARG001
    if isinstance(exc, ModelOutputError) and exc.empty:
        return PersonalizedDietitianOutput(ai_response=NO_RESPONSE_TEXT)
    return PersonalizedDietitianOutput(
        ai_response=(
            f"An error occurred while consulting the AI dietitian: {str(exc) or 'Unknown AI error'}. "
            "Please try again later. If the issue persists, ensure your API key for the AI service is correctly configured."
        )
    )


DIETITIAN_FLOW: Flow[PersonalizedDietitianInput, PersonalizedDietitianOutput] = Flow(
    "get_personalized_dietitian_insight",
    input_model=PersonalizedDietitianInput,
    output_model=PersonalizedDietitianOutput,
    render=render_prompt,
    system=(
        "You are an expert AI Dietitian and Wellness Coach. Provide highly personalized, deep insights "
        "and actionable advice based on the user's question and their data."
    ),
    json_mode=False,
    normalize=normalize_answer,
    parse_text=plain_text_answer,
    finalize=require_answer,
    fallback=dietitian_unavailable,
    reply_keys=_ANSWER_KEYS,
)


async def get_personalized_dietitian_insight(
    data: Any, *, client: Optional[ModelClient] = None
) -> PersonalizedDietitianOutput:
    return await DIETITIAN_FLOW.run(data, client=client)
