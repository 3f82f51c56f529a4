# -*- coding: utf-8 -*-
"""Timeline — logging workflows that combine storage with the AI flows.

Flows only see serialized copies of entries; everything written back is
decided here.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from fastapi import HTTPException

from ..config import settings
from ..flows.client import ModelClient
from ..flows.correlation import (
    CorrelationFoodItem,
    CorrelationSymptomLog,
    SafeFoodRef,
    Symptom,
    SymptomCorrelationInput,
)
from ..flows.dietitian import DietitianFoodItem, DietitianProfile, DietitianSymptomLog, PersonalizedDietitianInput
from ..flows.errors import FlowError, ModelCallError, ModelOutputError
from ..flows.fodmap import analyze_food_item, estimate_profile_from_name
from ..flows.meal import process_meal_description, to_analysis_input
from ..flows.similarity import FoodItemWithPortionProfile, FoodSimilarityInput, is_similar_to_safe_foods
from ..safe_foods.models import SafeFood
from ..safe_foods.storage import add_safe_food, find_safe_food, list_safe_foods
from .models import (
    COMMON_SYMPTOMS,
    DescribeMealRequest,
    LogFoodRequest,
    LoggedFoodItem,
    LogSymptomsRequest,
    ManualMacroRequest,
    SymptomLog,
    TimelineEntry,
    UpdateFoodRequest,
)
from .storage import list_entries, require_food_item, save_entry, utc_now

log = logging.getLogger(__name__)

NO_SYMPTOMS_SELECTED = "Please select at least one symptom."
NO_SYMPTOMS_LEFT = "Please select or add at least one symptom."

_GENERIC_WARNING = "Could not fully process food item. It has been added with available data."
_KIND_WARNINGS = {
    "overloaded": "The AI model is temporarily busy or unavailable. Food added without full AI analysis. Please try again later.",
    "bad_request": "There was an issue with the data sent for AI analysis. Food added without AI insights.",
    "auth": "Could not access the AI service due to an authentication or permission problem. Food added without AI insights.",
    "timeout": "The request to the AI service timed out. Food added without AI insights. Please try again.",
}
_OUTPUT_WARNING = "The AI's response format was unexpected. Food added without AI insights."
_MACRO_FIELDS = ("calories", "protein", "carbs", "fat")


def failure_warning(exc: FlowError) -> str:
    """User-facing explanation for a food analysis that did not complete."""
    if isinstance(exc, ModelCallError):
        return _KIND_WARNINGS.get(exc.kind, _GENERIC_WARNING)
    if isinstance(exc, ModelOutputError):
        return _OUTPUT_WARNING
    return _GENERIC_WARNING


def _new_id() -> str:
    return str(uuid4())


def _analysis_input(item: LoggedFoodItem) -> Dict[str, Any]:
    # Validated by the flow, so a bad stored field becomes a FlowInputError.
    return {
        "foodItem": item.original_name or item.name,
        "ingredients": item.ingredients,
        "portionSize": item.portion_size,
        "portionUnit": item.portion_unit,
    }


def _portion_profile(name: str, portion_size: str, portion_unit: str, profile) -> FoodItemWithPortionProfile:
    return FoodItemWithPortionProfile(
        name=name,
        portion_size=portion_size,
        portion_unit=portion_unit,
        fodmap_profile=profile,
    )


async def enrich_food_item(user_id: str, item: LoggedFoodItem, *, client: Optional[ModelClient]) -> LoggedFoodItem:
    """Run the FODMAP analysis (and the safe-food comparison) for ``item``.

    Failures never propagate: the item keeps whatever AI data it already had
    and carries a warning instead.
    """
    try:
        analysis = await analyze_food_item(_analysis_input(item), client=client)
    except FlowError as exc:
        log.warning("food analysis failed for entry %s: %s", item.id, exc)
        return item.model_copy(update={"warnings": [failure_warning(exc)]})

    profile = analysis.detailed_fodmap_profile or estimate_profile_from_name(item.name)
    updates: Dict[str, Any] = {
        "fodmap_data": analysis,
        "user_fodmap_profile": profile,
        "is_similar_to_safe": None,
        "similarity_reason": None,
        "warnings": [],
    }
    if not item.macros_overridden:
        for key in _MACRO_FIELDS:
            updates[key] = getattr(analysis, key)

    safe_foods = list_safe_foods(user_id)
    if safe_foods:
        similarity_input = FoodSimilarityInput(
            current_food_item=_portion_profile(item.name, item.portion_size, item.portion_unit, profile),
            user_safe_food_items=[
                _portion_profile(sf.name, sf.portion_size, sf.portion_unit, sf.fodmap_profile) for sf in safe_foods
            ],
        )
        try:
            similarity = await is_similar_to_safe_foods(similarity_input, client=client)
        except FlowError as exc:
            log.warning("safe-food comparison failed for entry %s: %s", item.id, exc)
            updates["warnings"] = ["Could not compare this item with your safe foods."]
        else:
            updates["is_similar_to_safe"] = similarity.is_similar
            updates["similarity_reason"] = similarity.similarity_reason

    return item.model_copy(update=updates)


async def log_food(user_id: str, request: LogFoodRequest, *, client: Optional[ModelClient] = None) -> LoggedFoodItem:
    item = LoggedFoodItem(
        id=_new_id(),
        name=request.name.strip(),
        ingredients=request.ingredients.strip(),
        portion_size=request.portion_size.strip(),
        portion_unit=request.portion_unit.strip(),
        timestamp=request.timestamp or utc_now(),
        source_description=request.source_description,
    )
    item = await enrich_food_item(user_id, item, client=client)
    return save_entry(user_id, item)


async def log_described_meal(
    user_id: str, request: DescribeMealRequest, *, client: Optional[ModelClient] = None
) -> LoggedFoodItem:
    """Free-text meal: name it, then log it like a regular food. Flow errors propagate."""
    meal = await process_meal_description({"mealDescription": request.meal_description}, client=client)
    analysis_input = to_analysis_input(meal)
    item = LoggedFoodItem(
        id=_new_id(),
        name=meal.witty_name,
        original_name=analysis_input.food_item,
        ingredients=analysis_input.ingredients,
        portion_size=analysis_input.portion_size,
        portion_unit=analysis_input.portion_unit,
        timestamp=request.timestamp or utc_now(),
        source_description=request.meal_description,
    )
    item = await enrich_food_item(user_id, item, client=client)
    return save_entry(user_id, item)


def log_manual_macros(user_id: str, request: ManualMacroRequest) -> LoggedFoodItem:
    item = LoggedFoodItem(
        entry_type="manual_macro",
        id=_new_id(),
        name=request.name.strip(),
        ingredients="Manual entry",
        portion_size="1",
        portion_unit="serving",
        timestamp=request.timestamp or utc_now(),
        calories=request.calories,
        protein=request.protein,
        carbs=request.carbs,
        fat=request.fat,
    )
    return save_entry(user_id, item)


def update_food(user_id: str, entry_id: str, request: UpdateFoodRequest) -> LoggedFoodItem:
    item = require_food_item(user_id, entry_id)
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if any(key in changes for key in _MACRO_FIELDS):
        changes["macros_overridden"] = True
    for key in ("name", "ingredients", "portion_size", "portion_unit"):
        if key in changes:
            changes[key] = changes[key].strip()
    return save_entry(user_id, item.model_copy(update=changes))


async def reanalyze_food(user_id: str, entry_id: str, *, client: Optional[ModelClient] = None) -> LoggedFoodItem:
    item = require_food_item(user_id, entry_id)
    if item.entry_type == "manual_macro":
        raise HTTPException(status_code=400, detail="Manual macro entries are not analyzed")
    item = await enrich_food_item(user_id, item, client=client)
    return save_entry(user_id, item)


def set_food_feedback(user_id: str, entry_id: str, feedback: Optional[str]) -> LoggedFoodItem:
    item = require_food_item(user_id, entry_id)
    return save_entry(user_id, item.model_copy(update={"user_feedback": feedback}))


def mark_food_safe(user_id: str, entry_id: str) -> SafeFood:
    item = require_food_item(user_id, entry_id)
    if item.fodmap_data is None or item.user_fodmap_profile is None:
        raise HTTPException(status_code=400, detail="Detailed FODMAP profile is missing for this item.")
    existing = find_safe_food(
        user_id,
        name=item.name,
        ingredients=item.ingredients,
        portion_size=item.portion_size,
        portion_unit=item.portion_unit,
    )
    if existing is not None:
        raise HTTPException(
            status_code=409,
            detail=f"{item.name} ({item.portion_size} {item.portion_unit}) is already in your safe foods list.",
        )
    safe_food = SafeFood(
        id=_new_id(),
        name=item.name,
        ingredients=item.ingredients,
        portion_size=item.portion_size,
        portion_unit=item.portion_unit,
        fodmap_profile=item.user_fodmap_profile,
        original_analysis=item.fodmap_data,
    )
    return add_safe_food(user_id, safe_food)


def resolve_symptoms(symptom_ids: List[str], custom_symptom: Optional[str]) -> List[Symptom]:
    """Selected ids to symptoms; 'other' with a custom name becomes that symptom."""
    if not symptom_ids:
        raise HTTPException(status_code=422, detail=NO_SYMPTOMS_SELECTED)

    known = {s.id: s for s in COMMON_SYMPTOMS}
    custom = (custom_symptom or "").strip()
    out: List[Symptom] = []
    seen = set()
    for raw_id in symptom_ids:
        key = raw_id.strip().lower()
        if key in seen or key not in known:
            continue
        seen.add(key)
        if key == "other" and custom:
            out.append(Symptom(id=f"custom-{uuid4().hex[:12]}", name=custom))
        else:
            out.append(known[key])

    if not out:
        raise HTTPException(status_code=422, detail=NO_SYMPTOMS_LEFT)
    return out


def log_symptoms(user_id: str, request: LogSymptomsRequest) -> SymptomLog:
    symptoms = resolve_symptoms(request.symptom_ids, request.custom_symptom)
    food_ids = {e.id for e in list_entries(user_id) if isinstance(e, LoggedFoodItem)}
    linked = [fid for fid in dict.fromkeys(request.linked_food_item_ids) if fid in food_ids]
    entry = SymptomLog(
        id=_new_id(),
        symptoms=symptoms,
        severity=request.severity,
        notes=(request.notes or "").strip() or None,
        timestamp=request.timestamp or utc_now(),
        linked_food_item_ids=linked,
    )
    return save_entry(user_id, entry)


def recent_history(user_id: str, *, days: Optional[int] = None) -> Tuple[List[LoggedFoodItem], List[SymptomLog]]:
    """Food items and symptom logs from the last ``days`` days, oldest first."""
    days = settings.ai_history_days if days is None else days
    entries: List[TimelineEntry] = list_entries(user_id, start=utc_now() - timedelta(days=days))
    entries.reverse()
    foods = [e for e in entries if isinstance(e, LoggedFoodItem) and e.entry_type == "food"]
    symptoms = [e for e in entries if isinstance(e, SymptomLog)]
    return foods, symptoms


def _risk(item: LoggedFoodItem) -> Optional[str]:
    return item.fodmap_data.overall_risk if item.fodmap_data else None


def build_correlation_input(user_id: str) -> SymptomCorrelationInput:
    foods, symptoms = recent_history(user_id)
    return SymptomCorrelationInput(
        food_log=[
            CorrelationFoodItem(
                id=f.id,
                name=f.name,
                ingredients=f.ingredients,
                portion_size=f.portion_size,
                portion_unit=f.portion_unit,
                timestamp=f.timestamp,
                overall_fodmap_risk=_risk(f),
            )
            for f in foods
        ],
        symptom_log=[
            CorrelationSymptomLog(
                id=s.id,
                linked_food_item_ids=s.linked_food_item_ids or None,
                symptoms=s.symptoms,
                severity=s.severity,
                notes=s.notes,
                timestamp=s.timestamp,
            )
            for s in symptoms
        ],
        safe_foods=[
            SafeFoodRef(name=sf.name, portion_size=sf.portion_size, portion_unit=sf.portion_unit)
            for sf in list_safe_foods(user_id)
        ],
    )


def build_dietitian_input(user_id: str, question: str, user: Dict[str, Any]) -> PersonalizedDietitianInput:
    foods, symptoms = recent_history(user_id)
    safe_foods = list_safe_foods(user_id)
    return PersonalizedDietitianInput(
        user_question=question,
        food_log=[
            DietitianFoodItem(
                name=f.name,
                original_name=f.original_name,
                ingredients=f.ingredients,
                portion_size=f.portion_size,
                portion_unit=f.portion_unit,
                timestamp=f.timestamp,
                overall_fodmap_risk=_risk(f),
                calories=f.calories,
                protein=f.protein,
                carbs=f.carbs,
                fat=f.fat,
                user_feedback=f.user_feedback,
                source_description=f.source_description,
            )
            for f in foods
        ],
        symptom_log=[
            DietitianSymptomLog(
                symptoms=[{"name": s.name} for s in entry.symptoms],
                severity=entry.severity,
                notes=entry.notes,
                timestamp=entry.timestamp,
                linked_food_item_ids=entry.linked_food_item_ids or None,
            )
            for entry in symptoms
        ],
        user_profile=DietitianProfile(
            display_name=user.get("display_name"),
            safe_foods=[
                SafeFoodRef(name=sf.name, portion_size=sf.portion_size, portion_unit=sf.portion_unit)
                for sf in safe_foods
            ],
            premium=bool(user.get("premium")),
        ),
    )


def recent_activity_summaries(user_id: str) -> Tuple[str, str]:
    """One-line food and symptom summaries of the last day, for wellness tips."""
    foods, symptoms = recent_history(user_id, days=1)
    if foods:
        high = sum(1 for f in foods if _risk(f) == "Red")
        food_summary = f"Logged {len(foods)} food item(s) in the last day, {high} high FODMAP."
    else:
        food_summary = "No food logged in the last day."
    if symptoms:
        counts: Dict[str, int] = {}
        for entry in symptoms:
            for s in entry.symptoms:
                counts[s.name] = counts.get(s.name, 0) + 1
        listed = ", ".join(f"{name} x{n}" for name, n in sorted(counts.items(), key=lambda kv: -kv[1]))
        symptom_summary = f"Reported symptoms in the last day: {listed}."
    else:
        symptom_summary = "No symptoms reported in the last day."
    return food_summary, symptom_summary
