# -*- coding: utf-8 -*-
"""Safe-food similarity flow."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..schema import CamelModel
from .base import Flow
from .client import ModelClient
from .fodmap import DetailedFodmapProfile
from .parsing import first_present

NO_SAFE_FOODS_REASON = "No safe foods defined by the user to compare against."


class FoodItemWithPortionProfile(CamelModel):
    name: str = Field(..., min_length=1)
    portion_size: str = Field(..., min_length=1)
    portion_unit: str = Field(..., min_length=1)
    fodmap_profile: DetailedFodmapProfile = Field(..., description="FODMAP profile for the specified portion.")


class FoodSimilarityInput(CamelModel):
    current_food_item: FoodItemWithPortionProfile
    user_safe_food_items: List[FoodItemWithPortionProfile] = Field(default_factory=list)


class FoodSimilarityOutput(CamelModel):
    is_similar: bool = Field(..., description="Whether the item, at its portion, matches any safe food at its saved portion.")
    similarity_reason: Optional[str] = Field(
        None,
        description="If similar, which safe food it resembles and why.",
    )


def _profile_json(profile: DetailedFodmapProfile) -> str:
    return json.dumps(profile.model_dump(by_alias=True, exclude_none=True), separators=(",", ":"))


def render_prompt(inp: FoodSimilarityInput) -> str:
    cur = inp.current_food_item
    safe_lines = "\n".join(
        f"- Name: {sf.name}, Portion: {sf.portion_size} {sf.portion_unit}, FODMAP Profile: {_profile_json(sf.fodmap_profile)}"
        for sf in inp.user_safe_food_items
    )
    return f"""Current Food Item to Check:
Name: {cur.name}
Portion: {cur.portion_size} {cur.portion_unit}
FODMAP Profile (estimated for this portion, as JSON): {_profile_json(cur.fodmap_profile)}

User's Safe Foods (with their saved "safe" portions and profiles, as JSON):
{safe_lines}

Analyze the FODMAP profiles AND the portion contexts.
A food is "similar" if its FODMAP profile at the given portion is comparable to the profile of one of the user's safe foods *at its saved safe portion*.
Consider if the types and levels of FODMAPs (fructans, GOS, lactose, excess fructose, sorbitol, mannitol) in the current item are low AND align with at least one safe food's profile.
Minor variations in portion might be acceptable if the FODMAP load remains similar and low. If "1/2 cup cooked rice" is safe, "3/4 cup cooked rice" may be similar; if "1 slice of wheat bread" is safe, "2 slices" may be high in fructans and thus not similar.

Set 'isSimilar' to true only if the current item closely matches the safety profile of one of the safe foods.
If 'isSimilar' is true, 'similarityReason' should say which safe food it resembles and why."""


def no_safe_foods(inp: FoodSimilarityInput) -> Optional[FoodSimilarityOutput]:
    if inp.user_safe_food_items:
        return None
    return FoodSimilarityOutput(is_similar=False, similarity_reason=NO_SAFE_FOODS_REASON)


def normalize_similarity(obj: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(obj)
    flag = first_present(out, ("isSimilar", "is_similar", "similar"))
    if isinstance(flag, str):
        flag = flag.strip().lower() in {"true", "yes", "1"}
    if flag is not None:
        out["isSimilar"] = flag
    out.pop("is_similar", None)
    reason = first_present(out, ("similarityReason", "similarity_reason", "reason"))
    if reason is not None:
        out["similarityReason"] = str(reason)
    out.pop("similarity_reason", None)
    return out


SIMILARITY_FLOW: Flow[FoodSimilarityInput, FoodSimilarityOutput] = Flow(
    "is_similar_to_safe_foods",
    input_model=FoodSimilarityInput,
    output_model=FoodSimilarityOutput,
    render=render_prompt,
    system=(
        "You are an AI assistant that determines whether a given food item (with its specific portion) "
        "is similar to any of a user's \"safe\" foods (each with its saved portion and FODMAP profile)."
    ),
    short_circuit=no_safe_foods,
    normalize=normalize_similarity,
)


async def is_similar_to_safe_foods(data: Any, *, client: Optional[ModelClient] = None) -> FoodSimilarityOutput:
    return await SIMILARITY_FLOW.run(data, client=client)
