# -*- coding: utf-8 -*-
"""FODMAP analysis flow — portion-specific risk rating plus nutrition estimates."""

from __future__ import annotations

import math
import re
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..schema import CamelModel, Text, choice
from .base import Flow
from .client import ModelClient
from .parsing import coerce_numbers, first_present

FodmapScore = choice("Green", "Yellow", "Red")
GlycemicLevel = choice("Low", "Medium", "High")
FiberQuality = choice("Low", "Adequate", "High")
GutImpact = choice("Positive", "Negative", "Neutral", "Unknown")

MISSING_INGREDIENT_REASON = "No individual score returned; using the overall rating."

_INGREDIENT_SPLIT_RE = re.compile(r"[,;\n]+")
_MACRO_KEYS = ("calories", "protein", "carbs", "fat")


class DetailedFodmapProfile(CamelModel):
    """Estimated FODMAP subgroup amounts for one portion (grams or a relative 0-10 scale)."""

    fructans: Optional[float] = Field(None, description="Estimated Fructans content in the given portion.")
    galactans: Optional[float] = Field(None, description="Estimated Galactans (GOS) content in the given portion.")
    polyols_sorbitol: Optional[float] = Field(None, description="Estimated Sorbitol content in the given portion.")
    polyols_mannitol: Optional[float] = Field(None, description="Estimated Mannitol content in the given portion.")
    lactose: Optional[float] = Field(None, description="Estimated Lactose content in the given portion.")
    fructose: Optional[float] = Field(None, description="Estimated excess Fructose content in the given portion.")
    total_oligos: Optional[float] = Field(None, description="Total Oligosaccharides (Fructans + GOS).")
    total_polyols: Optional[float] = Field(None, description="Total Polyols (Sorbitol + Mannitol).")


class IngredientScore(CamelModel):
    ingredient: str = Field(..., min_length=1, description="The name of the ingredient.")
    score: FodmapScore = Field(..., description="FODMAP score for this ingredient given its likely amount in the portion.")
    reason: Optional[str] = Field(None, description="Brief reason for the score, especially if Yellow or Red.")


class GlycemicIndexInfo(CamelModel):
    value: Optional[float] = Field(None, ge=0)
    level: Optional[GlycemicLevel] = None


class DietaryFiberInfo(CamelModel):
    amount_grams: Optional[float] = Field(None, ge=0)
    quality: Optional[FiberQuality] = None


class MicronutrientDetail(CamelModel):
    name: str = Field(..., min_length=1, description='e.g. "Iron", "Vitamin C"')
    amount: Optional[str] = Field(None, description='e.g. "10 mg", "90 mcg"')
    daily_value_percent: Optional[float] = Field(None, ge=0)
    icon_name: Optional[str] = Field(None, description="Suggested icon name for the nutrient.")


class MicronutrientsInfo(CamelModel):
    notable: Optional[List[MicronutrientDetail]] = Field(None, description="Top 2-3 most significant micronutrients.")
    full_list: Optional[List[MicronutrientDetail]] = None


class GutBacteriaImpactInfo(CamelModel):
    sentiment: Optional[GutImpact] = None
    reasoning: Optional[str] = None


class AnalyzeFoodItemInput(CamelModel):
    food_item: Text = Field(..., description="The name of the food item to analyze.")
    ingredients: str = Field(..., description="A comma-separated list of ingredients in the food item.")
    portion_size: Text = Field(..., description='The size of the portion, e.g. "100", "0.5", "1".')
    portion_unit: Text = Field(..., description='The unit for the portion, e.g. "g", "cup", "medium apple".')


class AnalyzeFoodItemOutput(CamelModel):
    ingredient_fodmap_scores: List[IngredientScore] = Field(
        default_factory=list,
        description="Each ingredient and its FODMAP score, adjusted for the overall portion.",
    )
    overall_risk: FodmapScore = Field(..., description="Overall FODMAP risk of the item at the specified portion.")
    reason: str = Field(..., min_length=1, description="Why the item has this risk level; mention key ingredients and portion impact.")
    detailed_fodmap_profile: Optional[DetailedFodmapProfile] = None
    calories: Optional[float] = Field(None, ge=0, description="Estimated total calories for the portion.")
    protein: Optional[float] = Field(None, ge=0, description="Estimated protein in grams for the portion.")
    carbs: Optional[float] = Field(None, ge=0, description="Estimated carbohydrates in grams for the portion.")
    fat: Optional[float] = Field(None, ge=0, description="Estimated fat in grams for the portion.")
    glycemic_index_info: Optional[GlycemicIndexInfo] = None
    dietary_fiber_info: Optional[DietaryFiberInfo] = None
    micronutrients_info: Optional[MicronutrientsInfo] = None
    gut_bacteria_impact: Optional[GutBacteriaImpactInfo] = None


SYSTEM_PROMPT = (
    "You are an expert AI assistant specialized in FODMAP analysis and nutritional estimation "
    "for individuals with IBS. Your analysis MUST be portion-specific. Base it on established "
    "FODMAP data (conceptually, like Monash University's guidelines) and general nutritional databases."
)


def split_ingredients(ingredients: str) -> List[str]:
    """Comma/semicolon/newline separated ingredients, deduplicated case-insensitively."""
    seen = set()
    out: List[str] = []
    for part in _INGREDIENT_SPLIT_RE.split(ingredients or ""):
        name = part.strip()
        key = name.lower()
        if name and key not in seen:
            seen.add(key)
            out.append(name)
    return out


def render_prompt(inp: AnalyzeFoodItemInput) -> str:
    return f"""You will receive a food item, its ingredients, and a portion size. Your task is:
1. Analyze each ingredient for its FODMAP content.
2. Determine an overall FODMAP risk (Green, Yellow, Red) for the *specified portion* of the food item.
3. Explain the overall risk, highlighting impactful ingredients and how portion size affects the rating.
4. If possible, estimate a detailed FODMAP profile (fructans, GOS, lactose, excess fructose, sorbitol, mannitol) for the given portion.
5. Estimate the total calories and the protein, carbohydrates and fat (in grams) for the specified portion.
6. If possible, estimate the glycemic index, dietary fiber, 2-3 notable micronutrients and the likely impact on gut bacteria.

Scoring Guide (Portion-Specific):
* Green: Low FODMAP content at the specified portion. Generally well-tolerated.
* Yellow: Moderate FODMAP content at the specified portion. May trigger symptoms in sensitive individuals.
* Red: High FODMAP content at the specified portion. Likely to trigger symptoms.

Examples:
- Food: Apple, Portion: 1/2 medium -> FODMAP: Green, Calories: ~45, P: ~0g, C: ~12g, F: ~0g
- Food: Apple, Portion: 1 whole medium -> FODMAP: Red, Calories: ~90, P: ~0.5g, C: ~24g, F: ~0.3g
- Food: Garlic Bread, Ingredients: Bread, Butter, Garlic, Portion: 1 slice -> FODMAP: Red (garlic, fructans in bread), Calories: ~150, P: ~4g, C: ~20g, F: ~6g

Food Item: {inp.food_item}
Ingredients: {inp.ingredients or "(not provided)"}
Portion: {inp.portion_size} {inp.portion_unit}

For 'ingredientFodmapScores', list each ingredient with its score ('Green', 'Yellow', 'Red') and a brief reason if Yellow or Red.
For 'overallRisk', rate the whole item at the specified portion. For 'reason', explain the overallRisk.
If the ingredient list is generic (e.g. "pasta sauce"), make reasonable assumptions or state the limitation in 'reason'.
If a nutritional value cannot be estimated, omit the field or set it to null."""


def _normalize_scores(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, dict):
        value = [{"ingredient": k, "score": v} for k, v in value.items()]
    if not isinstance(value, list):
        return []
    out: List[Dict[str, Any]] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        name = first_present(item, ("ingredient", "name", "item"))
        score = first_present(item, ("score", "rating", "risk", "fodmapScore"))
        if not name or not isinstance(score, str):
            continue
        row: Dict[str, Any] = {"ingredient": str(name).strip(), "score": score}
        if item.get("reason"):
            row["reason"] = str(item["reason"])
        out.append(row)
    return out


def _nested(obj: Dict[str, Any], camel: str, snake: str) -> Optional[Dict[str, Any]]:
    value = obj.pop(camel, None)
    if value is None:
        value = obj.pop(snake, None)
    return value if isinstance(value, dict) else None


def normalize_analysis(obj: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(obj)
    scores = first_present(out, ("ingredientFodmapScores", "ingredient_fodmap_scores", "ingredients"))
    for key in ("ingredientFodmapScores", "ingredient_fodmap_scores", "ingredients"):
        out.pop(key, None)
    out["ingredientFodmapScores"] = _normalize_scores(scores)

    risk = first_present(out, ("overallRisk", "overall_risk", "overallFodmapRisk", "risk"))
    if risk is not None:
        out["overallRisk"] = risk

    coerce_numbers(out, _MACRO_KEYS)

    profile = _nested(out, "detailedFodmapProfile", "detailed_fodmap_profile")
    if profile is not None:
        out["detailedFodmapProfile"] = coerce_numbers(profile, list(profile.keys()))

    gi = _nested(out, "glycemicIndexInfo", "glycemic_index_info")
    if gi is not None:
        out["glycemicIndexInfo"] = coerce_numbers(gi, ("value",))

    fiber = _nested(out, "dietaryFiberInfo", "dietary_fiber_info")
    if fiber is not None:
        out["dietaryFiberInfo"] = coerce_numbers(fiber, ("amountGrams", "amount_grams"))

    micros = _nested(out, "micronutrientsInfo", "micronutrients_info")
    if micros is not None:
        for key in ("notable", "fullList", "full_list"):
            rows = micros.get(key)
            if not isinstance(rows, list):
                micros.pop(key, None)
                continue
            kept = [r for r in rows if isinstance(r, dict) and r.get("name")]
            for row in kept:
                coerce_numbers(row, ("dailyValuePercent", "daily_value_percent"))
            micros[key] = kept
        out["micronutrientsInfo"] = micros

    gut = _nested(out, "gutBacteriaImpact", "gut_bacteria_impact")
    if gut is not None:
        out["gutBacteriaImpact"] = gut
    return out


def _words(name: str) -> str:
    return " ".join(re.findall(r"\w+", name.lower()))


def _covers(scored: str, ingredient: str) -> bool:
    """Same name, or one name contained in the other as whole words ("Garlic" in "Fresh garlic", not "Egg" in "Eggplant")."""
    a, b = f" {_words(scored)} ", f" {_words(ingredient)} "
    if not a.strip() or not b.strip():
        return a == b
    return a == b or a in b or b in a


def ensure_ingredient_coverage(out: AnalyzeFoodItemOutput, inp: AnalyzeFoodItemInput) -> AnalyzeFoodItemOutput:
    """Append every listed ingredient the model left out, rated with the overall risk."""
    scores = list(out.ingredient_fodmap_scores)
    for name in split_ingredients(inp.ingredients):
        if any(_covers(s.ingredient, name) for s in scores):
            continue
        scores.append(IngredientScore(ingredient=name, score=out.overall_risk, reason=MISSING_INGREDIENT_REASON))
    if len(scores) == len(out.ingredient_fodmap_scores):
        return out
    return out.model_copy(update={"ingredient_fodmap_scores": scores})


def estimate_profile_from_name(food_name: str) -> DetailedFodmapProfile:
    """Deterministic placeholder profile for items the analysis returned no profile for.

    Only used as similarity input so that the same name always compares the same way.
    """
    h = 0
    for ch in food_name:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 2**31:
        h -= 2**32

    def pseudo(seed: int) -> float:
        x = math.sin(seed) * 10000
        return round(round(x - math.floor(x), 1) * 2, 1)

    return DetailedFodmapProfile(
        fructans=pseudo(h + 1),
        galactans=pseudo(h + 2),
        polyols_sorbitol=pseudo(h + 3),
        polyols_mannitol=pseudo(h + 4),
        lactose=pseudo(h + 5),
        fructose=pseudo(h + 6),
    )


FODMAP_FLOW: Flow[AnalyzeFoodItemInput, AnalyzeFoodItemOutput] = Flow(
    "analyze_food_item",
    input_model=AnalyzeFoodItemInput,
    output_model=AnalyzeFoodItemOutput,
    render=render_prompt,
    system=SYSTEM_PROMPT,
    normalize=normalize_analysis,
    finalize=ensure_ingredient_coverage,
)


async def analyze_food_item(data: Any, *, client: Optional[ModelClient] = None) -> AnalyzeFoodItemOutput:
    return await FODMAP_FLOW.run(data, client=client)
