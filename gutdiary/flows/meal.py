# -*- coding: utf-8 -*-
"""Meal description flow — free text to a named, structured meal."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from ..schema import CamelModel, Text
from .base import Flow
from .client import ModelClient
from .fodmap import AnalyzeFoodItemInput
from .parsing import as_str_list, first_present


class ProcessMealDescriptionInput(CamelModel):
    meal_description: Text = Field(
        ...,
        min_length=3,
        max_length=4000,
        description="Natural language description of the meal, with ingredients and approximate portions.",
    )


class ProcessMealDescriptionOutput(CamelModel):
    witty_name: Text = Field(..., description='A witty or cheeky name, e.g. "The Midnight Mistake".')
    primary_food_item_for_analysis: Text = Field(
        ...,
        description='Concise factual name of the meal for FODMAP analysis, e.g. "Oatmeal with blueberries".',
    )
    consolidated_ingredients: str = Field(..., description="Comma-separated list of all significant ingredients.")
    estimated_portion_size: Text = Field(..., description='Representative portion number, e.g. "1", "200".')
    estimated_portion_unit: Text = Field(..., description='Portion unit, e.g. "serving", "bowl", "g".')


def render_prompt(inp: ProcessMealDescriptionInput) -> str:
    return f"""Given a meal description, your tasks are to:
1. Generate a witty, cheeky, or uniquely descriptive name for the meal ('wittyName'). Consider the ingredients and implied context (a large meal or a snack). Examples:
   * "Greek Salad, large" -> "That Massive Bowl of Greek Purity"
   * "Fries + Ice Cream, late night" -> "The Midnight Mistake"
   * "Just lettuce" -> "Crisp Sadness"
2. Identify a concise, factual primary food item name that summarizes the meal for a follow-up FODMAP/nutritional analysis ('primaryFoodItemForAnalysis'). This is what the meal IS, not the witty name.
3. Create a consolidated, comma-separated list of all significant ingredients ('consolidatedIngredients').
4. Estimate a single representative overall portion size (numeric) for the entire meal ('estimatedPortionSize').
5. Estimate a single representative overall portion unit for the entire meal ('estimatedPortionUnit'), e.g. "serving", "bowl", "g", "ml", "plate".

The user described their meal as:
"{inp.meal_description}"
"""


def normalize_meal(obj: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(obj)
    ingredients = first_present(out, ("consolidatedIngredients", "consolidated_ingredients", "ingredients"))
    if ingredients is not None:
        out.pop("consolidated_ingredients", None)
        out["consolidatedIngredients"] = ", ".join(as_str_list(ingredients))
    return out


def to_analysis_input(meal: ProcessMealDescriptionOutput) -> AnalyzeFoodItemInput:
    return AnalyzeFoodItemInput(
        food_item=meal.primary_food_item_for_analysis,
        ingredients=meal.consolidated_ingredients,
        portion_size=meal.estimated_portion_size,
        portion_unit=meal.estimated_portion_unit,
    )


MEAL_FLOW: Flow[ProcessMealDescriptionInput, ProcessMealDescriptionOutput] = Flow(
    "process_meal_description",
    input_model=ProcessMealDescriptionInput,
    output_model=ProcessMealDescriptionOutput,
    render=render_prompt,
    system="You are an expert food analyst and a witty meal namer.",
    temperature=0.5,
    normalize=normalize_meal,
)


async def process_meal_description(data: Any, *, client: Optional[ModelClient] = None) -> ProcessMealDescriptionOutput:
    return await MEAL_FLOW.run(data, client=client)
