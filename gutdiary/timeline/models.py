# -*- coding: utf-8 -*-
"""Timeline — Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from ..flows.correlation import Symptom
from ..flows.fodmap import AnalyzeFoodItemOutput, DetailedFodmapProfile
from ..schema import CamelModel, Text

UserFeedback = Literal["safe", "unsafe"]

COMMON_SYMPTOMS: List[Symptom] = [
    Symptom(id="bloating", name="Bloating"),
    Symptom(id="gas", name="Gas"),
    Symptom(id="cramps", name="Cramps"),
    Symptom(id="diarrhea", name="Diarrhea"),
    Symptom(id="constipation", name="Constipation"),
    Symptom(id="nausea", name="Nausea"),
    Symptom(id="reflux", name="Reflux"),
    Symptom(id="other", name="Other"),
]

MANUAL_MACRO_NAME = "Manual Macro Adjustment"


class LoggedFoodItem(CamelModel):
    entry_type: Literal["food", "manual_macro"] = "food"
    id: str
    name: str
    original_name: Optional[str] = None
    ingredients: str = ""
    portion_size: str
    portion_unit: str
    timestamp: datetime
    fodmap_data: Optional[AnalyzeFoodItemOutput] = None
    is_similar_to_safe: Optional[bool] = None
    similarity_reason: Optional[str] = None
    user_fodmap_profile: Optional[DetailedFodmapProfile] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    source_description: Optional[str] = None
    user_feedback: Optional[UserFeedback] = None
    macros_overridden: bool = False
    warnings: List[str] = Field(default_factory=list)


class SymptomLog(CamelModel):
    entry_type: Literal["symptom"] = "symptom"
    id: str
    symptoms: List[Symptom] = Field(..., min_length=1)
    severity: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None
    timestamp: datetime
    linked_food_item_ids: List[str] = Field(default_factory=list)


TimelineEntry = Annotated[Union[LoggedFoodItem, SymptomLog], Field(discriminator="entry_type")]
timeline_entry_adapter: TypeAdapter = TypeAdapter(TimelineEntry)


class LogFoodRequest(CamelModel):
    name: Text = Field(..., max_length=200)
    ingredients: str = Field("", max_length=2000)
    portion_size: Text = Field(..., max_length=32)
    portion_unit: Text = Field(..., max_length=32)
    timestamp: Optional[datetime] = None
    source_description: Optional[str] = Field(None, max_length=4000)


class DescribeMealRequest(CamelModel):
    meal_description: str = Field(..., min_length=3, max_length=4000)
    timestamp: Optional[datetime] = None


class ManualMacroRequest(CamelModel):
    name: str = Field(MANUAL_MACRO_NAME, min_length=1, max_length=200)
    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)
    timestamp: Optional[datetime] = None


class UpdateFoodRequest(CamelModel):
    name: Optional[Text] = Field(None, max_length=200)
    ingredients: Optional[str] = Field(None, max_length=2000)
    portion_size: Optional[Text] = Field(None, max_length=32)
    portion_unit: Optional[Text] = Field(None, max_length=32)
    timestamp: Optional[datetime] = None
    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)


class FoodFeedbackRequest(CamelModel):
    user_feedback: Optional[UserFeedback] = None


class LogSymptomsRequest(CamelModel):
    symptom_ids: List[str] = Field(default_factory=list, description="Ids from the common symptom list.")
    custom_symptom: Optional[str] = Field(None, max_length=80, description="Used when 'other' is selected.")
    severity: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=2000)
    timestamp: Optional[datetime] = None
    linked_food_item_ids: List[str] = Field(default_factory=list)


class TimelineListResponse(CamelModel):
    count: int
    entries: List[TimelineEntry] = Field(default_factory=list)
