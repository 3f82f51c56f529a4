# -*- coding: utf-8 -*-
"""Trends — Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from ..schema import CamelModel

TrendRange = Literal["1D", "7D", "30D", "90D", "1Y", "ALL"]


class MacroPoint(CamelModel):
    date: str
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0


class CaloriePoint(CamelModel):
    date: str
    calories: float = 0.0


class SafetyPoint(CamelModel):
    date: str
    safe: int = 0
    unsafe: int = 0
    not_marked: int = 0


class FodmapPoint(CamelModel):
    date: str
    green: int = 0
    yellow: int = 0
    red: int = 0
    unrated: int = 0


class SymptomFrequency(CamelModel):
    name: str
    value: int


class TrendsResponse(CamelModel):
    range: TrendRange
    start: Optional[datetime] = Field(None, description="Inclusive lower bound; null means no bound.")
    end: datetime
    retention_clamped: bool = False
    macros: List[MacroPoint] = Field(default_factory=list)
    calories: List[CaloriePoint] = Field(default_factory=list)
    safety: List[SafetyPoint] = Field(default_factory=list)
    fodmap: List[FodmapPoint] = Field(default_factory=list)
    symptom_frequency: List[SymptomFrequency] = Field(default_factory=list)
