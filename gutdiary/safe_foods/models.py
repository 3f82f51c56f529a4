# -*- coding: utf-8 -*-
"""Safe foods — Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..flows.fodmap import AnalyzeFoodItemOutput, DetailedFodmapProfile
from ..schema import CamelModel


class SafeFood(CamelModel):
    id: str
    name: str
    ingredients: str = ""
    portion_size: str
    portion_unit: str
    fodmap_profile: DetailedFodmapProfile
    original_analysis: Optional[AnalyzeFoodItemOutput] = None
    created_at: Optional[datetime] = None


class SafeFoodListResponse(CamelModel):
    count: int
    safe_foods: List[SafeFood] = Field(default_factory=list)
