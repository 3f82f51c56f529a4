# -*- coding: utf-8 -*-
"""Trends — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user
from .models import TrendRange, TrendsResponse
from .service import compute_trends

router = APIRouter(prefix="/api/trends", tags=["Trends"])


@router.get("", response_model=TrendsResponse, summary="Per-day trends for a time range")
def trends(
    user: dict = Depends(get_current_user),
    range_: TrendRange = Query("30D", alias="range"),
):
    return compute_trends(user, range_)
