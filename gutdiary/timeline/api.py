# -*- coding: utf-8 -*-
"""Timeline — API endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user
from ..flows.api import raise_for_flow_error
from ..flows.client import ModelClient, get_model_client
from ..flows.errors import FlowError
from ..safe_foods.models import SafeFood
from .models import (
    DescribeMealRequest,
    FoodFeedbackRequest,
    LogFoodRequest,
    LoggedFoodItem,
    LogSymptomsRequest,
    ManualMacroRequest,
    SymptomLog,
    TimelineListResponse,
    UpdateFoodRequest,
)
from .service import (
    log_described_meal,
    log_food,
    log_manual_macros,
    log_symptoms,
    mark_food_safe,
    reanalyze_food,
    set_food_feedback,
    update_food,
)
from .storage import delete_entry, list_entries

router = APIRouter(prefix="/api/timeline", tags=["Timeline"])


@router.get("", response_model=TimelineListResponse, response_model_exclude_none=True, summary="List timeline entries")
def list_timeline(
    user: dict = Depends(get_current_user),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    entry_type: Optional[Literal["food", "manual_macro", "symptom"]] = Query(None, alias="entryType"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    entries = list_entries(user["id"], start=start, end=end, entry_type=entry_type)
    return TimelineListResponse(count=len(entries), entries=entries[offset : offset + limit])


@router.post("/foods", response_model=LoggedFoodItem, response_model_exclude_none=True, summary="Log a food item")
async def create_food(
    request: LogFoodRequest,
    user: dict = Depends(get_current_user),
    client: ModelClient = Depends(get_model_client),
):
    return await log_food(user["id"], request, client=client)


@router.post(
    "/foods/describe",
    response_model=LoggedFoodItem,
    response_model_exclude_none=True,
    summary="Log a meal from a free-text description",
)
async def create_described_meal(
    request: DescribeMealRequest,
    user: dict = Depends(get_current_user),
    client: ModelClient = Depends(get_model_client),
):
    try:
        return await log_described_meal(user["id"], request, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post("/manual-macros", response_model=LoggedFoodItem, response_model_exclude_none=True, summary="Log macros by hand")
def create_manual_macros(request: ManualMacroRequest, user: dict = Depends(get_current_user)):
    return log_manual_macros(user["id"], request)


@router.patch("/foods/{entry_id}", response_model=LoggedFoodItem, response_model_exclude_none=True, summary="Edit a food item")
def edit_food(entry_id: str, request: UpdateFoodRequest, user: dict = Depends(get_current_user)):
    return update_food(user["id"], entry_id, request)


@router.post(
    "/foods/{entry_id}/reanalyze",
    response_model=LoggedFoodItem,
    response_model_exclude_none=True,
    summary="Run the FODMAP analysis again",
)
async def reanalyze(
    entry_id: str,
    user: dict = Depends(get_current_user),
    client: ModelClient = Depends(get_model_client),
):
    return await reanalyze_food(user["id"], entry_id, client=client)


@router.put("/foods/{entry_id}/feedback", response_model=LoggedFoodItem, response_model_exclude_none=True, summary="Rate a food item")
def food_feedback(entry_id: str, request: FoodFeedbackRequest, user: dict = Depends(get_current_user)):
    return set_food_feedback(user["id"], entry_id, request.user_feedback)


@router.post("/foods/{entry_id}/mark-safe", response_model=SafeFood, status_code=201, summary="Add a food item to safe foods")
def mark_safe(entry_id: str, user: dict = Depends(get_current_user)):
    return mark_food_safe(user["id"], entry_id)


@router.post("/symptoms", response_model=SymptomLog, response_model_exclude_none=True, summary="Log symptoms")
def create_symptoms(request: LogSymptomsRequest, user: dict = Depends(get_current_user)):
    return log_symptoms(user["id"], request)


@router.delete("/{entry_id}", summary="Delete a timeline entry")
def remove_entry(entry_id: str, user: dict = Depends(get_current_user)):
    if not delete_entry(user["id"], entry_id):
        raise HTTPException(status_code=404, detail="Timeline entry not found")
    return {"status": "ok"}
