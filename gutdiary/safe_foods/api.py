# -*- coding: utf-8 -*-
"""Safe foods — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from .models import SafeFoodListResponse
from .storage import delete_safe_food, list_safe_foods

router = APIRouter(prefix="/api/safe-foods", tags=["SafeFoods"])


@router.get("", response_model=SafeFoodListResponse, summary="List safe foods")
def list_all(user: dict = Depends(get_current_user)):
    items = list_safe_foods(user["id"])
    return SafeFoodListResponse(count=len(items), safe_foods=items)


@router.delete("/{safe_food_id}", summary="Remove a safe food")
def remove(safe_food_id: str, user: dict = Depends(get_current_user)):
    delete_safe_food(user["id"], safe_food_id)
    return {"status": "ok"}
