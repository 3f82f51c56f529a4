# -*- coding: utf-8 -*-
"""Auth — profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from .models import PremiumRequest, UpdateProfileRequest, UserProfile
from .security import get_current_user, is_admin
from .storage import set_premium, update_display_name

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def user_profile(row: dict) -> UserProfile:
    return UserProfile(
        uid=row["id"],
        email=row.get("email"),
        display_name=row.get("display_name"),
        premium=bool(row.get("premium")),
        is_admin=is_admin(row),
        created_at=row["created_at"],
    )


@router.get("/me", response_model=UserProfile, summary="Get (or create) the current profile")
def me(user: dict = Depends(get_current_user)):
    return user_profile(user)


@router.patch("/me", response_model=UserProfile, summary="Update the display name")
def update_me(request: UpdateProfileRequest, user: dict = Depends(get_current_user)):
    display_name = (request.display_name or "").strip() or None
    row = update_display_name(user["id"], display_name)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    return user_profile(row)


@router.post("/me/premium", response_model=UserProfile, summary="Set the premium flag")
def update_premium(request: PremiumRequest, user: dict = Depends(get_current_user)):
    row = set_premium(user["id"], request.premium)
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    return user_profile(row)
