# -*- coding: utf-8 -*-
"""Auth — Pydantic models."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from ..schema import CamelModel


class UserProfile(CamelModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    premium: bool = False
    is_admin: bool = False
    created_at: str


class UpdateProfileRequest(CamelModel):
    display_name: Optional[str] = Field(None, max_length=80)


class PremiumRequest(CamelModel):
    premium: bool
