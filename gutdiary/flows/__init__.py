# -*- coding: utf-8 -*-
"""AI flows: one schema-validated prompt call each.

Every flow validates its input before any model call, and returns either a
schema-valid output or its own fallback. Flows never touch storage.
"""

from .client import ModelClient, ModelRequest, ModelSettings, get_model_client
from .correlation import get_symptom_correlations
from .daily_insights import get_daily_insights
from .dietitian import get_personalized_dietitian_insight
from .errors import FlowError, FlowInputError, ModelCallError, ModelOutputError
from .feedback import process_feedback
from .fodmap import analyze_food_item
from .image import identify_food_from_image
from .meal import process_meal_description
from .recommendation import get_user_recommendation
from .similarity import is_similar_to_safe_foods

__all__ = [
    # Client
    "ModelClient",
    "ModelRequest",
    "ModelSettings",
    "get_model_client",
    # Errors
    "FlowError",
    "FlowInputError",
    "ModelCallError",
    "ModelOutputError",
    # Flows
    "analyze_food_item",
    "is_similar_to_safe_foods",
    "identify_food_from_image",
    "process_meal_description",
    "process_feedback",
    "get_symptom_correlations",
    "get_personalized_dietitian_insight",
    "get_user_recommendation",
    "get_daily_insights",
]
