# -*- coding: utf-8 -*-
"""AI flows — API endpoints."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from ..auth.security import get_current_user
from ..schema import CamelModel
from ..timeline.service import build_correlation_input, build_dietitian_input, recent_activity_summaries
from .client import ModelClient, get_model_client
from .correlation import SymptomCorrelationOutput, get_symptom_correlations
from .daily_insights import DailyInsightsInput, DailyInsightsOutput, get_daily_insights
from .dietitian import PersonalizedDietitianOutput, get_personalized_dietitian_insight
from .errors import FlowError, FlowInputError
from .fodmap import AnalyzeFoodItemInput, AnalyzeFoodItemOutput, analyze_food_item
from .image import IdentifyFoodFromImageInput, IdentifyFoodFromImageOutput, identify_food_from_image
from .meal import ProcessMealDescriptionInput, ProcessMealDescriptionOutput, process_meal_description
from .recommendation import UserRecommendationInput, UserRecommendationOutput, get_user_recommendation
from .similarity import FoodSimilarityInput, FoodSimilarityOutput, is_similar_to_safe_foods

router = APIRouter(prefix="/api/ai", tags=["AI"])


class DietitianQuestion(CamelModel):
    user_question: str = Field(..., min_length=1, max_length=2000)


def raise_for_flow_error(exc: FlowError) -> NoReturn:
    if isinstance(exc, FlowInputError):
        raise HTTPException(status_code=422, detail={"message": str(exc), "errors": exc.errors}) from exc
    raise HTTPException(status_code=502, detail=f"AI flow {exc.flow} failed: {exc}") from exc


@router.post("/analyze-food", response_model=AnalyzeFoodItemOutput, response_model_exclude_none=True, summary="FODMAP analysis")
async def analyze_food(
    request: AnalyzeFoodItemInput,
    user: dict = Depends(get_current_user),  # noqa: ARG001
    client: ModelClient = Depends(get_model_client),
):
    try:
        return await analyze_food_item(request, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post("/food-similarity", response_model=FoodSimilarityOutput, response_model_exclude_none=True, summary="Compare with safe foods")
async def food_similarity(
    request: FoodSimilarityInput,
    user: dict = Depends(get_current_user),  # noqa: ARG001
    client: ModelClient = Depends(get_model_client),
):
    try:
        return await is_similar_to_safe_foods(request, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post(
    "/identify-food-image",
    response_model=IdentifyFoodFromImageOutput,
    response_model_exclude_none=True,
    summary="Identify food from a photo",
)
async def identify_food_image(
    request: IdentifyFoodFromImageInput,
    user: dict = Depends(get_current_user),  # noqa: ARG001
    client: ModelClient = Depends(get_model_client),
):
    try:
        return await identify_food_from_image(request, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post(
    "/meal-description",
    response_model=ProcessMealDescriptionOutput,
    summary="Structure a free-text meal description",
)
async def meal_description(
    request: ProcessMealDescriptionInput,
    user: dict = Depends(get_current_user),  # noqa: ARG001
    client: ModelClient = Depends(get_model_client),
):
    try:
        return await process_meal_description(request, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post("/recommendation", response_model=UserRecommendationOutput, summary="Short wellness tip")
async def recommendation(
    request: UserRecommendationInput,
    user: dict = Depends(get_current_user),
    client: ModelClient = Depends(get_model_client),
):
    if not request.recent_food_log_summary and not request.recent_symptom_summary:
        food_summary, symptom_summary = recent_activity_summaries(user["id"])
        request = request.model_copy(
            update={"recent_food_log_summary": food_summary, "recent_symptom_summary": symptom_summary}
        )
    if not request.user_id:
        request = request.model_copy(update={"user_id": user["id"]})
    try:
        return await get_user_recommendation(request, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post("/daily-insights", response_model=DailyInsightsOutput, response_model_exclude_none=True, summary="Insights for one day")
async def daily_insights(
    request: DailyInsightsInput,
    user: dict = Depends(get_current_user),  # noqa: ARG001
    client: ModelClient = Depends(get_model_client),
):
    try:
        return await get_daily_insights(request, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post(
    "/symptom-correlations",
    response_model=SymptomCorrelationOutput,
    response_model_exclude_none=True,
    summary="Food/symptom patterns from the caller's recent timeline",
)
async def symptom_correlations(
    user: dict = Depends(get_current_user),
    client: ModelClient = Depends(get_model_client),
):
    try:
        return await get_symptom_correlations(build_correlation_input(user["id"]), client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)


@router.post("/dietitian", response_model=PersonalizedDietitianOutput, summary="Ask the AI dietitian")
async def dietitian(
    request: DietitianQuestion,
    user: dict = Depends(get_current_user),
    client: ModelClient = Depends(get_model_client),
):
    data = build_dietitian_input(user["id"], request.user_question, user)
    try:
        return await get_personalized_dietitian_insight(data, client=client)
    except FlowError as exc:
        raise_for_flow_error(exc)
