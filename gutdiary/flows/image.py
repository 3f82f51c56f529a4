# -*- coding: utf-8 -*-
"""Food photo identification flow."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from ..config import settings
from ..schema import CamelModel
from .base import Flow
from .client import ModelClient
from .errors import FlowError, ModelOutputError
from .parsing import first_present

NO_OUTPUT_MESSAGE = "AI processing failed to return an output."

_DATA_URI_RE = re.compile(r"^data:(image/[A-Za-z0-9.+-]+);base64,(.+)$", re.DOTALL)


class IdentifyFoodFromImageInput(CamelModel):
    image_data_uri: str = Field(
        ...,
        description="Photo of a food item or packaging as 'data:<mimetype>;base64,<encoded_data>'.",
    )
    user_locale: Optional[str] = Field(None, description="e.g. en-US, used for units and food names.")

    @field_validator("image_data_uri")
    @classmethod
    def _check_data_uri(cls, value: str) -> str:
        match = _DATA_URI_RE.match(value.strip())
        if not match:
            raise ValueError("imageDataUri must be a base64 data URI with an image MIME type")
        payload = re.sub(r"\s+", "", match.group(2))
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Invalid base64 image: {exc}") from exc
        if not raw:
            raise ValueError("Image is empty")
        if len(raw) > settings.max_image_bytes:
            raise ValueError(f"Image too large: {len(raw)} bytes > {settings.max_image_bytes}")
        return f"data:{match.group(1)};base64,{payload}"


class IdentifyFoodFromImageOutput(CamelModel):
    identified_food_name: Optional[str] = Field(None, description="Most likely product or dish name.")
    identified_ingredients: Optional[str] = Field(
        None,
        description="Comma-separated ingredients. OCR'd nutrient quantities (e.g. 'Vitamin D3 50000 IU') are kept verbatim.",
    )
    estimated_portion_size: Optional[str] = Field(None, description='Rough portion number, e.g. "1", "100".')
    estimated_portion_unit: Optional[str] = Field(None, description='Rough portion unit, e.g. "serving", "g", "item".')
    ocr_text: Optional[str] = Field(None, description="Visible text extracted from the image.")
    recognition_success: bool = Field(..., description="Whether the details are confident enough to pre-fill a food log.")
    error_message: Optional[str] = Field(None, description="Why identification failed or was problematic.")


def render_prompt(inp: IdentifyFoodFromImageInput) -> str:
    return f"""Analyze the attached image.
User's locale (optional, for context): {inp.user_locale or "unknown"}

Your tasks are:
1. Identify the primary food item(s). For packaged food, identify the product name; for a dish, the dish. Output this as 'identifiedFoodName'.
2. Extract or infer a comma-separated list of main ingredients as 'identifiedIngredients'.
   * For packaged items, OCR the ingredients list.
   * For supplement facts panels or nutrition labels, include nutrient names with their exact OCR'd quantities (e.g. "Vitamin D3 50,000 IU", "Iron 10mg") verbatim. Do not simplify or omit them.
   * For a dish, list common ingredients.
3. Give a rough 'estimatedPortionSize' (e.g. "1", "100") and 'estimatedPortionUnit' (e.g. "serving", "g", "piece", "item", "bowl"). Prefer generic units if unsure.
4. Put any visible text in 'ocrText'.
5. Set 'recognitionSuccess' to true only if 'identifiedFoodName' and 'identifiedIngredients' are good enough to pre-fill a food logging form.
6. If 'recognitionSuccess' is false, explain briefly in 'errorMessage' (e.g. "Image is too blurry to identify food.").

Example for a banana: identifiedFoodName "Banana", identifiedIngredients "Banana", estimatedPortionSize "1", estimatedPortionUnit "medium", recognitionSuccess true."""


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def normalize_identification(obj: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(obj)
    ingredients = first_present(out, ("identifiedIngredients", "identified_ingredients"))
    if isinstance(ingredients, list):
        out.pop("identified_ingredients", None)
        out["identifiedIngredients"] = ", ".join(str(i).strip() for i in ingredients if str(i).strip())

    success = _as_bool(first_present(out, ("recognitionSuccess", "recognition_success")))
    out.pop("recognition_success", None)
    if success is None:
        name = first_present(out, ("identifiedFoodName", "identified_food_name"))
        success = bool(name and str(name).strip())
    out["recognitionSuccess"] = success
    return out


def recognition_failed(exc: FlowError, inp: IdentifyFoodFromImageInput) -> IdentifyFoodFromImageOutput:  # noqa: ARG001
    if isinstance(exc, ModelOutputError) and exc.empty:
        message = NO_OUTPUT_MESSAGE
    else:
        message = f"AI processing failed: {exc}"
    return IdentifyFoodFromImageOutput(recognition_success=False, error_message=message)


IMAGE_FLOW: Flow[IdentifyFoodFromImageInput, IdentifyFoodFromImageOutput] = Flow(
    "identify_food_from_image",
    input_model=IdentifyFoodFromImageInput,
    output_model=IdentifyFoodFromImageOutput,
    render=render_prompt,
    system="You are an expert food identification AI.",
    temperature=0.2,
    image_field="image_data_uri",
    normalize=normalize_identification,
    fallback=recognition_failed,
)


async def identify_food_from_image(data: Any, *, client: Optional[ModelClient] = None) -> IdentifyFoodFromImageOutput:
    return await IMAGE_FLOW.run(data, client=client)
