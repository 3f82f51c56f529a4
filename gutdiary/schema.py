# -*- coding: utf-8 -*-
"""Shared Pydantic building blocks.

The web client speaks camelCase JSON; Python code uses snake_case attributes.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

_SEPARATORS_RE = re.compile(r"[\s\-_]+")

# Stripped before the length check, so "   " is rejected like "".
Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _choice_key(value: str) -> str:
    return _SEPARATORS_RE.sub("_", value.strip().lower())


def choice(*values: str) -> Any:
    """A string enum that tolerates case and separator drift in LLM output.

    ``choice("Green", "Yellow", "Red")`` accepts ``"green"`` or ``" RED "`` and
    stores the canonical spelling; anything else still fails validation.
    """
    lookup = {_choice_key(v): v for v in values}

    def _canonical(value: object) -> object:
        if isinstance(value, str):
            return lookup.get(_choice_key(value), value)
        return value

    return Annotated[Literal[values], BeforeValidator(_canonical)]  # type: ignore[valid-type]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )
