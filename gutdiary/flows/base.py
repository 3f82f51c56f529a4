# -*- coding: utf-8 -*-
"""AI flow gateway — validate input, render prompt, call model, validate output."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Generic, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .client import ModelClient, ModelRequest
from .errors import FlowError, FlowInputError, ModelOutputError
from .parsing import parse_json_object

log = logging.getLogger(__name__)

InT = TypeVar("InT", bound=BaseModel)
OutT = TypeVar("OutT", bound=BaseModel)


class Flow(Generic[InT, OutT]):
    """One schema-validated prompt call.

    Hooks, all optional except ``render``:

    * ``short_circuit(inp)`` returns an output without calling the model, or None.
    * ``normalize(obj)`` massages the parsed dict before validation.
    * ``parse_text(text, inp)`` maps a non-JSON reply onto a dict, or returns None.
      A JSON object inside prose only counts as the reply when it carries one of
      the output fields (or one of ``reply_keys``); otherwise the prose wins.
    * ``finalize(out, inp)`` adjusts the validated output.
    * ``fallback(exc, inp)`` turns a model failure into a schema-valid output;
      without it the failure is re-raised.
    """

    def __init__(
        self,
        name: str,
        *,
        input_model: Type[InT],
        output_model: Type[OutT],
        render: Callable[[InT], str],
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        image_field: Optional[str] = None,
        json_mode: bool = True,
        short_circuit: Optional[Callable[[InT], Optional[OutT]]] = None,
        normalize: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
        parse_text: Optional[Callable[[str, InT], Optional[Dict[str, Any]]]] = None,
        finalize: Optional[Callable[[OutT, InT], OutT]] = None,
        fallback: Optional[Callable[[FlowError, InT], OutT]] = None,
        reply_keys: Iterable[str] = (),
    ) -> None:
        self.name = name
        self.input_model = input_model
        self.output_model = output_model
        self.render = render
        self.system = system
        self.temperature = temperature
        self.image_field = image_field
        self.json_mode = json_mode
        self.short_circuit = short_circuit
        self.normalize = normalize
        self.parse_text = parse_text
        self.finalize = finalize
        self.fallback = fallback
        self.reply_keys = frozenset(reply_keys) | {
            key for field_name, field in output_model.model_fields.items() for key in (field_name, field.alias) if key
        }

    def __repr__(self) -> str:
        return f"Flow({self.name!r})"

    def validate_input(self, data: Any) -> InT:
        if isinstance(data, self.input_model):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump(by_alias=True)
        try:
            return self.input_model.model_validate(data)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            first = errors[0] if errors else {}
            loc = ".".join(str(p) for p in first.get("loc", ()))
            message = f"Invalid input for {self.name}: {loc + ': ' if loc else ''}{first.get('msg', 'invalid value')}"
            raise FlowInputError(message, flow=self.name, errors=errors) from exc

    def system_prompt(self) -> str:
        schema = json.dumps(self.output_model.model_json_schema(by_alias=True), ensure_ascii=False)
        hint = f"When you answer in JSON, the object must follow this JSON schema:\n{schema}"
        if self.json_mode:
            hint = f"Respond with a single JSON object and nothing else. It must follow this JSON schema:\n{schema}"
        return f"{self.system}\n\n{hint}" if self.system else hint

    def build_request(self, inp: InT) -> ModelRequest:
        image = getattr(inp, self.image_field) if self.image_field else None
        return ModelRequest(
            prompt=self.render(inp),
            system=self.system_prompt(),
            image_data_uri=image,
            temperature=self.temperature,
            json_mode=self.json_mode,
        )

    def parse_output(self, text: str, inp: InT) -> OutT:
        if not (text or "").strip():
            raise ModelOutputError("Model returned an empty reply", empty=True, flow=self.name)

        try:
            obj: Optional[Dict[str, Any]] = parse_json_object(text)
        except ValueError as exc:
            obj = self.parse_text(text, inp) if self.parse_text else None
            if obj is None:
                raise ModelOutputError(str(exc), raw_text=text, flow=self.name) from exc
        else:
            if not self.json_mode and self.parse_text and not self.reply_keys.intersection(obj):
                obj = self.parse_text(text, inp) or obj

        if self.normalize:
            obj = self.normalize(obj)
        try:
            out = self.output_model.model_validate(obj)
        except ValidationError as exc:
            raise ModelOutputError(
                f"Model output does not match {self.output_model.__name__}: {exc.error_count()} error(s)",
                raw_text=text,
                flow=self.name,
            ) from exc

        if self.finalize:
            out = self.finalize(out, inp)
        return out

    async def run(self, data: Any, *, client: Optional[ModelClient] = None) -> OutT:
        inp = self.validate_input(data)
        if self.short_circuit:
            early = self.short_circuit(inp)
            if early is not None:
                return early

        client = client or ModelClient()
        try:
            text = await client.generate(self.build_request(inp))
            return self.parse_output(text, inp)
        except FlowError as exc:
            if exc.flow is None:
                exc.flow = self.name
            if self.fallback is None:
                log.warning("flow %s failed: %s", self.name, exc)
                raise
            log.warning("flow %s failed, returning fallback", self.name, exc_info=True)
            return self.fallback(exc, inp)
