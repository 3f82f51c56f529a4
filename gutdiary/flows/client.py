# -*- coding: utf-8 -*-
"""Model invocation client — OpenAI-compatible chat completions over httpx."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from .errors import ModelCallError, ModelOutputError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSettings:
    base_url: str
    api_key: Optional[str]
    model: str
    timeout: float
    max_tokens: int
    temperature: float


@dataclass(frozen=True)
class ModelRequest:
    prompt: str
    system: Optional[str] = None
    image_data_uri: Optional[str] = None
    temperature: Optional[float] = None
    json_mode: bool = True


def resolve_model_settings() -> ModelSettings:
    return ModelSettings(
        base_url=settings.llm_base_url.rstrip("/"),
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )


def _completions_url(base_url: str) -> str:
    if base_url.endswith("/chat/completions"):
        return base_url
    return f"{base_url}/chat/completions"


def _text_from_content(content: object) -> str:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    out: List[str] = []
    for part in content:
        if isinstance(part, str):
            out.append(part)
        elif isinstance(part, dict) and part.get("type") in (None, "text", "output_text"):
            text = part.get("text")
            if isinstance(text, str):
                out.append(text)
    return "".join(out)


def extract_completion_text(data: object) -> str:
    """Concatenate the assistant text of every choice in a chat-completions body."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list):
        return ""
    out: List[str] = []
    for choice in choices:
        if not isinstance(choice, dict):
            continue
        message = choice.get("message") or choice.get("delta")
        if isinstance(message, dict):
            out.append(_text_from_content(message.get("content")))
        elif isinstance(choice.get("text"), str):
            out.append(choice["text"])
    return "".join(out)


def extract_error_message(resp: httpx.Response) -> str:
    """Pull a human-readable message out of a provider error body."""
    try:
        body = resp.json()
    except ValueError:
        snippet = (resp.text or "").replace("\n", " ").strip()[:200]
        return snippet or resp.reason_phrase
    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and isinstance(err.get("message"), str):
            return err["message"]
        if isinstance(err, str) and err.strip():
            return err.strip()
        for key in ("message", "detail"):
            if isinstance(body.get(key), str):
                return body[key]
    return resp.reason_phrase


def _error_kind(status_code: int) -> str:
    if status_code in (401, 403):
        return "auth"
    if status_code in (429, 503):
        return "overloaded"
    if status_code == 400:
        return "bad_request"
    return "upstream"


class ModelClient:
    """Sends one rendered prompt (optionally with one image) and returns the reply text."""

    def __init__(
        self,
        cfg: Optional[ModelSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cfg = cfg or resolve_model_settings()
        self._transport = transport

    def build_payload(self, request: ModelRequest) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        if request.image_data_uri:
            user_content: Any = [
                {"type": "text", "text": request.prompt},
                {"type": "image_url", "image_url": {"url": request.image_data_uri}},
            ]
        else:
            user_content = request.prompt
        messages.append({"role": "user", "content": user_content})

        temperature = self.cfg.temperature if request.temperature is None else request.temperature
        payload: Dict[str, Any] = {
            "model": self.cfg.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": self.cfg.max_tokens,
        }
        if request.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def generate(self, request: ModelRequest) -> str:
        url = _completions_url(self.cfg.base_url)
        headers = {"Content-Type": "application/json"}
        if self.cfg.api_key:
            headers["Authorization"] = f"Bearer {self.cfg.api_key}"
        payload = self.build_payload(request)

        async with httpx.AsyncClient(
            timeout=self.cfg.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.post(url, headers=headers, json=payload)
            except httpx.TimeoutException as exc:
                raise ModelCallError(f"Model request timed out: {exc}", kind="timeout") from exc
            except httpx.HTTPError as exc:
                raise ModelCallError(f"Model API unreachable: {exc}", kind="network") from exc

        if resp.status_code >= 400:
            message = extract_error_message(resp)
            raise ModelCallError(
                f"Model API error ({resp.status_code}): {message}",
                kind=_error_kind(resp.status_code),
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            snippet = (resp.text or "").replace("\n", " ").strip()[:200]
            raise ModelOutputError(f"Model API returned non-JSON response: {snippet}", raw_text=resp.text or "") from exc

        text = extract_completion_text(data)
        log.debug("model %s replied with %d chars", self.cfg.model, len(text))
        return text


def get_model_client() -> ModelClient:
    """FastAPI dependency; tests override it with a scripted client."""
    return ModelClient()
