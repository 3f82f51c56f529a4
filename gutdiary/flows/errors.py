# -*- coding: utf-8 -*-
"""Flow exceptions."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class FlowError(RuntimeError):
    """Base class for every failure raised by an AI flow."""

    def __init__(self, message: str, *, flow: Optional[str] = None) -> None:
        super().__init__(message)
        self.flow = flow


class FlowInputError(FlowError, ValueError):
    """Input did not match the flow's schema; no model call was made."""

    def __init__(self, message: str, *, flow: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message, flow=flow)
        self.errors = errors or []


class ModelCallError(FlowError):
    """Transport or HTTP failure talking to the model provider.

    ``kind`` is one of: timeout, network, auth, overloaded, bad_request, upstream.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str = "upstream",
        status_code: Optional[int] = None,
        flow: Optional[str] = None,
    ) -> None:
        super().__init__(message, flow=flow)
        self.kind = kind
        self.status_code = status_code


class ModelOutputError(FlowError):
    """The model replied, but the reply was empty, unparseable, or off-schema."""

    def __init__(self, message: str, *, empty: bool = False, raw_text: str = "", flow: Optional[str] = None) -> None:
        super().__init__(message, flow=flow)
        self.empty = empty
        self.raw_text = raw_text[:800]
