# -*- coding: utf-8 -*-
"""Auth — bearer token verification and request identity.

The diary never handles passwords. An external identity provider signs
HS256 tokens with the shared secret; every request carries one and the
subject claim (``sub``, or ``uid`` for older tokens) becomes the user id.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

from ..config import settings
from .storage import get_or_create_user

log = logging.getLogger(__name__)

TOKEN_COOKIE_NAME = "gutdiary_token"
_HEADER = {"alg": "HS256", "typ": "JWT"}


def _segment(raw: Dict[str, Any]) -> str:
    data = json.dumps(raw, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _unsegment(segment: str) -> Any:
    padded = segment + "=" * (-len(segment) % 4)
    return json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))


def _signature(signing_input: str) -> bytes:
    return hmac.new(settings.jwt_secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def create_access_token(*, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> str:
    """Mint a token the way the identity provider does (local tooling and tests)."""
    issued = int(time.time())
    claims: Dict[str, Any] = {"sub": user_id, "iat": issued, "exp": issued + int(settings.token_ttl_days) * 86400}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    signing_input = f"{_segment(_HEADER)}.{_segment(claims)}"
    sig = base64.urlsafe_b64encode(_signature(signing_input)).decode("ascii").rstrip("=")
    return f"{signing_input}.{sig}"


def verify_token(token: str) -> Dict[str, Any]:
    """Return the claims of a well-signed, unexpired token or raise 401."""
    try:
        header_b64, claims_b64, sig_b64 = token.split(".")
        header = _unsegment(header_b64)
        if not isinstance(header, dict) or header.get("alg") != "HS256":
            raise ValueError("unsupported alg")
        padded = sig_b64 + "=" * (-len(sig_b64) % 4)
        if not hmac.compare_digest(_signature(f"{header_b64}.{claims_b64}"), base64.urlsafe_b64decode(padded)):
            raise ValueError("bad signature")
        claims = _unsegment(claims_b64)
        if not isinstance(claims, dict):
            raise ValueError("bad claims")
    except Exception as exc:
        log.debug("rejected token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    exp = claims.get("exp")
    if isinstance(exp, (int, float)) and exp < time.time():
        raise HTTPException(status_code=401, detail="Token expired")
    return claims


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(TOKEN_COOKIE_NAME) or None


def _claim_str(claims: Dict[str, Any], key: str) -> Optional[str]:
    value = claims.get(key)
    return value if isinstance(value, str) and value.strip() else None


def get_current_user_from_request(request: Request) -> Dict[str, Any]:
    cached = getattr(request.state, "user", None)
    if cached:
        return cached

    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    claims = verify_token(token)
    user_id = _claim_str(claims, "sub") or _claim_str(claims, "uid")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")

    user = get_or_create_user(
        user_id,
        email=_claim_str(claims, "email"),
        display_name=_claim_str(claims, "name"),
    )
    request.state.user = user
    return user


def get_current_user(user: Dict[str, Any] = Depends(get_current_user_from_request)) -> Dict[str, Any]:
    return user


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("id") in settings.admin_user_ids


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_admin(user):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
