# -*- coding: utf-8 -*-
"""Shared test helpers.

Nothing here imports ``gutdiary`` at module level: API tests reload the
package after pointing it at a temporary data root.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List


class ScriptedClient:
    """Stands in for ModelClient: returns queued reply texts, raises queued exceptions."""

    def __init__(self, *replies: Any) -> None:
        self.replies: List[Any] = list(replies)
        self.requests: List[Any] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def generate(self, request: Any) -> str:
        self.requests.append(request)
        if not self.replies:
            raise AssertionError("unexpected model call")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


def load_app(tmp: Path, *, admin_ids: str = ""):
    data_root = tmp / "data"
    os.environ["GUTDIARY_DATA_ROOT"] = str(data_root)
    os.environ["GUTDIARY_DB_PATH"] = str(data_root / "gutdiary.db")
    os.environ["GUTDIARY_JWT_SECRET"] = "test-secret"
    os.environ["GUTDIARY_ADMIN_UIDS"] = admin_ids
    os.environ["GUTDIARY_FREE_RETENTION_DAYS"] = "2"

    # Ensure settings/app reflect the env vars above.
    for name in list(sys.modules.keys()):
        if name == "gutdiary" or name.startswith("gutdiary."):
            sys.modules.pop(name, None)

    from gutdiary.api import app  # noqa: WPS433 (import inside helper for env control)

    return app


def auth_headers(user_id: str, **claims: Any) -> Dict[str, str]:
    from gutdiary.auth.security import create_access_token  # noqa: WPS433

    return {"Authorization": f"Bearer {create_access_token(user_id=user_id, **claims)}"}
