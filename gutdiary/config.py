from __future__ import annotations

import os
from pathlib import Path
from typing import List


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings:
    """Centralized configuration for the GutDiary backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        # ---- Storage ----
        self.data_root: Path = Path(
            os.environ.get("GUTDIARY_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("GUTDIARY_DB_PATH") or (self.data_root / "gutdiary.db")
        ).expanduser()

        # ---- Identity ----
        # Tokens are issued by the identity provider and signed with this shared secret.
        # The dev fallback keeps local demos easy; never deploy with it.
        self.jwt_secret: str = os.environ.get("GUTDIARY_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("GUTDIARY_TOKEN_TTL_DAYS") or "7")
        self.admin_user_ids: List[str] = _split_csv(os.environ.get("GUTDIARY_ADMIN_UIDS") or "")

        # ---- Product rules ----
        self.max_image_bytes: int = int(os.environ.get("GUTDIARY_MAX_IMAGE_BYTES") or "4000000")
        self.free_retention_days: int = int(os.environ.get("GUTDIARY_FREE_RETENTION_DAYS") or "2")
        self.ai_history_days: int = int(os.environ.get("GUTDIARY_AI_HISTORY_DAYS") or "90")

        # ---- LLM (OpenAI-compatible chat completions) ----
        self.llm_api_key: str | None = os.environ.get("LLM_API_KEY")
        self.llm_base_url: str = os.environ.get(
            "LLM_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai"
        )
        self.llm_model: str = os.environ.get("LLM_MODEL", "gemini-2.0-flash")
        self.llm_timeout: float = float(os.environ.get("LLM_TIMEOUT", "60"))
        self.llm_max_tokens: int = int(os.environ.get("LLM_MAX_TOKENS", "2048"))
        self.llm_temperature: float = float(os.environ.get("LLM_TEMPERATURE", "0.4"))

        # ---- Server ----
        self.host: str = os.environ.get("GUTDIARY_HOST") or os.environ.get("HOST") or "127.0.0.1"
        self.port_raw: str = os.environ.get("GUTDIARY_PORT") or os.environ.get("PORT") or "8000"
        self.log_level: str = (os.environ.get("GUTDIARY_LOG_LEVEL") or "info").lower()

        cors = os.environ.get("GUTDIARY_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = _split_csv(cors)


settings = Settings()
