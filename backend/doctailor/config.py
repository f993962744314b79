import os
from typing import List, Optional

from pydantic import BaseModel


class Settings(BaseModel):
    files_dir: str = "./files"
    storage_backend: str = "memory"  # memory|database
    database_url: str = "sqlite:///./doctailor.db"
    cors_origins: List[str] = []
    ai_provider: str = "http"  # http|agents
    ai_model: str = "gpt-4o-mini"
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    deepseek_api_key: Optional[str] = None
    deepseek_base_url: str = "https://api.deepseek.com"
    ai_timeout: float = 60.0
    max_upload_mb: int = 10
    file_retention_hours: float = 4.0
    cleanup_interval_seconds: float = 3600.0

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def _cors_origins() -> List[str]:
    origins_env = os.getenv("CORS_ORIGINS")
    origins = [o.strip() for o in (origins_env or "").split(",") if o.strip()]
    if not origins:
        # Local dev frontends (Vite 5173, Next.js 3000)
        origins = ["http://localhost:5173", "http://localhost:3000"]
    return origins


def get_settings() -> Settings:
    """Read settings from the environment.

    Not cached: tests monkeypatch environment variables between cases.
    """
    return Settings(
        files_dir=os.getenv("FILES_DIR", "./files"),
        storage_backend=os.getenv("STORAGE_BACKEND", "memory").lower(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./doctailor.db"),
        cors_origins=_cors_origins(),
        ai_provider=os.getenv("AI_PROVIDER", "http").lower(),
        ai_model=os.getenv("DEFAULT_AI_MODEL", "gpt-4o-mini"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        deepseek_api_key=os.getenv("DEEPSEEK_API_KEY") or None,
        deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com"),
        ai_timeout=float(os.getenv("AI_TIMEOUT", "60")),
        max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "10")),
        file_retention_hours=float(os.getenv("FILE_RETENTION_HOURS", "4")),
        cleanup_interval_seconds=float(os.getenv("CLEANUP_INTERVAL_SECONDS", "3600")),
    )
