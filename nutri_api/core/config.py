# nutri_api/core/config.py
from functools import lru_cache
from typing import List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PAGE_SIZE = 100
MAX_SCAN_PAGES = 20  # at most DEFAULT_PAGE_SIZE * MAX_SCAN_PAGES users scanned


class Settings(BaseSettings):
    # -------- App --------
    app_name: str = "Nutri API"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # -------- Supabase (auth admin + PostgREST) --------
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # -------- Upstream calls --------
    upstream_timeout_seconds: float = 10.0

    # -------- check-email fallback scan --------
    email_scan_page_size: int = DEFAULT_PAGE_SIZE
    email_scan_max_pages: int = MAX_SCAN_PAGES

    # -------- CORS --------
    frontend_url: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("email_scan_page_size", "email_scan_max_pages")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @property
    def cors_origins(self) -> List[str]:
        # no FRONTEND_URL means any origin (local development)
        if not self.frontend_url:
            return ["*"]
        return [s.strip() for s in self.frontend_url.split(",") if s.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
