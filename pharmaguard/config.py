"""
Application settings, loaded from PHARMAGUARD_* environment variables or .env.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PHARMAGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "PharmaGuard"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # ── Upload limits ──────────────────────────────────────────────────────
    max_vcf_size_mb: float = Field(default=5, gt=0)

    # ── Analysis ───────────────────────────────────────────────────────────
    min_polypharmacy_drugs: int = Field(default=2, ge=2)

    @property
    def max_vcf_size_bytes(self) -> int:
        return int(self.max_vcf_size_mb * 1024 * 1024)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance, injected into routes via Depends."""
    return Settings()
