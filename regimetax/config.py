"""
config.py — application settings.

Usage:
    from regimetax.config import settings
    print(settings.log_level)

Never use FastAPI Depends() for settings — import directly as a module-level singleton.
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore any extra env vars
    )

    # --- Tax rules ---
    # Path to an alternative configuration table (JSON). Empty → bundled FY 2025-26 table.
    tax_config_path: Optional[str] = None
    # Overrides the table's rate for "estimated tax saved" figures in the log.
    assumed_marginal_rate: Optional[float] = None

    # --- CORS ---
    # Comma-separated list of allowed frontend origins
    cors_origins: str = "http://localhost:5173,http://localhost:5174"

    # --- Application ---
    debug: bool = False
    log_level: str = "INFO"
    app_version: str = "0.1.0"

    @property
    def cors_origins_list(self) -> List[str]:
        """Split comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Module-level singleton: import this throughout the codebase
settings = Settings()
