"""
Settings for the Time Tools backend, read from the environment (and .env).
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: list[str]) -> list[str]:
    value = (os.getenv(name) or "").strip()
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings"""

    database_url: str = "sqlite:///timetools.db"

    # JSON file standing in for the browser's local storage
    local_store_path: str = "timetools_local.json"

    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    # CSV downloads are named <prefix>_<tool>_<date>.csv
    export_prefix: str = "timer_data"

    # Seed synthetic history on the first anonymous visit
    seed_mock_data: bool = True

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL") or defaults.database_url,
            local_store_path=os.getenv("LOCAL_STORE_PATH") or defaults.local_store_path,
            cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
            export_prefix=os.getenv("EXPORT_PREFIX") or defaults.export_prefix,
            seed_mock_data=_env_flag("SEED_MOCK_DATA", defaults.seed_mock_data),
            log_level=(os.getenv("LOG_LEVEL") or defaults.log_level).upper(),
            log_file=os.getenv("LOG_FILE") or None,
        )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
