from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Job Application Copilot"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8788
    log_level: str = "INFO"
    log_file: str = ""

    database_url: str = "sqlite:///./data/copilot.db"
    data_dir: Path = Path("./data")

    browser_user_data_dir: Path = Path("./data/browser_profile")
    browser_headless: bool = False
    browser_channel: str = ""
    browser_executable_path: str = ""
    browser_nav_timeout_sec: int = 30
    browser_viewport_width: int = 1280
    browser_viewport_height: int = 720

    settle_delay_ms: int = 3000
    stabilization_delay_ms: int = 2000
    poll_interval_ms: int = 2000
    human_step_timeout_sec: int = 300
    max_monitor_cycles: int = 20

    notifications_enabled: bool = True
    notification_sound: bool = True

    stale_run_threshold_min: int = 60
    cors_origins: str = "http://127.0.0.1:8788"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("poll_interval_ms", "max_monitor_cycles", "human_step_timeout_sec")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def human_step_timeout_ms(self) -> int:
        return self.human_step_timeout_sec * 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
