from __future__ import annotations

from pathlib import Path

from jobcopilot.config import get_settings
from jobcopilot.db import models  # noqa: F401
from jobcopilot.db.base import Base
from jobcopilot.db.session import engine


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [
        settings.data_dir,
        settings.browser_user_data_dir,
    ]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(Base.metadata.tables)}
