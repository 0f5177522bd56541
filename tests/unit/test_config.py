from __future__ import annotations

import pytest
from pydantic import ValidationError

from jobcopilot.config import Settings


def test_defaults_match_monitoring_timings() -> None:
    settings = Settings()

    assert settings.poll_interval_ms == 2000
    assert settings.human_step_timeout_ms == 300_000
    assert settings.max_monitor_cycles == 20
    assert settings.settle_delay_ms == 3000
    assert settings.stabilization_delay_ms == 2000


def test_test_environment_is_isolated() -> None:
    settings = Settings()

    assert settings.app_env == "test"
    assert settings.notifications_enabled is False
    assert "jobcopilot-tests-" in settings.database_url


@pytest.mark.parametrize("field", ["poll_interval_ms", "max_monitor_cycles", "human_step_timeout_sec"])
def test_timings_must_be_positive(field: str) -> None:
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_unknown_app_env_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(app_env="qa")


def test_cors_origin_list_splits_and_trims() -> None:
    settings = Settings(cors_origins="http://a.test, http://b.test ,")
    assert settings.cors_origin_list == ["http://a.test", "http://b.test"]
