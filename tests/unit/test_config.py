"""Configuration loading tests for the task market service."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from task_market_service.config import Settings, clear_settings_cache, get_settings
from tests.helpers import config_yaml


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    def _write(content: str):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(content)
        monkeypatch.setenv("CONFIG_PATH", str(config_path))
        clear_settings_cache()
        return config_path

    return _write


@pytest.mark.unit
def test_config_loads_from_yaml(tmp_path, write_config):
    """Valid config loads without error."""
    write_config(config_yaml(str(tmp_path / "tm.db"), str(tmp_path / "logs")))

    settings = get_settings()

    assert isinstance(settings, Settings)
    assert settings.service.name == "task-market"
    assert settings.server.port == 8080
    assert settings.database.path == str(tmp_path / "tm.db")
    assert settings.identity.verify_token_path == "/tokens/verify"
    assert settings.messaging.assignments_path == "/conversations/task-assigned"
    assert settings.billing.rate_per_minute_cents == Decimal(50)
    assert settings.request.max_body_size == 4096


@pytest.mark.unit
def test_config_is_cached_until_cleared(tmp_path, write_config):
    write_config(config_yaml(str(tmp_path / "a.db"), str(tmp_path / "logs")))
    first = get_settings()
    assert get_settings() is first

    write_config(config_yaml(str(tmp_path / "b.db"), str(tmp_path / "logs")))
    assert get_settings().database.path == str(tmp_path / "b.db")


@pytest.mark.unit
def test_config_accepts_fractional_rate(tmp_path, write_config):
    write_config(
        config_yaml(str(tmp_path / "tm.db"), str(tmp_path / "logs"), rate_per_minute_cents='"12.5"')
    )

    assert get_settings().billing.rate_per_minute_cents == Decimal("12.5")


@pytest.mark.unit
def test_config_rejects_negative_rate(tmp_path, write_config):
    write_config(
        config_yaml(str(tmp_path / "tm.db"), str(tmp_path / "logs"), rate_per_minute_cents="-1")
    )

    with pytest.raises(ValidationError):
        get_settings()


@pytest.mark.unit
def test_config_rejects_extra_fields(tmp_path, write_config):
    """Extra keys raise ValidationError (extra='forbid')."""
    content = config_yaml(str(tmp_path / "tm.db"), str(tmp_path / "logs"))
    write_config(content.replace('  version: "0.1.0"\n', '  version: "0.1.0"\n  unknown: true\n'))

    with pytest.raises(ValidationError):
        get_settings()


@pytest.mark.unit
def test_config_missing_required_section(write_config):
    """Missing required sections raise ValidationError."""
    write_config('service:\n  name: "task-market"\n  version: "0.1.0"\n')

    with pytest.raises(ValidationError):
        get_settings()


@pytest.mark.unit
def test_config_must_be_a_mapping(write_config):
    write_config("- just\n- a list\n")

    with pytest.raises(ValueError, match="Invalid config file"):
        get_settings()
