from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from user_export.config import Settings, get_settings


def test_defaults_match_operational_parameters(monkeypatch) -> None:
    for name in ("EXPORT_TOTAL_RECORDS", "EXPORT_BATCH_SIZE", "EXPORT_PACING_MS", "EXPORT_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.export_total_records == 1_000_000
    assert settings.export_batch_size == 100_000
    assert settings.export_pacing_ms == 500
    assert settings.data_dir == Path("data")
    assert settings.zip_compression_level == 9
    assert settings.overlap_policy == "reject"
    assert settings.cleanup_on_failure is False


def test_environment_overrides_are_read_once(monkeypatch) -> None:
    monkeypatch.setenv("EXPORT_PACING_MS", "0")
    monkeypatch.setenv("OVERLAP_POLICY", "queue")

    first = get_settings()
    monkeypatch.setenv("EXPORT_PACING_MS", "250")

    assert first.export_pacing_ms == 0
    assert first.overlap_policy == "queue"
    assert get_settings() is first


@pytest.mark.parametrize(
    "env",
    [
        {"EXPORT_BATCH_SIZE": "0"},
        {"ZIP_COMPRESSION_LEVEL": "11"},
        {"OVERLAP_POLICY": "drop"},
    ],
)
def test_invalid_values_fail_validation(monkeypatch, env: dict) -> None:
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    with pytest.raises(ValidationError):
        Settings()
