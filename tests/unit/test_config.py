"""Unit tests for configuration loading and validation."""

from pathlib import Path

import pytest

from utils.config import load_config, validate_config


@pytest.mark.unit
def test_defaults(monkeypatch):
    for name in ("MAX_EDGE", "AUTOSAVE_INTERVAL_SECONDS", "STRICT_LAYER_STATE", "STORAGE_DIR"):
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    assert config["max_edge"] == 512
    assert config["autosave_interval_seconds"] == 60
    assert config["strict_layer_state"] is False
    assert config["storage_dir"] == str(Path.home() / ".character_studio")


@pytest.mark.unit
def test_environment_overrides(monkeypatch, temp_dir):
    monkeypatch.setenv("MAX_EDGE", "256")
    monkeypatch.setenv("STRICT_LAYER_STATE", "true")
    monkeypatch.setenv("STORAGE_DIR", str(temp_dir))
    monkeypatch.setenv("GEMINI_IMAGE_MODEL", "custom-model")

    config = load_config()

    assert config["max_edge"] == 256
    assert config["strict_layer_state"] is True
    assert config["storage_dir"] == str(temp_dir)
    assert config["gemini_image_model"] == "custom-model"


@pytest.mark.unit
def test_valid_config_has_no_errors(sample_config):
    assert validate_config(sample_config) == []
    assert Path(sample_config["storage_dir"]).is_dir()


@pytest.mark.unit
def test_validation_errors(sample_config):
    sample_config.update(gemini_api_key="", max_edge=4, autosave_interval_seconds=0)
    errors = validate_config(sample_config)
    assert "GEMINI_API_KEY is required" in errors
    assert "MAX_EDGE must be at least 16" in errors
    assert "AUTOSAVE_INTERVAL_SECONDS must be positive" in errors
