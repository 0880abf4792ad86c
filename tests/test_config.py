"""Tests for config loading."""

import tempfile
from pathlib import Path

from wastescan.config import WasteScanConfig, load_config


def test_load_config_defaults(monkeypatch):
    """Loading with no path returns all defaults."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    config = load_config()
    assert isinstance(config, WasteScanConfig)
    assert config.storage.backend == "sqlite"
    assert config.storage.path == "~/.config/wastescan/wastescan.db"
    assert config.vision.backend == "gemini"
    assert config.vision.gemini.api_key == ""
    assert config.vision.gemini.model == "gemini-2.5-flash"
    assert config.camera.index == 0
    assert config.camera.save_dir == "/tmp/wastescan"
    assert config.printer.printer_name == ""
    assert config.report.output_dir == "."
    assert config.logging.level == "WARNING"


def test_load_config_nonexistent_file():
    config = load_config("/nonexistent/path.toml")
    assert config.storage.backend == "sqlite"


def test_load_config_from_toml(monkeypatch):
    """Loading a valid TOML file populates config."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    toml_content = b"""\
[storage]
backend = "memory"
path = "/var/lib/wastescan.db"

[vision]
backend = "claude"

[vision.gemini]
api_key = "gemini-key"
model = "gemini-pro"

[vision.claude]
model = "claude-test"

[camera]
index = 2
save_dir = "/var/scans"

[printer]
printer_name = "Office_Laser"

[report]
output_dir = "/srv/reports"

[logging]
level = "info"
"""
    with tempfile.NamedTemporaryFile(suffix=".toml", delete=False) as f:
        f.write(toml_content)
        f.flush()
        config = load_config(f.name)

    assert config.storage.backend == "memory"
    assert config.storage.path == "/var/lib/wastescan.db"
    assert config.vision.backend == "claude"
    assert config.vision.gemini.api_key == "gemini-key"
    assert config.vision.gemini.model == "gemini-pro"
    assert config.vision.claude.api_key == ""
    assert config.vision.claude.model == "claude-test"
    assert config.camera.index == 2
    assert config.camera.save_dir == "/var/scans"
    assert config.printer.printer_name == "Office_Laser"
    assert config.report.output_dir == "/srv/reports"
    assert config.logging.level == "INFO"

    Path(f.name).unlink()


def test_env_var_api_keys(monkeypatch):
    """API keys fall back to environment variables."""
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-claude")
    config = load_config()
    assert config.vision.gemini.api_key == "env-gemini"
    assert config.vision.claude.api_key == "env-claude"


def test_config_file_key_beats_env(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini")
    path = tmp_path / "config.toml"
    path.write_text('[vision.gemini]\napi_key = "file-key"\n')
    assert load_config(path).vision.gemini.api_key == "file-key"
