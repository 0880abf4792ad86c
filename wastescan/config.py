"""TOML configuration loader for the waste scan tool."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class StorageConfig:
    backend: str = "sqlite"
    path: str = "~/.config/wastescan/wastescan.db"


@dataclass
class GeminiVisionConfig:
    api_key: str = ""
    model: str = "gemini-2.5-flash"


@dataclass
class ClaudeVisionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class VisionConfig:
    backend: str = "gemini"
    gemini: GeminiVisionConfig = field(default_factory=GeminiVisionConfig)
    claude: ClaudeVisionConfig = field(default_factory=ClaudeVisionConfig)


@dataclass
class CameraConfig:
    index: int = 0
    save_dir: str = "/tmp/wastescan"


@dataclass
class PrinterConfig:
    printer_name: str = ""


@dataclass
class ReportConfig:
    output_dir: str = "."


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class WasteScanConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    printer: PrinterConfig = field(default_factory=PrinterConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path | None = None) -> WasteScanConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path).expanduser()
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    sto = raw.get("storage", {})
    vis = raw.get("vision", {})
    cam = raw.get("camera", {})
    prn = raw.get("printer", {})
    rpt = raw.get("report", {})
    log = raw.get("logging", {})

    gemini_cfg = vis.get("gemini", {})
    claude_cfg = vis.get("claude", {})

    # Resolve API keys: config file → environment variable
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )

    return WasteScanConfig(
        storage=StorageConfig(
            backend=sto.get("backend", "sqlite"),
            path=sto.get("path", "~/.config/wastescan/wastescan.db"),
        ),
        vision=VisionConfig(
            backend=vis.get("backend", "gemini"),
            gemini=GeminiVisionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.5-flash"),
            ),
            claude=ClaudeVisionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        camera=CameraConfig(
            index=cam.get("index", 0),
            save_dir=cam.get("save_dir", "/tmp/wastescan"),
        ),
        printer=PrinterConfig(
            printer_name=prn.get("printer_name", ""),
        ),
        report=ReportConfig(
            output_dir=rpt.get("output_dir", "."),
        ),
        logging=LoggingConfig(
            level=str(log.get("level", "WARNING")).upper(),
        ),
    )
