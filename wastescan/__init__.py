"""Waste scan: record waste streams per container, measure separation and share reports."""

from .config import (
    CameraConfig,
    LoggingConfig,
    PrinterConfig,
    ReportConfig,
    StorageConfig,
    VisionConfig,
    WasteScanConfig,
    load_config,
)
from .editor import EditorSession
from .errors import (
    ExternalServiceError,
    MalformedStoredDataError,
    NewerSchemaError,
    PersistenceError,
    QuotaExceededError,
    ValidationError,
    WasteScanError,
)
from .metrics import ScanSummary, StreamShare, format_kg, format_percent, summarize
from .models import STREAM_PRESETS, EmbeddedPhoto, Scan, StreamEntry, new_draft
from .vision import AnalysisResult, ClassificationResult, VisionBackend, create_backend

__all__ = [
    "Scan",
    "StreamEntry",
    "EmbeddedPhoto",
    "STREAM_PRESETS",
    "new_draft",
    "ScanSummary",
    "StreamShare",
    "summarize",
    "format_kg",
    "format_percent",
    "EditorSession",
    "VisionBackend",
    "AnalysisResult",
    "ClassificationResult",
    "create_backend",
    "WasteScanError",
    "ValidationError",
    "PersistenceError",
    "QuotaExceededError",
    "MalformedStoredDataError",
    "NewerSchemaError",
    "ExternalServiceError",
    "WasteScanConfig",
    "StorageConfig",
    "VisionConfig",
    "CameraConfig",
    "PrinterConfig",
    "ReportConfig",
    "LoggingConfig",
    "load_config",
]
