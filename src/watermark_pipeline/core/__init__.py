"""Core utilities and shared components for the watermark pipeline."""

from .logging_config import get_logger, set_debug_logging, setup_logger
from .exceptions import (
    ConfigurationError,
    CopyError,
    DecodeError,
    EncodeError,
    FileProcessingError,
    FilesystemError,
    FontError,
    InputNotADirectoryError,
    MetadataError,
    PipelineError,
    with_error_handling,
)
from .models import (
    EntryItem,
    EntryResult,
    FileErrorPolicy,
    MetadataBlob,
    PipelineConfig,
    Rules,
    RunSummary,
    Scale,
    WatermarkConfig,
)
from .rules import is_eligible
from .watermark import WATERMARK_CANVAS_SIZE, build_watermark, load_font
from .compositor import composite
from .metadata import read_metadata, transplant_metadata
from .progress import ProgressSink, ProgressTracker, TqdmProgressSink

__all__ = [
    "setup_logger",
    "get_logger",
    "set_debug_logging",
    "PipelineError",
    "InputNotADirectoryError",
    "FontError",
    "FilesystemError",
    "ConfigurationError",
    "FileProcessingError",
    "DecodeError",
    "EncodeError",
    "MetadataError",
    "CopyError",
    "with_error_handling",
    "Scale",
    "WatermarkConfig",
    "Rules",
    "FileErrorPolicy",
    "PipelineConfig",
    "EntryItem",
    "EntryResult",
    "RunSummary",
    "MetadataBlob",
    "is_eligible",
    "WATERMARK_CANVAS_SIZE",
    "build_watermark",
    "load_font",
    "composite",
    "read_metadata",
    "transplant_metadata",
    "ProgressSink",
    "ProgressTracker",
    "TqdmProgressSink",
]
