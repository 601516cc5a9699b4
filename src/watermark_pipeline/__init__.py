"""Recursive image watermarking with EXIF/ICC metadata preservation."""

__version__ = "0.1.0"

from .core import (  # noqa: E402
    FileErrorPolicy,
    PipelineConfig,
    PipelineError,
    Rules,
    RunSummary,
    Scale,
    WatermarkConfig,
)
from .pipeline import run, run_processing  # noqa: E402

__all__ = [
    "__version__",
    "FileErrorPolicy",
    "PipelineConfig",
    "PipelineError",
    "Rules",
    "RunSummary",
    "Scale",
    "WatermarkConfig",
    "run",
    "run_processing",
]
