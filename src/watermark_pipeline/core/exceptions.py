"""Custom exceptions and error handling utilities for the watermark pipeline."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

from .logging_config import get_logger


class PipelineError(Exception):
    """Base exception for all watermark pipeline errors."""


class InputNotADirectoryError(PipelineError):
    """Raised when the input path is missing or is not a directory."""


class FontError(PipelineError):
    """Raised when the watermark font cannot be loaded or parsed."""


class FilesystemError(PipelineError):
    """Raised when the tree cannot be walked or mirrored into the output."""


class ConfigurationError(PipelineError):
    """Error raised for invalid configuration options."""


class FileProcessingError(PipelineError):
    """Error raised when processing a single file fails."""


class DecodeError(FileProcessingError):
    """The source image could not be decoded."""


class EncodeError(FileProcessingError):
    """The composited image could not be encoded or written."""


class MetadataError(FileProcessingError):
    """EXIF/ICC segments could not be transplanted."""


class CopyError(FileProcessingError):
    """A non-eligible file could not be copied verbatim."""


F = TypeVar("F", bound=Callable[..., Any])


def with_error_handling(func: F) -> F:
    """Wrap a function with standardized error handling."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:  # type: ignore[override]
        logger = get_logger("processor")
        try:
            return func(*args, **kwargs)
        except PipelineError as exc:
            logger.debug(f"Pipeline error in {func.__name__}: {exc}")
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Unhandled error in {func.__name__}: {exc}", exc_info=True)
            raise FileProcessingError(str(exc)) from exc

    return wrapper  # type: ignore[return-value]
