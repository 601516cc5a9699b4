"""Shared data models for the watermark pipeline."""

from enum import Enum
from pathlib import Path
from typing import FrozenSet, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TEXT = "© Copyright"
DEFAULT_COLOR = (0, 0, 0, 110)
DEFAULT_TEXT_HEIGHT = 28.0
SCALE_FACTOR = 2.3


class Scale(BaseModel):
    """Horizontal and vertical font size of the watermark text, in pixels."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(gt=0)
    y: float = Field(gt=0)

    @classmethod
    def from_height(cls, height: float) -> "Scale":
        return cls(x=height * SCALE_FACTOR, y=height * SCALE_FACTOR)


class WatermarkConfig(BaseModel):
    """Text, color and size of the watermark rendered once per run."""

    model_config = ConfigDict(frozen=True)

    text: str = DEFAULT_TEXT
    color: Tuple[int, int, int, int] = DEFAULT_COLOR
    scale: Scale = Field(default_factory=lambda: Scale.from_height(DEFAULT_TEXT_HEIGHT))
    font_path: Optional[Path] = None

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: Tuple[int, int, int, int]) -> Tuple[int, int, int, int]:
        if any(channel < 0 or channel > 255 for channel in value):
            raise ValueError(f"color channels must be within 0..255, got {value}")
        return value


class Rules(BaseModel):
    """
    Rules selecting which files get watermarked.

    excluded_dirs: a file is skipped when any component of its path equals one
        of these names, e.g. "/some/path/.hidden/pic.jpg" with ".hidden".
    excluded_file_prefixes: a file is skipped when its name starts with one of
        these, e.g. "background.png" with "back".
    allowed_extensions: extensions eligible for watermarking, compared
        case-insensitively.
    """

    model_config = ConfigDict(frozen=True)

    excluded_dirs: FrozenSet[str] = frozenset()
    excluded_file_prefixes: FrozenSet[str] = frozenset()
    allowed_extensions: FrozenSet[str] = frozenset()

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value):
        if isinstance(value, str):
            value = [value]
        return frozenset(ext.lower().lstrip(".") for ext in value)

    @classmethod
    def default(cls) -> "Rules":
        return cls(
            excluded_dirs={".hidden"},
            excluded_file_prefixes={"background"},
            allowed_extensions={"jpg", "jpeg", "png", "bmp", "gif"},
        )

    def is_eligible(self, path) -> bool:
        from .rules import is_eligible

        return is_eligible(path, self)


class FileErrorPolicy(str, Enum):
    """What to do when a plain copy fails."""

    SKIP = "skip"
    ABORT = "abort"


class PipelineConfig(BaseModel):
    """Configuration for one watermarking run."""

    input_dir: Path
    output_dir: Path
    watermark: WatermarkConfig = Field(default_factory=WatermarkConfig)
    rules: Rules = Field(default_factory=Rules.default)
    processor: Literal["serial", "multithread"] = "multithread"
    max_workers: int = Field(default=8, ge=1)
    on_file_error: FileErrorPolicy = FileErrorPolicy.SKIP
    debug: bool = False


class EntryItem(BaseModel):
    """A visited filesystem node and its mirrored destination."""

    source_path: Path
    dest_path: Path
    is_dir: bool = False
    eligible: bool = False

    @property
    def action(self) -> Literal["directory", "watermark", "copy"]:
        if self.is_dir:
            return "directory"
        return "watermark" if self.eligible else "copy"


class EntryResult(BaseModel):
    """Result of processing a single entry."""

    source_path: Path
    dest_path: Path
    action: Literal["directory", "watermark", "copy"]
    success: bool = False
    error: str = ""
    metadata_preserved: bool = False
    processing_time: float = 0.0


class RunSummary(BaseModel):
    """Counts reported once a run completes."""

    total_entries: int = 0
    directories: int = 0
    watermarked: int = 0
    copied: int = 0
    error_count: int = 0
    elapsed: float = 0.0


class MetadataBlob(BaseModel):
    """EXIF and ICC payloads lifted from a source container."""

    exif: Optional[bytes] = None
    icc_profile: Optional[bytes] = None

    @property
    def is_empty(self) -> bool:
        return not self.exif and not self.icc_profile
