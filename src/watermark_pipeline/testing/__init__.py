"""Testing utilities and fakes for the watermark pipeline."""

from .fakes import (
    FAKE_ICC_PROFILE,
    RecordingProgressSink,
    create_exif,
    create_test_image,
    setup_test_tree,
)

__all__ = [
    "FAKE_ICC_PROFILE",
    "RecordingProgressSink",
    "create_exif",
    "create_test_image",
    "setup_test_tree",
]
