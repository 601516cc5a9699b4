"""Overlay of the shared watermark onto a single source image."""

import io
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError, EncodeError, with_error_handling
from .image_utils import has_alpha, resolve_image_format
from .logging_config import get_logger
from .watermark import WATERMARK_CANVAS_SIZE


@with_error_handling
def composite(
    source_path: Union[str, Path],
    dest_path: Union[str, Path],
    watermark: Image.Image,
) -> None:
    """
    Decode, resize, watermark and re-encode one image.

    The source is resized to the watermark canvas with nearest-neighbor
    filtering and the watermark is alpha-composited on top at (0, 0). The
    output format follows the extension of `dest_path`. Metadata is not
    carried over here.

    Raises:
        DecodeError: If the source cannot be decoded
        EncodeError: If the destination format is unsupported or cannot be written
    """
    logger = get_logger("compositor")

    fmt = resolve_image_format(dest_path)
    if fmt is None:
        raise EncodeError(f"Unsupported output format for {dest_path}")

    try:
        with Image.open(source_path) as img:
            img.load()
            keep_alpha = has_alpha(img)
            resized = img.resize(WATERMARK_CANVAS_SIZE, Image.Resampling.NEAREST)
    except (OSError, SyntaxError, Image.DecompressionBombError, UnidentifiedImageError) as err:
        raise DecodeError(f"Unable to decode {source_path}: {err}") from err

    logger.debug(f"[{source_path}] Decoded and resized to {resized.size[0]}x{resized.size[1]}")

    canvas = resized.convert("RGBA")
    canvas.alpha_composite(watermark)

    if not keep_alpha or fmt == "JPEG":
        canvas = canvas.convert("RGB")

    buffer = io.BytesIO()
    try:
        canvas.save(buffer, format=fmt)
    except (OSError, ValueError, KeyError) as err:
        raise EncodeError(f"Unable to encode {dest_path} as {fmt}: {err}") from err

    try:
        Path(dest_path).write_bytes(buffer.getvalue())
    except OSError as err:
        raise EncodeError(f"Unable to write {dest_path}: {err}") from err

    logger.debug(f"[{source_path}] Watermarked image written to {dest_path}")
