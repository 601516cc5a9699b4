"""Synthesis of the watermark image shared by every composited file."""

import io
import math
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .exceptions import FontError
from .logging_config import get_logger
from .models import WatermarkConfig

WATERMARK_CANVAS_SIZE = (500, 500)
TEXT_ORIGIN = (0, 210)
ROTATION_RADIANS = 0.8
TRANSPARENT = (0, 0, 0, 0)


def load_font(
    config: WatermarkConfig, font_bytes: Optional[bytes] = None
) -> ImageFont.FreeTypeFont:
    """
    Load the font used to render the watermark text.

    The font is taken from `font_bytes` when given, then from
    `config.font_path`, and falls back to Pillow's bundled scalable font.

    Raises:
        FontError: If the font payload cannot be read or parsed
    """
    size = max(1, round(config.scale.y))

    try:
        if font_bytes is None and config.font_path is not None:
            font_bytes = config.font_path.read_bytes()
        if font_bytes is None:
            return ImageFont.load_default(size=size)
        return ImageFont.truetype(io.BytesIO(font_bytes), size=size)
    except (OSError, ValueError) as exc:
        raise FontError(f"Unable to load watermark font: {exc}") from exc


def _render_text_layer(
    config: WatermarkConfig, font: ImageFont.FreeTypeFont
) -> Image.Image:
    """Render the text alone, stretched horizontally when scale.x != scale.y."""
    left, top, right, bottom = font.getbbox(config.text)
    layer = Image.new("RGBA", (max(1, right), max(1, bottom)), TRANSPARENT)
    ImageDraw.Draw(layer).text((0, 0), config.text, fill=config.color, font=font)

    if not math.isclose(config.scale.x, config.scale.y):
        width = max(1, round(layer.width * config.scale.x / config.scale.y))
        layer = layer.resize((width, layer.height), Image.Resampling.BICUBIC)

    return layer


def build_watermark(
    config: WatermarkConfig, font_bytes: Optional[bytes] = None
) -> Image.Image:
    """
    Build the translucent, rotated watermark.

    The text is rendered on a transparent 500x500 canvas, then the canvas is
    rotated clockwise about its center with bicubic interpolation. Pixels
    exposed by the rotation are fully transparent.

    Args:
        config: Watermark text, color and scale
        font_bytes: Optional raw font file contents

    Returns:
        RGBA image of WATERMARK_CANVAS_SIZE; callers must not mutate it

    Raises:
        FontError: If the font cannot be parsed
    """
    logger = get_logger("watermark")
    font = load_font(config, font_bytes)

    canvas = Image.new("RGBA", WATERMARK_CANVAS_SIZE, TRANSPARENT)
    layer = _render_text_layer(config, font)

    # crop what overflows the canvas before compositing
    max_width = WATERMARK_CANVAS_SIZE[0] - TEXT_ORIGIN[0]
    max_height = WATERMARK_CANVAS_SIZE[1] - TEXT_ORIGIN[1]
    layer = layer.crop((0, 0, min(layer.width, max_width), min(layer.height, max_height)))
    canvas.alpha_composite(layer, dest=TEXT_ORIGIN)

    # Pillow rotates counter-clockwise
    watermark = canvas.rotate(
        -math.degrees(ROTATION_RADIANS),
        resample=Image.Resampling.BICUBIC,
        fillcolor=TRANSPARENT,
    )

    logger.debug(
        f"Built watermark '{config.text}' {watermark.size[0]}x{watermark.size[1]}"
    )
    return watermark
