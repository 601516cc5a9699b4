"""Image and path utilities for the watermark pipeline."""

from pathlib import Path
from typing import Optional, Union

from PIL import Image

PathLike = Union[str, Path]


def calculate_dest_path(source_path: PathLike, input_dir: PathLike, output_dir: PathLike) -> Path:
    """
    Calculate the mirrored destination of a path found under `input_dir`.

    Args:
        source_path: Path of the visited entry
        input_dir: Root of the input tree
        output_dir: Root of the output tree

    Returns:
        `output_dir` joined with the path of the entry relative to `input_dir`

    Raises:
        ValueError: If `source_path` is not inside `input_dir`
    """
    relative_path = Path(source_path).relative_to(input_dir)
    return Path(output_dir) / relative_path


def resolve_image_format(path: PathLike) -> Optional[str]:
    """Return the Pillow format name implied by the file extension, if any."""
    extension = Path(path).suffix.lower()
    if not extension:
        return None
    return Image.registered_extensions().get(extension)


def has_alpha(img: Image.Image) -> bool:
    """Whether the image carries transparency that must survive re-encoding."""
    return img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info
