"""Classification of files as watermark-eligible."""

from pathlib import Path
from typing import TYPE_CHECKING, Union

from .logging_config import get_logger

if TYPE_CHECKING:
    from .models import Rules


def is_eligible(path: Union[str, Path], rules: "Rules") -> bool:
    """
    Check whether a file should be watermarked rather than copied.

    A file is eligible when its extension is allowed, its name does not start
    with an excluded prefix and no component of its path is an excluded
    directory name. Checks run in that order and the first failure wins.

    Args:
        path: Path of the file to classify
        rules: Rule set to evaluate against

    Returns:
        True if the file must be watermarked
    """
    logger = get_logger("rules")
    path = Path(path)

    suffix = path.suffix
    if not suffix:
        logger.debug(f"file ignored (no extension): {path}")
        return False

    if suffix[1:].lower() not in rules.allowed_extensions:
        logger.debug(f"file ignored (bad extension): {path}")
        return False

    if any(path.name.startswith(prefix) for prefix in rules.excluded_file_prefixes):
        logger.debug(f"file ignored (excluded file): {path}")
        return False

    if any(part in rules.excluded_dirs for part in path.parts):
        logger.debug(f"file ignored (dir excluded): {path}")
        return False

    return True
