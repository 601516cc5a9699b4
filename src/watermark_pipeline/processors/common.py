"""Common functions shared across all processor implementations."""

import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from PIL import Image

from ..core import (
    CopyError,
    EntryItem,
    EntryResult,
    FileErrorPolicy,
    FileProcessingError,
    FilesystemError,
    PipelineConfig,
    ProgressTracker,
    composite,
    get_logger,
    is_eligible,
    transplant_metadata,
)
from ..core.image_utils import calculate_dest_path


@dataclass(frozen=True)
class ProcessingContext:
    """Read-only state shared by every worker of a run, plus the progress tracker."""

    watermark: Image.Image
    progress: ProgressTracker
    on_file_error: FileErrorPolicy = FileErrorPolicy.SKIP


def discover_entries(input_dir: Path) -> List[Tuple[Path, bool]]:
    """
    Walk the input tree and collect every entry up front.

    The input directory itself is the first entry. Symbolic links to
    directories are listed but not followed.

    Returns:
        List of (path, is_dir) pairs

    Raises:
        FilesystemError: If part of the tree cannot be listed
    """
    logger = get_logger("processor")

    def _raise(err: OSError) -> None:
        raise FilesystemError(f"Unable to walk {err.filename}: {err}") from err

    entries: List[Tuple[Path, bool]] = [(input_dir, True)]
    for root, dirnames, filenames in os.walk(input_dir, onerror=_raise):
        dirnames.sort()
        for name in dirnames:
            entries.append((Path(root) / name, True))
        for name in sorted(filenames):
            entries.append((Path(root) / name, False))

    logger.info(f"Found {len(entries)} entries under {input_dir}")
    return entries


def create_work_items(
    entries: List[Tuple[Path, bool]], config: PipelineConfig
) -> Tuple[List[EntryItem], List[EntryItem]]:
    """
    Create work items from the discovered entries, split into (directories, files).

    Each file is classified against `config.rules` here, once.
    """
    directories = []
    files = []
    for path, is_dir in entries:
        item = EntryItem(
            source_path=path,
            dest_path=calculate_dest_path(path, config.input_dir, config.output_dir),
            is_dir=is_dir,
            eligible=not is_dir and is_eligible(path, config.rules),
        )
        (directories if is_dir else files).append(item)
    return directories, files


def create_directory(item: EntryItem, context: ProcessingContext) -> EntryResult:
    """
    Create the mirrored directory of a directory entry, with its ancestors.

    Raises:
        FilesystemError: If the directory cannot be created
    """
    start_time = time.time()
    try:
        os.makedirs(item.dest_path, exist_ok=True)
    except OSError as err:
        raise FilesystemError(f"Unable to create directory {item.dest_path}: {err}") from err

    context.progress.advance()
    return EntryResult(
        source_path=item.source_path,
        dest_path=item.dest_path,
        action="directory",
        success=True,
        processing_time=time.time() - start_time,
    )


def _watermark_file(item: EntryItem, context: ProcessingContext, result: EntryResult) -> None:
    logger = get_logger("processor")
    logger.debug(f"[{item.source_path}] Watermarking")

    try:
        composite(item.source_path, item.dest_path, context.watermark)
    except FileProcessingError as e:
        result.error = str(e)
        logger.error(f"Error watermarking: {item.source_path} - {e}")
        return

    result.success = True
    try:
        result.metadata_preserved = transplant_metadata(item.source_path, item.dest_path)
    except FileProcessingError as e:
        # pixels are already written, only metadata is lost
        result.error = str(e)
        logger.error(f"Error preserving metadata: {item.source_path} - {e}")


def _copy_file(item: EntryItem, context: ProcessingContext, result: EntryResult) -> None:
    logger = get_logger("processor")
    logger.debug(f"[{item.source_path}] Copying")

    try:
        shutil.copyfile(item.source_path, item.dest_path)
    except OSError as err:
        error = CopyError(f"Unable to copy {item.source_path} to {item.dest_path}: {err}")
        if context.on_file_error == FileErrorPolicy.ABORT:
            raise error from err
        result.error = str(error)
        logger.error(str(error))
        return

    result.success = True


def failed_result(item: EntryItem, error: str) -> EntryResult:
    """Build the result of an entry whose worker raised an unexpected exception."""
    return EntryResult(
        source_path=item.source_path,
        dest_path=item.dest_path,
        action=item.action,
        success=False,
        error=error,
    )


def process_single_file(item: EntryItem, context: ProcessingContext) -> EntryResult:
    """
    Process one classified file: Watermark + Metadata, or Copy.

    Watermarking and metadata failures are recorded on the result. A copy
    failure is recorded too, unless the policy is ABORT, in which case
    CopyError is raised.
    """
    start_time = time.time()
    result = EntryResult(
        source_path=item.source_path,
        dest_path=item.dest_path,
        action=item.action,
    )

    if item.eligible:
        _watermark_file(item, context, result)
    else:
        _copy_file(item, context, result)

    result.processing_time = time.time() - start_time
    context.progress.advance()
    return result


def log_configuration(config: PipelineConfig, processor_name: str) -> None:
    """Log processing configuration."""
    logger = get_logger("processor")
    rules = config.rules
    logger.info("=" * 80)
    logger.info(f"{processor_name.upper()} WATERMARK PIPELINE")
    logger.info("=" * 80)

    logger.info("CONFIGURATION:")
    logger.info(f"  From:          {config.input_dir}")
    logger.info(f"  To:            {config.output_dir}")
    logger.info("")

    logger.info("WATERMARK:")
    logger.info(f"  Text:          {config.watermark.text}")
    logger.info(f"  Color:         {config.watermark.color}")
    logger.info(f"  Scale:         {config.watermark.scale.x:.1f}x{config.watermark.scale.y:.1f}")
    logger.info("")

    logger.info("RULES:")
    logger.info(f"  Extensions:      {', '.join(sorted(rules.allowed_extensions))}")
    logger.info(f"  Excluded dirs:   {', '.join(sorted(rules.excluded_dirs)) or '-'}")
    logger.info(f"  Excluded files:  {', '.join(sorted(rules.excluded_file_prefixes)) or '-'}")
    logger.info(f"  Workers:         {config.max_workers}")
    logger.info(f"  On copy error:   {config.on_file_error.value}")
    logger.info("=" * 80)


def log_final_statistics(
    total_time: float,
    total_entries: int,
    watermarked: int,
    copied: int,
    error_count: int,
) -> None:
    """Log final processing statistics."""
    logger = get_logger("processor")
    overall_rate = total_entries / total_time if total_time > 0 else 0

    logger.info("=" * 80)
    logger.info("PROCESSING COMPLETED")
    logger.info("=" * 80)
    logger.info(f"Total execution time: {total_time:.1f}s")
    logger.info(f"Overall processing rate: {overall_rate:.1f} entries/sec")
    logger.info(f"Entries processed: {total_entries}")
    logger.info(f"Watermarked: {watermarked}")
    logger.info(f"Copied: {copied}")
    logger.info(f"Errors encountered: {error_count}")
    logger.info("=" * 80)
