"""
Tree watermarking pipeline.

Walks an input tree once, mirrors its directories into the output tree, then
watermarks eligible images (preserving their EXIF/ICC metadata) and copies
every other file verbatim.
"""

import time
from functools import partial
from pathlib import Path
from typing import Optional, Union

from .core import (
    ConfigurationError,
    FileErrorPolicy,
    InputNotADirectoryError,
    PipelineConfig,
    ProgressSink,
    ProgressTracker,
    Rules,
    RunSummary,
    WatermarkConfig,
    build_watermark,
    get_logger,
)
from .core.error_handling import BatchOperationContextManager
from .processors import PROCESSORS
from .processors.common import (
    ProcessingContext,
    create_directory,
    create_work_items,
    discover_entries,
    log_configuration,
    log_final_statistics,
    process_single_file,
)


def run_processing(
    config: PipelineConfig,
    progress: Optional[ProgressSink] = None,
    font_bytes: Optional[bytes] = None,
) -> RunSummary:
    """
    Run the pipeline described by `config`.

    Args:
        config: Input/output trees, watermark, rules and execution options
        progress: Optional sink receiving the total and the processed count
        font_bytes: Optional raw font overriding `config.watermark.font_path`

    Returns:
        Counts of processed entries; per-file failures are logged and counted

    Raises:
        InputNotADirectoryError: If the input directory does not exist
        FontError: If the watermark font cannot be parsed
        FilesystemError: If the tree cannot be walked or mirrored
        CopyError: If a copy fails and the policy is ABORT
    """
    logger = get_logger("processor")
    input_dir = Path(config.input_dir)

    if not input_dir.is_dir():
        raise InputNotADirectoryError(f"Path {input_dir} is not a directory as required")

    processor_name, process_batch_fn = PROCESSORS[config.processor]
    log_configuration(config, processor_name)
    start_time = time.time()

    watermark = build_watermark(config.watermark, font_bytes)

    entries = discover_entries(input_dir)
    directories, files = create_work_items(entries, config)
    tracker = ProgressTracker(len(entries), progress)
    context = ProcessingContext(
        watermark=watermark,
        progress=tracker,
        on_file_error=config.on_file_error,
    )

    summary = RunSummary(total_entries=len(entries))

    with BatchOperationContextManager(operation_name=f"Watermarking via {processor_name}") as batch_manager:
        # every destination directory must exist before any file is written
        logger.info(f"Creating {len(directories)} directories under {config.output_dir}")
        dir_results = process_batch_fn(
            directories, partial(create_directory, context=context), config.max_workers
        )
        summary.directories = len(dir_results)

        logger.info(f"Processing {len(files)} files using {processor_name}...")
        file_results = process_batch_fn(
            files, partial(process_single_file, context=context), config.max_workers
        )

        for result in file_results:
            if result.error:
                batch_manager.add_error(result.error, item_identifier=str(result.source_path))
            if not result.success:
                continue
            if result.action == "watermark":
                summary.watermarked += 1
            else:
                summary.copied += 1

        summary.error_count = batch_manager.error_count

    summary.elapsed = time.time() - start_time
    log_final_statistics(
        summary.elapsed,
        tracker.count,
        summary.watermarked,
        summary.copied,
        summary.error_count,
    )
    return summary


def run(
    input_dir: Union[str, Path],
    output_dir: Union[str, Path],
    config: Optional[WatermarkConfig] = None,
    rules: Optional[Rules] = None,
    progress: Optional[ProgressSink] = None,
    *,
    processor: str = "multithread",
    max_workers: int = 8,
    on_file_error: FileErrorPolicy = FileErrorPolicy.SKIP,
    font_bytes: Optional[bytes] = None,
) -> RunSummary:
    """
    Apply the watermark recursively from `input_dir` into `output_dir`.

    The watermark is customized through `config` and `rules` selects which
    files are watermarked; everything else is copied. Progress is reported
    through the optional `progress` sink.

    Raises:
        ConfigurationError: If the options do not form a valid PipelineConfig
    """
    try:
        pipeline_config = PipelineConfig(
            input_dir=Path(input_dir),
            output_dir=Path(output_dir),
            watermark=config if config is not None else WatermarkConfig(),
            rules=rules if rules is not None else Rules.default(),
            processor=processor,
            max_workers=max_workers,
            on_file_error=on_file_error,
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    return run_processing(pipeline_config, progress=progress, font_bytes=font_bytes)
