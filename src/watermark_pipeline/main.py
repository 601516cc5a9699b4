"""Main module for the watermark pipeline CLI."""

import argparse
import shutil
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from . import __version__
from .core import (
    ConfigurationError,
    FileErrorPolicy,
    PipelineConfig,
    PipelineError,
    Rules,
    Scale,
    TqdmProgressSink,
    WatermarkConfig,
    get_logger,
    set_debug_logging,
)
from .core.models import DEFAULT_TEXT, DEFAULT_TEXT_HEIGHT, SCALE_FACTOR
from .pipeline import run_processing

DEFAULT_EXTENSIONS = "jpg,jpeg,png,bmp,gif"


def parse_color(value: str) -> Tuple[int, int, int, int]:
    """Parse "R,G,B,A" into a color tuple."""
    try:
        channels = tuple(int(part) for part in value.split(","))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid color '{value}': expected R,G,B,A integers") from exc
    if len(channels) != 4:
        raise ConfigurationError(f"Invalid color '{value}': expected 4 channels")
    return channels  # type: ignore[return-value]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the `run` and `version` commands."""
    parser = argparse.ArgumentParser(
        prog="watermark-pipeline",
        description="Watermark Pipeline - recursive image watermarking with metadata preservation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watermark ./data/input into ./result with default settings
  watermark-pipeline run ./data/input ./result --clean

  # Custom text, serial processing and strict copy errors
  watermark-pipeline run ./photos ./out --text "(c) ACME" \\
                         --processor serial --on-file-error abort

  # Show version
  watermark-pipeline version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser(
        "run", help="Watermark an input tree into an output tree"
    )
    run_parser.add_argument("input_dir", type=Path, help="Directory to traverse")
    run_parser.add_argument("output_dir", type=Path, help="Directory receiving the results")
    run_parser.add_argument("--text", default=DEFAULT_TEXT, help="Watermark text")
    run_parser.add_argument(
        "--color", default="0,0,0,110", help="Watermark color as R,G,B,A (default: 0,0,0,110)"
    )
    run_parser.add_argument(
        "--scale",
        type=float,
        default=DEFAULT_TEXT_HEIGHT * SCALE_FACTOR,
        help="Font size of the watermark text in pixels",
    )
    run_parser.add_argument("--font", type=Path, default=None, help="TrueType/OpenType font file")
    run_parser.add_argument(
        "--exclude-dir",
        action="append",
        default=None,
        help="Directory name whose content is copied, not watermarked (repeatable, default: .hidden)",
    )
    run_parser.add_argument(
        "--exclude-prefix",
        action="append",
        default=None,
        help="File name prefix excluded from watermarking (repeatable, default: background)",
    )
    run_parser.add_argument(
        "--extensions",
        default=DEFAULT_EXTENSIONS,
        help=f"Comma separated extensions to watermark (default: {DEFAULT_EXTENSIONS})",
    )
    run_parser.add_argument(
        "--processor",
        default="multithread",
        choices=["serial", "multithread"],
        help="Processing strategy to use (default: multithread)",
    )
    run_parser.add_argument("--workers", type=int, default=8, help="Number of worker threads")
    run_parser.add_argument(
        "--on-file-error",
        default=FileErrorPolicy.SKIP.value,
        choices=[policy.value for policy in FileErrorPolicy],
        help="What to do when copying a file fails (default: skip)",
    )
    run_parser.add_argument(
        "--clean", action="store_true", help="Remove a pre-existing output directory first"
    )
    run_parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    run_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")

    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    """Map parsed `run` arguments onto a PipelineConfig."""
    rules = Rules(
        excluded_dirs=args.exclude_dir if args.exclude_dir is not None else [".hidden"],
        excluded_file_prefixes=(
            args.exclude_prefix if args.exclude_prefix is not None else ["background"]
        ),
        allowed_extensions=[ext for ext in args.extensions.split(",") if ext.strip()],
    )
    try:
        watermark = WatermarkConfig(
            text=args.text,
            color=parse_color(args.color),
            scale=Scale(x=args.scale, y=args.scale),
            font_path=args.font,
        )
        return PipelineConfig(
            input_dir=args.input_dir,
            output_dir=args.output_dir,
            watermark=watermark,
            rules=rules,
            processor=args.processor,
            max_workers=args.workers,
            on_file_error=FileErrorPolicy(args.on_file_error),
            debug=args.debug,
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def prepare_output_dir(output_dir: Path, clean: bool) -> None:
    """Create the output directory, removing previous results when asked."""
    logger = get_logger("cli")
    if clean and output_dir.exists():
        logger.warning(f"removing pre-existing results in {output_dir}")
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)


def run_command(args: argparse.Namespace) -> int:
    """Execute the `run` command and return the process exit status."""
    logger = get_logger("cli")
    try:
        config = config_from_args(args)
        if config.debug:
            set_debug_logging("cli", "processor", "rules", "watermark", "compositor", "metadata")

        logger.info(f"from: {config.input_dir}")
        logger.info(f"to:   {config.output_dir}")
        prepare_output_dir(config.output_dir, args.clean)

        if args.no_progress:
            summary = run_processing(config)
        else:
            with TqdmProgressSink(desc="Watermarking", unit="entry") as sink:
                summary = run_processing(config, progress=sink)

        logger.info(f"Watermarked {summary.watermarked} images in {summary.elapsed:.1f} secs")
        return 0
    except KeyboardInterrupt:
        logger.warning("Processing interrupted by user.")
        return 130
    except PipelineError as e:
        logger.error(f"Processing failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the `watermark-pipeline` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        sys.exit(run_command(args))

    elif args.command == "version":
        print("Watermark Pipeline CLI")
        print(f"Version {__version__}")
        print("Recursive image watermarking with EXIF/ICC preservation")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
