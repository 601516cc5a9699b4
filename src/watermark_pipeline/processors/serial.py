"""Serial processor implementation - processes entries one by one."""

from typing import Callable, List

from ..core import EntryItem, EntryResult, PipelineError, get_logger
from .common import failed_result


def process_batch(
    batch: List[EntryItem], worker: Callable[[EntryItem], EntryResult], max_workers: int = 1
) -> List[EntryResult]:
    """
    Processes a batch serially, one entry at a time, in the current thread.

    Args:
        batch: Work items to process.
        worker: Function processing a single work item.
        max_workers: Ignored; present so every processor shares a signature.

    Returns:
        A list of `EntryResult` objects, in batch order.

    Raises:
        PipelineError: The first fatal error raised by the worker.
    """
    logger = get_logger("processor")
    results = []

    for item in batch:
        try:
            results.append(worker(item))
        except PipelineError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error processing {item}: {e}", exc_info=True)
            results.append(failed_result(item, str(e)))

    return results
