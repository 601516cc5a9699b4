"""Multithreaded processor implementation - uses thread pool for parallelism."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List

from ..core import EntryItem, EntryResult, PipelineError, get_logger
from .common import failed_result


def process_batch(
    batch: List[EntryItem], worker: Callable[[EntryItem], EntryResult], max_workers: int = 8
) -> List[EntryResult]:
    """
    Process a batch using a bounded thread pool.

    Every entry runs to completion on one thread. Returning marks the end of
    the batch: all submitted work has finished.

    Args:
        batch: Work items to process
        worker: Function processing a single work item
        max_workers: Upper bound on the number of threads

    Returns:
        List of results, in completion order

    Raises:
        PipelineError: The first fatal error raised by a worker; work that has
            not started yet is cancelled
    """
    logger = get_logger("processor")
    results: List[EntryResult] = []
    if not batch:
        return results

    with ThreadPoolExecutor(
        max_workers=min(max_workers, len(batch)), thread_name_prefix="watermark"
    ) as executor:
        future_to_item = {executor.submit(worker, item): item for item in batch}

        try:
            for future in as_completed(future_to_item):
                try:
                    results.append(future.result())
                except PipelineError:
                    raise
                except Exception as e:
                    item = future_to_item[future]
                    logger.error(f"Unexpected error processing {item}: {e}", exc_info=True)
                    results.append(failed_result(item, str(e)))
        except PipelineError:
            executor.shutdown(wait=True, cancel_futures=True)
            raise

    return results
