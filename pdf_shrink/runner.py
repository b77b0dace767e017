"""
runner.py - Run every registered backend against the same input.

Backends run strictly one after another. Each backend materializes its own
working memory sized by the input document (qpdf/gs processes, a MuPDF or
libqpdf document graph); holding several at once can exhaust memory on
large inputs, so peak usage is bounded to one backend at a time. Keep this
loop sequential.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import BackendExecutionFailed, CompressionCancelled
from .progress import ProgressReporter, band_edges
from .results import BackendResult

logger = logging.getLogger(__name__)


def run_all(
    data: bytes,
    adapters: Sequence,
    environments,
    progress: Optional[ProgressReporter] = None,
    band: Tuple[float, float] = (0, 100),
    cancel_event: Optional[threading.Event] = None,
    on_start: Optional[Callable[[int, int], None]] = None
) -> List[BackendResult]:
    """
    Run each adapter on `data` in order and collect one result per adapter.

    Args:
        data: Input PDF bytes
        adapters: Backend adapters in invocation order
        environments: EnvironmentCache shared by the adapters
        progress: Reporter receiving one start and one finish event per backend
        band: Percent range [start, end] split evenly across backends
        cancel_event: Checked before each backend starts
        on_start: Called with (index, count) before each backend runs

    Returns:
        List of BackendResult in invocation order, one per adapter
    """
    progress = progress or ProgressReporter()
    results: List[BackendResult] = []
    count = len(adapters)

    for index, adapter in enumerate(adapters):
        if cancel_event is not None and cancel_event.is_set():
            raise CompressionCancelled(f"Cancelled before {adapter.label}")

        if on_start is not None:
            on_start(index, count)

        begin, finish = band_edges(band[0], band[1], index, count)
        progress.report(begin, f"Running {adapter.label} ({index + 1}/{count})")

        start = time.time()
        try:
            result = adapter.compress(data, environments)
        except MemoryError:
            result = BackendResult.failure(
                adapter.backend_id, adapter.label,
                BackendExecutionFailed(adapter.backend_id, "out of memory")
            )
        except Exception as e:
            result = BackendResult.failure(
                adapter.backend_id, adapter.label,
                BackendExecutionFailed(adapter.backend_id, str(e) or e.__class__.__name__)
            )
        elapsed = time.time() - start

        if result.ok:
            logger.info(
                f"{adapter.backend_id}: {len(data):,} -> {result.size:,} bytes "
                f"({result.size_delta_percent:.1f}% reduction) in {elapsed:.1f}s"
            )
            progress.report(finish, f"{adapter.label} done")
        else:
            logger.warning(f"{adapter.backend_id} failed after {elapsed:.1f}s: {result.message}")
            progress.report(finish, f"{adapter.label} failed")

        results.append(result)

    return results
