"""
orchestrator.py - Single entry point for both compression modes.

STRUCTURAL requests run every registered lossless backend and rank the
outputs; AGGRESSIVE requests rasterize the document. Both end up as a
CompressionOutcome. Terminal errors are reported on the outcome rather than
raised, and the progress sink always receives a final 100% event.

Output that is larger than the input is still reported as-is; whether to
keep the original instead is the caller's decision (see
CompressionOutcome.is_smaller).
"""

import logging
import threading
import time
from typing import List, Optional

from .config import CompressionSettings
from .errors import AllBackendsFailed, CompressionError
from .pipeline import rasterize_document
from .progress import ProgressReporter
from .ranking import rank
from .rasterize import get_page_count
from .registry import BackendRegistry, default_registry
from .results import (
    BackendResult,
    CompressionMode,
    CompressionOutcome,
    CompressionRequest,
    RequestState,
)
from .runner import run_all

logger = logging.getLogger(__name__)

RASTER_BACKEND_ID = "rasterize"
RASTER_LABEL = "Extreme (rasterized)"

# Progress layout shared by both modes
VALIDATE_PERCENT = 2
WORK_BAND = (5, 95)


class CompressionJob:
    """State of one request: PENDING -> RUNNING(phase) -> COMPLETED | FAILED."""

    def __init__(self, request: CompressionRequest):
        self.request = request
        self.state = RequestState.PENDING
        self.phase: Optional[str] = None
        self.history: List[str] = []

    def enter(self, phase: str):
        self.state = RequestState.RUNNING
        self.phase = phase
        self.history.append(phase)
        logger.debug(f"Job running: {phase}")

    def finish(self, state: RequestState):
        self.state = state
        self.phase = None
        logger.debug(f"Job {state.value}")


class Compressor:
    """
    Dispatches compression requests.

    Args:
        registry: Backends for STRUCTURAL mode (default: built-in backends)
        settings: Raster DPI, timeouts and binary locations
    """

    def __init__(
        self,
        registry: Optional[BackendRegistry] = None,
        settings: Optional[CompressionSettings] = None
    ):
        self.settings = settings or CompressionSettings()
        self.registry = registry if registry is not None else default_registry(self.settings)

    def compress(
        self,
        request: CompressionRequest,
        job: Optional[CompressionJob] = None
    ) -> CompressionOutcome:
        """
        Run one request to completion.

        Pass a CompressionJob to observe state and phase from another thread.
        """
        job = job or CompressionJob(request)
        progress = ProgressReporter(request.progress_sink)
        original_size = len(request.data)
        start = time.time()

        outcome = CompressionOutcome(
            mode=request.mode,
            original_size=original_size,
            state=RequestState.PENDING
        )

        try:
            job.enter("validating")
            progress.report(0, "Reading document")
            page_count = get_page_count(request.data)
            progress.report(VALIDATE_PERCENT, f"Document has {page_count} pages")

            if request.mode == CompressionMode.AGGRESSIVE:
                self._compress_aggressive(request, job, progress, outcome)
            else:
                self._compress_structural(request, job, progress, outcome)

        except CompressionError as e:
            logger.error(f"Compression failed: {e}")
            outcome.error = e

        outcome.state = RequestState.FAILED if outcome.error is not None else RequestState.COMPLETED
        job.finish(outcome.state)
        progress.report(100, "Complete" if outcome.success else "Failed")

        if outcome.best is not None:
            logger.info(
                f"{request.mode.value}: {original_size:,} -> {outcome.best.size:,} bytes "
                f"via {outcome.best.backend_id} in {time.time() - start:.1f}s"
            )
        return outcome

    def _compress_structural(self, request, job, progress, outcome):
        results = run_all(
            request.data,
            self.registry.adapters,
            self.registry.environments,
            progress=progress,
            band=WORK_BAND,
            cancel_event=request.cancel_event,
            on_start=lambda i, n: job.enter(f"backend {i + 1} of {n}")
        )

        job.enter("ranking")
        outcome.ordered_results, outcome.best = rank(results)
        if outcome.best is None:
            raise AllBackendsFailed(results)

    def _compress_aggressive(self, request, job, progress, outcome):
        data = rasterize_document(
            request.data,
            request.aggressiveness,
            progress=progress,
            band=WORK_BAND,
            dpi=self.settings.raster_dpi,
            cancel_event=request.cancel_event,
            on_start=lambda j, m: job.enter(f"page {j + 1} of {m}")
        )
        result = BackendResult.success(RASTER_BACKEND_ID, RASTER_LABEL, data, outcome.original_size)
        outcome.ordered_results = [result]
        outcome.best = result


_default_compressor: Optional[Compressor] = None
_default_lock = threading.Lock()


def default_compressor() -> Compressor:
    """
    Process-wide Compressor used by compress() and register_backend().

    Built on first use from CompressionSettings.from_env(); its environment
    cache lives for the rest of the process.
    """
    global _default_compressor
    with _default_lock:
        if _default_compressor is None:
            _default_compressor = Compressor(settings=CompressionSettings.from_env())
        return _default_compressor


def register_backend(adapter):
    """Register an extra backend on the process-wide Compressor."""
    return default_compressor().registry.register(adapter)


def compress(
    data: bytes,
    mode: CompressionMode = CompressionMode.STRUCTURAL,
    aggressiveness: Optional[int] = None,
    progress_sink=None,
    compressor: Optional[Compressor] = None
) -> CompressionOutcome:
    """Convenience wrapper: build a request and run it on a Compressor."""
    kwargs = {}
    if aggressiveness is not None:
        kwargs["aggressiveness"] = aggressiveness
    request = CompressionRequest(data=data, mode=mode, progress_sink=progress_sink, **kwargs)
    return (compressor or default_compressor()).compress(request)
