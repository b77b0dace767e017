"""
progress.py - Monotonic progress reporting.

The caller's sink is fire-and-forget: a sink that raises is logged and
otherwise ignored so a broken UI callback cannot abort a compression run.
"""

import logging
from typing import Optional

from .results import ProgressEvent, ProgressSink

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Clamps events to 0-100 and never lets percent go backwards."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self.sink = sink
        self.percent = 0
        self.events = 0

    def report(self, percent: float, label: str):
        percent = int(max(0, min(100, round(percent))))
        self.percent = max(self.percent, percent)
        self.events += 1
        logger.debug(f"[{self.percent:3d}%] {label}")

        if self.sink is None:
            return
        try:
            self.sink(ProgressEvent(percent=self.percent, label=label))
        except Exception as e:
            logger.warning(f"Progress sink raised {e.__class__.__name__}: {e}")


def band_edges(start: float, end: float, index: int, count: int):
    """Return (begin, finish) percent for item `index` of `count` in [start, end]."""
    span = (end - start) / count
    return start + span * index, start + span * (index + 1)
