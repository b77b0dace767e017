"""
results.py - Request and result types shared by both compression modes.

A BackendResult wraps exactly one of Success or Failure. Code that consumes
results should branch on `isinstance(result.outcome, Success)` (or the `ok`
property) and handle both cases.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from .config import DEFAULT_AGGRESSIVENESS
from .errors import CompressionError


class CompressionMode(str, Enum):
    STRUCTURAL = "lossless"
    AGGRESSIVE = "extreme"


class RequestState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification: percent in 0-100 and a human-readable phase."""
    percent: int
    label: str


ProgressSink = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class Success:
    data: bytes = field(repr=False)
    size: int


@dataclass(frozen=True)
class Failure:
    message: str
    error: Optional[CompressionError] = field(default=None, compare=False)


@dataclass(frozen=True)
class BackendResult:
    """Outcome of one backend (or the rasterizer) for one request."""
    backend_id: str
    label: str
    outcome: Union[Success, Failure]
    size_delta_percent: Optional[float] = None

    @classmethod
    def success(cls, backend_id: str, label: str, data: bytes, original_size: int) -> "BackendResult":
        size = len(data)
        delta = None
        if original_size > 0:
            delta = (1 - size / original_size) * 100
        return cls(backend_id, label, Success(data=data, size=size), delta)

    @classmethod
    def failure(cls, backend_id: str, label: str, error: CompressionError) -> "BackendResult":
        message = str(error) or error.__class__.__name__
        return cls(backend_id, label, Failure(message=message, error=error))

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Success)

    @property
    def size(self) -> Optional[int]:
        if isinstance(self.outcome, Success):
            return self.outcome.size
        return None

    @property
    def data(self) -> Optional[bytes]:
        if isinstance(self.outcome, Success):
            return self.outcome.data
        return None

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.outcome, Failure):
            return self.outcome.message
        return None

    def describe(self) -> str:
        """One-line summary suitable for a results table."""
        outcome = self.outcome
        if isinstance(outcome, Success):
            if self.size_delta_percent is None:
                return f"{self.label}: {format_bytes(outcome.size)} (reduction n/a)"
            return (
                f"{self.label}: {format_bytes(outcome.size)} "
                f"({self.size_delta_percent:+.1f}% reduction)"
            )
        if isinstance(outcome, Failure):
            return f"{self.label}: failed - {outcome.message}"
        raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")


@dataclass
class CompressionRequest:
    """
    One compression request.

    Args:
        data: PDF document bytes
        mode: STRUCTURAL (lossless backends) or AGGRESSIVE (rasterize)
        aggressiveness: 0-99, only used in AGGRESSIVE mode
        progress_sink: Optional callable receiving ProgressEvent objects
        cancel_event: Optional event; when set, the request stops at the
            next backend/page boundary
    """
    data: bytes = field(repr=False)
    mode: CompressionMode = CompressionMode.STRUCTURAL
    aggressiveness: int = DEFAULT_AGGRESSIVENESS
    progress_sink: Optional[ProgressSink] = None
    cancel_event: Optional[threading.Event] = None

    def __post_init__(self) -> None:
        self.mode = CompressionMode(self.mode)
        # aggressiveness has no meaning for structural compression
        if self.mode == CompressionMode.AGGRESSIVE:
            if isinstance(self.aggressiveness, bool) or not isinstance(self.aggressiveness, int):
                raise ValueError("aggressiveness must be an integer")
            if not 0 <= self.aggressiveness <= 99:
                raise ValueError("aggressiveness must be within 0-99")


@dataclass
class CompressionOutcome:
    """Normalized result of a request in either mode."""
    mode: CompressionMode
    original_size: int
    state: RequestState
    best: Optional[BackendResult] = None
    ordered_results: List[BackendResult] = field(default_factory=list)
    error: Optional[CompressionError] = None

    @property
    def success(self) -> bool:
        return self.state == RequestState.COMPLETED

    @property
    def is_smaller(self) -> bool:
        """True when the best output is smaller than the input."""
        return self.best is not None and self.best.size < self.original_size

    def raise_for_status(self) -> "CompressionOutcome":
        if self.error is not None:
            raise self.error
        return self

    def summary(self) -> str:
        lines = [f"Original: {format_bytes(self.original_size)}"]
        for result in self.ordered_results:
            marker = "*" if result is self.best else " "
            lines.append(f" {marker} {result.describe()}")
        if self.error is not None:
            lines.append(f"Error: {self.error}")
        elif not self.is_smaller:
            lines.append("This PDF is already well-optimized")
        return "\n".join(lines)


def format_bytes(size: int) -> str:
    """
    Format a byte count for display.

    format_bytes(1536) -> "1.5 KB", format_bytes(1048576) -> "1 MB"
    """
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def compression_percent(original: int, compressed: int) -> int:
    """Percentage reduction rounded to an integer (negative if the file grew)."""
    if original == 0:
        return 0
    return round((original - compressed) / original * 100)


def suggested_filename(name: Union[str, Path]) -> str:
    """report.pdf -> report_compressed.pdf"""
    name = Path(name).name
    if name.lower().endswith(".pdf"):
        name = name[:-4]
    return f"{name}_compressed.pdf"
