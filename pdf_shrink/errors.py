"""
errors.py - Error taxonomy for compression requests.

Backend failures are normally carried as data (see results.Failure); only
UnsupportedInput, RenderFailure, AllBackendsFailed and CompressionCancelled
end a request in the FAILED state.
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .results import BackendResult


class CompressionError(Exception):
    """Base class for all pdf_shrink errors."""


class BackendUnavailable(CompressionError):
    """A backend's execution environment could not be initialized."""

    def __init__(self, backend_id: str, message: str):
        super().__init__(message)
        self.backend_id = backend_id


class BackendExecutionFailed(CompressionError):
    """A backend ran but did not produce a usable document."""

    def __init__(self, backend_id: str, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.backend_id = backend_id
        self.returncode = returncode


class UnsupportedInput(CompressionError):
    """Input is not a well-formed PDF with at least one page."""


class RenderFailure(CompressionError):
    """A page could not be rasterized or re-encoded."""

    def __init__(self, page_index: int, message: str):
        super().__init__(f"Page {page_index + 1} could not be rasterized: {message}")
        self.page_index = page_index


class AllBackendsFailed(CompressionError):
    """Every registered backend returned a failure."""

    def __init__(self, results: List["BackendResult"]):
        self.results = list(results)
        reasons = "; ".join(f"{r.label}: {r.message}" for r in self.results)
        super().__init__(f"All compression backends failed ({reasons})" if reasons
                         else "No compression backends are registered")


class CompressionCancelled(CompressionError):
    """The caller cancelled the request between two backends or pages."""
