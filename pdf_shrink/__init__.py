"""
pdf_shrink - Local PDF compression.

Runs several lossless backends (pikepdf, qpdf, Ghostscript, MuPDF) one at a
time and ranks their outputs by size, or rasterizes every page to a
low-resolution JPEG for maximum reduction.
"""

from .config import CompressionSettings
from .errors import (
    AllBackendsFailed,
    BackendExecutionFailed,
    BackendUnavailable,
    CompressionCancelled,
    CompressionError,
    RenderFailure,
    UnsupportedInput,
)
from .orchestrator import CompressionJob, Compressor, compress, default_compressor, register_backend
from .registry import BackendRegistry, EnvironmentCache, default_registry
from .results import (
    BackendResult,
    CompressionMode,
    CompressionOutcome,
    CompressionRequest,
    Failure,
    ProgressEvent,
    RequestState,
    Success,
    compression_percent,
    format_bytes,
    suggested_filename,
)

__version__ = "1.0.0"

__all__ = [
    "AllBackendsFailed",
    "BackendExecutionFailed",
    "BackendRegistry",
    "BackendResult",
    "BackendUnavailable",
    "CompressionCancelled",
    "CompressionError",
    "CompressionJob",
    "CompressionMode",
    "CompressionOutcome",
    "CompressionRequest",
    "CompressionSettings",
    "Compressor",
    "EnvironmentCache",
    "Failure",
    "ProgressEvent",
    "RenderFailure",
    "RequestState",
    "Success",
    "UnsupportedInput",
    "compress",
    "compression_percent",
    "default_compressor",
    "default_registry",
    "format_bytes",
    "register_backend",
    "suggested_filename",
]
