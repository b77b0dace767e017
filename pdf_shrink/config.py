"""
config.py - Compression settings.

Defaults are module constants; CompressionSettings bundles them for one
Compressor instance. from_env() lets deployments point at specific qpdf or
Ghostscript binaries without code changes.
"""

import os
from dataclasses import dataclass
from typing import Optional

# Rasterization resolution for aggressive mode. Half of the 72 DPI
# screen standard; resolution dominates output size far more than quality.
RASTER_DPI = 36

# Default aggressiveness (0-99) when the caller does not pick one
DEFAULT_AGGRESSIVENESS = 70

# Seconds a single CLI backend may run before it is treated as failed
SUBPROCESS_TIMEOUT = 300

# Bytes of stderr kept in failure messages
STDERR_TAIL = 2000


@dataclass(frozen=True)
class CompressionSettings:
    raster_dpi: int = RASTER_DPI
    subprocess_timeout: float = SUBPROCESS_TIMEOUT
    qpdf_command: Optional[str] = None  # None = search PATH
    gs_command: Optional[str] = None    # None = gs, then gswin64c

    def __post_init__(self) -> None:
        if self.raster_dpi <= 0:
            raise ValueError("raster_dpi must be a positive integer")
        if self.subprocess_timeout <= 0:
            raise ValueError("subprocess_timeout must be > 0")

    @classmethod
    def from_env(cls) -> "CompressionSettings":
        """
        Build settings from environment variables.

        PDF_SHRINK_QPDF, PDF_SHRINK_GS: explicit binary paths
        PDF_SHRINK_TIMEOUT: per-backend timeout in seconds
        PDF_SHRINK_RASTER_DPI: aggressive-mode render DPI
        """
        return cls(
            raster_dpi=int(os.environ.get("PDF_SHRINK_RASTER_DPI", str(RASTER_DPI))),
            subprocess_timeout=float(os.environ.get("PDF_SHRINK_TIMEOUT", str(SUBPROCESS_TIMEOUT))),
            qpdf_command=os.environ.get("PDF_SHRINK_QPDF") or None,
            gs_command=os.environ.get("PDF_SHRINK_GS") or None,
        )
