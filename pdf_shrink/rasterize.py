"""
rasterize.py - Document inspection and page rendering.

Inspection uses pikepdf (strict parse, page count); rendering uses PyMuPDF
in memory. Pages render at their own aspect ratio, nothing is forced to a
common size.
"""

import io
import logging
from dataclasses import dataclass
from typing import Tuple

import fitz  # PyMuPDF
import numpy as np
import pikepdf

from .errors import UnsupportedInput

logger = logging.getLogger(__name__)

# PDF user space unit (1/72 inch)
POINTS_PER_INCH = 72.0


@dataclass
class RasterPage:
    """
    Pixel buffer for one page, alive only while that page is processed.

    image is an RGB uint8 array of shape (height_px, width_px, 3).
    """
    page_num: int
    image: np.ndarray
    page_width_pts: float
    page_height_pts: float
    quality: int

    @property
    def nbytes(self) -> int:
        return self.image.nbytes


def get_page_count(data: bytes) -> int:
    """
    Validate `data` as a PDF and return its page count.

    Raises:
        UnsupportedInput: empty input, unparseable PDF, or zero pages
    """
    if not data:
        raise UnsupportedInput("Input is empty")

    try:
        with pikepdf.open(io.BytesIO(data)) as pdf:
            page_count = len(pdf.pages)
    except pikepdf.PasswordError:
        raise UnsupportedInput("PDF is password protected")
    except pikepdf.PdfError as e:
        raise UnsupportedInput(f"Input is not a readable PDF: {e}")

    if page_count == 0:
        raise UnsupportedInput("PDF has no pages")

    return page_count


def get_page_dimensions(doc: "fitz.Document", page_num: int) -> Tuple[float, float]:
    """Get page dimensions in PDF points, rotation and crop box applied."""
    rect = doc[page_num].rect
    return rect.width, rect.height


def rasterize_page(
    doc: "fitz.Document",
    page_num: int,
    dpi: int,
    quality: int
) -> RasterPage:
    """
    Render a single page to an RGB pixel buffer.

    Args:
        doc: Open PyMuPDF document
        page_num: 0-indexed page number
        dpi: Render resolution
        quality: JPEG quality the page will be re-encoded at

    Returns:
        RasterPage owning the pixel buffer
    """
    page = doc[page_num]
    rect = page.rect

    zoom = dpi / POINTS_PER_INCH
    pixmap = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), colorspace=fitz.csRGB, alpha=False)

    # Copy so the array owns its memory and the pixmap can go
    image = np.frombuffer(pixmap.samples, dtype=np.uint8).reshape(
        pixmap.height, pixmap.width, 3
    ).copy()
    del pixmap

    logger.debug(
        f"Rasterized page {page_num}: {image.shape[1]}x{image.shape[0]} @ {dpi} DPI "
        f"({rect.width:.1f}x{rect.height:.1f} pt)"
    )

    return RasterPage(
        page_num=page_num,
        image=image,
        page_width_pts=rect.width,
        page_height_pts=rect.height,
        quality=quality
    )
