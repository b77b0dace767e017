"""
pipeline.py - Aggressive (rasterizing) compression pipeline.

Pipeline, per page:
1. Render at a fixed low DPI
2. Re-encode as a single JPEG at quality = 100 - aggressiveness
3. Place the image on a new page of the original page's size

Text and vectors are lost; resolution is the main size lever, quality the
fine one. Pages are processed one at a time and each pixel buffer is
dropped before the next page is rendered, so memory does not grow with
page count. No partial document is ever returned: one bad page fails the
whole run.
"""

import logging
import threading
import time
from typing import Callable, Optional, Tuple

import fitz  # PyMuPDF

from .compression import compress_page, quality_for, CompressedPage
from .config import RASTER_DPI
from .errors import CompressionCancelled, RenderFailure, UnsupportedInput
from .pdf_writer import PDFWriter
from .progress import ProgressReporter, band_edges
from .rasterize import rasterize_page

logger = logging.getLogger(__name__)


def process_page(doc: "fitz.Document", page_num: int, dpi: int, quality: int) -> CompressedPage:
    """
    Rasterize and JPEG-encode one page.

    Raises:
        RenderFailure: the page could not be rendered or encoded
    """
    try:
        raster = rasterize_page(doc, page_num, dpi=dpi, quality=quality)
        compressed = compress_page(raster)
    except MemoryError:
        raise RenderFailure(page_num, "out of memory")
    except Exception as e:
        raise RenderFailure(page_num, str(e) or e.__class__.__name__) from e

    # compressed holds only JPEG bytes; the pixel buffer goes now
    del raster
    return compressed


def rasterize_document(
    data: bytes,
    aggressiveness: int,
    progress: Optional[ProgressReporter] = None,
    band: Tuple[float, float] = (0, 100),
    dpi: int = RASTER_DPI,
    cancel_event: Optional[threading.Event] = None,
    on_start: Optional[Callable[[int, int], None]] = None
) -> bytes:
    """
    Rebuild a PDF from low-resolution JPEG renderings of its pages.

    Args:
        data: Input PDF bytes
        aggressiveness: 0 (best quality) to 99 (smallest output)
        progress: Reporter receiving one event per page
        band: Percent range [start, end] spread across the pages
        dpi: Render resolution, identical for every page
        cancel_event: Checked before each page
        on_start: Called with (page_num, page_count) before each page

    Returns:
        New PDF bytes with the same page count and page sizes

    Raises:
        UnsupportedInput: the document cannot be opened or has no pages
        RenderFailure: any page failed
        CompressionCancelled: cancel_event was set
    """
    if not 0 <= aggressiveness <= 99:
        raise ValueError("aggressiveness must be within 0-99")

    progress = progress or ProgressReporter()
    quality = quality_for(aggressiveness)
    start_time = time.time()

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise UnsupportedInput(f"Input is not a readable PDF: {e}")

    with doc, PDFWriter() as writer:
        page_count = doc.page_count
        if page_count == 0:
            raise UnsupportedInput("PDF has no pages")

        logger.info(
            f"Rasterizing {page_count} pages, {len(data):,} bytes, "
            f"{dpi} DPI, quality {quality}"
        )

        for page_num in range(page_count):
            if cancel_event is not None and cancel_event.is_set():
                raise CompressionCancelled(f"Cancelled before page {page_num + 1}")

            if on_start is not None:
                on_start(page_num, page_count)

            begin, _ = band_edges(band[0], band[1], page_num, page_count)
            progress.report(begin, f"Rasterizing page {page_num + 1} of {page_count}")

            compressed = process_page(doc, page_num, dpi, quality)
            writer.add_page(compressed)
            del compressed

        progress.report(band[1], "Assembling document")
        output = writer.to_bytes()

    logger.info(
        f"Rasterized {page_count} pages: {len(data):,} -> {len(output):,} bytes "
        f"in {time.time() - start_time:.1f}s"
    )
    return output
