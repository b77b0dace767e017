"""
compression.py - JPEG re-encoding of rasterized pages.

Pages whose pixels carry no meaningful colour are stored as 8-bit grayscale,
everything else as RGB with 4:2:0 chroma subsampling.
"""

import io
import logging
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image

from .rasterize import RasterPage

logger = logging.getLogger(__name__)

# Saturation threshold for grayscale conversion
# Only convert to grayscale if mean saturation is below this
GRAYSCALE_SATURATION_THRESHOLD = 10  # Out of 255


@dataclass
class CompressedPage:
    """Compressed page data ready for PDF embedding."""
    page_num: int
    image_data: bytes
    width: int
    height: int
    page_width_pts: float
    page_height_pts: float
    is_color: bool

    @property
    def total_size(self) -> int:
        return len(self.image_data)


def quality_for(aggressiveness: int) -> int:
    """Map aggressiveness 0-99 to JPEG quality 100-1."""
    return 100 - aggressiveness


def is_grayscale_image(image: np.ndarray) -> bool:
    """
    Check if image is effectively grayscale based on saturation.

    Only returns True if the entire page has very low saturation.
    """
    if len(image.shape) != 3 or image.shape[2] != 3:
        return True  # Already grayscale

    hsv = cv2.cvtColor(image, cv2.COLOR_RGB2HSV)
    mean_saturation = float(np.mean(hsv[:, :, 1]))

    is_gray = mean_saturation < GRAYSCALE_SATURATION_THRESHOLD
    logger.debug(f"Mean saturation: {mean_saturation:.1f}, is_grayscale: {is_gray}")

    return is_gray


def compress_page(raster: RasterPage) -> CompressedPage:
    """
    Encode a rasterized page as JPEG at the page's target quality.

    Args:
        raster: Rendered page; its buffer is only read

    Returns:
        CompressedPage with JPEG data and original page size in points
    """
    image = raster.image
    height, width = image.shape[:2]
    is_color = not is_grayscale_image(image)

    if len(image.shape) == 2:
        img = Image.fromarray(image)
        is_color = False
    elif not is_color:
        # Effectively gray anyway; one channel instead of three
        gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
        img = Image.fromarray(gray)
    else:
        img = Image.fromarray(image)

    buffer = io.BytesIO()
    img.save(
        buffer,
        format="JPEG",
        quality=raster.quality,
        optimize=True,
        subsampling=2  # 4:2:0 chroma subsampling
    )
    jpeg_data = buffer.getvalue()

    logger.debug(
        f"Page {raster.page_num}: {len(jpeg_data):,} bytes | "
        f"{width}x{height} | color={is_color} | q={raster.quality}"
    )

    return CompressedPage(
        page_num=raster.page_num,
        image_data=jpeg_data,
        width=width,
        height=height,
        page_width_pts=raster.page_width_pts,
        page_height_pts=raster.page_height_pts,
        is_color=is_color
    )
