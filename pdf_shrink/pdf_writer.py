"""
pdf_writer.py - PDF assembly from compressed pages.

Each page is exactly one JPEG image scaled to fill a page of the original
page's size in points.
"""

import io
import logging

import pikepdf
from pikepdf import Dictionary, Name, Pdf, Stream

from .compression import CompressedPage

logger = logging.getLogger(__name__)


class PDFWriter:
    """
    Assembles JPEG pages into a minimal PDF.

    Only per-page counters are kept; the JPEG data lives in the pikepdf
    document once added.
    """

    def __init__(self):
        self.pdf = Pdf.new()
        self.page_count = 0
        self.image_bytes = 0

    def add_page(self, compressed: CompressedPage):
        """Add a page to the PDF."""
        self.pdf.add_blank_page(
            page_size=(compressed.page_width_pts, compressed.page_height_pts)
        )
        page = self.pdf.pages[-1]

        colorspace = Name.DeviceRGB if compressed.is_color else Name.DeviceGray
        image_dict = Dictionary({
            '/Type': Name.XObject,
            '/Subtype': Name.Image,
            '/Width': compressed.width,
            '/Height': compressed.height,
            '/ColorSpace': colorspace,
            '/BitsPerComponent': 8,
            '/Filter': Name.DCTDecode,
        })
        img_stream = Stream(self.pdf, compressed.image_data, image_dict)

        xobjects = Dictionary({})
        xobjects['/Im0'] = self.pdf.make_indirect(img_stream)
        page.Resources = Dictionary({'/XObject': xobjects})

        # Draw the image scaled to the full page
        content = f"""
q
{compressed.page_width_pts:.4f} 0 0 {compressed.page_height_pts:.4f} 0 0 cm
/Im0 Do
Q
"""
        page.Contents = self.pdf.make_indirect(
            Stream(self.pdf, content.strip().encode("ascii"))
        )

        self.page_count += 1
        self.image_bytes += compressed.total_size

        mode = "color" if compressed.is_color else "gray"
        logger.debug(
            f"Added page {compressed.page_num}: "
            f"{compressed.total_size:,} bytes ({mode})"
        )

    def to_bytes(self) -> bytes:
        """Serialize the PDF."""
        buffer = io.BytesIO()
        self.pdf.save(
            buffer,
            compress_streams=True,
            object_stream_mode=pikepdf.ObjectStreamMode.generate
        )
        data = buffer.getvalue()
        logger.info(f"Assembled {self.page_count} pages into {len(data):,} bytes")
        return data

    def close(self):
        self.pdf.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
