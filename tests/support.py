from __future__ import annotations

import io
from typing import Iterable

import fitz  # PyMuPDF
import pikepdf

from pdf_shrink.backends import BackendAdapter
from pdf_shrink.errors import CompressionError


def make_pdf(
    page_count: int = 1,
    sizes: Iterable[tuple[float, float]] | None = None,
    rotations: dict[int, int] | None = None,
) -> bytes:
    """
    Build an uncompressed PDF whose pages carry enough colour detail for JPEG
    quality to matter.
    """
    sizes = list(sizes) if sizes is not None else [(612.0, 792.0)] * page_count
    doc = fitz.open()
    for i, (w, h) in enumerate(sizes):
        page = doc.new_page(width=w, height=h)
        shape = page.new_shape()
        step = 24
        for y in range(0, int(h), step):
            for x in range(0, int(w), step):
                r = ((x * 7 + i * 31) % 255) / 255
                g = ((y * 5 + i * 17) % 255) / 255
                b = (((x + y) * 3) % 255) / 255
                shape.draw_rect(fitz.Rect(x, y, x + step, y + step))
                shape.finish(color=None, fill=(r, g, b))
        shape.commit()
        page.insert_text((36, 48), f"Page {i + 1}", fontsize=20)
        if rotations and i in rotations:
            page.set_rotation(rotations[i])
    data = doc.tobytes()
    doc.close()
    return data


def make_empty_pdf() -> bytes:
    """A syntactically valid PDF with zero pages."""
    pdf = pikepdf.Pdf.new()
    buffer = io.BytesIO()
    pdf.save(buffer)
    pdf.close()
    return buffer.getvalue()


def page_rects(data: bytes) -> list[tuple[float, float]]:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return [(p.rect.width, p.rect.height) for p in doc]


class FakeBackend(BackendAdapter):
    """Returns `size` bytes, or raises `error`; counts calls and inits."""

    def __init__(
        self,
        backend_id: str,
        size: int | None = None,
        error: BaseException | None = None,
        init_error: BaseException | None = None,
        label: str | None = None,
    ) -> None:
        self.backend_id = backend_id
        self.label = label or f"Fake {backend_id}"
        self.size = size
        self.error = error
        self.init_error = init_error
        self.calls = 0
        self.inits = 0

    def create_environment(self):
        self.inits += 1
        if self.init_error is not None:
            raise self.init_error
        return {"backend": self.backend_id}

    def run(self, data: bytes, environment) -> bytes:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return b"%" * (self.size or 0)


class FakeCompressionError(CompressionError):
    pass
