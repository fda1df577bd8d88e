from __future__ import annotations

import hashlib
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from io import BytesIO

from reportlab.lib.colors import HexColor, black
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import getAscent
from reportlab.pdfgen import canvas

from .certificate_data import CertificateData
from .certificate_document import compose_document
from .certificates_layout import (
    CertificateLayout,
    ImageOp,
    LineOp,
    Page,
    RectOp,
    TextOp,
    layout_document,
)
from .images import fit_box, load_image
from .storage import remove_quietly, write_atomic

logger = logging.getLogger("skl.certificates")


class CertificateError(Exception):
    """Raised when a certificate cannot be produced."""


class CertificateTimeoutError(CertificateError):
    pass


def certificate_download_name(data: CertificateData) -> str:
    name = re.sub(r"\s+", "_", data.full_name.strip())
    suffix = "dengan_nilai" if data.show_grades else "tanpa_nilai"
    return f"SKL_{name}_{suffix}.pdf"


def _draw_image(c: canvas.Canvas, op: ImageOp, page_height: float, asset_root: str | None) -> None:
    try:
        image = load_image(op.source, asset_root)
        x, y, width, height = fit_box(op, image)
        c.saveState()
        try:
            if op.opacity < 1:
                c.setFillAlpha(op.opacity)
            c.drawImage(
                ImageReader(image),
                x,
                page_height - y - height,
                width=width,
                height=height,
                mask="auto",
            )
        finally:
            c.restoreState()
    except Exception as exc:
        logger.warning("[CERT] skipped image %s: %s", op.label or "image", exc)


def _draw_page(c: canvas.Canvas, page: Page, page_height: float, asset_root: str | None) -> None:
    for op in page.ops:
        if isinstance(op, TextOp):
            baseline = page_height - (op.y + getAscent(op.font, op.size))
            c.setFillColor(black)
            if op.word_spacing:
                text = c.beginText(op.x, baseline)
                text.setFont(op.font, op.size)
                text.setWordSpace(op.word_spacing)
                text.textOut(op.text)
                c.drawText(text)
            else:
                c.setFont(op.font, op.size)
                c.drawString(op.x, baseline, op.text)
        elif isinstance(op, LineOp):
            c.setStrokeColor(HexColor(op.color))
            c.setLineWidth(op.width)
            c.line(op.x1, page_height - op.y1, op.x2, page_height - op.y2)
        elif isinstance(op, RectOp):
            c.setStrokeColor(black)
            c.setLineWidth(op.line_width)
            c.rect(op.x, page_height - op.y - op.height, op.width, op.height, stroke=1, fill=0)
        elif isinstance(op, ImageOp):
            _draw_image(c, op, page_height, asset_root)


def render_layout_pdf(layout: CertificateLayout, asset_root: str | None = None) -> bytes:
    """Replay laid-out pages onto a reportlab canvas and return PDF bytes.

    The canvas is ``invariant`` so identical layouts give identical bytes.
    """
    document = layout.document
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(layout.width, layout.height), invariant=1)
    c.setTitle(document.title)
    c.setAuthor(document.author)
    c.setSubject(document.subject)
    c.setKeywords(document.keywords)
    c.setCreator("SKL")
    for page in layout.pages:
        _draw_page(c, page, layout.height, asset_root)
        c.showPage()
    c.save()
    return buffer.getvalue()


def generate_certificate_pdf(
    data: CertificateData, output_path: str, *, asset_root: str | None = None
) -> str:
    """Write the SKL PDF for ``data`` to ``output_path`` and return its sha256.

    The file is left in place; deleting it is the caller's job.
    """
    layout = layout_document(compose_document(data))
    pdf_bytes = render_layout_pdf(layout, asset_root)
    write_atomic(output_path, pdf_bytes)
    logger.info(
        "[CERT] student=%s grades=%s pages=%s path=%s",
        data.id,
        len(data.grades) if data.has_grade_table else 0,
        layout.page_count,
        output_path,
    )
    return hashlib.sha256(pdf_bytes).hexdigest()


def run_with_timeout(func, output_path: str, timeout: float | None, *args, **kwargs):
    """Call ``func(*args, **kwargs)`` bounded by ``timeout`` seconds.

    On timeout the worker is abandoned and whatever it writes to
    ``output_path`` is removed once it finishes.
    """
    if not timeout:
        return func(*args, **kwargs)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="skl-cert")
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError as exc:
        future.cancel()
        future.add_done_callback(lambda _: remove_quietly(output_path))
        raise CertificateTimeoutError(
            f"{os.path.basename(output_path)} not finished after {timeout:g}s"
        ) from exc
    finally:
        executor.shutdown(wait=False)


def generate_certificate_file(
    data: CertificateData,
    output_path: str,
    *,
    asset_root: str | None = None,
    timeout: float | None = None,
) -> str:
    """``generate_certificate_pdf`` bounded by a wall-clock timeout in seconds."""
    return run_with_timeout(
        generate_certificate_pdf, output_path, timeout, data, output_path, asset_root=asset_root
    )
