from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO
from typing import Callable, Optional

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import getAscent, stringWidth
from reportlab.pdfgen import canvas

from ..shared.certificate_data import CertificateData
from ..shared.certificates import CertificateError
from ..shared.certificates_layout import (
    PAGE_WIDTH,
    CertificateLayout,
    ImageOp,
    LineOp,
    Page,
    RectOp,
    TextOp,
)
from ..shared.images import fit_box, load_image
from ..shared.storage import remove_quietly, write_atomic

logger = logging.getLogger("skl.snapshot")

_SNAPSHOT_SCALE = 2.0
_TEXT_COLOR = (0, 0, 0)
_PAGE_GAP_PX = 0

_FONT_PATHS = {
    "Helvetica": "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "Helvetica-Bold": "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
}
_DEFAULT_FONT_PATH = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"

SNAPSHOT_FORMATS = ("png", "pdf")
REGION_ALL = "certificate"

PROGRESS_PREPARE = (0, "Mempersiapkan data sertifikat")
PROGRESS_LAYOUT = (20, "Menyusun tata letak sertifikat")
PROGRESS_RENDER = (50, "Merender gambar sertifikat")
PROGRESS_ENCODE = (80, "Menyimpan berkas sertifikat")
PROGRESS_DONE = (100, "Sertifikat siap diunduh")

ProgressCallback = Callable[[str, int], None]


class SnapshotSourceError(CertificateError):
    """The requested region does not exist in the laid-out certificate."""


@dataclass(frozen=True)
class SnapshotResult:
    path: str
    fmt: str
    width_px: int
    height_px: int
    pages: int


def snapshot_filename(data: CertificateData, fmt: str = "png") -> str:
    variant = "Dengan" if data.show_grades else "Tanpa"
    return f"SKL_{variant}_Nilai_{data.nisn}.{fmt}"


@lru_cache(maxsize=32)
def _load_font(pdf_font: str, size_px: int) -> ImageFont.FreeTypeFont:
    path = _FONT_PATHS.get(pdf_font, _DEFAULT_FONT_PATH)
    try:
        return ImageFont.truetype(path, max(size_px, 1))
    except OSError:
        logger.warning("[SNAPSHOT] font %s unavailable; using Pillow default", path)
        return ImageFont.load_default(max(size_px, 1))


def select_pages(layout: CertificateLayout, region: str) -> list[Page]:
    """Resolve ``"certificate"`` (every page) or ``"page-N"`` to pages."""
    if region == REGION_ALL:
        return list(layout.pages)
    if region.startswith("page-"):
        try:
            number = int(region[len("page-"):])
        except ValueError:
            number = 0
        for page in layout.pages:
            if page.number == number:
                return [page]
    raise SnapshotSourceError(f"Certificate region {region!r} not found")


def _draw_text(draw: ImageDraw.ImageDraw, op: TextOp, scale: float) -> None:
    font = _load_font(op.font, int(round(op.size * scale)))
    baseline_px = (op.y + getAscent(op.font, op.size)) * scale
    if not op.word_spacing:
        draw.text((op.x * scale, baseline_px), op.text, font=font, fill=_TEXT_COLOR, anchor="ls")
        return
    # place words on the PDF metrics so justified lines keep their width
    x = op.x
    for word in op.text.split(" "):
        draw.text((x * scale, baseline_px), word, font=font, fill=_TEXT_COLOR, anchor="ls")
        x += stringWidth(word + " ", op.font, op.size) + op.word_spacing


def _paste_image(base: Image.Image, op: ImageOp, scale: float, asset_root: str | None) -> None:
    try:
        image = load_image(op.source, asset_root)
        x, y, width, height = fit_box(op, image)
        size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))
        image = image.resize(size)
        if op.opacity < 1:
            alpha = image.getchannel("A").point(lambda v: int(v * op.opacity))
            image.putalpha(alpha)
        base.paste(image, (int(round(x * scale)), int(round(y * scale))), image)
    except Exception as exc:
        logger.warning("[SNAPSHOT] skipped image %s: %s", op.label or "image", exc)


def render_page_image(
    page: Page,
    layout: CertificateLayout,
    *,
    scale: float = _SNAPSHOT_SCALE,
    asset_root: str | None = None,
) -> Image.Image:
    image = Image.new(
        "RGB",
        (int(round(layout.width * scale)), int(round(layout.height * scale))),
        "white",
    )
    draw = ImageDraw.Draw(image)
    for op in page.ops:
        if isinstance(op, TextOp):
            _draw_text(draw, op, scale)
        elif isinstance(op, LineOp):
            draw.line(
                [(op.x1 * scale, op.y1 * scale), (op.x2 * scale, op.y2 * scale)],
                fill=op.color,
                width=max(1, int(round(op.width * scale))),
            )
        elif isinstance(op, RectOp):
            draw.rectangle(
                [
                    op.x * scale,
                    op.y * scale,
                    (op.x + op.width) * scale,
                    (op.y + op.height) * scale,
                ],
                outline=_TEXT_COLOR,
                width=max(1, int(round(op.line_width * scale))),
            )
        elif isinstance(op, ImageOp):
            _paste_image(image, op, scale, asset_root)
    return image


def rasterize(
    layout: CertificateLayout,
    region: str = REGION_ALL,
    *,
    scale: float = _SNAPSHOT_SCALE,
    asset_root: str | None = None,
) -> Image.Image:
    """Render the region to one image, stacking pages top to bottom."""
    pages = select_pages(layout, region)
    rendered = [render_page_image(page, layout, scale=scale, asset_root=asset_root) for page in pages]
    width = max(img.width for img in rendered)
    height = sum(img.height for img in rendered) + _PAGE_GAP_PX * (len(rendered) - 1)
    sheet = Image.new("RGB", (width, height), "white")
    offset = 0
    for img in rendered:
        sheet.paste(img, (0, offset))
        offset += img.height + _PAGE_GAP_PX
    return sheet


def _embed_in_pdf(image: Image.Image, title: str) -> bytes:
    page_width = PAGE_WIDTH
    page_height = page_width * image.height / image.width
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(page_width, page_height), invariant=1)
    c.setTitle(title)
    c.drawImage(ImageReader(image), 0, 0, width=page_width, height=page_height)
    c.showPage()
    c.save()
    return buffer.getvalue()


def export_snapshot(
    layout: CertificateLayout,
    filename: str,
    *,
    region: str = REGION_ALL,
    fmt: str = "png",
    progress: Optional[ProgressCallback] = None,
    asset_root: str | None = None,
    scale: float = _SNAPSHOT_SCALE,
) -> SnapshotResult:
    """Rasterize a laid-out certificate and write it as PNG or single-page PDF.

    ``progress`` receives ``(step_description, percent)`` at 0/20/50/80/100.
    A partially written file is removed before the error propagates.
    """
    if fmt not in SNAPSHOT_FORMATS:
        raise ValueError(f"Unsupported snapshot format: {fmt!r}")

    def report(step: tuple[int, str]) -> None:
        if progress:
            progress(step[1], step[0])

    report(PROGRESS_PREPARE)
    pages = select_pages(layout, region)
    report(PROGRESS_LAYOUT)
    try:
        image = rasterize(layout, region, scale=scale, asset_root=asset_root)
        report(PROGRESS_RENDER)
        if fmt == "pdf":
            payload = _embed_in_pdf(image, layout.document.title)
        else:
            buffer = BytesIO()
            image.save(buffer, format="PNG")
            payload = buffer.getvalue()
        report(PROGRESS_ENCODE)
        write_atomic(filename, payload)
    except Exception:
        remove_quietly(filename)
        raise
    logger.info(
        "[SNAPSHOT] region=%s fmt=%s size=%sx%s path=%s",
        region,
        fmt,
        image.width,
        image.height,
        filename,
    )
    report(PROGRESS_DONE)
    return SnapshotResult(filename, fmt, image.width, image.height, len(pages))
