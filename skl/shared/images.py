from __future__ import annotations

import base64
import binascii
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_H
from PIL import Image

from .certificates_layout import ImageOp, QrImage
from .storage import resolve_asset_path


def qr_image(payload: str) -> Image.Image:
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_H,
        box_size=6,
        border=1,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    buf = BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buf, format="PNG")
    buf.seek(0)
    return Image.open(buf).convert("RGBA")


def _decode_data_url(value: str) -> bytes:
    header, _, encoded = value.partition(",")
    if ";base64" not in header:
        raise ValueError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(encoded, validate=False)
    except binascii.Error as exc:
        raise ValueError("Malformed base64 image data") from exc


def load_image(source, asset_root: str | None = None) -> Image.Image:
    """Open an image referenced by a settings field.

    Accepts data URLs, upload paths resolved under ``asset_root`` and
    ``QrImage`` payloads. Raises on anything that cannot be read;
    callers decide whether to skip the image.
    """
    if isinstance(source, QrImage):
        return qr_image(source.payload)
    if isinstance(source, Image.Image):
        return source.convert("RGBA")
    value = str(source or "").strip()
    if not value:
        raise ValueError("Empty image reference")
    if value.startswith("data:"):
        image = Image.open(BytesIO(_decode_data_url(value)))
    else:
        if value.startswith(("http://", "https://")):
            raise ValueError(f"Remote images are not fetched: {value}")
        image = Image.open(resolve_asset_path(value, asset_root))
    image.load()
    return image.convert("RGBA")


def fit_box(op: ImageOp, image: Image.Image) -> tuple[float, float, float, float]:
    """Return ``(x, y, width, height)`` in points, preserving aspect ratio.

    With ``op.height`` unset the width is honoured; otherwise the image is
    scaled to fit inside the box and centered horizontally in it.
    """
    img_w, img_h = image.size
    if not img_w or not img_h:
        raise ValueError("Image has no size")
    ratio = img_h / img_w
    if op.height is None:
        return op.x, op.y, op.width, op.width * ratio
    scale = min(op.width / img_w, op.height / img_h)
    width, height = img_w * scale, img_h * scale
    return op.x + (op.width - width) / 2, op.y, width, height
