"""QR rendering of the current attendance code."""

from __future__ import annotations

import io
from pathlib import Path

import qrcode
import qrcode.constants


def _build(data: str, border: int = 2) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr


def render_ascii(data: str) -> str:
    """Render as text blocks for a terminal."""
    buf = io.StringIO()
    _build(data, border=1).print_ascii(out=buf, invert=True)
    return buf.getvalue()


def save_png(data: str, path: Path) -> Path:
    """Write a PNG image (needs Pillow)."""
    img = _build(data).make_image(fill_color="black", back_color="white")
    with open(path, "wb") as f:
        img.save(f)
    return path
