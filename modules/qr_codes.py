"""QR code images for tracking links."""

from __future__ import annotations

from io import BytesIO

import qrcode

from services.job_workflow import tracking_url


def qr_png(data: str) -> bytes:
    """PNG bytes of a QR code encoding ``data``."""
    img = qrcode.make(data)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def tracking_qr_png(origin: str, tracking_code: str) -> bytes:
    """QR code pointing at the public tracking page for a job."""
    return qr_png(tracking_url(origin, tracking_code))
