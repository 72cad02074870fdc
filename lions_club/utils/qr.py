import base64
import io

import qrcode

from lions_club.config import settings


def checkin_url(event_id: int, base_url: str | None = None) -> str:
    return f"{(base_url or settings.BASE_URL).rstrip('/')}/checkin/{event_id}"


def generate_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    qr = qrcode.QRCode(version=1, box_size=box_size, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def generate_qr_data_url(data: str) -> str:
    """PNG QR code as a ``data:`` URL the frontend can drop into an ``<img>``."""
    return "data:image/png;base64," + base64.b64encode(generate_qr_png(data)).decode()
