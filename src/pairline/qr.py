"""QR code rendering for link payloads.

Turns the QR payload reported by the device-link client into a PNG data
URL for the web page, or ASCII art for the console.
"""

import base64
import io

import qrcode
from qrcode.main import QRCode


class QrRenderer:
    """Render link QR payloads."""

    def __init__(self, box_size: int = 10, border: int = 4):
        """Initialize renderer.

        Args:
            box_size: Pixels per QR module in PNG output.
            border: Quiet zone width in modules.
        """
        self.box_size = box_size
        self.border = border

    def _create_qr(self, payload: str) -> QRCode:
        qr = qrcode.QRCode(
            version=None,  # Auto-size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        return qr

    def to_png(self, payload: str) -> bytes:
        """Render the payload as PNG bytes."""
        qr = self._create_qr(payload)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self, payload: str) -> str:
        """Render the payload as a ``data:image/png;base64,...`` URL."""
        img_b64 = base64.b64encode(self.to_png(payload)).decode("ascii")
        return f"data:image/png;base64,{img_b64}"

    def to_terminal(self, payload: str) -> str:
        """Render the payload as ASCII art for terminal display."""
        qr = self._create_qr(payload)

        output = io.StringIO()
        qr.print_ascii(out=output, invert=True)
        return output.getvalue()
