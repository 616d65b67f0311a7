"""Tests for QR rendering."""

import base64
import io

from PIL import Image

from pairline.qr import QrRenderer

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class TestQrRenderer:
    """Tests for QrRenderer."""

    def test_to_png(self):
        png = QrRenderer().to_png("2@abc,def,ghi")
        assert png.startswith(PNG_MAGIC)

    def test_to_data_url(self):
        url = QrRenderer().to_data_url("2@abc,def,ghi")

        prefix = "data:image/png;base64,"
        assert url.startswith(prefix)
        assert base64.b64decode(url[len(prefix):]).startswith(PNG_MAGIC)

    def test_box_size_scales_image(self):
        """Each module is box_size pixels wide, border included."""
        small = Image.open(io.BytesIO(QrRenderer(box_size=2).to_png("payload")))
        large = Image.open(io.BytesIO(QrRenderer(box_size=20).to_png("payload")))

        assert large.size[0] == small.size[0] * 10
        assert small.size[0] == small.size[1]

    def test_to_terminal(self):
        art = QrRenderer().to_terminal("2@abc,def,ghi")
        assert len(art.strip("\n").splitlines()) > 5
