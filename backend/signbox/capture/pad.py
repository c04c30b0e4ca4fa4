"""Freehand signature rasterization.

Strokes are drawn segment by segment onto a transparent RGBA canvas so fast
gestures (few, far-apart samples) still produce continuous lines.
"""

import base64
import binascii
import io
from collections import deque
from collections.abc import Iterable, Sequence
from typing import Optional

from PIL import Image, ImageDraw, UnidentifiedImageError

from signbox.common.exceptions import SignatureRequired

PNG_DATA_URI_PREFIX = "data:image/png;base64,"

Point = tuple[float, float]

STROKE_COLOR = (0, 0, 0, 255)
STROKE_WIDTH = 3


def encode_png_data_uri(png_bytes: bytes) -> str:
    return PNG_DATA_URI_PREFIX + base64.b64encode(png_bytes).decode("ascii")


def decode_data_uri(data_uri: str) -> bytes:
    """Return the PNG bytes of a ``data:image/png;base64,...`` URI.

    Raises SignatureRequired when the value is empty, not a PNG data URI,
    or does not decode to a readable PNG image.
    """
    if not data_uri or not data_uri.startswith(PNG_DATA_URI_PREFIX):
        raise SignatureRequired("Signature must be a PNG data URI")
    try:
        raw = base64.b64decode(data_uri[len(PNG_DATA_URI_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureRequired("Signature image is not valid base64") from e
    try:
        with Image.open(io.BytesIO(raw)) as img:
            if img.format != "PNG":
                raise SignatureRequired("Signature image must be a PNG")
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise SignatureRequired("Signature image could not be read") from e
    return raw


class SignatureCapture:
    def __init__(self, width: int = 900, height: int = 300, history_depth: int = 50):
        self.width = width
        self.height = height
        self._canvas = self._blank()
        self._draw = ImageDraw.Draw(self._canvas)
        self._history: deque[Image.Image] = deque(maxlen=history_depth)
        self._last_point: Optional[Point] = None

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    def _set_canvas(self, image: Image.Image) -> None:
        self._canvas = image
        self._draw = ImageDraw.Draw(self._canvas)

    @property
    def is_drawing(self) -> bool:
        return self._last_point is not None

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    def begin_stroke(self, point: Point) -> None:
        # oldest snapshot falls off the deque once history_depth is reached
        self._history.append(self._canvas.copy())
        self._last_point = point
        self._dot(point)

    def extend_stroke(self, point: Point) -> None:
        if self._last_point is None:
            return
        self._draw.line([self._last_point, point], fill=STROKE_COLOR, width=STROKE_WIDTH, joint="curve")
        self._dot(point)
        self._last_point = point

    def end_stroke(self) -> None:
        self._last_point = None

    def draw_stroke(self, points: Sequence[Point]) -> None:
        if not points:
            return
        self.begin_stroke(points[0])
        for point in points[1:]:
            self.extend_stroke(point)
        self.end_stroke()

    def _dot(self, point: Point) -> None:
        # round cap
        r = STROKE_WIDTH / 2
        x, y = point
        self._draw.ellipse([x - r, y - r, x + r, y + r], fill=STROKE_COLOR)

    def undo(self) -> None:
        if not self._history:
            return
        self._last_point = None
        self._set_canvas(self._history.pop())

    def clear(self) -> None:
        self._last_point = None
        self._history.clear()
        self._set_canvas(self._blank())

    def is_empty(self) -> bool:
        # getbbox on the alpha band scans every pixel for a non-zero value
        return self._canvas.getchannel("A").getbbox() is None

    def to_png(self) -> Optional[bytes]:
        if self.is_empty():
            return None
        buf = io.BytesIO()
        self._canvas.save(buf, format="PNG")
        return buf.getvalue()

    def export(self) -> Optional[str]:
        png = self.to_png()
        return encode_png_data_uri(png) if png is not None else None


def render_strokes(
    strokes: Iterable[Sequence[Point]],
    width: int = 900,
    height: int = 300,
    history_depth: int = 50,
) -> Optional[str]:
    """Rasterize pointer strokes captured client-side into a PNG data URI."""
    pad = SignatureCapture(width=width, height=height, history_depth=history_depth)
    for stroke in strokes:
        pad.draw_stroke(stroke)
    return pad.export()
