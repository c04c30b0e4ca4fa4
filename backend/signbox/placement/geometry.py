"""Coordinate math for signature boxes.

Boxes are stored in percentages of the displayed page with the origin at the
top-left corner and ``(x, y)`` naming the *center* of the box. PDF pages use
points with the origin at the bottom-left, so converting to page space flips
the vertical axis.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signbox.placement.registry import SignatureBox

MIN_WIDTH = 10.0
MAX_WIDTH = 80.0
# Narrowest aspect ratio at which a minimum-width box still fits vertically.
MIN_ASPECT_RATIO = MIN_WIDTH / 100


class Corner(str, enum.Enum):
    top_left = "top-left"
    top_right = "top-right"
    bottom_left = "bottom-left"
    bottom_right = "bottom-right"

    @property
    def is_left(self) -> bool:
        return self in (Corner.top_left, Corner.bottom_left)


@dataclass(frozen=True)
class PixelRect:
    """Placement on a PDF page: left/bottom edge plus size, in points."""

    x: float
    y: float
    width: float
    height: float


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def max_width(aspect_ratio: float) -> float:
    """Widest box whose derived height still fits on the page."""
    return min(MAX_WIDTH, 100 * aspect_ratio)


def clamp_width(width: float, aspect_ratio: float) -> float:
    return clamp(width, MIN_WIDTH, max_width(aspect_ratio))


def height_percent(width: float, aspect_ratio: float) -> float:
    return width / aspect_ratio


def clamp_center(x: float, y: float, width: float, aspect_ratio: float) -> tuple[float, float]:
    """Pull a center point back far enough that the whole box stays on the page."""
    half_w = width / 2
    half_h = height_percent(width, aspect_ratio) / 2
    return clamp(x, half_w, 100 - half_w), clamp(y, half_h, 100 - half_h)


def box_pixel_rect(box: SignatureBox, page_width: float, page_height: float) -> PixelRect:
    width_px = (box.width / 100) * page_width
    height_px = width_px / box.aspect_ratio
    x_px = (box.x / 100) * page_width - width_px / 2
    y_px = page_height - (box.y / 100) * page_height - height_px / 2
    return PixelRect(x=x_px, y=y_px, width=width_px, height=height_px)


def apply_drag(box: SignatureBox, delta_x: float, delta_y: float) -> SignatureBox:
    x, y = clamp_center(box.x + delta_x, box.y + delta_y, box.width, box.aspect_ratio)
    return box.model_copy(update={"x": x, "y": y})


def apply_resize(box: SignatureBox, corner: Corner | str, delta_x: float, delta_y: float = 0.0) -> SignatureBox:
    """Resize around a fixed center.

    Only the horizontal pointer delta counts: the aspect ratio is fixed, so
    width is the single degree of freedom. Dragging a right-hand corner by
    ``dx`` grows the box by ``2 * dx`` (both edges move), a left-hand corner
    shrinks it by the same amount. ``delta_y`` is accepted for call-site
    symmetry and ignored.
    """
    corner = Corner(corner)
    change = -2 * delta_x if corner.is_left else 2 * delta_x
    width = clamp_width(box.width + change, box.aspect_ratio)
    x, y = clamp_center(box.x, box.y, width, box.aspect_ratio)
    return box.model_copy(update={"width": width, "x": x, "y": y})


def corners(box: SignatureBox) -> list[tuple[float, float]]:
    half_w = box.width / 2
    half_h = height_percent(box.width, box.aspect_ratio) / 2
    return [
        (box.x - half_w, box.y - half_h),
        (box.x + half_w, box.y - half_h),
        (box.x - half_w, box.y + half_h),
        (box.x + half_w, box.y + half_h),
    ]
