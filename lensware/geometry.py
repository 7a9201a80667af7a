"""
Coordinate mapping between normalized detector boxes and display pixels.

Detectors report boxes as fractions of the frame with the origin at the
bottom-left corner. The rendering layer wants pixels with the origin at the
top-left corner. Every function here is pure.

Usage:
    from lensware.geometry import to_display_rect
    from lensware.models import NormalizedRect, Size

    rect = to_display_rect(NormalizedRect(0.1, 0.2, 0.3, 0.4), Size(1280, 720))
"""

import logging
import math

from .models import DisplayRect, NormalizedRect, Size

logger = logging.getLogger(__name__)

__all__ = [
    "clamp_unit",
    "clamp_rect",
    "to_display_rect",
    "to_normalized_rect",
    "relative_position",
    "relative_size",
]


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1]; NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


def clamp_rect(box: NormalizedRect) -> NormalizedRect:
    """Pull a box back inside the unit square.

    Detectors emit marginally out-of-range boxes near frame edges. Those are
    recovered here instead of being rejected: the origin is clamped first,
    then width and height are shrunk so the far edges stay inside.
    """
    if box.is_normalized():
        return box

    x = clamp_unit(box.x)
    y = clamp_unit(box.y)
    width = min(clamp_unit(box.width), 1.0 - x)
    height = min(clamp_unit(box.height), 1.0 - y)

    logger.debug(f"Clamped malformed box {box} -> ({x}, {y}, {width}, {height})")
    return NormalizedRect(x, y, width, height)


def to_display_rect(box: NormalizedRect, viewport: Size) -> DisplayRect:
    """Convert a bottom-left normalized box to top-left pixel coordinates."""
    box = clamp_rect(box)
    W, H = viewport.width, viewport.height
    return DisplayRect(
        x=box.x * W,
        y=(1.0 - box.y - box.height) * H,
        width=box.width * W,
        height=box.height * H,
    )


def to_normalized_rect(rect: DisplayRect, viewport: Size) -> NormalizedRect:
    """Inverse of :func:`to_display_rect` for in-range boxes."""
    W, H = viewport.width, viewport.height
    if W <= 0 or H <= 0:
        raise ValueError(f"Viewport must have positive size, got {viewport}")
    height = rect.height / H
    return NormalizedRect(
        x=rect.x / W,
        y=1.0 - rect.y / H - height,
        width=rect.width / W,
        height=height,
    )


def relative_position(box: NormalizedRect) -> str:
    """Coarse position such as ``"top left"`` or ``"center right"``."""
    mid_x, mid_y = box.center

    # y grows upwards in normalized space
    if mid_y > 0.67:
        vertical = "top"
    elif mid_y < 0.33:
        vertical = "bottom"
    else:
        vertical = "center"

    if mid_x < 0.33:
        horizontal = "left"
    elif mid_x > 0.67:
        horizontal = "right"
    else:
        horizontal = "center"

    return f"{vertical} {horizontal}"


def relative_size(box: NormalizedRect) -> str:
    """``small``, ``medium`` or ``large`` by frame coverage."""
    area = box.area
    if area > 0.3:
        return "large"
    if area > 0.1:
        return "medium"
    return "small"
