# termpix/geometry.py
"""Character-cell to pixel geometry.

Callers address the terminal in character cells; the kitty and w3m
encoders need pixels. This module holds the conversion plus the single
shrink-only scale-to-fit rule every client-side scaling encoder shares.
"""

import fcntl
import logging
import struct
import sys
import termios
from typing import NamedTuple, Optional, TextIO, Tuple

logger = logging.getLogger(__name__)


class CellGeometry(NamedTuple):
    """Pixel size of one character cell."""
    width: int
    height: int


class TargetBox(NamedTuple):
    """Requested image box in character cells (0-based origin)."""
    x: int
    y: int
    max_width: int
    max_height: int


class PixelBox(NamedTuple):
    """Image box in pixels."""
    x: int
    y: int
    width: int
    height: int


def cell_to_pixel_box(cell: CellGeometry, box: TargetBox) -> PixelBox:
    """Convert a character-cell box to pixels.

    Zero-sized cells yield a zero-sized box; callers must reject those
    before dividing by anything derived from the result.
    """
    return PixelBox(
        x=box.x * cell.width,
        y=box.y * cell.height,
        width=box.max_width * cell.width,
        height=box.max_height * cell.height,
    )


def scale_to_fit(src_w: int, src_h: int, max_w: int, max_h: int) -> Tuple[int, int]:
    """Shrink (never enlarge) an image to fit a box, preserving aspect ratio.

    Args:
        src_w: Source width in pixels.
        src_h: Source height in pixels.
        max_w: Maximum width in pixels.
        max_h: Maximum height in pixels.

    Returns:
        (width, height) truncated toward zero. The source size is returned
        unchanged when it already fits on both axes.
    """
    if src_w <= max_w and src_h <= max_h:
        return src_w, src_h
    scale = min(max_w / src_w, max_h / src_h)
    return int(src_w * scale), int(src_h * scale)


def query_window_size(stream: Optional[TextIO] = None) -> Optional[Tuple[int, int, int, int]]:
    """Ask the tty driver for (rows, cols, xpixel, ypixel).

    Returns None when the stream is not a terminal or the ioctl fails.
    """
    stream = stream or sys.stdout
    try:
        fd = stream.fileno()
        packed = fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\0" * 8)
    except (OSError, ValueError, AttributeError) as e:
        # io.UnsupportedOperation is both an OSError and a ValueError
        logger.debug("TIOCGWINSZ unavailable: %s", e)
        return None
    return struct.unpack("HHHH", packed)


def query_cell_geometry(default: CellGeometry = CellGeometry(10, 20),
                        stream: Optional[TextIO] = None) -> CellGeometry:
    """Pixel size of one cell, from the terminal's reported pixel size.

    Falls back to ``default`` when the terminal does not report pixel
    dimensions (many emulators leave xpixel/ypixel at zero).
    """
    size = query_window_size(stream)
    if size is None:
        return default
    rows, cols, xpixel, ypixel = size
    if not (rows and cols and xpixel and ypixel):
        return default
    return CellGeometry(xpixel // cols, ypixel // rows)
