# termpix/protocols/sixel.py
"""Sixel graphics protocol encoder.

Sixel images are printed straight into the scroll buffer, so there is no
state to keep: each display positions the cursor and writes the pixel
stream produced by the rasterizer. Supported by foot, mlterm, xterm (with
sixel compiled in), and others.
"""

import logging
import sys
from typing import Optional, TextIO

from ..geometry import TargetBox, cell_to_pixel_box
from ..tools import ExternalTools
from .kitty import move_cursor

logger = logging.getLogger(__name__)


class SixelEncoder:
    """Stateless sixel encoder."""

    def __init__(self, tools: ExternalTools, out: Optional[TextIO] = None):
        self._tools = tools
        self._out = out or sys.stdout

    @property
    def name(self) -> str:
        return "sixel"

    @property
    def atomic_replace(self) -> bool:
        return False

    def display(self, path: str, box: TargetBox) -> bool:
        """Write ``path`` as sixel data, shrunk to fit ``box``.

        Scaling is left to the rasterizer's shrink-only resize, which keeps
        the aspect ratio and never enlarges.
        """
        pixels = cell_to_pixel_box(self._tools.cell_geometry(), box)
        if pixels.width <= 0 or pixels.height <= 0:
            return False

        data = self._tools.rasterize(path, pixels.width, pixels.height, "sixel")
        if not data:
            logger.debug("Rasterizer produced no sixel data for %s", path)
            return False

        self._out.write(move_cursor(box))
        # Sixel is 7-bit; latin-1 maps any stray high bytes one-to-one
        self._out.write(data.decode("latin-1"))
        self._out.flush()
        return True

    def clear(self, *args, **kwargs) -> bool:
        # Later output overwrites sixel images; never clear the screen here
        return True
