# termpix/protocols/kitty.py
"""Kitty graphics protocol encoder.

Images are transmitted once, tagged with a numeric id, and then shown
with separate placement commands that reference the id. Replacing an
image places the new one before deleting the old one, so the swap never
shows an empty box.

The protocol uses:
    ESC_G<key>=<value>,...;<base64 payload>ESC\\

Protocol: https://sw.kovidgoyal.net/kitty/graphics-protocol/
"""

import base64
import logging
import sys
import threading
import time
from collections import OrderedDict
from typing import Callable, Iterator, Optional, TextIO, Tuple

from ..geometry import TargetBox, cell_to_pixel_box, scale_to_fit
from ..tools import ExternalTools

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096  # Max base64 payload per escape sequence
MAX_IMAGE_ID = 2 ** 32 - 1

CacheKey = Tuple[str, int, int]


def transmit_commands(image_id: int, encoded: str,
                      chunk_size: int = CHUNK_SIZE) -> Iterator[str]:
    """Split a base64 PNG payload into transmit-only escape sequences.

    The first chunk carries the format, action and id; later chunks carry
    only the continuation flag and the quiet key. ``m=1`` means more data
    follows, the last chunk has ``m=0``.
    """
    chunks = [encoded[i:i + chunk_size]
              for i in range(0, len(encoded), chunk_size)] or [""]
    for i, chunk in enumerate(chunks):
        m = 0 if i == len(chunks) - 1 else 1
        if i == 0:
            # f=100 PNG, a=t transmit only, t=d direct data, q=2 no replies
            yield f"\x1b_Ga=t,f=100,t=d,i={image_id},q=2,m={m};{chunk}\x1b\\"
        else:
            yield f"\x1b_Gm={m},q=2;{chunk}\x1b\\"


def move_cursor(box: TargetBox) -> str:
    """CUP sequence for the box origin (terminal rows/columns are 1-based)."""
    return f"\x1b[{box.y + 1};{box.x + 1}H"


def place_command(image_id: int) -> str:
    # p=1 makes re-placing the same image replace its placement; C=1 keeps the cursor still
    return f"\x1b_Ga=p,i={image_id},p=1,C=1,q=2\x1b\\"


def delete_command(image_id: int, free: bool = False) -> str:
    """Delete placements of ``image_id``; ``free`` also drops the image data."""
    target = "I" if free else "i"
    return f"\x1b_Ga=d,d={target},i={image_id},q=2\x1b\\"


class KittyEncoder:
    """Stateful encoder for the kitty graphics protocol.

    Keeps a cache of transmitted images keyed by (path, box width, box
    height) in pixels so an unchanged image is never rasterized or sent
    twice, and tracks the single placement currently on screen.
    """

    def __init__(self, tools: ExternalTools, out: Optional[TextIO] = None,
                 cache_size: int = 0,
                 clock: Callable[[], int] = time.monotonic_ns):
        """
        Args:
            tools: Rasterizer and geometry collaborator.
            out: Terminal output stream (default: sys.stdout).
            cache_size: Max transmitted images to keep; 0 = unbounded.
            clock: Nanosecond clock ids are derived from.
        """
        self._tools = tools
        self._out = out or sys.stdout
        self._cache_size = cache_size
        self._clock = clock
        self._cache: "OrderedDict[CacheKey, int]" = OrderedDict()
        self._current: Optional[int] = None
        self._last_id = 0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "kitty"

    @property
    def atomic_replace(self) -> bool:
        return True

    @property
    def current_image_id(self) -> Optional[int]:
        return self._current

    def display(self, path: str, box: TargetBox) -> bool:
        """Place ``path`` inside ``box``, transmitting it first if needed."""
        cell = self._tools.cell_geometry()
        if cell.width <= 0 or cell.height <= 0:
            logger.debug("Cell geometry unavailable: %s", cell)
            return False

        pixels = cell_to_pixel_box(cell, box)
        if pixels.width <= 0 or pixels.height <= 0:
            return False

        # Transmit, place and delete run as one unit per encoder
        with self._lock:
            key = (path, pixels.width, pixels.height)
            image_id = self._cache.get(key)
            if image_id is None:
                image_id = self._transmit(path, pixels.width, pixels.height)
                if image_id is None:
                    return False
                self._cache[key] = image_id
            else:
                self._cache.move_to_end(key)

            self._out.write(move_cursor(box))
            self._out.write(place_command(image_id))
            # Old placement goes only after the new one is visible
            if self._current is not None and self._current != image_id:
                self._out.write(delete_command(self._current))
            self._current = image_id

            self._evict()
            self._out.flush()
        return True

    def clear(self, *args, **kwargs) -> bool:
        """Delete the current placement. The image data stays cached."""
        with self._lock:
            if self._current is not None:
                self._out.write(delete_command(self._current))
                self._out.flush()
                self._current = None
        return True

    def close(self) -> None:
        """Free every transmitted image on the terminal side."""
        with self._lock:
            for image_id in self._cache.values():
                self._out.write(delete_command(image_id, free=True))
            self._out.flush()
            self._cache.clear()
            self._current = None

    def _transmit(self, path: str, max_w: int, max_h: int) -> Optional[int]:
        size = self._tools.identify(path)
        if size is None:
            logger.debug("Could not identify %s", path)
            return None
        width, height = scale_to_fit(size[0], size[1], max_w, max_h)
        if width <= 0 or height <= 0:
            return None

        payload = self._tools.rasterize(path, width, height, "PNG")
        if not payload:
            logger.debug("Rasterizer produced no data for %s", path)
            return None

        image_id = self._allocate_id()
        encoded = base64.standard_b64encode(payload).decode("ascii")
        for command in transmit_commands(image_id, encoded):
            self._out.write(command)
        logger.debug("Transmitted %s as image %d (%dx%d, %d bytes)",
                     path, image_id, width, height, len(payload))
        return image_id

    def _allocate_id(self) -> int:
        """Next image id: clock-derived, increasing, never 0 or in use."""
        candidate = (self._clock() // 1000) & MAX_IMAGE_ID
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        live = set(self._cache.values())
        if self._current is not None:
            live.add(self._current)
        while True:
            if candidate > MAX_IMAGE_ID:
                candidate = 1
            if candidate != 0 and candidate not in live:
                break
            candidate += 1
        self._last_id = candidate
        return candidate

    def _evict(self) -> None:
        # Caller holds self._lock
        if not self._cache_size:
            return
        while len(self._cache) > self._cache_size:
            key, image_id = next(iter(self._cache.items()))
            if image_id == self._current:
                break
            del self._cache[key]
            self._out.write(delete_command(image_id, free=True))
            logger.debug("Evicted image %d (%s)", image_id, key[0])
