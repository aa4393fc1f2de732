# termpix/protocols/w3m.py
"""w3mimgdisplay overlay encoder.

w3mimgdisplay draws bitmaps on top of the terminal window in absolute
window pixels. It reads one command per line on stdin:

    0;1;x;y;w;h;;;;;path   draw image
    6;x;y;w;h;             erase rectangle
    4;                     sync
    3;                     sync and redraw

The cell size used here comes from the X window size divided by the
terminal's column/row counts, not from the tty pixel size, because the
helper works in window coordinates.
"""

import hashlib
import logging
import os
import stat
import tempfile
import threading
from typing import Dict, Optional

from ..config import DEFAULT_W3M_PATH
from ..geometry import CellGeometry, TargetBox, cell_to_pixel_box, scale_to_fit
from ..tools import ExternalTools

logger = logging.getLogger(__name__)


def helper_commands(*lines: str) -> str:
    """Join helper commands and append the sync/redraw terminators."""
    return "\n".join(list(lines) + ["4;", "3;"]) + "\n"


class W3mEncoder:
    """Encoder that drives the w3mimgdisplay overlay helper."""

    def __init__(self, tools: ExternalTools, helper: str = DEFAULT_W3M_PATH,
                 temp_dir: Optional[str] = None):
        self._tools = tools
        self._helper = helper
        self._temp_dir = temp_dir or tempfile.gettempdir()
        # source path -> path to draw (itself if upright); lives as long as the encoder
        self._normalized: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "w3m"

    @property
    def atomic_replace(self) -> bool:
        return False

    def display(self, path: str, box: TargetBox) -> bool:
        cell = self._cell_geometry()
        if cell is None:
            return False
        pixels = cell_to_pixel_box(cell, box)

        source = self._normalized_path(path)
        size = self._tools.identify(source)
        if size is None:
            logger.debug("Could not identify %s", source)
            return False
        width, height = scale_to_fit(size[0], size[1], pixels.width, pixels.height)

        commands = helper_commands(
            f"0;1;{pixels.x};{pixels.y};{width};{height};;;;;{source}")
        return self._tools.send_helper(self._helper, commands)

    def clear(self, x: int = 0, y: int = 0, width: Optional[int] = None,
              height: Optional[int] = None, term_width: Optional[int] = None,
              term_height: Optional[int] = None) -> bool:
        """Erase a character-cell region (default: the whole terminal).

        The erased rectangle extends one cell past the box on the left and
        on the right to cover partial-cell artifacts. Always returns True:
        a failed geometry lookup is treated as nothing left to erase.
        """
        if None in (width, height, term_width, term_height):
            cols, rows = self._tools.terminal_size()
            term_width = cols if term_width is None else term_width
            term_height = rows if term_height is None else term_height
        width = term_width if width is None else width
        height = term_height if height is None else height

        cell = self._cell_geometry(term_width, term_height)
        if cell is None:
            return True

        left = max(0, (x - 1) * cell.width)
        top = y * cell.height
        command = f"6;{left};{top};{(width + 2) * cell.width};{height * cell.height};"
        if not self._tools.send_helper(self._helper, helper_commands(command)):
            logger.debug("w3mimgdisplay erase failed")
        return True

    def _cell_geometry(self, term_width: Optional[int] = None,
                       term_height: Optional[int] = None) -> Optional[CellGeometry]:
        window = self._tools.window_geometry()
        if window is None:
            logger.debug("No window geometry available")
            return None
        if term_width is None or term_height is None:
            term_width, term_height = self._tools.terminal_size()
        if term_width <= 0 or term_height <= 0:
            return None
        cell = CellGeometry(window[0] // term_width, window[1] // term_height)
        if cell.width <= 0 or cell.height <= 0:
            return None
        return cell

    def _normalized_path(self, path: str) -> str:
        """Path to draw: an auto-oriented copy if ``path`` is rotated.

        Both outcomes are remembered, so orientation is checked once per
        source path. Copies live in a private per-user directory under
        the temp dir.
        """
        with self._lock:
            cached = self._normalized.get(path)
            if cached is not None and (cached == path or os.path.exists(cached)):
                return cached
            if not self._tools.has_rotation(path):
                self._normalized[path] = path
                return path

            cache_dir = self._cache_dir()
            if cache_dir is None:
                return path
            digest = hashlib.sha256(path.encode("utf-8")).hexdigest()[:16]
            ext = os.path.splitext(path)[1] or ".png"
            dest = os.path.join(cache_dir, f"termpix-{digest}{ext}")
            if not os.path.exists(dest) and not self._tools.auto_orient(path, dest):
                logger.debug("Could not normalize orientation of %s", path)
                return path

            self._normalized[path] = dest
            return dest

    def _cache_dir(self) -> Optional[str]:
        """Per-user ``termpix-<uid>`` directory, or None if it is not ours."""
        uid = os.getuid()
        cache_dir = os.path.join(self._temp_dir, f"termpix-{uid}")
        try:
            os.makedirs(cache_dir, mode=0o700, exist_ok=True)
            st = os.lstat(cache_dir)
        except OSError as e:
            logger.debug("Cannot create cache dir %s: %s", cache_dir, e)
            return None
        if not stat.S_ISDIR(st.st_mode) or st.st_uid != uid or st.st_mode & 0o077:
            logger.warning("Refusing untrusted cache dir %s", cache_dir)
            return None
        return cache_dir
