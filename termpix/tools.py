# termpix/tools.py
"""External tool collaborators.

Encoders never shell out directly. They talk to an ``ExternalTools``
implementation, which keeps the protocol logic testable without real
processes and lets the image backend be swapped (ImageMagick here, Pillow
in ``termpix.imaging``).

Every subprocess runs with a bounded timeout. A timeout, a missing binary
or empty output is logged at DEBUG and reported as ``None``/``False``;
nothing here raises to the caller.
"""

import logging
import os
import re
import shutil
import subprocess
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

from .config import TermpixConfig
from .geometry import CellGeometry, query_cell_geometry

logger = logging.getLogger(__name__)

# Orientation values ImageMagick reports for images needing no rotation
IDENTITY_ORIENTATIONS = frozenset({"", "undefined", "topleft"})

_WIDTH_RE = re.compile(r"Width: (\d+)")
_HEIGHT_RE = re.compile(r"Height: (\d+)")


@runtime_checkable
class ExternalTools(Protocol):
    """Everything the encoders and the detector need from the outside world."""

    def command_exists(self, cmd: str) -> bool:
        """True if ``cmd`` is on PATH (or is an executable absolute path)."""
        ...

    def has_converter(self) -> bool:
        """True if images can be rasterized (PNG and sixel output)."""
        ...

    def has_identifier(self) -> bool:
        """True if image dimensions can be queried."""
        ...

    def identify(self, path: str) -> Optional[Tuple[int, int]]:
        """Pixel size of the first frame of ``path``."""
        ...

    def has_rotation(self, path: str) -> bool:
        """True if ``path`` carries a non-identity EXIF orientation."""
        ...

    def auto_orient(self, src: str, dest: str) -> bool:
        """Write an orientation-normalized copy of ``src`` to ``dest``."""
        ...

    def rasterize(self, path: str, width: int, height: int,
                  fmt: str = "PNG") -> Optional[bytes]:
        """Shrink-only resize into ``width`` x ``height``, auto-oriented.

        ``fmt`` is "PNG" or "sixel".
        """
        ...

    def window_geometry(self) -> Optional[Tuple[int, int]]:
        """Pixel size of the active terminal window."""
        ...

    def terminal_size(self) -> Tuple[int, int]:
        """Terminal size as (columns, rows)."""
        ...

    def cell_geometry(self) -> CellGeometry:
        """Pixel size of one character cell."""
        ...

    def send_helper(self, helper: str, commands: str) -> bool:
        """Pipe newline-delimited ``commands`` into the overlay helper."""
        ...


def resize_spec(width: int, height: int) -> str:
    """ImageMagick geometry that only ever shrinks (``WxH>``)."""
    return f"{width}x{height}>"


class MagickTools:
    """ExternalTools backed by ImageMagick and X11 command-line utilities."""

    def __init__(self, config: Optional[TermpixConfig] = None):
        self._config = config or TermpixConfig()

    @property
    def name(self) -> str:
        return "magick"

    def _run(self, cmd: Sequence[str], input: Optional[bytes] = None) -> Optional[bytes]:
        """Run ``cmd`` and return stdout, or None on any failure."""
        try:
            proc = subprocess.run(
                list(cmd),
                input=input,
                capture_output=True,
                timeout=self._config.tool_timeout,
            )
        except subprocess.TimeoutExpired:
            logger.debug("%s timed out after %ss", cmd[0], self._config.tool_timeout)
            return None
        except (FileNotFoundError, OSError) as e:
            logger.debug("%s failed to start: %s", cmd[0], e)
            return None

        if proc.returncode != 0:
            logger.debug("%s exited %d: %s", cmd[0], proc.returncode,
                         proc.stderr.decode("utf-8", errors="replace").strip())
            return None
        return proc.stdout

    def command_exists(self, cmd: str) -> bool:
        if os.path.isabs(cmd):
            return os.path.isfile(cmd) and os.access(cmd, os.X_OK)
        return shutil.which(cmd) is not None

    def has_converter(self) -> bool:
        return self.command_exists("convert")

    def has_identifier(self) -> bool:
        return self.command_exists("identify")

    def identify(self, path: str) -> Optional[Tuple[int, int]]:
        out = self._run(["identify", "-format", "%wx%h", f"{path}[0]"])
        if not out:
            return None
        try:
            w, h = out.decode("ascii", errors="replace").strip().split("x")
            return int(w), int(h)
        except ValueError:
            logger.debug("Unparseable identify output for %s: %r", path, out)
            return None

    def has_rotation(self, path: str) -> bool:
        out = self._run(["identify", "-format", "%[orientation]", f"{path}[0]"])
        if out is None:
            return False
        return out.decode("ascii", errors="replace").strip().lower() not in IDENTITY_ORIENTATIONS

    def auto_orient(self, src: str, dest: str) -> bool:
        if self._run(["convert", f"{src}[0]", "-auto-orient", dest]) is None:
            return False
        return os.path.exists(dest)

    def rasterize(self, path: str, width: int, height: int,
                  fmt: str = "PNG") -> Optional[bytes]:
        out = self._run([
            "convert", f"{path}[0]",
            "-auto-orient",
            "-resize", resize_spec(width, height),
            f"{fmt}:-",
        ])
        return out or None

    def window_geometry(self) -> Optional[Tuple[int, int]]:
        wid = self._run(["xdotool", "getactivewindow"])
        if not wid or not wid.strip():
            return None
        info = self._run(["xwininfo", "-id", wid.decode("ascii", errors="replace").strip()])
        if not info:
            return None
        return parse_window_geometry(info.decode("utf-8", errors="replace"))

    def terminal_size(self) -> Tuple[int, int]:
        size = shutil.get_terminal_size(fallback=(80, 24))
        return size.columns, size.lines

    def cell_geometry(self) -> CellGeometry:
        default = CellGeometry(self._config.default_cell_width,
                               self._config.default_cell_height)
        return query_cell_geometry(default)

    def send_helper(self, helper: str, commands: str) -> bool:
        return self._run([helper], input=commands.encode("utf-8")) is not None


def parse_window_geometry(text: str) -> Optional[Tuple[int, int]]:
    """Extract (width, height) from ``xwininfo`` output."""
    width = _WIDTH_RE.search(text)
    height = _HEIGHT_RE.search(text)
    if not width or not height:
        return None
    return int(width.group(1)), int(height.group(1))


def create_tools(config: Optional[TermpixConfig] = None) -> ExternalTools:
    """Build the tool collaborator named by ``config.image_backend``."""
    config = config or TermpixConfig()
    if config.image_backend == "pillow":
        from .imaging import PillowTools
        return PillowTools(config)
    if config.image_backend != "magick":
        logger.warning("Unknown image backend %r, using ImageMagick",
                       config.image_backend)
    return MagickTools(config)
