"""Runtime configuration for termpix.

Every field defaults from an environment variable so callers can tune
behaviour without code changes:

    from termpix.config import TermpixConfig

    config = TermpixConfig()                 # read from environment
    config = TermpixConfig(tool_timeout=2)   # explicit override

Environment Variables:
    TERMPIX_GRAPHICS_PROTOCOL: Force a protocol ("kitty", "sixel", "w3m")
        or disable graphics ("none"). Unset means auto-detect.
    TERMPIX_IMAGE_BACKEND: "magick" (ImageMagick subprocesses, default)
        or "pillow" (in-process).
    TERMPIX_W3MIMGDISPLAY: Path to the w3mimgdisplay helper.
    TERMPIX_TOOL_TIMEOUT: Seconds before an external tool is abandoned
        (default: 10).
    TERMPIX_CACHE_SIZE: Max kitty images kept transmitted; 0 = unbounded.
    TERMPIX_TEMP_DIR: Where orientation-normalized copies are written.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_W3M_PATH = "/usr/lib/w3m/w3mimgdisplay"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


@dataclass
class TermpixConfig:
    """Configuration for protocol detection, tools and caches."""
    graphics_protocol: Optional[str] = field(
        default_factory=lambda: os.environ.get("TERMPIX_GRAPHICS_PROTOCOL") or None)
    image_backend: str = field(
        default_factory=lambda: os.environ.get("TERMPIX_IMAGE_BACKEND", "magick").lower())
    w3m_path: str = field(
        default_factory=lambda: os.environ.get("TERMPIX_W3MIMGDISPLAY", DEFAULT_W3M_PATH))
    tool_timeout: float = field(
        default_factory=lambda: _env_float("TERMPIX_TOOL_TIMEOUT", 10.0))
    cache_size: int = field(
        default_factory=lambda: max(0, _env_int("TERMPIX_CACHE_SIZE", 0)))
    temp_dir: str = field(
        default_factory=lambda: os.environ.get("TERMPIX_TEMP_DIR") or tempfile.gettempdir())
    default_cell_width: int = 10
    default_cell_height: int = 20
