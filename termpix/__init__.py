"""Terminal image display.

Shows raster images inside a terminal using the best graphics protocol
the terminal and installed tools support (kitty, sixel, or the
w3mimgdisplay overlay helper).
"""

from .config import TermpixConfig
from .display import Display
from .errors import TermpixError, UnknownProtocolError
from .terminal_caps import GraphicsProtocol, detect

__version__ = "0.1.0"

__all__ = [
    "Display",
    "GraphicsProtocol",
    "TermpixConfig",
    "TermpixError",
    "UnknownProtocolError",
    "detect",
]
