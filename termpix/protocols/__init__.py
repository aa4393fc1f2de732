# termpix/protocols/__init__.py
"""Terminal graphics encoders, one per wire protocol.

Each encoder owns whatever state its protocol needs (the kitty encoder's
transmission cache, the w3m encoder's normalized temp files) and exposes
the same two operations:

    display(path, box) -> bool
    clear(...) -> bool

Protocols:
    1. kitty - id-tagged chunked transmission, placement and deletion
    2. sixel - inline pixel stream produced by the rasterizer
    3. w3m   - overlay compositor driven over a pipe
    4. none  - NullEncoder, every operation fails
"""

from typing import Any, Optional, Protocol, TextIO

from ..config import TermpixConfig
from ..geometry import TargetBox
from ..terminal_caps import GraphicsProtocol
from ..tools import ExternalTools


class GraphicsEncoder(Protocol):
    """Protocol for terminal graphics encoders."""

    @property
    def name(self) -> str:
        """Protocol identifier."""
        ...

    @property
    def atomic_replace(self) -> bool:
        """True if showing a new image replaces the old one without flicker."""
        ...

    def display(self, path: str, box: TargetBox) -> bool:
        """Show the image at ``path`` inside ``box`` (character cells)."""
        ...

    def clear(self, *args: Any, **kwargs: Any) -> bool:
        """Remove whatever this encoder last displayed."""
        ...


class NullEncoder:
    """Encoder for terminals without graphics support."""

    @property
    def name(self) -> str:
        return "none"

    @property
    def atomic_replace(self) -> bool:
        return False

    def display(self, path: str, box: TargetBox) -> bool:
        return False

    def clear(self, *args: Any, **kwargs: Any) -> bool:
        return False


def create_encoder(protocol: Optional[GraphicsProtocol], tools: ExternalTools,
                   out: TextIO, config: TermpixConfig) -> GraphicsEncoder:
    """Create an encoder instance for the given protocol."""
    if protocol is GraphicsProtocol.KITTY:
        from .kitty import KittyEncoder
        return KittyEncoder(tools, out, cache_size=config.cache_size)
    elif protocol is GraphicsProtocol.SIXEL:
        from .sixel import SixelEncoder
        return SixelEncoder(tools, out)
    elif protocol is GraphicsProtocol.W3M:
        from .w3m import W3mEncoder
        return W3mEncoder(tools, helper=config.w3m_path, temp_dir=config.temp_dir)
    else:
        return NullEncoder()
