# termpix/display.py
"""Display facade: the public entry point for showing images.

    from termpix import Display

    display = Display()                      # auto-detect
    if display.supported:
        display.show("photo.jpg", x=2, y=1, max_width=40, max_height=20)
        ...
        display.clear()

The protocol is chosen once, at construction. On an unsupported terminal
every operation is a no-op that returns False.
"""

import logging
import os
import sys
from typing import Any, Dict, Optional, TextIO, Union

from .config import TermpixConfig
from .errors import UnknownProtocolError
from .geometry import TargetBox
from .protocols import GraphicsEncoder, create_encoder
from .terminal_caps import GraphicsProtocol, detect
from .tools import ExternalTools, create_tools

logger = logging.getLogger(__name__)


class Display:
    """Shows one image at a time using the terminal's graphics protocol."""

    def __init__(self, protocol: Union[GraphicsProtocol, str, None] = None,
                 tools: Optional[ExternalTools] = None,
                 out: Optional[TextIO] = None,
                 config: Optional[TermpixConfig] = None,
                 encoder: Optional[GraphicsEncoder] = None):
        """
        Args:
            protocol: Force a protocol (enum or name). None auto-detects.
            tools: External tool collaborator (default: from config).
            out: Terminal output stream (default: sys.stdout).
            config: Settings; read from the environment when omitted.
            encoder: Pre-built encoder to share between facades. Its
                ``name`` determines the protocol.

        Raises:
            UnknownProtocolError: If ``protocol`` names no known protocol.
        """
        self._config = config or TermpixConfig()
        self._tools = tools or create_tools(self._config)

        if encoder is not None:
            protocol = encoder.name
        self._protocol = self._resolve_protocol(protocol)

        if encoder is None:
            encoder = create_encoder(self._protocol, self._tools,
                                     out or sys.stdout, self._config)
        self._encoder = encoder
        self._current_image: Optional[str] = None
        logger.debug("Display using protocol %s", self._protocol)

    def _resolve_protocol(self, protocol: Union[GraphicsProtocol, str, None]
                          ) -> Optional[GraphicsProtocol]:
        if isinstance(protocol, GraphicsProtocol):
            return protocol
        if isinstance(protocol, str):
            if protocol.strip().lower() == "none":
                return None
            parsed = GraphicsProtocol.parse(protocol)
            if parsed is None:
                raise UnknownProtocolError(protocol)
            return parsed

        env = dict(os.environ)
        if self._config.graphics_protocol:
            env["TERMPIX_GRAPHICS_PROTOCOL"] = self._config.graphics_protocol
        return detect(env, self._tools, self._config.w3m_path)

    @property
    def protocol(self) -> Optional[GraphicsProtocol]:
        return self._protocol

    @property
    def supported(self) -> bool:
        return self._protocol is not None

    @property
    def atomic_replace(self) -> bool:
        """True if ``show`` swaps images without flicker.

        Only kitty guarantees this. With other protocols callers that care
        about flicker must ``clear`` before showing the next image.
        """
        return self._protocol is GraphicsProtocol.KITTY

    @property
    def current_image(self) -> Optional[str]:
        return self._current_image

    def show(self, image_path: str, x: int = 0, y: int = 0,
             max_width: int = 80, max_height: int = 24) -> bool:
        """Display an image at the specified position.

        Args:
            image_path: Path to the image file.
            x: Column of the top-left corner (0-based).
            y: Row of the top-left corner (0-based).
            max_width: Maximum width in terminal columns.
            max_height: Maximum height in terminal rows.

        Returns:
            True if the image was displayed.
        """
        if not self.supported:
            return False
        if not os.path.isfile(image_path):
            logger.debug("Image not found: %s", image_path)
            return False

        box = TargetBox(x, y, max_width, max_height)
        if not self._encoder.display(os.fspath(image_path), box):
            return False

        self._current_image = image_path
        return True

    def clear(self, *args: Any, **kwargs: Any) -> bool:
        """Clear the currently displayed image.

        Extra arguments go to the encoder; w3m accepts
        ``(x, y, width, height, term_width, term_height)`` to erase a
        specific region.
        """
        if not self.supported:
            return False
        self._encoder.clear(*args, **kwargs)
        self._current_image = None
        return True

    def close(self) -> None:
        """Clear the image and release terminal-side resources."""
        if not self.supported:
            return
        close = getattr(self._encoder, "close", None)
        if close is not None:
            close()
        else:
            self._encoder.clear()
        self._current_image = None

    def info(self) -> Dict[str, Any]:
        """Get information about the current protocol."""
        return {
            "protocol": self._protocol.value if self._protocol else None,
            "supported": self.supported,
            "current_image": self._current_image,
        }
