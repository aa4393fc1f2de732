# termpix/terminal_caps.py
"""Graphics protocol detection.

Picks exactly one protocol (or none) from environment signals and tool
availability. Detection is best-effort: a terminal can advertise a
signature it does not honour, and nothing here queries the terminal.

Usage:
    from termpix.terminal_caps import detect

    protocol = detect(os.environ, tools)   # GraphicsProtocol | None
"""

import logging
import re
from enum import Enum
from typing import Mapping, Optional

from .tools import ExternalTools

logger = logging.getLogger(__name__)

# TERM values of emulators that render sixel graphics
SIXEL_TERM_RE = re.compile(r"xterm|mlterm|foot")

# The overlay helper additionally needs these to locate the window
W3M_DEPENDENCIES = ("xwininfo", "xdotool")


class GraphicsProtocol(Enum):
    """Supported terminal graphics protocols."""
    KITTY = "kitty"
    SIXEL = "sixel"
    W3M = "w3m"

    @classmethod
    def parse(cls, value: str) -> Optional["GraphicsProtocol"]:
        """Map a user-supplied name to a protocol; None for unknown names."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def detect(env: Mapping[str, str], tools: ExternalTools,
           w3m_path: str = "/usr/lib/w3m/w3mimgdisplay") -> Optional[GraphicsProtocol]:
    """Detect the graphics protocol to use.

    Order matters, first match wins:
        0. TERMPIX_GRAPHICS_PROTOCOL override ("none" disables graphics)
        1. sixel: sixel-capable TERM (or img2sixel installed) + converter
        2. w3m: w3mimgdisplay helper + xwininfo, xdotool and identify
        3. None

    Kitty is deliberately never auto-selected: its placements fight with
    full-screen interactive redraws. It is only used when requested.

    Args:
        env: Environment mapping (usually ``os.environ``).
        tools: Tool probe used for availability checks.
        w3m_path: Location of the w3mimgdisplay helper.

    Returns:
        The selected GraphicsProtocol, or None when unsupported.
    """
    override = env.get("TERMPIX_GRAPHICS_PROTOCOL")
    if override:
        protocol = GraphicsProtocol.parse(override)
        logger.debug("Graphics protocol forced to %s", protocol)
        return protocol

    if _has_sixel_signature(env, tools) and tools.has_converter():
        return GraphicsProtocol.SIXEL

    if tools.command_exists(w3m_path) and _has_w3m_dependencies(tools):
        return GraphicsProtocol.W3M

    logger.debug("No graphics protocol detected (TERM=%r)", env.get("TERM"))
    return None


def _has_sixel_signature(env: Mapping[str, str], tools: ExternalTools) -> bool:
    if SIXEL_TERM_RE.search(env.get("TERM", "")):
        return True
    return tools.command_exists("img2sixel")


def _has_w3m_dependencies(tools: ExternalTools) -> bool:
    return all(tools.command_exists(cmd) for cmd in W3M_DEPENDENCIES) and tools.has_identifier()
