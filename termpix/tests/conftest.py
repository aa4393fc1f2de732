"""Pytest fixtures for termpix tests."""

import io
from typing import Dict, List, Optional, Set, Tuple

import pytest

from termpix.geometry import CellGeometry


class FakeTools:
    """ExternalTools double that records calls and never spawns processes."""

    def __init__(self):
        self.commands: Set[str] = set()
        self.converter = False
        self.identifier = False
        self.sizes: Dict[str, Tuple[int, int]] = {}
        self.default_size: Optional[Tuple[int, int]] = (400, 300)
        self.rotated: Set[str] = set()
        self.payload: Optional[bytes] = b"\x89PNG\r\n\x1a\nfake"
        self.cell = CellGeometry(10, 20)
        self.window: Optional[Tuple[int, int]] = (800, 480)
        self.term = (80, 24)
        self.helper_ok = True
        self.orient_ok = True
        self.calls: List[tuple] = []

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def helper_input(self) -> List[str]:
        return [call[2] for call in self.calls if call[0] == "send_helper"]

    def command_exists(self, cmd):
        self.calls.append(("command_exists", cmd))
        return cmd in self.commands

    def has_converter(self):
        self.calls.append(("has_converter",))
        return self.converter

    def has_identifier(self):
        self.calls.append(("has_identifier",))
        return self.identifier

    def identify(self, path):
        self.calls.append(("identify", path))
        return self.sizes.get(path, self.default_size)

    def has_rotation(self, path):
        self.calls.append(("has_rotation", path))
        return path in self.rotated

    def auto_orient(self, src, dest):
        self.calls.append(("auto_orient", src, dest))
        if not self.orient_ok:
            return False
        with open(dest, "wb") as f:
            f.write(b"normalized")
        return True

    def rasterize(self, path, width, height, fmt="PNG"):
        self.calls.append(("rasterize", path, width, height, fmt))
        return self.payload

    def window_geometry(self):
        self.calls.append(("window_geometry",))
        return self.window

    def terminal_size(self):
        self.calls.append(("terminal_size",))
        return self.term

    def cell_geometry(self):
        self.calls.append(("cell_geometry",))
        return self.cell

    def send_helper(self, helper, commands):
        self.calls.append(("send_helper", helper, commands))
        return self.helper_ok


@pytest.fixture
def fake_tools():
    return FakeTools()


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def image_file(tmp_path):
    """An existing file the encoders can be pointed at."""
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")
    return str(path)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's terminal from leaking into detection."""
    for name in ("TERM", "TERMPIX_GRAPHICS_PROTOCOL", "TERMPIX_IMAGE_BACKEND",
                 "TERMPIX_W3MIMGDISPLAY", "TERMPIX_TOOL_TIMEOUT",
                 "TERMPIX_CACHE_SIZE", "TERMPIX_TEMP_DIR"):
        monkeypatch.delenv(name, raising=False)
