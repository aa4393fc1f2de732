"""Tests for graphics protocol detection."""

import pytest

from termpix.terminal_caps import GraphicsProtocol, detect

W3M = "/usr/lib/w3m/w3mimgdisplay"


@pytest.fixture
def w3m_ready(fake_tools):
    """Tools with everything the w3m overlay needs."""
    fake_tools.commands.update({W3M, "xwininfo", "xdotool"})
    fake_tools.identifier = True
    return fake_tools


class TestOverride:
    """Tests for the TERMPIX_GRAPHICS_PROTOCOL override."""

    def test_override_selects_kitty(self, fake_tools):
        env = {"TERMPIX_GRAPHICS_PROTOCOL": "kitty"}
        assert detect(env, fake_tools) is GraphicsProtocol.KITTY

    def test_override_is_case_insensitive(self, fake_tools):
        env = {"TERMPIX_GRAPHICS_PROTOCOL": "Sixel"}
        assert detect(env, fake_tools) is GraphicsProtocol.SIXEL

    def test_override_none_disables(self, w3m_ready):
        env = {"TERMPIX_GRAPHICS_PROTOCOL": "none", "TERM": "xterm-256color"}
        w3m_ready.converter = True
        assert detect(env, w3m_ready) is None

    def test_override_skips_probing(self, fake_tools):
        detect({"TERMPIX_GRAPHICS_PROTOCOL": "w3m"}, fake_tools)
        assert fake_tools.calls == []


class TestSixelDetection:
    """Tests for the sixel rule."""

    @pytest.mark.parametrize("term", ["xterm", "xterm-256color", "mlterm", "foot", "foot-extra"])
    def test_sixel_terms(self, fake_tools, term):
        fake_tools.converter = True
        assert detect({"TERM": term}, fake_tools) is GraphicsProtocol.SIXEL

    def test_needs_converter(self, fake_tools):
        assert detect({"TERM": "xterm-256color"}, fake_tools) is None

    def test_img2sixel_counts_as_signature(self, fake_tools):
        fake_tools.converter = True
        fake_tools.commands.add("img2sixel")
        assert detect({"TERM": "linux"}, fake_tools) is GraphicsProtocol.SIXEL

    def test_kitty_terminal_is_not_auto_selected(self, fake_tools):
        fake_tools.identifier = True
        assert detect({"TERM": "kitty"}, fake_tools) is None

    def test_sixel_wins_over_w3m(self, w3m_ready):
        w3m_ready.converter = True
        assert detect({"TERM": "xterm"}, w3m_ready) is GraphicsProtocol.SIXEL


class TestW3mDetection:
    """Tests for the w3m overlay rule."""

    def test_all_dependencies_present(self, w3m_ready):
        assert detect({"TERM": "rxvt-unicode"}, w3m_ready) is GraphicsProtocol.W3M

    @pytest.mark.parametrize("missing", ["xwininfo", "xdotool", W3M])
    def test_missing_command(self, w3m_ready, missing):
        w3m_ready.commands.discard(missing)
        assert detect({"TERM": "rxvt-unicode"}, w3m_ready) is None

    def test_missing_identify(self, w3m_ready):
        w3m_ready.identifier = False
        assert detect({}, w3m_ready) is None

    def test_custom_helper_path(self, w3m_ready):
        w3m_ready.commands.add("/opt/w3m/w3mimgdisplay")
        w3m_ready.commands.discard(W3M)
        result = detect({}, w3m_ready, w3m_path="/opt/w3m/w3mimgdisplay")
        assert result is GraphicsProtocol.W3M


class TestGraphicsProtocol:
    """Tests for protocol name parsing."""

    def test_parse_known(self):
        assert GraphicsProtocol.parse(" W3M ") is GraphicsProtocol.W3M

    def test_parse_unknown(self):
        assert GraphicsProtocol.parse("iterm") is None

    def test_nothing_available(self, fake_tools):
        assert detect({}, fake_tools) is None
