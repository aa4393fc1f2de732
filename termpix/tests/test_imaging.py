"""Tests for the Pillow image backend."""

from io import BytesIO, StringIO

import pytest
from PIL import Image

from termpix import Display
from termpix.config import TermpixConfig
from termpix.imaging import EXIF_ORIENTATION, PillowTools, _rle_encode, encode_sixel


@pytest.fixture
def tools():
    return PillowTools(TermpixConfig())


@pytest.fixture
def png(tmp_path):
    path = tmp_path / "wide.png"
    Image.new("RGB", (200, 100), color=(255, 0, 0)).save(path)
    return str(path)


@pytest.fixture
def rotated_jpeg(tmp_path):
    """A 60x20 JPEG tagged to be rotated 90 degrees on display."""
    path = tmp_path / "rotated.jpg"
    exif = Image.Exif()
    exif[EXIF_ORIENTATION] = 6
    Image.new("RGB", (60, 20), color=(0, 0, 255)).save(path, exif=exif)
    return str(path)


class TestPillowTools:

    def test_always_available(self, tools):
        assert tools.has_converter() is True
        assert tools.has_identifier() is True

    def test_identify(self, tools, png):
        assert tools.identify(png) == (200, 100)

    def test_identify_not_an_image(self, tools, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        assert tools.identify(str(path)) is None

    def test_rotation_detected(self, tools, png, rotated_jpeg):
        assert tools.has_rotation(png) is False
        assert tools.has_rotation(rotated_jpeg) is True

    def test_auto_orient_writes_upright_copy(self, tools, rotated_jpeg, tmp_path):
        dest = str(tmp_path / "upright.jpg")
        assert tools.auto_orient(rotated_jpeg, dest) is True
        assert tools.identify(dest) == (20, 60)

    def test_rasterize_png_shrinks(self, tools, png):
        data = tools.rasterize(png, 100, 100)
        with Image.open(BytesIO(data)) as img:
            assert img.format == "PNG"
            assert img.size == (100, 50)

    def test_rasterize_never_enlarges(self, tools, png):
        data = tools.rasterize(png, 1000, 1000)
        with Image.open(BytesIO(data)) as img:
            assert img.size == (200, 100)

    def test_rasterize_sixel(self, tools, png):
        data = tools.rasterize(png, 20, 20, "sixel")
        assert data.startswith(b"\x1bP0;1;0q\"1;1;20;10")
        assert data.endswith(b"\x1b\\")

    def test_rasterize_missing_file(self, tools, tmp_path):
        assert tools.rasterize(str(tmp_path / "gone.png"), 10, 10) is None

    def test_oversized_image_is_failure(self, tools, tmp_path, monkeypatch):
        path = str(tmp_path / "huge.png")
        Image.new("RGB", (200, 200)).save(path)
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        assert tools.identify(path) is None
        assert tools.has_rotation(path) is False
        assert tools.auto_orient(path, str(tmp_path / "out.png")) is False
        assert tools.rasterize(path, 10, 10) is None

    def test_oversized_image_does_not_raise_from_show(self, tmp_path, monkeypatch):
        path = str(tmp_path / "huge.png")
        Image.new("RGB", (200, 200)).save(path)
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        config = TermpixConfig(image_backend="pillow")
        display = Display("kitty", config=config, out=StringIO())
        assert display.show(path) is False
        assert display.current_image is None


class TestSixelEncoding:

    def test_solid_image_single_color_band(self):
        img = Image.new("RGB", (4, 6), color=(0, 0, 0))
        result = encode_sixel(img)
        # One band, one color, all six bits set in each column
        assert "!4~" in result
        assert result.count("-") == 1

    def test_partial_band(self):
        img = Image.new("RGB", (2, 8), color=(255, 255, 255))
        result = encode_sixel(img)
        # Second band covers two rows: bits 0 and 1 -> value 3 -> "B"
        assert "BB$" in result
        assert result.count("-") == 2

    def test_rle(self):
        assert _rle_encode([0, 0, 0, 1, 1]) == "!3?@@"
        assert _rle_encode([]) == ""
