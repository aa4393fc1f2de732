# termpix/imaging.py
"""In-process image backend using Pillow.

Replaces the ImageMagick subprocesses for identify, orientation checks,
auto-orientation and rasterization. Window geometry and the overlay
helper pipe still go through ``MagickTools`` since Pillow has no
equivalent.

Sixel output is encoded here directly: the image is quantized to a
256-color palette and each 6-pixel-high band is emitted per color with
run-length compression.

Protocol: https://en.wikipedia.org/wiki/Sixel
"""

import logging
from io import BytesIO
from typing import List, Optional, Tuple

from PIL import Image, ImageOps

from .tools import MagickTools

logger = logging.getLogger(__name__)

EXIF_ORIENTATION = 0x0112
MAX_COLORS = 256


class PillowTools(MagickTools):
    """ExternalTools with image work done by Pillow."""

    @property
    def name(self) -> str:
        return "pillow"

    def has_converter(self) -> bool:
        return True

    def has_identifier(self) -> bool:
        return True

    def identify(self, path: str) -> Optional[Tuple[int, int]]:
        try:
            with Image.open(path) as img:
                return img.size
        except (OSError, Image.DecompressionBombError) as e:
            logger.debug("Pillow could not identify %s: %s", path, e)
            return None

    def has_rotation(self, path: str) -> bool:
        try:
            with Image.open(path) as img:
                return img.getexif().get(EXIF_ORIENTATION, 1) not in (0, 1)
        except (OSError, Image.DecompressionBombError) as e:
            logger.debug("Pillow could not read EXIF of %s: %s", path, e)
            return False

    def auto_orient(self, src: str, dest: str) -> bool:
        try:
            with Image.open(src) as img:
                ImageOps.exif_transpose(img).save(dest)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.debug("Pillow could not normalize %s: %s", src, e)
            return False
        return True

    def rasterize(self, path: str, width: int, height: int,
                  fmt: str = "PNG") -> Optional[bytes]:
        try:
            with Image.open(path) as img:
                img = ImageOps.exif_transpose(img)
                # thumbnail() only ever shrinks and keeps the aspect ratio
                img.thumbnail((width, height), Image.Resampling.LANCZOS)
                if fmt.lower() == "sixel":
                    return encode_sixel(img).encode("ascii")
                buf = BytesIO()
                img.save(buf, format="PNG")
                return buf.getvalue()
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.debug("Pillow could not rasterize %s: %s", path, e)
            return None


def encode_sixel(img: Image.Image) -> str:
    """Encode an image as a sixel escape sequence."""
    quantized = img.convert("RGB").quantize(colors=MAX_COLORS)
    palette = quantized.getpalette() or []
    # get_flattened_data() is the non-deprecated replacement in Pillow 14+
    if hasattr(quantized, "get_flattened_data"):
        pixels = list(quantized.get_flattened_data())
    else:
        pixels = list(quantized.getdata())
    w, h = quantized.size

    # DCS introducer: pixel aspect 1:1, transparent background
    parts = ["\x1bP0;1;0q", f"\"1;1;{w};{h}"]

    used = sorted(set(pixels))
    for i in used:
        if i * 3 + 2 < len(palette):
            r = palette[i * 3] * 100 // 255
            g = palette[i * 3 + 1] * 100 // 255
            b = palette[i * 3 + 2] * 100 // 255
            parts.append(f"#{i};2;{r};{g};{b}")

    for band_y in range(0, h, 6):
        rows = min(6, h - band_y)
        for color_idx in used:
            band: List[int] = []
            has_color = False
            for x in range(w):
                value = 0
                for bit in range(rows):
                    if pixels[(band_y + bit) * w + x] == color_idx:
                        value |= 1 << bit
                        has_color = True
                band.append(value)
            if not has_color:
                continue
            parts.append(f"#{color_idx}")
            parts.append(_rle_encode(band))
            # Graphics carriage return: next color overdraws the same band
            parts.append("$")
        parts.append("-")

    parts.append("\x1b\\")
    return "".join(parts)


def _rle_encode(data: List[int]) -> str:
    """Run-length encode sixel values (``!<count><char>`` for runs of 3+)."""
    parts = []
    i = 0
    while i < len(data):
        val = data[i]
        char = chr(val + 63)
        count = 1
        while i + count < len(data) and data[i + count] == val:
            count += 1
        if count >= 3:
            parts.append(f"!{count}{char}")
        else:
            parts.append(char * count)
        i += count
    return "".join(parts)
