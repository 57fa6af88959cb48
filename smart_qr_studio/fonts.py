"""Font lookup and letter-spaced text drawing on Pillow surfaces."""

import os
import sys
from pathlib import Path

from PIL import ImageDraw, ImageFont

# Extra directory searched first (set from Settings.font_dir)
_font_dirs: list[Path] = []

_font_cache: dict[tuple[str, bool, int], ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}


def _system_fallback(bold: bool) -> str:
    """Return an installed sans-serif font path for the current OS, or ""."""
    if sys.platform == "win32":
        candidates = ["C:/Windows/Fonts/arialbd.ttf" if bold else "C:/Windows/Fonts/arial.ttf"]
    elif sys.platform == "darwin":
        candidates = ["/System/Library/Fonts/Helvetica.ttc", "/Library/Fonts/Arial.ttf"]
    else:
        candidates = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf" if bold else "/usr/share/fonts/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        ]
    for path in candidates:
        if os.path.exists(path):
            return path
    return ""


def add_font_dir(path: str | Path) -> None:
    """Search ``path`` for font files before the system locations."""
    directory = Path(path)
    if directory not in _font_dirs:
        _font_dirs.insert(0, directory)
        _font_cache.clear()


def is_bold(weight: str | int) -> bool:
    """Map a CSS-like weight ("bold", "600", 700) to bold/regular."""
    if isinstance(weight, int) or str(weight).isdigit():
        return int(weight) >= 600
    return str(weight).lower() in ("bold", "bolder", "semibold", "black", "heavy")


def _candidates(family: str, bold: bool) -> list[str]:
    stem = family.replace(" ", "")
    names = [f"{stem}-Bold.ttf", f"{stem}Bold.ttf"] if bold else [f"{stem}-Regular.ttf", f"{stem}.ttf"]
    names.append(f"{stem}.ttf")
    paths = [str(d / name) for d in _font_dirs for name in names]
    # Bare names let Pillow search the platform font directories
    return paths + names


def get_font(family: str, size: float, weight: str | int = "normal"):
    """Load ``family`` at ``size`` pixels, falling back to a system sans-serif.

    The final fallback is Pillow's bundled default font, which scales to any
    size, so this never fails.
    """
    bold = is_bold(weight)
    px = max(1, round(size))
    key = (family, bold, px)
    if key in _font_cache:
        return _font_cache[key]

    font = None
    if os.path.isfile(family):
        font = ImageFont.truetype(family, px)
    else:
        for candidate in _candidates(family, bold):
            try:
                font = ImageFont.truetype(candidate, px)
                break
            except OSError:
                continue
    if font is None:
        fallback = _system_fallback(bold)
        font = ImageFont.truetype(fallback, px) if fallback else ImageFont.load_default(px)

    _font_cache[key] = font
    return font


def measure_text(text: str, font, letter_spacing: float = 0.0) -> float:
    """Advance width of ``text`` with ``letter_spacing`` added between glyphs."""
    if not text:
        return 0.0
    width = sum(font.getlength(ch) for ch in text)
    return width + letter_spacing * (len(text) - 1)


def draw_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    anchor_x: float,
    top: float,
    font,
    fill,
    letter_spacing: float = 0.0,
    align: str = "center",
) -> None:
    """Draw a single line glyph by glyph so letter spacing is honoured.

    ``anchor_x`` is the left edge, centre or right edge of the line depending
    on ``align`` ("left", "center", "right"); ``top`` is the top of the line.
    """
    total = measure_text(text, font, letter_spacing)
    if align == "center":
        x = anchor_x - total / 2
    elif align == "right":
        x = anchor_x - total
    else:
        x = anchor_x

    for ch in text:
        draw.text((x, top), ch, font=font, fill=fill, anchor="la")
        x += font.getlength(ch) + letter_spacing
