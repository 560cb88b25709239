"""
CSS-flavoured font and color resolution for Pillow.

Fonts are configured the way a browser would take them ("bold 48px
Montserrat, sans-serif"). Each family in the fallback list is tried in order;
generic families map to common system faces and the last resort is Pillow's
bundled default face.
"""
from __future__ import annotations

import os
import re
from functools import lru_cache
from typing import Iterator, NamedTuple, Optional, Tuple

from PIL import ImageColor, ImageFont

from src.specs.common.errors import ValidationError

RGBA = Tuple[int, int, int, int]

_GENERIC_FACES = {
    "serif": (
        ("DejaVuSerif.ttf", "DejaVuSerif-Bold.ttf"),
        ("LiberationSerif-Regular.ttf", "LiberationSerif-Bold.ttf"),
        ("Times New Roman.ttf", "Times New Roman Bold.ttf"),
        ("times.ttf", "timesbd.ttf"),
    ),
    "sans-serif": (
        ("DejaVuSans.ttf", "DejaVuSans-Bold.ttf"),
        ("LiberationSans-Regular.ttf", "LiberationSans-Bold.ttf"),
        ("Arial.ttf", "Arial Bold.ttf"),
        ("arial.ttf", "arialbd.ttf"),
    ),
    "cursive": (
        ("DejaVuSerif-Italic.ttf", "DejaVuSerif-BoldItalic.ttf"),
        ("LiberationSerif-Italic.ttf", "LiberationSerif-BoldItalic.ttf"),
    ),
    "monospace": (
        ("DejaVuSansMono.ttf", "DejaVuSansMono-Bold.ttf"),
        ("LiberationMono-Regular.ttf", "LiberationMono-Bold.ttf"),
    ),
}
_GENERIC_FACES["fantasy"] = _GENERIC_FACES["sans-serif"]
_GENERIC_FACES["system-ui"] = _GENERIC_FACES["sans-serif"]

_FONT_SHORTHAND = re.compile(
    r"^\s*(?P<styles>(?:(?:bold|bolder|normal|italic|[1-9]00)\s+)*)"
    r"(?P<size>\d+(?:\.\d+)?)px\s+(?P<family>.+?)\s*$",
    re.IGNORECASE,
)
_RGBA_FUNC = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*([0-9]*\.?[0-9]+)\s*)?\)$",
    re.IGNORECASE,
)


class FontSpec(NamedTuple):
    family: str
    size: int
    bold: bool = False


def parse_font_shorthand(value: str) -> FontSpec:
    """Parse "bold 36px Playfair Display, serif" into its parts."""
    match = _FONT_SHORTHAND.match(value or "")
    if not match:
        raise ValidationError(f"Unsupported font declaration '{value}'")
    styles = match.group("styles").lower().split()
    bold = any(s in ("bold", "bolder") or (s.isdigit() and int(s) >= 600) for s in styles)
    return FontSpec(family=match.group("family"), size=max(1, round(float(match.group("size")))), bold=bold)


def parse_color(value: str) -> RGBA:
    """Resolve a CSS color (hex, named, rgb() or rgba() with 0..1 alpha) to RGBA."""
    text = (value or "").strip()
    match = _RGBA_FUNC.match(text)
    if match:
        r, g, b = (min(255, int(match.group(i))) for i in (1, 2, 3))
        alpha = match.group(4)
        a = 255 if alpha is None else round(min(1.0, max(0.0, float(alpha))) * 255)
        return r, g, b, a
    try:
        return ImageColor.getcolor(text, "RGBA")  # type: ignore[return-value]
    except ValueError:
        raise ValidationError(f"Unsupported color '{value}'")


def split_families(family: str) -> Iterator[str]:
    for part in (family or "").split(","):
        name = part.strip().strip("'\"").strip()
        if name:
            yield name


def _candidate_files(name: str, bold: bool) -> Iterator[str]:
    generic = _GENERIC_FACES.get(name.lower())
    if generic:
        for regular, bold_face in generic:
            yield bold_face if bold else regular
        if bold:
            for regular, _ in generic:
                yield regular
        return
    compact = name.replace(" ", "")
    weights = ("Bold", "Regular") if bold else ("Regular",)
    for weight in weights:
        yield f"{compact}-{weight}.ttf"
        yield f"{compact}-{weight}.otf"
    yield f"{compact}.ttf"
    yield f"{name}.ttf"


def _open_font(filename: str, size: int, fonts_dir: Optional[str]) -> Optional[ImageFont.FreeTypeFont]:
    paths = [os.path.join(fonts_dir, filename)] if fonts_dir else []
    paths.append(filename)  # Pillow also searches the platform font directories
    for path in paths:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return None


@lru_cache(maxsize=256)
def resolve_font(family: str, size: int, bold: bool = False, fonts_dir: Optional[str] = None) -> ImageFont.FreeTypeFont:
    for name in split_families(family):
        for filename in _candidate_files(name, bold):
            font = _open_font(filename, size, fonts_dir)
            if font is not None:
                return font
    return ImageFont.load_default(size=size)


def font_from_shorthand(value: str, fonts_dir: Optional[str] = None) -> ImageFont.FreeTypeFont:
    spec = parse_font_shorthand(value)
    return resolve_font(spec.family, spec.size, spec.bold, fonts_dir)


__all__ = [
    "FontSpec",
    "parse_font_shorthand",
    "parse_color",
    "split_families",
    "resolve_font",
    "font_from_shorthand",
]
