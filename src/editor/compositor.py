"""
Layered render pipeline for the moment canvas.

Every call to ``Compositor.render`` starts from a fresh transparent canvas and
paints, in order: background (cover fit or gradient fallback), subject (with
adjustments and drop shadow), and the overlay (branding, header, footer,
watermark, credit). Nothing is cached between renders, so rendering the same
scene twice yields identical pixels.
"""
from __future__ import annotations

import io
import math
from typing import NamedTuple, Optional, Tuple

from PIL import Image, ImageDraw, ImageEnhance, ImageFilter, ImageFont
from pydantic import BaseModel, ConfigDict, Field

from src.editor.models import AdjustmentState, BackgroundSelection, SubjectState, TextOverlayState
from src.editor.typography import RGBA, font_from_shorthand, parse_color, resolve_font
from src.specs.common.errors import ValidationError
from src.specs.editor.config import EditorConfig

TRANSPARENT: RGBA = (0, 0, 0, 0)


class Shadow(NamedTuple):
    color: str
    blur: float
    offset: Tuple[int, int] = (0, 0)


# Fixed affordances, not user-configurable.
SUBJECT_SHADOW = Shadow("rgba(0, 0, 0, 0.35)", 30, (8, 15))
BRANDING_SHADOW = Shadow("rgba(0, 0, 0, 0.5)", 15, (2, 2))
CAPTION_SHADOW = Shadow("rgba(0, 0, 0, 0.6)", 12, (2, 2))
CREDIT_SHADOW = Shadow("rgba(0, 0, 0, 0.3)", 4)
BRANDING_FILL = "#FFFFFF"


class Scene(BaseModel):
    """Everything a single render reads; the compositor never writes back."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    background: BackgroundSelection = Field(default_factory=BackgroundSelection.none)
    subject: SubjectState = Field(default_factory=SubjectState)
    adjustments: AdjustmentState = Field(default_factory=AdjustmentState)
    header: Optional[TextOverlayState] = None
    footer: Optional[TextOverlayState] = None


def cover_fit(src_w: float, src_h: float, dst_w: float, dst_h: float) -> Tuple[float, float, float, float]:
    """Return ``(dx, dy, dw, dh)`` scaling the source to fill the target.

    Wider-than-target sources match the target height and centre horizontally;
    the rest match the width and centre vertically. Aspect ratio is preserved.
    """
    if src_w <= 0 or src_h <= 0 or dst_w <= 0 or dst_h <= 0:
        raise ValidationError("Cover fit needs positive dimensions")
    src_ratio = src_w / src_h
    if src_ratio > dst_w / dst_h:
        dh = float(dst_h)
        dw = dh * src_ratio
        return (dst_w - dw) / 2, 0.0, dw, dh
    dw = float(dst_w)
    dh = dw / src_ratio
    return 0.0, (dst_h - dh) / 2, dw, dh


def apply_adjustments(image: Image.Image, adjustments: AdjustmentState) -> Image.Image:
    """Brightness, contrast and saturation on the colour channels; alpha is kept."""
    if adjustments.is_identity:
        return image
    alpha = image.getchannel("A")
    rgb = image.convert("RGB")
    rgb = ImageEnhance.Brightness(rgb).enhance(adjustments.brightness)
    rgb = ImageEnhance.Contrast(rgb).enhance(adjustments.contrast)
    rgb = ImageEnhance.Color(rgb).enhance(adjustments.saturation)
    out = rgb.convert("RGBA")
    out.putalpha(alpha)
    return out


def vertical_gradient(size: Tuple[int, int], top: str, bottom: str) -> Image.Image:
    mask = Image.linear_gradient("L").resize(size, Image.Resampling.BILINEAR)
    top_fill = Image.new("RGBA", size, parse_color(top))
    bottom_fill = Image.new("RGBA", size, parse_color(bottom))
    return Image.composite(bottom_fill, top_fill, mask)


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def _blur_radius(css_blur: float) -> float:
    # Canvas shadowBlur is twice the Gaussian standard deviation.
    return css_blur / 2


class Compositor:
    def __init__(self, config: EditorConfig) -> None:
        self.config = config

    @property
    def size(self) -> Tuple[int, int]:
        return self.config.canvas.width, self.config.canvas.height

    def new_layer(self) -> Image.Image:
        return Image.new("RGBA", self.size, TRANSPARENT)

    def render(self, scene: Scene) -> Image.Image:
        canvas = self.new_layer()
        canvas = self.draw_background(canvas, scene.background)
        canvas = self.draw_subject(canvas, scene.subject, scene.adjustments)
        canvas = self.draw_overlay(canvas, scene.header, scene.footer)
        return canvas

    # Layer 0

    def draw_background(self, canvas: Image.Image, background: BackgroundSelection) -> Image.Image:
        raster = background.resolved_raster()
        if raster is None:
            bg = self.config.backgrounds
            return Image.alpha_composite(canvas, vertical_gradient(self.size, bg.gradientTop, bg.gradientBottom))
        dx, dy, dw, dh = cover_fit(raster.width, raster.height, *self.size)
        # Round outward so the drawn box always covers the canvas.
        target = (max(1, math.ceil(dw)), max(1, math.ceil(dh)))
        scaled = raster.image.resize(target, Image.Resampling.LANCZOS)
        layer = self.new_layer()
        layer.paste(scaled, (math.floor(dx), math.floor(dy)))
        return Image.alpha_composite(canvas, layer)

    # Layer 1

    def draw_subject(self, canvas: Image.Image, subject: SubjectState, adjustments: AdjustmentState) -> Image.Image:
        if subject.raster is None or subject.raster.released:
            return canvas
        box = subject.bounding_box()
        width, height = round(box.width), round(box.height)
        if width < 1 or height < 1:
            return canvas
        left, top = round(box.left), round(box.top)

        # Only the part of the box that can reach the canvas (shadow included) is resampled.
        reach = math.ceil(3 * _blur_radius(SUBJECT_SHADOW.blur)) + max(abs(o) for o in SUBJECT_SHADOW.offset)
        canvas_w, canvas_h = self.size
        x0, y0 = max(left, -reach), max(top, -reach)
        x1, y1 = min(left + width, canvas_w + reach), min(top + height, canvas_h + reach)
        if x1 <= x0 or y1 <= y0:
            return canvas
        src_w, src_h = subject.raster.size
        sx, sy = src_w / width, src_h / height
        region = ((x0 - left) * sx, (y0 - top) * sy, (x1 - left) * sx, (y1 - top) * sy)
        sprite = subject.raster.image.resize((x1 - x0, y1 - y0), Image.Resampling.LANCZOS, box=region)
        sprite = apply_adjustments(sprite, adjustments)
        origin = (x0, y0)

        canvas = self._composite_shadow(canvas, sprite.getchannel("A"), origin, SUBJECT_SHADOW)
        layer = self.new_layer()
        layer.paste(sprite, origin)
        return Image.alpha_composite(canvas, layer)

    def _composite_shadow(
        self,
        canvas: Image.Image,
        mask: Image.Image,
        origin: Tuple[int, int],
        shadow: Shadow,
    ) -> Image.Image:
        r, g, b, a = parse_color(shadow.color)
        shadow_alpha = mask.point(lambda p: p * a // 255)
        silhouette = Image.new("RGBA", mask.size, (r, g, b, 0))
        silhouette.putalpha(shadow_alpha)
        layer = self.new_layer()
        layer.paste(silhouette, (origin[0] + shadow.offset[0], origin[1] + shadow.offset[1]))
        if shadow.blur:
            layer = layer.filter(ImageFilter.GaussianBlur(_blur_radius(shadow.blur)))
        return Image.alpha_composite(canvas, layer)

    # Layer 2

    def draw_overlay(
        self,
        canvas: Image.Image,
        header: Optional[TextOverlayState] = None,
        footer: Optional[TextOverlayState] = None,
    ) -> Image.Image:
        canvas = self.draw_branding(canvas)
        if header is not None and header.text:
            canvas = self.draw_caption(canvas, header, (self.size[0] / 2, self.config.text.headerTop), "ma")
        if footer is not None and footer.text:
            y = self.size[1] - self.config.text.footerBottomOffset
            canvas = self.draw_caption(canvas, footer, (self.size[0] / 2, y), "md")
        canvas = self.draw_watermark(canvas)
        return self.draw_credit(canvas)

    def draw_text(
        self,
        canvas: Image.Image,
        xy: Tuple[float, float],
        text: str,
        font: ImageFont.FreeTypeFont,
        fill: str,
        anchor: str,
        shadow: Optional[Shadow] = None,
    ) -> Image.Image:
        if shadow is not None:
            layer = self.new_layer()
            shadow_xy = (xy[0] + shadow.offset[0], xy[1] + shadow.offset[1])
            ImageDraw.Draw(layer).text(shadow_xy, text, font=font, fill=parse_color(shadow.color), anchor=anchor)
            if shadow.blur:
                layer = layer.filter(ImageFilter.GaussianBlur(_blur_radius(shadow.blur)))
            canvas = Image.alpha_composite(canvas, layer)
        layer = self.new_layer()
        ImageDraw.Draw(layer).text(xy, text, font=font, fill=parse_color(fill), anchor=anchor)
        return Image.alpha_composite(canvas, layer)

    def draw_branding(self, canvas: Image.Image) -> Image.Image:
        branding = self.config.branding
        fonts_dir = self.config.fontsDir
        pad = branding.padding
        canvas = self.draw_text(
            canvas, (pad, pad), branding.logo,
            font_from_shorthand(branding.font, fonts_dir), BRANDING_FILL, "la", BRANDING_SHADOW,
        )
        return self.draw_text(
            canvas, (pad, pad + branding.subtitleOffset), branding.subtitle,
            font_from_shorthand(branding.subFont, fonts_dir), branding.subtitleColor, "la", BRANDING_SHADOW,
        )

    def draw_caption(
        self,
        canvas: Image.Image,
        caption: TextOverlayState,
        xy: Tuple[float, float],
        anchor: str,
    ) -> Image.Image:
        font = resolve_font(caption.font_family, caption.pixel_size, True, self.config.fontsDir)
        return self.draw_text(canvas, xy, caption.text, font, caption.color, anchor, CAPTION_SHADOW)

    def draw_watermark(self, canvas: Image.Image) -> Image.Image:
        """Repeat the watermark along a column through the centre, then rotate it."""
        watermark = self.config.watermark
        if not watermark.text:
            return canvas
        width, height = self.size
        spacing = watermark.lineSpacing
        lines = math.ceil(math.hypot(width, height) / 2 / spacing)
        font = font_from_shorthand(watermark.font, self.config.fontsDir)
        side = max(2 * (lines + 1) * spacing, width, height, math.ceil(font.getlength(watermark.text)) + spacing)

        layer = Image.new("RGBA", (side, side), TRANSPARENT)
        draw = ImageDraw.Draw(layer)
        fill = parse_color(watermark.color)
        for i in range(-lines, lines + 1):
            draw.text((side / 2, side / 2 + i * spacing), watermark.text, font=font, fill=fill, anchor="mm")
        layer = layer.rotate(watermark.rotationDegrees, resample=Image.Resampling.BICUBIC)

        left, top = (side - width) // 2, (side - height) // 2
        return Image.alpha_composite(canvas, layer.crop((left, top, left + width, top + height)))

    def draw_credit(self, canvas: Image.Image) -> Image.Image:
        branding = self.config.branding
        width, height = self.size
        xy = (width - branding.padding, height - branding.padding)
        font = font_from_shorthand(branding.creditFont, self.config.fontsDir)
        return self.draw_text(canvas, xy, branding.credit, font, branding.creditColor, "rd", CREDIT_SHADOW)


__all__ = [
    "Scene",
    "Shadow",
    "Compositor",
    "cover_fit",
    "apply_adjustments",
    "vertical_gradient",
    "encode_png",
]
