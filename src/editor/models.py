from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from src.editor.raster import Raster
from src.editor.typography import parse_color
from src.specs.common.errors import ValidationError
from src.specs.editor.config import CanvasConfig, EditorConfig, SubjectConfig, TextConfig

Point = Tuple[float, float]


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


class AdjustmentState(BaseModel):
    """Brightness/contrast/saturation multipliers; 1.0 leaves the subject untouched."""

    model_config = ConfigDict(validate_assignment=True)

    brightness: float = Field(1.0, gt=0, allow_inf_nan=False)
    contrast: float = Field(1.0, gt=0, allow_inf_nan=False)
    saturation: float = Field(1.0, gt=0, allow_inf_nan=False)

    @property
    def is_identity(self) -> bool:
        return self.brightness == 1.0 and self.contrast == 1.0 and self.saturation == 1.0

    def set(self, name: str, value: float) -> float:
        if name not in ("brightness", "contrast", "saturation"):
            raise ValidationError(f"Unknown adjustment '{name}'")
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name.capitalize()} must be a number")
        if not value > 0 or math.isinf(value):
            raise ValidationError(f"{name.capitalize()} must be a finite number greater than zero")
        setattr(self, name, value)
        return value

    def reset(self) -> None:
        self.brightness = 1.0
        self.contrast = 1.0
        self.saturation = 1.0


class TextOverlayState(BaseModel):
    """One customizable caption (header or footer)."""

    model_config = ConfigDict(validate_assignment=True)

    text: str = Field("", max_length=40)
    font_family: str
    pixel_size: int = Field(42, gt=0)
    color: str

    @classmethod
    def from_config(cls, config: EditorConfig) -> "TextOverlayState":
        return cls(
            text="",
            font_family=config.default_font_family,
            pixel_size=config.text.defaultSize,
            color=config.default_text_color,
        )

    def set_text(self, value: Optional[str], limits: TextConfig) -> str:
        self.text = (value or "")[: min(limits.maxLength, 40)]
        return self.text

    def set_font_family(self, family: str) -> None:
        if not family or not family.strip():
            raise ValidationError("Font family is required")
        self.font_family = family.strip()

    def set_pixel_size(self, value: Union[int, str, None], limits: TextConfig) -> int:
        try:
            size = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            size = 0
        if not size:
            size = limits.defaultSize
        self.pixel_size = min(limits.maxSize, max(limits.minSize, size))
        return self.pixel_size

    def apply_size_preset(self, preset_id: str, config: EditorConfig) -> int:
        for preset in config.fontSizes:
            if preset.id == preset_id:
                return self.set_pixel_size(preset.size, config.text)
        raise ValidationError(f"Unknown font size '{preset_id}'")

    def set_color(self, color: str) -> None:
        if not color or not color.strip():
            raise ValidationError("Text color is required")
        parse_color(color)
        self.color = color.strip()

    def reset(self, config: EditorConfig) -> None:
        self.text = ""
        self.font_family = config.default_font_family
        self.pixel_size = config.text.defaultSize
        self.color = config.default_text_color


class SubjectState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    raster: Optional[Raster] = None
    x: float = 0.0
    y: float = 0.0
    scale: float = Field(1.0, gt=0)
    intrinsic_width: int = Field(0, ge=0)
    intrinsic_height: int = Field(0, ge=0)

    @property
    def scaled_size(self) -> Tuple[float, float]:
        return self.intrinsic_width * self.scale, self.intrinsic_height * self.scale

    def bounding_box(self) -> BoundingBox:
        w, h = self.scaled_size
        return BoundingBox(left=self.x - w / 2, top=self.y - h / 2, width=w, height=h)

    def contains(self, x: float, y: float) -> bool:
        if self.raster is None:
            return False
        return self.bounding_box().contains(x, y)


class SubjectTransform:
    """Set-points for the subject's scale and position.

    Only the zoom control clamps scale to the configured limits; drags move
    the position without touching the scale.
    """

    def __init__(self, canvas: CanvasConfig, limits: SubjectConfig, state: Optional[SubjectState] = None) -> None:
        self.canvas = canvas
        self.limits = limits
        self.state = state or SubjectState()
        if state is None:
            self.reset()

    @property
    def center(self) -> Point:
        return self.canvas.width / 2, self.canvas.height / 2

    def clamp_scale(self, value: float) -> float:
        return min(self.limits.maxScale, max(self.limits.minScale, value))

    def fit_initial(self, raster_width: int, raster_height: int) -> float:
        if raster_width <= 0 or raster_height <= 0:
            raise ValidationError("Subject image has no pixels")
        max_dim = max(self.canvas.width, self.canvas.height) * self.limits.initialFitRatio
        img_max_dim = max(raster_width, raster_height)
        # Never above defaultScale; large photos may fit below minScale so they stay on canvas.
        scale = min(max_dim / img_max_dim, self.limits.defaultScale)
        self.state.intrinsic_width = raster_width
        self.state.intrinsic_height = raster_height
        self.state.scale = scale
        self.state.x, self.state.y = self.center
        return self.state.scale

    def replace_raster(self, raster: Raster) -> None:
        """Swap in a freshly processed subject and fit it; the previous handle is released."""
        previous = self.state.raster
        self.fit_initial(raster.width, raster.height)
        self.state.raster = raster
        if previous is not None and previous is not raster:
            previous.release()

    def set_scale(self, value: float) -> float:
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError("Zoom must be a number")
        self.state.scale = self.clamp_scale(value)
        return self.state.scale

    def reset(self) -> None:
        self.state.x, self.state.y = self.center
        self.state.scale = self.limits.defaultScale

    def clear(self) -> None:
        if self.state.raster is not None:
            self.state.raster.release()
        self.state.raster = None
        self.state.intrinsic_width = 0
        self.state.intrinsic_height = 0
        self.reset()


class BackgroundKind(str, Enum):
    TEMPLATE = "template"
    CUSTOM = "custom"
    NONE = "none"


class BackgroundSelection(BaseModel):
    """Exactly one background source; replaced wholesale, never merged."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: BackgroundKind = BackgroundKind.NONE
    image_ref: Optional[str] = None
    name: Optional[str] = None
    raster: Optional[Raster] = None

    @classmethod
    def none(cls) -> "BackgroundSelection":
        return cls()

    @classmethod
    def template(cls, image_ref: str, raster: Raster, name: Optional[str] = None) -> "BackgroundSelection":
        return cls(kind=BackgroundKind.TEMPLATE, image_ref=image_ref, raster=raster, name=name)

    @classmethod
    def custom(cls, image_ref: str, raster: Raster, name: Optional[str] = None) -> "BackgroundSelection":
        return cls(kind=BackgroundKind.CUSTOM, image_ref=image_ref, raster=raster, name=name)

    def resolved_raster(self) -> Optional[Raster]:
        if self.kind is BackgroundKind.NONE or self.raster is None or self.raster.released:
            return None
        return self.raster


class InteractionState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    is_dragging: bool = False
    is_locked: bool = False
    drag_start_pointer: Optional[Point] = None
    drag_start_subject: Optional[Point] = None

    def end_drag(self) -> None:
        self.is_dragging = False
        self.drag_start_pointer = None
        self.drag_start_subject = None

    def reset(self) -> None:
        self.end_drag()
        self.is_locked = False


__all__ = [
    "Point",
    "BoundingBox",
    "AdjustmentState",
    "TextOverlayState",
    "SubjectState",
    "SubjectTransform",
    "BackgroundKind",
    "BackgroundSelection",
    "InteractionState",
]
