"""
EditorSession: the single owner of one user's editing state.

All mutable models (subject, adjustments, captions, background, interaction)
live here and are handed to the compositor and drag controller explicitly.
Asynchronous results (processed subjects, loaded backgrounds) are applied
through tickets so a late response can never overwrite newer state.
"""
from __future__ import annotations

import time
import uuid
from typing import Any, Dict, NamedTuple, Optional, Set, Union

from PIL import Image

from src.editor.compositor import Compositor, Scene, encode_png
from src.editor.input_adapter import dispatch
from src.editor.models import (
    AdjustmentState,
    BackgroundKind,
    BackgroundSelection,
    InteractionState,
    SubjectTransform,
    TextOverlayState,
)
from src.editor.pointer import DragController, PointerOutcome
from src.editor.raster import Raster
from src.shared.logging_utils import info as log_info, timed
from src.specs.common.errors import ValidationError
from src.specs.editor.config import EditorConfig
from src.specs.editor.events import PointerEventPayload

PNG_CONTENT_TYPE = "image/png"


class ExportResult(NamedTuple):
    filename: str
    content: bytes
    content_type: str = PNG_CONTENT_TYPE


class EditorSession:
    def __init__(self, config: EditorConfig, session_id: Optional[str] = None) -> None:
        self.config = config
        self.session_id = session_id or uuid.uuid4().hex
        self.compositor = Compositor(config)

        self.subject = SubjectTransform(config.canvas, config.subject)
        self.adjustments = AdjustmentState()
        self.header = TextOverlayState.from_config(config)
        self.footer = TextOverlayState.from_config(config)
        self.interaction = InteractionState()
        self.drag = DragController(self.interaction, self.subject.state, config.canvas, config.subject.dragMargin)

        self.background_mode = BackgroundKind.TEMPLATE
        self._template: Optional[BackgroundSelection] = None
        self._custom: Optional[BackgroundSelection] = None

        self._subject_generation = 0
        self._background_generation = 0
        self._pending_subjects: Set[int] = set()

    # Background

    @property
    def background(self) -> BackgroundSelection:
        if self.background_mode is BackgroundKind.CUSTOM:
            chosen = self._custom
        else:
            chosen = self._template
        return chosen or BackgroundSelection.none()

    @property
    def template(self) -> Optional[BackgroundSelection]:
        return self._template

    @property
    def custom_background(self) -> Optional[BackgroundSelection]:
        return self._custom

    def set_background_mode(self, mode: Union[BackgroundKind, str]) -> BackgroundKind:
        try:
            mode = BackgroundKind(mode)
        except ValueError:
            raise ValidationError(f"Unknown background mode '{mode}'")
        if mode is BackgroundKind.NONE:
            raise ValidationError("Background mode must be 'template' or 'custom'")
        self.background_mode = mode
        return mode

    def begin_background_request(self) -> int:
        self._background_generation += 1
        return self._background_generation

    def _is_current_background(self, ticket: int, raster: Raster, kind: str) -> bool:
        if ticket == self._background_generation:
            return True
        raster.release()
        log_info(self.session_id, "background:stale_discarded", kind=kind, ticket=ticket, latest=self._background_generation)
        return False

    def apply_template(self, ticket: int, image_ref: str, raster: Raster, name: Optional[str] = None) -> bool:
        if not self._is_current_background(ticket, raster, "template"):
            return False
        previous = self._template
        self._template = BackgroundSelection.template(image_ref, raster, name)
        self.background_mode = BackgroundKind.TEMPLATE
        _release_selection(previous, keep=raster)
        log_info(self.session_id, "background:template_applied", imageRef=image_ref)
        return True

    def apply_custom_background(self, ticket: int, image_ref: str, raster: Raster, name: Optional[str] = None) -> bool:
        if not self._is_current_background(ticket, raster, "custom"):
            return False
        previous = self._custom
        self._custom = BackgroundSelection.custom(image_ref, raster, name)
        self.background_mode = BackgroundKind.CUSTOM
        _release_selection(previous, keep=raster)
        log_info(self.session_id, "background:custom_applied", name=name)
        return True

    # Subject

    @property
    def is_processing(self) -> bool:
        return bool(self._pending_subjects)

    @property
    def has_subject(self) -> bool:
        return self.subject.state.raster is not None

    def begin_subject_request(self) -> int:
        self._subject_generation += 1
        self._pending_subjects.add(self._subject_generation)
        return self._subject_generation

    def abandon_subject_request(self, ticket: int) -> None:
        self._pending_subjects.discard(ticket)

    def finish_subject_request(self, ticket: int, raster: Raster) -> bool:
        """Apply a processed subject if ``ticket`` is still the latest request."""
        self._pending_subjects.discard(ticket)
        if ticket != self._subject_generation:
            raster.release()
            log_info(self.session_id, "subject:stale_discarded", ticket=ticket, latest=self._subject_generation)
            return False
        self.interaction.end_drag()
        self.subject.replace_raster(raster)
        log_info(
            self.session_id,
            "subject:applied",
            width=raster.width,
            height=raster.height,
            scale=self.subject.state.scale,
        )
        return True

    # Controls

    def set_zoom(self, value: float) -> float:
        return self.subject.set_scale(value)

    def set_adjustment(self, name: str, value: float) -> float:
        return self.adjustments.set(name, value)

    def toggle_lock(self) -> bool:
        self.interaction.is_locked = not self.interaction.is_locked
        if self.interaction.is_locked:
            self.interaction.end_drag()
        return self.interaction.is_locked

    def caption(self, which: str) -> TextOverlayState:
        if which == "header":
            return self.header
        if which == "footer":
            return self.footer
        raise ValidationError(f"Unknown caption '{which}'")

    def resolve_font_family(self, value: str) -> str:
        """Accept either a configured font id or a CSS font-family list."""
        for option in self.config.fonts:
            if value == option.id:
                return option.family
        return value

    def resolve_text_color(self, value: str) -> str:
        for option in self.config.textColors:
            if value == option.id:
                return option.color
        return value

    def update_caption(
        self,
        which: str,
        text: Optional[str] = None,
        font: Optional[str] = None,
        size: Union[int, str, None] = None,
        size_preset: Optional[str] = None,
        color: Optional[str] = None,
    ) -> TextOverlayState:
        """Apply several caption edits at once; nothing changes if any is invalid."""
        target = self.caption(which)
        draft = target.model_copy()
        if text is not None:
            draft.set_text(text, self.config.text)
        if font is not None:
            draft.set_font_family(self.resolve_font_family(font))
        if size_preset is not None:
            draft.apply_size_preset(size_preset, self.config)
        elif size is not None:
            draft.set_pixel_size(size, self.config.text)
        if color is not None:
            draft.set_color(self.resolve_text_color(color))
        for field in ("text", "font_family", "pixel_size", "color"):
            setattr(target, field, getattr(draft, field))
        return target

    def handle_pointer(self, payload: Union[PointerEventPayload, Dict[str, Any]]) -> PointerOutcome:
        return dispatch(self.drag, payload)

    def reset(self) -> None:
        """Return every control to its default; the subject raster and template are kept."""
        self.subject.reset()
        self.adjustments.reset()
        self.header.reset(self.config)
        self.footer.reset(self.config)
        self.interaction.reset()
        _release_selection(self._custom)
        self._custom = None
        self.background_mode = BackgroundKind.TEMPLATE
        log_info(self.session_id, "session:reset")

    def clear(self) -> None:
        """Full reset: destroy the subject, forget backgrounds, drop pending results."""
        self.reset()
        self.subject.clear()
        _release_selection(self._template)
        self._template = None
        self._subject_generation += 1
        self._background_generation += 1
        log_info(self.session_id, "session:cleared")

    # Output

    def scene(self) -> Scene:
        return Scene(
            background=self.background,
            subject=self.subject.state,
            adjustments=self.adjustments,
            header=self.header,
            footer=self.footer,
        )

    def render(self) -> Image.Image:
        return self.compositor.render(self.scene())

    def export_filename(self, epoch_millis: Optional[int] = None) -> str:
        if epoch_millis is None:
            epoch_millis = int(time.time() * 1000)
        return f"{self.config.export.filenamePrefix}-{epoch_millis}.png"

    def export(self, epoch_millis: Optional[int] = None) -> ExportResult:
        filename = self.export_filename(epoch_millis)
        with timed(self.session_id, "session:exported", filename=filename) as dims:
            content = encode_png(self.render())
            dims["bytes"] = len(content)
        return ExportResult(filename=filename, content=content)


def _release_selection(selection: Optional[BackgroundSelection], keep: Optional[Raster] = None) -> None:
    if selection is not None and selection.raster is not None and selection.raster is not keep:
        selection.raster.release()


__all__ = ["EditorSession", "ExportResult", "PNG_CONTENT_TYPE"]
