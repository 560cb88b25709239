"""
Pointer/drag state machine for moving the subject around the canvas.

Pure functions do the math (display to canvas mapping, hit test, clamped move)
so they can be exercised without any UI. ``DragController`` strings them into
the Idle -> Dragging -> Idle machine and answers mouse and touch callbacks
with a ``PointerOutcome`` telling the host whether to re-render and whether to
suppress the browser's default scrolling.
"""
from __future__ import annotations

from typing import NamedTuple, Sequence

from src.editor.models import InteractionState, Point, SubjectState
from src.specs.common.errors import ValidationError
from src.specs.editor.config import CanvasConfig


class DisplayRect(NamedTuple):
    """On-screen box of the rendered canvas element, in display pixels."""

    left: float
    top: float
    width: float
    height: float


class PointerOutcome(NamedTuple):
    render: bool = False
    prevent_default: bool = False


IGNORED = PointerOutcome()


def to_canvas_point(client: Point, rect: DisplayRect, canvas: CanvasConfig) -> Point:
    """Map display coordinates to canvas space, undoing any CSS scaling."""
    if rect.width <= 0 or rect.height <= 0:
        raise ValidationError("Canvas element has no displayed size")
    scale_x = canvas.width / rect.width
    scale_y = canvas.height / rect.height
    return (client[0] - rect.left) * scale_x, (client[1] - rect.top) * scale_y


def clamp_position(x: float, y: float, subject: SubjectState, canvas: CanvasConfig, margin: float) -> Point:
    hw, hh = (d / 2 for d in subject.scaled_size)
    x = max(-hw + margin, min(canvas.width + hw - margin, x))
    y = max(-hh + margin, min(canvas.height + hh - margin, y))
    return x, y


def begin_drag(interaction: InteractionState, subject: SubjectState, point: Point) -> bool:
    """Enter Dragging when idle, unlocked and the point hits the subject box."""
    if interaction.is_dragging or interaction.is_locked:
        return False
    if not subject.contains(*point):
        return False
    interaction.is_dragging = True
    interaction.drag_start_pointer = point
    interaction.drag_start_subject = (subject.x, subject.y)
    return True


def drag_to(
    interaction: InteractionState,
    subject: SubjectState,
    point: Point,
    canvas: CanvasConfig,
    margin: float,
) -> bool:
    if not interaction.is_dragging or interaction.drag_start_pointer is None or interaction.drag_start_subject is None:
        return False
    start_px, start_py = interaction.drag_start_pointer
    base_x, base_y = interaction.drag_start_subject
    x = base_x + (point[0] - start_px)
    y = base_y + (point[1] - start_py)
    subject.x, subject.y = clamp_position(x, y, subject, canvas, margin)
    return True


def end_drag(interaction: InteractionState) -> bool:
    was_dragging = interaction.is_dragging
    interaction.end_drag()
    return was_dragging


class DragController:
    """Binds the drag functions to one session's subject and interaction state."""

    def __init__(self, interaction: InteractionState, subject: SubjectState, canvas: CanvasConfig, margin: float = 150) -> None:
        self.interaction = interaction
        self.subject = subject
        self.canvas = canvas
        self.margin = margin

    @property
    def is_dragging(self) -> bool:
        return self.interaction.is_dragging

    def pointer_down(self, client: Point, rect: DisplayRect) -> PointerOutcome:
        started = begin_drag(self.interaction, self.subject, to_canvas_point(client, rect, self.canvas))
        return PointerOutcome(render=started)

    def pointer_move(self, client: Point, rect: DisplayRect) -> PointerOutcome:
        if not self.interaction.is_dragging:
            return IGNORED
        moved = drag_to(self.interaction, self.subject, to_canvas_point(client, rect, self.canvas), self.canvas, self.margin)
        return PointerOutcome(render=moved)

    def pointer_up(self) -> PointerOutcome:
        end_drag(self.interaction)
        return IGNORED

    pointer_leave = pointer_up

    def touch_start(self, touches: Sequence[Point], rect: DisplayRect) -> PointerOutcome:
        if len(touches) != 1:
            return IGNORED
        outcome = self.pointer_down(touches[0], rect)
        return outcome._replace(prevent_default=self.interaction.is_dragging)

    def touch_move(self, touches: Sequence[Point], rect: DisplayRect) -> PointerOutcome:
        if len(touches) != 1 or not self.interaction.is_dragging:
            return IGNORED
        return self.pointer_move(touches[0], rect)._replace(prevent_default=True)

    def touch_end(self) -> PointerOutcome:
        return self.pointer_up()

    touch_cancel = touch_end


__all__ = [
    "DisplayRect",
    "PointerOutcome",
    "to_canvas_point",
    "clamp_position",
    "begin_drag",
    "drag_to",
    "end_drag",
    "DragController",
]
