"""
Translate raw browser pointer events into ``DragController`` calls.

The host forwards each mouse/touch event as a small JSON payload (event type,
client coordinates or touch list, and the canvas element's bounding rect).
"""
from __future__ import annotations

from typing import Any, Dict, Union

from pydantic import ValidationError as PydanticValidationError

from src.editor.pointer import IGNORED, DisplayRect, DragController, PointerOutcome
from src.specs.common.errors import ValidationError
from src.specs.editor.events import ElementRect, PointerEventPayload


def parse_event(payload: Union[PointerEventPayload, Dict[str, Any]]) -> PointerEventPayload:
    if isinstance(payload, PointerEventPayload):
        return payload
    try:
        return PointerEventPayload.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid pointer event", details={"errors": exc.errors(include_url=False)})


def _rect(event: PointerEventPayload) -> DisplayRect:
    rect: ElementRect = event.rect  # type: ignore[assignment]
    if rect is None:
        raise ValidationError(f"{event.type} event requires the canvas rect")
    return DisplayRect(rect.left, rect.top, rect.width, rect.height)


def _client(event: PointerEventPayload):
    if event.clientX is None or event.clientY is None:
        raise ValidationError(f"{event.type} event requires clientX and clientY")
    return event.clientX, event.clientY


def dispatch(controller: DragController, payload: Union[PointerEventPayload, Dict[str, Any]]) -> PointerOutcome:
    event = parse_event(payload)
    kind = event.type
    if kind == "mousedown":
        return controller.pointer_down(_client(event), _rect(event))
    if kind == "mousemove":
        if not controller.is_dragging:
            return IGNORED
        return controller.pointer_move(_client(event), _rect(event))
    if kind in ("mouseup", "mouseleave"):
        return controller.pointer_up()
    if kind in ("touchend", "touchcancel"):
        return controller.touch_end()

    touches = [(t.clientX, t.clientY) for t in event.touches]
    if len(touches) != 1:
        return IGNORED
    if kind == "touchstart":
        return controller.touch_start(touches, _rect(event))
    if not controller.is_dragging:
        return IGNORED
    return controller.touch_move(touches, _rect(event))


__all__ = ["parse_event", "dispatch"]
