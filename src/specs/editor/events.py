from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PointerEventType = Literal[
    "mousedown",
    "mousemove",
    "mouseup",
    "mouseleave",
    "touchstart",
    "touchmove",
    "touchend",
    "touchcancel",
]


class ClientPoint(BaseModel):
    clientX: float
    clientY: float


class ElementRect(BaseModel):
    """getBoundingClientRect() of the canvas element."""

    left: float = 0.0
    top: float = 0.0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class PointerEventPayload(BaseModel):
    type: PointerEventType
    clientX: Optional[float] = None
    clientY: Optional[float] = None
    touches: List[ClientPoint] = Field(default_factory=list)
    rect: Optional[ElementRect] = None


__all__ = ["PointerEventType", "ClientPoint", "ElementRect", "PointerEventPayload"]
