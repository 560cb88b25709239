from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from src.specs.common.error_response_spec import ErrorResponse
from src.specs.db.background import BackgroundDocument
from src.specs.editor.config import EditorConfig
from src.specs.editor.events import PointerEventPayload
from src.specs.http.backgrounds import BackgroundEntry, BackgroundListResponse
from src.specs.http.render_moment import RenderMomentRequest, RenderMomentResponse


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "error.response.schema.json": ErrorResponse,
    "background.document.schema.json": BackgroundDocument,
    "background.entry.schema.json": BackgroundEntry,
    "backgrounds.list.response.schema.json": BackgroundListResponse,
    "render_moment.request.schema.json": RenderMomentRequest,
    "render_moment.response.schema.json": RenderMomentResponse,
    "editor.config.schema.json": EditorConfig,
    "pointer.event.schema.json": PointerEventPayload,
}

__all__ = [
    "ErrorResponse",
    "BackgroundDocument",
    "BackgroundEntry",
    "BackgroundListResponse",
    "RenderMomentRequest",
    "RenderMomentResponse",
    "EditorConfig",
    "PointerEventPayload",
    "SCHEMA_MODELS",
]
