"""
Async editing flows.

Blocking work (the removal call, image fetch/decode, catalog scans) runs in
worker threads via ``asyncio.to_thread`` so only the calling coroutine waits.
Results are handed back to the session with the ticket issued when the flow
started; a response that arrives after a newer request is discarded.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional, Protocol

import requests

from src.editor.raster import Raster, load_image
from src.editor.session import EditorSession
from src.shared.background_catalog import BackgroundCatalog, filename_to_title
from src.shared.logging_utils import info as log_info, warning as log_warning
from src.specs.common.errors import EverMomentError, ValidationError
from src.specs.http.backgrounds import BackgroundEntry

CUSTOM_BACKGROUND_NAME = "Custom background"


class BackgroundRemover(Protocol):
    def remove_background(self, photo: bytes, *, content_type: Optional[str], filename: Optional[str] = None) -> bytes:
        ...


async def process_photo(
    session: EditorSession,
    remover: BackgroundRemover,
    photo: bytes,
    *,
    content_type: Optional[str],
    filename: Optional[str] = None,
) -> bool:
    """Cut the subject out of ``photo`` and make it the session's subject.

    Returns False when a newer upload superseded this one. Errors propagate
    after the request is marked finished; the session is left untouched.
    """
    ticket = session.begin_subject_request()
    raster: Optional[Raster] = None
    try:
        cutout = await asyncio.to_thread(
            remover.remove_background, photo, content_type=content_type, filename=filename
        )
        raster = await asyncio.to_thread(load_image, cutout)
    except EverMomentError as exc:
        log_warning(session.session_id, "subject:processing_failed", code=exc.code, error=exc.message)
        raise
    finally:
        if raster is None:
            session.abandon_subject_request(ticket)
    return session.finish_subject_request(ticket, raster)


async def list_backgrounds(catalog: BackgroundCatalog) -> List[BackgroundEntry]:
    return await asyncio.to_thread(catalog.list)


async def choose_template(
    session: EditorSession,
    entry: BackgroundEntry,
    *,
    http: Optional[requests.Session] = None,
) -> bool:
    ticket = session.begin_background_request()
    raster = await asyncio.to_thread(load_image, entry.url, http=http)
    return session.apply_template(ticket, entry.url, raster, entry.name)


async def init_backgrounds(
    session: EditorSession,
    catalog: BackgroundCatalog,
    *,
    http: Optional[requests.Session] = None,
) -> List[BackgroundEntry]:
    """List the catalog and preselect its first entry, if any."""
    entries = await list_backgrounds(catalog)
    if not entries:
        log_info(session.session_id, "background:catalog_empty")
        return entries
    await choose_template(session, entries[0], http=http)
    return entries


async def upload_custom_background(
    session: EditorSession,
    data: bytes,
    *,
    content_type: Optional[str],
    filename: Optional[str] = None,
) -> bool:
    if not content_type or not content_type.lower().startswith("image/"):
        raise ValidationError("Please select an image")
    ticket = session.begin_background_request()
    raster = await asyncio.to_thread(load_image, data)
    name = filename_to_title(filename) if filename else CUSTOM_BACKGROUND_NAME
    return session.apply_custom_background(ticket, filename or "custom", raster, name)


__all__ = [
    "BackgroundRemover",
    "process_photo",
    "list_backgrounds",
    "choose_template",
    "init_backgrounds",
    "upload_custom_background",
]
