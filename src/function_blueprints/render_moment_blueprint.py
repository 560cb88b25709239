import base64
import binascii
from typing import Callable, Optional

import azure.functions as func
import requests
from pydantic import ValidationError as PydanticValidationError

from src.editor.raster import Raster, load_image
from src.editor.session import EditorSession
from src.shared.background_catalog import BackgroundCatalog, get_background_catalog
from src.shared.blob_store import export_container, moment_blob_name, upload_bytes
from src.shared.http_responses import error_response, json_response
from src.shared.logging_utils import info as log_info, error as log_error
from src.specs.common.errors import EverMomentError, ValidationError
from src.specs.editor.config import EditorConfig, load_editor_config
from src.specs.http.render_moment import RenderMomentRequest, RenderMomentResponse, SubjectSnapshot

bp = func.Blueprint()


def _require_remote(url: str, field: str) -> str:
    if not url.lower().startswith(("http://", "https://")):
        raise ValidationError(f"{field} must be an http(s) URL")
    return url


def _decode_base64(value: str) -> bytes:
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("subject.imageBase64 is not valid base64")


def _load_subject(snapshot: SubjectSnapshot, http: Optional[requests.Session]) -> Raster:
    if snapshot.imageBase64:
        return load_image(_decode_base64(snapshot.imageBase64))
    return load_image(_require_remote(snapshot.imageUrl or "", "subject.imageUrl"), http=http)


def build_session(
    parsed: RenderMomentRequest,
    config: EditorConfig,
    *,
    catalog: Optional[BackgroundCatalog] = None,
    http: Optional[requests.Session] = None,
) -> EditorSession:
    """Recreate an editing session from a client snapshot."""
    session = EditorSession(config)

    bg_url, bg_name = None, None
    if parsed.backgroundId:
        catalog = catalog or get_background_catalog(config.backgrounds)
        entry = catalog.find(parsed.backgroundId)
        if entry is None:
            raise ValidationError(f"Unknown background '{parsed.backgroundId}'")
        bg_url, bg_name = entry.url, entry.name
    elif parsed.backgroundUrl:
        bg_url = _require_remote(parsed.backgroundUrl, "backgroundUrl")
    if bg_url:
        ticket = session.begin_background_request()
        session.apply_template(ticket, bg_url, load_image(bg_url, http=http), bg_name)

    if parsed.subject is not None:
        ticket = session.begin_subject_request()
        session.finish_subject_request(ticket, _load_subject(parsed.subject, http))
        if parsed.subject.scale is not None:
            session.set_zoom(parsed.subject.scale)
        if parsed.subject.x is not None:
            session.subject.state.x = parsed.subject.x
        if parsed.subject.y is not None:
            session.subject.state.y = parsed.subject.y

    for name in ("brightness", "contrast", "saturation"):
        session.set_adjustment(name, getattr(parsed.adjustments, name))

    for which in ("header", "footer"):
        caption = getattr(parsed, which)
        session.update_caption(
            which,
            text=caption.text,
            font=caption.font,
            size=caption.size,
            size_preset=caption.sizePreset,
            color=caption.color,
        )
    return session


def handle_render_moment(
    req: func.HttpRequest,
    *,
    config: Optional[EditorConfig] = None,
    catalog: Optional[BackgroundCatalog] = None,
    http: Optional[requests.Session] = None,
    uploader: Callable[..., str] = upload_bytes,
) -> func.HttpResponse:
    try:
        data = req.get_json()
    except ValueError:
        log_error(None, "render:invalid_json")
        return error_response(ValidationError("Invalid JSON body"))

    try:
        parsed = RenderMomentRequest.model_validate(data)
    except PydanticValidationError as ex:
        log_error(None, "render:invalid_request", error=str(ex))
        return error_response(ValidationError(f"Invalid request: {ex.error_count()} validation error(s)"))

    try:
        session = build_session(parsed, config or load_editor_config(), catalog=catalog, http=http)
        result = session.export()
        log_info(session.session_id, "render:completed", filename=result.filename, destination=parsed.outputDestination)
        if parsed.outputDestination == "blob":
            url = uploader(
                container=export_container(),
                blob_name=moment_blob_name(result.filename),
                data=result.content,
                content_type=result.content_type,
            )
            return json_response(RenderMomentResponse(filename=result.filename, url=url))
    except EverMomentError as exc:
        log_error(None, "render:failed", code=exc.code, error=exc.message)
        return error_response(exc)
    except Exception as exc:
        log_error(None, "render:unexpected", error=str(exc))
        return error_response()

    return func.HttpResponse(
        body=result.content,
        mimetype=result.content_type,
        status_code=200,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@bp.function_name(name="render_moment")
@bp.route(route="render_moment", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def render_moment(req: func.HttpRequest) -> func.HttpResponse:
    return handle_render_moment(req)
