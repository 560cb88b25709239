from typing import Optional

import azure.functions as func

from src.shared.background_removal import PhotoroomClient
from src.shared.http_responses import error_response
from src.shared.logging_utils import info as log_info, error as log_error
from src.specs.common.errors import EverMomentError, ValidationError
from src.specs.editor.config import load_editor_config


bp = func.Blueprint()


def handle_remove_bg(req: func.HttpRequest, client: Optional[PhotoroomClient] = None) -> func.HttpResponse:
    """Proxy the uploaded ``image_file`` to the segmentation service."""
    upload = req.files.get("image_file")
    if upload is None:
        log_error(None, "remove_bg:missing_file")
        return error_response(ValidationError("No image provided"))

    photo = upload.read()
    log_info(None, "remove_bg:request", filename=upload.filename, contentType=upload.content_type, bytes=len(photo))
    try:
        client = client or PhotoroomClient(settings=load_editor_config().api)
        png = client.remove_background(photo, content_type=upload.content_type, filename=upload.filename)
    except EverMomentError as exc:
        log_error(None, "remove_bg:failed", code=exc.code, status=exc.http_status, error=exc.message)
        return error_response(exc)
    except Exception as exc:
        log_error(None, "remove_bg:unexpected", error=str(exc))
        return error_response()

    return func.HttpResponse(body=png, mimetype="image/png", status_code=200)


@bp.function_name(name="remove_bg")
@bp.route(route="remove-bg", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def remove_bg(req: func.HttpRequest) -> func.HttpResponse:
    return handle_remove_bg(req)
