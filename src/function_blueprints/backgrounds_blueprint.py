from typing import Optional

import azure.functions as func

from src.shared.background_catalog import BackgroundCatalog, get_background_catalog
from src.shared.http_responses import error_response, json_response
from src.shared.logging_utils import info as log_info, error as log_error
from src.specs.common.errors import EverMomentError, PersistenceError
from src.specs.editor.config import load_editor_config
from src.specs.http.backgrounds import BackgroundListResponse


bp = func.Blueprint()


def handle_list_backgrounds(req: func.HttpRequest, catalog: Optional[BackgroundCatalog] = None) -> func.HttpResponse:
    try:
        catalog = catalog or get_background_catalog(load_editor_config().backgrounds)
        entries = catalog.list()
    except EverMomentError as exc:
        log_error(None, "backgrounds:list_failed", code=exc.code, error=exc.message)
        # Catalog problems are always reported as a server failure.
        return error_response(PersistenceError("Could not load backgrounds"))
    except Exception as exc:
        log_error(None, "backgrounds:unexpected", error=str(exc))
        return error_response()

    log_info(None, "backgrounds:list", count=len(entries))
    return json_response(BackgroundListResponse(data=entries))


@bp.function_name(name="list_backgrounds")
@bp.route(route="backgrounds/list", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_backgrounds(req: func.HttpRequest) -> func.HttpResponse:
    return handle_list_backgrounds(req)
