from typing import Optional

import azure.functions as func
from pydantic import BaseModel

from src.specs.common.error_response_spec import ErrorResponse
from src.specs.common.errors import EverMomentError

INTERNAL_ERROR_MESSAGE = "Internal server error"


def json_response(model: BaseModel, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        body=model.model_dump_json(exclude_none=True),
        mimetype="application/json",
        status_code=status_code,
    )


def error_response(exc: Optional[EverMomentError] = None) -> func.HttpResponse:
    """Map an application error to ``{success: false, error}`` at its HTTP status."""
    if exc is None:
        return json_response(ErrorResponse(error=INTERNAL_ERROR_MESSAGE, code="INTERNAL_ERROR"), 500)
    return json_response(ErrorResponse(error=exc.message, code=exc.code), exc.http_status)
