"""
Client for the Photoroom segmentation API.

Inputs are validated locally before any network call. Remote failures are
mapped to the RemoteServiceError family by HTTP status; nothing is retried.
"""
import os
from typing import Optional

import requests

from src.shared.logging_utils import info as log_info, warning as log_warning
from src.specs.common.errors import (
    ConfigurationError,
    QuotaExhaustedError,
    RateLimitedError,
    RemoteConfigurationError,
    RemoteConnectionError,
    RemoteServiceError,
    ValidationError,
)
from src.specs.editor.config import RemovalApiConfig

_STATUS_ERRORS = {
    401: RemoteConfigurationError,
    402: QuotaExhaustedError,
    429: RateLimitedError,
}


def validate_photo(photo: bytes, content_type: Optional[str], max_bytes: int) -> None:
    if not photo:
        raise ValidationError("No image provided")
    if not content_type or not content_type.lower().startswith("image/"):
        raise ValidationError("Please select a valid image file", details={"contentType": content_type})
    if len(photo) > max_bytes:
        raise ValidationError(
            f"Image is too large. Maximum {max_bytes // (1024 * 1024)}MB.",
            details={"size": len(photo), "maxFileSize": max_bytes},
        )


def _remote_message(resp: requests.Response) -> Optional[str]:
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message") or data.get("detail")
        return str(message) if message else None
    return None


class PhotoroomClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        *,
        settings: Optional[RemovalApiConfig] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        settings = settings or RemovalApiConfig()
        self.api_key = api_key if api_key is not None else os.getenv("PHOTOROOM_API_KEY")
        self.endpoint = endpoint or os.getenv("PHOTOROOM_ENDPOINT") or settings.endpoint
        self.max_bytes = settings.maxFileSize
        self.timeout = settings.timeoutSeconds
        self.http = http or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def remove_background(
        self,
        photo: bytes,
        *,
        content_type: Optional[str],
        filename: Optional[str] = None,
    ) -> bytes:
        """Send ``photo`` for segmentation and return the cut-out PNG bytes."""
        validate_photo(photo, content_type, self.max_bytes)
        if not self.configured:
            log_warning(None, "remove_bg:not_configured")
            raise ConfigurationError("Service not configured")

        files = {"image_file": (filename or "upload", photo, content_type)}
        try:
            resp = self.http.post(
                self.endpoint,
                headers={"x-api-key": self.api_key},
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log_warning(None, "remove_bg:unreachable", error=str(exc))
            raise RemoteConnectionError(details={"error": str(exc)})

        if not resp.ok:
            remote_message = _remote_message(resp)
            log_warning(None, "remove_bg:remote_failed", status=resp.status_code, remoteMessage=remote_message)
            details = {"status": resp.status_code, "remoteMessage": remote_message}
            error_cls = _STATUS_ERRORS.get(resp.status_code)
            if error_cls is not None:
                raise error_cls(details=details)
            raise RemoteServiceError(details=details)

        log_info(None, "remove_bg:completed", inputBytes=len(photo), outputBytes=len(resp.content))
        return resp.content


__all__ = ["PhotoroomClient", "validate_photo"]
