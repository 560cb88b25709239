import os
from datetime import datetime, timezone
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings

from src.specs.common.errors import ConfigurationError, PersistenceError

DEFAULT_EXPORT_CONTAINER = "moments"


def _get_service_client() -> BlobServiceClient:
    conn = os.getenv("EVERMOMENT_BLOB_CONNECTION_STRING")
    if not conn:
        raise ConfigurationError("EVERMOMENT_BLOB_CONNECTION_STRING is required for blob uploads")
    return BlobServiceClient.from_connection_string(conn)


def export_container() -> str:
    return os.getenv("EXPORT_BLOB_CONTAINER") or DEFAULT_EXPORT_CONTAINER


def moment_blob_name(filename: str, now: Optional[datetime] = None) -> str:
    """Exports are grouped by UTC day: ``2024/05/01/evermoment-recuerdo-<ms>.png``."""
    now = now or datetime.now(timezone.utc)
    return f"{now:%Y/%m/%d}/{filename}"


def upload_bytes(
    *,
    container: str,
    blob_name: str,
    data: bytes,
    content_type: Optional[str] = None,
    service: Optional[BlobServiceClient] = None,
) -> str:
    """Upload an exported moment and return its public URL.

    Uses EVERMOMENT_BLOB_CONNECTION_STRING unless a service client is given.
    The container is created with public blob access on first use.
    """
    service = service or _get_service_client()
    container_client = service.get_container_client(container)
    try:
        container_client.create_container(public_access="blob")
    except ResourceExistsError:
        pass
    except AzureError as exc:
        raise PersistenceError("Could not prepare the export container", details={"container": container, "error": str(exc)})

    blob = container_client.get_blob_client(blob_name)
    settings = ContentSettings(content_type=content_type) if content_type else None
    try:
        blob.upload_blob(data, overwrite=True, content_settings=settings)
    except AzureError as exc:
        raise PersistenceError("Could not store the exported image", details={"blob": blob_name, "error": str(exc)})
    return blob.url


__all__ = ["export_container", "moment_blob_name", "upload_bytes"]
