"""
Background template catalog.

Two sources produce the same ordered list of ``BackgroundEntry`` items:
``CosmosBackgroundCatalog`` reads the active rows of the backgrounds container,
``SequentialBackgroundCatalog`` probes numbered files (1.jpg, 1.png, 2.jpg, ...)
under a directory or base URL and stops at the first missing number.
"""
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

import requests
from azure.cosmos import exceptions as cosmos_exceptions

from src.shared.cosmos_client import CosmosDBClient, RetryableCosmosError, get_cosmos_client
from src.shared.logging_utils import error as log_error, info as log_info
from src.specs.common.errors import ConfigurationError, PersistenceError
from src.specs.db.background import BackgroundDocument
from src.specs.editor.config import BackgroundConfig
from src.specs.http.backgrounds import BackgroundEntry

ACTIVE_BACKGROUNDS_QUERY = (
    "SELECT * FROM c WHERE c.active = true ORDER BY c.displayOrder ASC"
)


def filename_to_title(filename: str) -> str:
    """'playa-el-tunco.jpg' -> 'Playa El Tunco'."""
    stem = re.sub(r"\.[^/.]+$", "", filename or "")
    spaced = re.sub(r"[-_]", " ", stem)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced, flags=re.ASCII)


class BackgroundCatalog(ABC):
    @abstractmethod
    def list(self) -> List[BackgroundEntry]:
        """Return the selectable backgrounds in display order."""

    def find(self, entry_id: str) -> Optional[BackgroundEntry]:
        for entry in self.list():
            if entry.id == entry_id:
                return entry
        return None


class CosmosBackgroundCatalog(BackgroundCatalog):
    def __init__(self, client: Optional[CosmosDBClient] = None, container: str = "backgrounds") -> None:
        self._client = client
        self.container = container

    @property
    def client(self) -> CosmosDBClient:
        if self._client is None:
            self._client = get_cosmos_client()
        return self._client

    def list(self) -> List[BackgroundEntry]:
        try:
            rows = self.client.query_items(self.container, ACTIVE_BACKGROUNDS_QUERY)
        except (cosmos_exceptions.CosmosHttpResponseError, RetryableCosmosError) as exc:
            log_error(None, "backgrounds:query_failed", container=self.container, error=str(exc))
            raise PersistenceError("Could not load backgrounds", details={"error": str(exc)})

        entries: List[BackgroundEntry] = []
        for row in rows:
            doc = BackgroundDocument.model_validate(row)
            if not doc.active:
                continue
            entries.append(
                BackgroundEntry(
                    id=f"bg-{doc.id}",
                    dbId=doc.id,
                    name=doc.name,
                    url=doc.fileUrl,
                    thumbnail=doc.thumbnailUrl or doc.fileUrl,
                    displayOrder=doc.displayOrder,
                )
            )
        entries.sort(key=lambda e: e.displayOrder)
        log_info(None, "backgrounds:listed", source="cosmos", count=len(entries))
        return entries


class SequentialBackgroundCatalog(BackgroundCatalog):
    """Discover numbered background files; extension order is the priority order."""

    def __init__(
        self,
        base: str,
        extensions: Sequence[str] = (".jpg", ".png", ".webp"),
        max_scan: int = 50,
        name_template: str = "Fondo {index}",
        http: Optional[requests.Session] = None,
        timeout: float = 10,
    ) -> None:
        self.base = base
        self.extensions = tuple(extensions)
        self.max_scan = max_scan
        self.name_template = name_template
        self.http = http or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(cls, settings: BackgroundConfig, base: Optional[str] = None, **kwargs) -> "SequentialBackgroundCatalog":
        return cls(
            base or settings.path,
            extensions=settings.extensions,
            max_scan=settings.maxScan,
            name_template=settings.nameTemplate,
            **kwargs,
        )

    @property
    def is_remote(self) -> bool:
        return self.base.lower().startswith(("http://", "https://"))

    def _location(self, filename: str) -> str:
        if self.is_remote:
            return self.base.rstrip("/") + "/" + filename
        return str(Path(self.base) / filename)

    def _exists(self, location: str) -> bool:
        if not self.is_remote:
            return Path(location).is_file()
        try:
            resp = self.http.head(location, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException:
            return False
        return resp.ok

    def _find(self, index: int) -> Optional[str]:
        for ext in self.extensions:
            location = self._location(f"{index}{ext}")
            if self._exists(location):
                return location
        return None

    def list(self) -> List[BackgroundEntry]:
        entries: List[BackgroundEntry] = []
        for index in range(1, self.max_scan + 1):
            location = self._find(index)
            if location is None:
                break
            entries.append(
                BackgroundEntry(
                    id=f"fondo-{index}",
                    name=self.name_template.format(index=index),
                    url=location,
                    thumbnail=location,
                    displayOrder=index,
                )
            )
        log_info(None, "backgrounds:listed", source="sequential", base=self.base, count=len(entries))
        return entries


def get_background_catalog(settings: Optional[BackgroundConfig] = None) -> BackgroundCatalog:
    """Pick the catalog from BACKGROUND_CATALOG ('cosmos' or 'local')."""
    settings = settings or BackgroundConfig()
    default = "cosmos" if os.getenv("COSMOS_DB_CONNECTION_STRING") else "local"
    kind = (os.getenv("BACKGROUND_CATALOG") or default).strip().lower()
    if kind == "cosmos":
        return CosmosBackgroundCatalog()
    if kind == "local":
        return SequentialBackgroundCatalog.from_config(settings, base=os.getenv("BACKGROUNDS_PATH"))
    raise ConfigurationError(f"Unknown BACKGROUND_CATALOG '{kind}'")


__all__ = [
    "BackgroundCatalog",
    "CosmosBackgroundCatalog",
    "SequentialBackgroundCatalog",
    "get_background_catalog",
    "filename_to_title",
]
