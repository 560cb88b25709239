"""
Raster handle and image loader.

A ``Raster`` owns one decoded RGBA Pillow image. Whoever holds the handle owns
the pixels; replacing a raster releases the old one instead of mutating it.
"""
from __future__ import annotations

import io
import os
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from src.specs.common.errors import LoadError
from src.shared.logging_utils import warning as log_warning

ImageSource = Union[bytes, bytearray, memoryview, BinaryIO, str, os.PathLike]

DEFAULT_TIMEOUT = 15  # seconds for remote fetches


class Raster:
    """Opaque image handle with explicit size accessors."""

    __slots__ = ("_image",)

    def __init__(self, image: Image.Image) -> None:
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        self._image: Optional[Image.Image] = image

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise LoadError("Image handle has been released")
        return self._image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def released(self) -> bool:
        return self._image is None

    def release(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None

    def __repr__(self) -> str:
        if self._image is None:
            return "Raster(released)"
        return f"Raster({self._image.width}x{self._image.height})"


def _is_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def _fetch(url: str, http: Optional[requests.Session], timeout: float) -> bytes:
    getter = http.get if http is not None else requests.get
    try:
        resp = getter(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        log_warning(None, "image_loader:fetch_failed", url=url, error=str(exc))
        raise LoadError("Could not download image", details={"url": url, "error": str(exc)})
    return resp.content


def _decode(data: BinaryIO, origin: str) -> Image.Image:
    try:
        img = Image.open(data)
        img.load()
        img = ImageOps.exif_transpose(img)
        return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        log_warning(None, "image_loader:decode_failed", origin=origin, error=str(exc))
        raise LoadError("Could not decode image", details={"origin": origin, "error": str(exc)})


def load_image(
    source: ImageSource,
    *,
    http: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Raster:
    """Decode ``source`` into a Raster.

    ``source`` may be raw bytes, a binary file-like object, a filesystem path
    or an http(s) URL. Remote URLs are fetched anonymously, whatever their
    origin. Raises LoadError on any network or decode failure.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        if not source:
            raise LoadError("Image data is empty")
        return Raster(_decode(io.BytesIO(bytes(source)), "bytes"))
    if isinstance(source, str) and _is_url(source):
        return Raster(_decode(io.BytesIO(_fetch(source, http, timeout)), source))
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise LoadError("Could not read image file", details={"path": str(path), "error": str(exc)})
        return Raster(_decode(io.BytesIO(data), str(path)))
    if hasattr(source, "read"):
        return Raster(_decode(source, "stream"))
    raise LoadError(f"Unsupported image source: {type(source).__name__}")
