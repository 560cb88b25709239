import io

import pytest
from PIL import Image

from src.editor.raster import Raster
from src.specs.editor.config import build_editor_config, load_editor_config


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    for name in ("EVERMOMENT_CONFIG_PATH", "EVERMOMENT_FONTS_DIR", "BACKGROUND_CATALOG", "BACKGROUNDS_PATH",
                 "EXPORT_BLOB_CONTAINER", "PHOTOROOM_API_KEY", "PHOTOROOM_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    load_editor_config.cache_clear()
    yield
    load_editor_config.cache_clear()


@pytest.fixture
def small_config():
    """A tiny canvas keeps render tests fast."""
    return build_editor_config({"canvas": {"width": 60, "height": 75}, "subject": {"dragMargin": 10}})


@pytest.fixture
def make_raster():
    def _make(width, height, color=(255, 0, 0, 255)):
        return Raster(Image.new("RGBA", (width, height), color))
    return _make


@pytest.fixture
def make_png():
    def _make(width, height, color=(0, 128, 255, 255), fmt="PNG"):
        mode = "RGBA" if fmt == "PNG" else "RGB"
        buf = io.BytesIO()
        Image.new(mode, (width, height), color[: len(mode)]).save(buf, format=fmt)
        return buf.getvalue()
    return _make
