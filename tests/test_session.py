import io

import pytest
from PIL import Image

from src.editor.models import AdjustmentState, BackgroundKind, TextOverlayState
from src.editor.session import EditorSession
from src.specs.common.errors import ValidationError
from src.specs.editor.config import EditorConfig


@pytest.fixture
def session():
    return EditorSession(EditorConfig(), session_id="test-session")


@pytest.fixture
def small_session(small_config):
    return EditorSession(small_config, session_id="small")


def _apply_subject(session, raster):
    ticket = session.begin_subject_request()
    assert session.finish_subject_request(ticket, raster)


def test_new_session_defaults(session):
    assert not session.has_subject
    assert not session.is_processing
    assert session.background.kind is BackgroundKind.NONE
    assert session.adjustments.is_identity
    assert session.header.text == "" and session.footer.text == ""


def test_subject_request_fits_and_clears_processing(session, make_raster):
    ticket = session.begin_subject_request()
    assert session.is_processing
    assert session.finish_subject_request(ticket, make_raster(800, 1000))
    assert not session.is_processing
    assert session.subject.state.scale == pytest.approx(0.85)
    assert (session.subject.state.x, session.subject.state.y) == (540, 675)


def test_stale_subject_result_is_discarded(session, make_raster):
    older = session.begin_subject_request()
    newer = session.begin_subject_request()
    late, fresh = make_raster(10, 10), make_raster(40, 80)
    assert session.finish_subject_request(newer, fresh)
    assert session.is_processing
    assert not session.finish_subject_request(older, late)
    assert late.released
    assert session.subject.state.raster is fresh
    assert session.subject.state.intrinsic_height == 80
    assert not session.is_processing


def test_abandoned_request_stops_processing(session):
    ticket = session.begin_subject_request()
    session.abandon_subject_request(ticket)
    assert not session.is_processing


def test_new_subject_releases_previous(session, make_raster):
    first, second = make_raster(10, 10), make_raster(20, 20)
    _apply_subject(session, first)
    _apply_subject(session, second)
    assert first.released and not second.released


def test_stale_background_is_discarded(session, make_raster):
    older = session.begin_background_request()
    newer = session.begin_background_request()
    late, fresh = make_raster(5, 5), make_raster(6, 6)
    assert session.apply_template(newer, "2.jpg", fresh)
    assert not session.apply_template(older, "1.jpg", late)
    assert late.released
    assert session.background.image_ref == "2.jpg"


def test_custom_background_switches_mode_and_replaces_previous(session, make_raster):
    template, custom_a, custom_b = make_raster(5, 5), make_raster(6, 6), make_raster(7, 7)
    session.apply_template(session.begin_background_request(), "1.jpg", template, "Fondo 1")
    session.apply_custom_background(session.begin_background_request(), "a.jpg", custom_a, "A")
    assert session.background.kind is BackgroundKind.CUSTOM
    session.apply_custom_background(session.begin_background_request(), "b.jpg", custom_b, "B")
    assert custom_a.released
    session.set_background_mode("template")
    assert session.background.raster is template
    session.set_background_mode(BackgroundKind.CUSTOM)
    assert session.background.raster is custom_b


def test_custom_mode_without_upload_shows_gradient(session, make_raster):
    session.apply_template(session.begin_background_request(), "1.jpg", make_raster(5, 5))
    session.set_background_mode("custom")
    assert session.background.kind is BackgroundKind.NONE
    with pytest.raises(ValidationError):
        session.set_background_mode("none")
    with pytest.raises(ValidationError):
        session.set_background_mode("video")


def test_reset_restores_controls_and_keeps_subject(session, make_raster):
    subject = make_raster(800, 1000)
    template, custom = make_raster(5, 5), make_raster(6, 6)
    _apply_subject(session, subject)
    session.apply_template(session.begin_background_request(), "1.jpg", template, "Fondo 1")
    session.apply_custom_background(session.begin_background_request(), "mine.jpg", custom, "Mine")
    session.set_zoom(2.0)
    session.subject.state.x = 10
    session.set_adjustment("brightness", 1.5)
    session.set_adjustment("saturation", 0.4)
    session.update_caption("header", text="Hola", font="bebas", size=80, color="gold")
    session.update_caption("footer", text="El Salvador", size_preset="small")
    session.toggle_lock()

    session.reset()

    state = session.subject.state
    assert state.raster is subject
    assert state.scale == 0.85
    assert (state.x, state.y) == (540, 675)
    assert session.adjustments == AdjustmentState()
    assert session.header == TextOverlayState.from_config(session.config)
    assert session.footer == TextOverlayState.from_config(session.config)
    assert not session.interaction.is_locked
    assert not session.interaction.is_dragging
    assert session.background_mode is BackgroundKind.TEMPLATE
    assert session.background.raster is template
    assert session.custom_background is None
    assert custom.released


def test_clear_destroys_everything(session, make_raster):
    subject, template = make_raster(10, 10), make_raster(5, 5)
    _apply_subject(session, subject)
    session.apply_template(session.begin_background_request(), "1.jpg", template)
    pending = session.begin_subject_request()
    session.clear()
    assert not session.has_subject
    assert subject.released and template.released
    assert session.template is None
    assert session.background.kind is BackgroundKind.NONE
    late = make_raster(3, 3)
    assert not session.finish_subject_request(pending, late)
    assert late.released


def test_toggle_lock_ends_active_drag(session, make_raster):
    _apply_subject(session, make_raster(100, 100))
    rect = {"left": 0, "top": 0, "width": 1080, "height": 1350}
    assert session.handle_pointer({"type": "mousedown", "clientX": 540, "clientY": 675, "rect": rect}).render
    assert session.toggle_lock() is True
    assert not session.interaction.is_dragging
    assert not session.handle_pointer({"type": "mousedown", "clientX": 540, "clientY": 675, "rect": rect}).render
    assert session.toggle_lock() is False


def test_pointer_drag_moves_subject(session, make_raster):
    _apply_subject(session, make_raster(100, 100))
    rect = {"left": 0, "top": 0, "width": 540, "height": 675}
    session.handle_pointer({"type": "mousedown", "clientX": 270, "clientY": 337.5, "rect": rect})
    session.handle_pointer({"type": "mousemove", "clientX": 280, "clientY": 347.5, "rect": rect})
    assert (session.subject.state.x, session.subject.state.y) == (560, 695)


def test_update_caption_resolves_ids(session):
    caption = session.update_caption("header", text="Recuerdo", font="bebas", color="gold", size_preset="xlarge")
    assert caption.font_family == "Bebas Neue, sans-serif"
    assert caption.color == "#FFD700"
    assert caption.pixel_size == 68


def test_update_caption_is_all_or_nothing(session):
    session.update_caption("footer", text="Antes")
    with pytest.raises(ValidationError):
        session.update_caption("footer", text="Despues", size_preset="gigantic")
    assert session.footer.text == "Antes"
    with pytest.raises(ValidationError):
        session.update_caption("sidebar", text="x")


def test_export_filename_uses_epoch_millis(session):
    assert session.export_filename(1700000000123) == "evermoment-recuerdo-1700000000123.png"
    assert session.export_filename().startswith("evermoment-recuerdo-")


def test_export_produces_canvas_sized_png(small_session, make_raster):
    _apply_subject(small_session, make_raster(30, 30))
    result = small_session.export(epoch_millis=42)
    assert result.filename == "evermoment-recuerdo-42.png"
    assert result.content_type == "image/png"
    assert result.content.startswith(b"\x89PNG\r\n\x1a\n")
    with Image.open(io.BytesIO(result.content)) as image:
        assert image.size == (60, 75)


def test_render_is_idempotent(small_session, make_raster):
    _apply_subject(small_session, make_raster(30, 30))
    small_session.update_caption("header", text="Hola")
    assert small_session.render().tobytes() == small_session.render().tobytes()


def test_invalid_caption_color_is_rejected_and_render_still_works(small_session):
    small_session.update_caption("header", text="Antes", color="gold")
    with pytest.raises(ValidationError):
        small_session.update_caption("header", text="Hola", color="not-a-color")
    assert small_session.header.text == "Antes"
    assert small_session.header.color == "#FFD700"
    assert small_session.render().size == (60, 75)


def test_css_caption_colors_are_accepted(session):
    assert session.update_caption("footer", color="rgba(255, 255, 255, 0.5)").color == "rgba(255, 255, 255, 0.5)"


@pytest.mark.parametrize("value", [float("inf"), float("nan"), 0, -1])
def test_adjustments_must_be_finite_and_positive(session, value):
    with pytest.raises(ValidationError):
        session.set_adjustment("contrast", value)
    assert session.adjustments.contrast == 1.0
