import pytest
from PIL import Image

from src.editor.compositor import Compositor, Scene, apply_adjustments, cover_fit
from src.editor.models import AdjustmentState, BackgroundSelection, SubjectState, TextOverlayState
from src.editor.raster import Raster
from src.editor.typography import parse_color, parse_font_shorthand, resolve_font
from src.specs.common.errors import ValidationError


def test_cover_fit_wide_image_matches_height_and_centres():
    dx, dy, dw, dh = cover_fit(1920, 1080, 1080, 1350)
    assert dh == pytest.approx(1350)
    assert dw == pytest.approx(2400)
    assert dx == pytest.approx(-660)
    assert dy == 0


def test_cover_fit_tall_image_matches_width_and_centres():
    dx, dy, dw, dh = cover_fit(1000, 2000, 1080, 1350)
    assert (dx, dw) == (0, 1080)
    assert dh == pytest.approx(2160)
    assert dy == pytest.approx(-405)


@pytest.mark.parametrize("src", [(1, 1), (3000, 100), (100, 3000), (1080, 1350), (4032, 3024), (7, 13)])
@pytest.mark.parametrize("dst", [(1080, 1350), (60, 75), (500, 100)])
def test_cover_fit_covers_without_distortion(src, dst):
    dx, dy, dw, dh = cover_fit(*src, *dst)
    assert dx <= 0 and dy <= 0
    assert dx + dw >= dst[0] - 1e-9
    assert dy + dh >= dst[1] - 1e-9
    assert dw / dh == pytest.approx(src[0] / src[1])


def test_cover_fit_rejects_empty_sizes():
    with pytest.raises(ValidationError):
        cover_fit(0, 10, 10, 10)


def test_background_layer_is_fully_opaque(small_config, make_raster):
    compositor = Compositor(small_config)
    for size in [(200, 100), (30, 300), (61, 76)]:
        background = BackgroundSelection.template("bg", make_raster(*size))
        canvas = compositor.draw_background(compositor.new_layer(), background)
        assert canvas.getchannel("A").getextrema() == (255, 255)


def test_gradient_fallback_without_background(small_config):
    compositor = Compositor(small_config)
    canvas = compositor.draw_background(compositor.new_layer(), BackgroundSelection.none())
    top = canvas.getpixel((30, 0))
    bottom = canvas.getpixel((30, 74))
    for got, want in zip(top, (0x00, 0x33, 0x66, 255)):
        assert abs(got - want) <= 3
    for got, want in zip(bottom, (0x00, 0x1A, 0x33, 255)):
        assert abs(got - want) <= 3


def test_released_background_falls_back_to_gradient(small_config, make_raster):
    compositor = Compositor(small_config)
    raster = make_raster(10, 10, (255, 0, 0, 255))
    selection = BackgroundSelection.template("bg", raster)
    raster.release()
    canvas = compositor.draw_background(compositor.new_layer(), selection)
    assert canvas.getpixel((30, 0))[0] < 10


def test_render_covers_canvas_and_is_deterministic(small_config, make_raster):
    compositor = Compositor(small_config)
    subject = SubjectState(raster=make_raster(20, 20, (0, 255, 0, 255)), x=30, y=40, scale=1,
                           intrinsic_width=20, intrinsic_height=20)
    header = TextOverlayState.from_config(small_config)
    header.set_text("Hola", small_config.text)
    scene = Scene(
        background=BackgroundSelection.template("bg", make_raster(90, 40)),
        subject=subject,
        header=header,
        footer=TextOverlayState.from_config(small_config),
    )
    first = compositor.render(scene)
    second = compositor.render(scene)
    assert first.size == (60, 75)
    assert first.mode == "RGBA"
    assert first.getchannel("A").getextrema() == (255, 255)
    assert first.tobytes() == second.tobytes()


def test_render_returns_fresh_canvas(small_config):
    compositor = Compositor(small_config)
    scene = Scene()
    assert compositor.render(scene) is not compositor.render(scene)


def test_layers_are_drawn_in_order(small_config):
    calls = []

    class Recording(Compositor):
        def draw_background(self, canvas, background):
            calls.append("background")
            return canvas

        def draw_subject(self, canvas, subject, adjustments):
            calls.append("subject")
            return canvas

        def draw_branding(self, canvas):
            calls.append("branding")
            return canvas

        def draw_caption(self, canvas, caption, xy, anchor):
            calls.append(f"caption:{anchor}")
            return canvas

        def draw_watermark(self, canvas):
            calls.append("watermark")
            return canvas

        def draw_credit(self, canvas):
            calls.append("credit")
            return canvas

    header = TextOverlayState.from_config(small_config)
    footer = TextOverlayState.from_config(small_config)
    header.set_text("Top", small_config.text)
    footer.set_text("Bottom", small_config.text)
    Recording(small_config).render(Scene(header=header, footer=footer))
    assert calls == ["background", "subject", "branding", "caption:ma", "caption:md", "watermark", "credit"]


def test_empty_captions_are_skipped(small_config):
    calls = []

    class Recording(Compositor):
        def draw_caption(self, canvas, caption, xy, anchor):
            calls.append(xy)
            return canvas

    header = TextOverlayState.from_config(small_config)
    Recording(small_config).draw_overlay(Compositor(small_config).new_layer(), header, None)
    assert calls == []


def test_captions_are_anchored_to_configured_offsets(small_config):
    seen = {}

    class Recording(Compositor):
        def draw_caption(self, canvas, caption, xy, anchor):
            seen[anchor] = xy
            return canvas

    header = TextOverlayState.from_config(small_config)
    footer = TextOverlayState.from_config(small_config)
    header.set_text("a", small_config.text)
    footer.set_text("b", small_config.text)
    Recording(small_config).draw_overlay(Compositor(small_config).new_layer(), header, footer)
    assert seen["ma"] == (30, 160)
    assert seen["md"] == (30, 75 - 100)


def test_subject_skipped_without_raster(small_config):
    compositor = Compositor(small_config)
    canvas = compositor.new_layer()
    assert compositor.draw_subject(canvas, SubjectState(), AdjustmentState()) is canvas


def test_subject_drawn_at_its_position(make_raster):
    from src.specs.editor.config import build_editor_config

    compositor = Compositor(build_editor_config({"canvas": {"width": 100, "height": 100}}))
    subject = SubjectState(raster=make_raster(10, 10, (0, 255, 0, 255)), x=50, y=50, scale=1,
                           intrinsic_width=10, intrinsic_height=10)
    canvas = compositor.draw_subject(compositor.new_layer(), subject, AdjustmentState())
    assert canvas.getpixel((50, 50)) == (0, 255, 0, 255)
    assert canvas.getpixel((46, 46)) == (0, 255, 0, 255)


def test_subject_partially_off_canvas_is_clipped(small_config, make_raster):
    compositor = Compositor(small_config)
    subject = SubjectState(raster=make_raster(20, 20, (0, 0, 255, 255)), x=0, y=0, scale=1,
                           intrinsic_width=20, intrinsic_height=20)
    canvas = compositor.draw_subject(compositor.new_layer(), subject, AdjustmentState())
    assert canvas.size == (60, 75)
    assert canvas.getpixel((2, 2)) == (0, 0, 255, 255)


def test_identity_adjustments_are_a_no_op():
    image = Image.new("RGBA", (4, 4), (10, 20, 30, 128))
    assert apply_adjustments(image, AdjustmentState()) is image


def test_adjustments_leave_alpha_untouched():
    image = Image.new("RGBA", (4, 4), (100, 150, 200, 77))
    adjusted = apply_adjustments(image, AdjustmentState(brightness=0.5, contrast=1.3, saturation=0.2))
    assert adjusted.getchannel("A").getextrema() == (77, 77)
    assert adjusted.getpixel((0, 0))[:3] != (100, 150, 200)


def test_brightness_darkens_colour_channels():
    image = Image.new("RGBA", (2, 2), (200, 200, 200, 255))
    adjusted = apply_adjustments(image, AdjustmentState(brightness=0.5))
    assert adjusted.getpixel((0, 0)) == (100, 100, 100, 255)


def test_parse_color_handles_css_forms():
    assert parse_color("rgba(255, 255, 255, 0.25)") == (255, 255, 255, 64)
    assert parse_color("rgb(1, 2, 3)") == (1, 2, 3, 255)
    assert parse_color("#003366") == (0, 51, 102, 255)
    assert parse_color("white") == (255, 255, 255, 255)
    with pytest.raises(ValidationError):
        parse_color("not-a-colour")


def test_parse_font_shorthand():
    spec = parse_font_shorthand("bold 48px Montserrat, sans-serif")
    assert (spec.family, spec.size, spec.bold) == ("Montserrat, sans-serif", 48, True)
    assert parse_font_shorthand("22px Montserrat, sans-serif").bold is False
    with pytest.raises(ValidationError):
        parse_font_shorthand("Montserrat")


def test_missing_font_families_fall_back_to_a_usable_face():
    font = resolve_font("No Such Family, Another Missing One", 20)
    assert font.getbbox("A")[2] > 0


def test_raster_handles_are_not_mutated_by_render(small_config, make_raster):
    raster = make_raster(20, 20, (0, 255, 0, 255))
    before = raster.image.tobytes()
    subject = SubjectState(raster=raster, x=30, y=30, scale=1.5, intrinsic_width=20, intrinsic_height=20)
    Compositor(small_config).render(Scene(subject=subject, adjustments=AdjustmentState(brightness=0.3)))
    assert isinstance(raster, Raster)
    assert raster.image.tobytes() == before


def test_oversized_subject_is_resampled_only_where_it_can_be_seen(small_config, make_raster, monkeypatch):
    sizes = []
    original_resize = Image.Image.resize

    def recording_resize(self, size, *args, **kwargs):
        sizes.append(tuple(size))
        return original_resize(self, size, *args, **kwargs)

    monkeypatch.setattr(Image.Image, "resize", recording_resize)
    compositor = Compositor(small_config)
    subject = SubjectState(raster=make_raster(800, 800, (0, 0, 255, 255)), x=30, y=37, scale=2.5,
                           intrinsic_width=800, intrinsic_height=800)
    canvas = compositor.draw_subject(compositor.new_layer(), subject, AdjustmentState())
    assert canvas.getpixel((30, 37)) == (0, 0, 255, 255)
    assert sizes and all(w < 2000 and h < 2000 for w, h in sizes)
    assert max(w for w, _ in sizes) <= 60 + 2 * 60


def test_subject_entirely_off_canvas_is_skipped(small_config, make_raster):
    compositor = Compositor(small_config)
    subject = SubjectState(raster=make_raster(10, 10), x=-500, y=-500, scale=1,
                           intrinsic_width=10, intrinsic_height=10)
    canvas = compositor.new_layer()
    assert compositor.draw_subject(canvas, subject, AdjustmentState()) is canvas
