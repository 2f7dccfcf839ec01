import pytest

from kdp_press.config.paper import get_paper_table
from kdp_press.config.sizes import SIZES, resolve_page_spec
from kdp_press.cover.cover_renderer import (
    SPINE_TEXT_MIN_PAGES,
    compute_cover_layout,
    generate_cover,
    resolve_font,
    spine_width_in,
    wrap_words,
)
from kdp_press.cover.cover_validator import validate_cover
from kdp_press.errors import ConfigError, FontError


def test_spine_grows_with_page_count():
    assert spine_width_in(100, "white") > spine_width_in(30, "white")
    assert spine_width_in(100, "white") == pytest.approx(0.2252)


def test_spine_depends_on_paper():
    assert spine_width_in(100, "cream") > spine_width_in(100, "white")


def test_spine_rejects_bad_input():
    with pytest.raises(ConfigError):
        spine_width_in(0, "white")
    with pytest.raises(ConfigError):
        spine_width_in(100, "glossy")


@pytest.mark.parametrize("trim_key", sorted(SIZES))
@pytest.mark.parametrize("pages", [24, 79, 300])
def test_total_width(trim_key, pages):
    spec = resolve_page_spec(trim_key)
    layout = compute_cover_layout(spec, pages, "white")
    spine_pt = spine_width_in(pages, "white") * 72
    expected = 2 * spec.trim.width_pt + spine_pt + 2 * spec.bleed_pt
    assert abs(layout.total_w - expected) < 0.01
    assert layout.total_h == pytest.approx(spec.trim.height_pt + 2 * spec.bleed_pt)
    assert layout.spine_w == pytest.approx(spine_pt)


def test_panels_left_to_right():
    spec = resolve_page_spec("6x9")
    layout = compute_cover_layout(spec, 100, "white")
    assert layout.back_x == pytest.approx(9.0)
    assert layout.spine_x == pytest.approx(9.0 + 432.0)
    assert layout.front_x == pytest.approx(layout.spine_x + layout.spine_w)


def test_panels_right_to_left():
    spec = resolve_page_spec("6x9")
    layout = compute_cover_layout(spec, 100, "white", reading_direction="rtl")
    assert layout.front_x == pytest.approx(9.0)
    assert layout.back_x == pytest.approx(layout.spine_x + layout.spine_w)
    assert layout.back_x > layout.front_x


def test_invalid_reading_direction():
    with pytest.raises(ConfigError):
        compute_cover_layout(resolve_page_spec("6x9"), 100, "white", reading_direction="ttb")


def test_title_centered_on_front_panel():
    spec = resolve_page_spec("8.5x11")
    layout = compute_cover_layout(spec, 40, "white", title="Mandala Ocean Animals Coloring Book", subtitle="40 Pages")
    center = layout.front_x + layout.front_panel_w / 2
    flat = [b for b in layout.text_blocks if not b.rotation]
    assert len(flat) >= 3  # wrapped title lines + subtitle
    assert all(b.x == pytest.approx(center) for b in flat)
    # lines run top to bottom, subtitle last
    ys = [b.y for b in flat]
    assert ys == sorted(ys, reverse=True)
    assert flat[-1].text == "40 Pages"


def test_spine_text_threshold():
    spec = resolve_page_spec("8.5x11")
    below = compute_cover_layout(spec, SPINE_TEXT_MIN_PAGES - 1, "white", title="Ocean")
    at = compute_cover_layout(spec, SPINE_TEXT_MIN_PAGES, "white", title="Ocean")
    assert not any(b.rotation for b in below.text_blocks)
    spine_blocks = [b for b in at.text_blocks if b.rotation]
    assert len(spine_blocks) == 1
    assert spine_blocks[0].x == pytest.approx(at.spine_x + at.spine_w / 2)


def test_wrap_words():
    assert wrap_words("a bb ccc dddd", 6, len) == ["a bb", "ccc", "dddd"]
    assert wrap_words("supercalifragilistic", 5, len) == ["supercalifragilistic"]
    assert wrap_words("", 10, len) == []


def test_fonts():
    assert resolve_font("Helvetica-Bold") == "Helvetica-Bold"
    with pytest.raises(FontError, match="not found"):
        resolve_font("/no/such/font.ttf")
    with pytest.raises(FontError, match="Unknown font"):
        resolve_font("Comic Sans")


def test_unencodable_title():
    with pytest.raises(FontError):
        compute_cover_layout(resolve_page_spec("6x9"), 100, "white", title="海の動物")


def test_generate_and_validate(tmp_path):
    spec = resolve_page_spec("8.5x11")
    layout = compute_cover_layout(spec, 120, "cream", title="Ocean Animals", subtitle="120 Pages")
    out = tmp_path / "cover.pdf"
    generate_cover(layout, out)

    report = validate_cover(str(out), layout)
    assert report.ok, report.issues
    assert report.width_pt == pytest.approx(layout.total_w, abs=0.01)
    assert report.height_pt == pytest.approx(layout.total_h, abs=0.01)


def test_validate_cover_detects_wrong_spine(tmp_path):
    spec = resolve_page_spec("6x9")
    out = tmp_path / "cover.pdf"
    generate_cover(compute_cover_layout(spec, 100, "white"), out)
    report = validate_cover(str(out), compute_cover_layout(spec, 300, "white"))
    assert not report.ok


def test_cover_is_deterministic(tmp_path):
    layout = compute_cover_layout(resolve_page_spec("6x9"), 100, "white", title="Same", subtitle="Every time")
    generate_cover(layout, tmp_path / "a.pdf")
    generate_cover(layout, tmp_path / "b.pdf")
    assert (tmp_path / "a.pdf").read_bytes() == (tmp_path / "b.pdf").read_bytes()


def test_layout_records_paper_table():
    layout = compute_cover_layout(resolve_page_spec("6x9"), 100, "white", paper_table=get_paper_table())
    assert layout.paper_table_version == get_paper_table().version
    assert layout.spine_in == pytest.approx(0.2252)


def test_validate_cover_layout_rules(tmp_path):
    spec = resolve_page_spec("6x9")
    layout = compute_cover_layout(spec, 100, "white", title="Ocean")
    out = tmp_path / "cover.pdf"
    generate_cover(layout, out)

    layout.page_count = 50
    report = validate_cover(str(out), layout)
    assert not report.ok
    assert any("79 pages" in i.message for i in report.issues)
