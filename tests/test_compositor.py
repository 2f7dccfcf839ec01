import pytest
from PIL import Image

from kdp_press.errors import AssemblyError
from kdp_press.preview.compositor import (
    PreviewGrid,
    book_preview_grid,
    bundle_preview_grid,
    cell_origin,
    compose_preview,
    fit_inside,
    write_preview,
)

COLORS = [(200, 30, 30), (30, 200, 30), (30, 30, 200), (200, 200, 30), (30, 200, 200), (200, 30, 200)]


def close(a, b, tol=2):
    return all(abs(x - y) <= tol for x, y in zip(a, b))


def cell_center(grid, index):
    x, y = cell_origin(grid, index)
    return x + grid.cell_w // 2, y + grid.cell_h // 2


def test_book_grid_geometry():
    grid = book_preview_grid()
    assert (grid.rows, grid.cols, grid.capacity) == (2, 3, 6)
    assert grid.canvas_size == (3 * 820 + 20, 2 * 1020 + 20)
    assert cell_origin(grid, 0) == (20, 20)
    assert cell_origin(grid, 5) == (20 + 2 * 820, 20 + 1020)


@pytest.mark.parametrize("count,shape", [(1, (1, 1)), (2, (1, 2)), (5, (2, 3)), (9, (3, 3)), (16, (4, 4)), (40, (4, 4))])
def test_bundle_grid(count, shape):
    grid = bundle_preview_grid(count)
    assert (grid.rows, grid.cols) == shape
    assert grid.cell_w == grid.cell_h == 500
    assert grid.padding == 50


def test_fit_inside():
    assert fit_inside((80, 100), (800, 1000)) == (800, 1000)
    assert fit_inside((200, 100), (800, 1000)) == (800, 400)


def test_six_assets_fill_two_by_three():
    grid = book_preview_grid()
    images = [Image.new("RGB", (80, 100), c) for c in COLORS]
    preview = compose_preview(images, grid)

    assert preview.size == grid.canvas_size
    assert close(preview.getpixel(cell_center(grid, 0)), COLORS[0])
    assert close(preview.getpixel(cell_center(grid, 5)), COLORS[5])
    assert preview.getpixel((5, 5)) == (245, 245, 245)


def test_empty_cells_keep_background():
    grid = book_preview_grid()
    preview = compose_preview([Image.new("RGB", (80, 100), COLORS[0])], grid)
    assert preview.getpixel(cell_center(grid, 3)) == (245, 245, 245)


def test_transparent_pixels_show_background():
    grid = PreviewGrid(rows=1, cols=1, cell_w=50, cell_h=50, padding=10, background=(255, 255, 255))
    preview = compose_preview([Image.new("RGBA", (50, 50), (0, 0, 0, 0))], grid)
    assert preview.getpixel((35, 35)) == (255, 255, 255)


def test_no_assets():
    with pytest.raises(AssemblyError):
        compose_preview([], book_preview_grid())


def test_write_preview_is_byte_identical(tmp_path, make_assets):
    paths = make_assets(6, (80, 100), color=(120, 60, 30))
    write_preview(paths, tmp_path / "a.jpg", book_preview_grid())
    write_preview(paths, tmp_path / "b.jpg", book_preview_grid())
    assert (tmp_path / "a.jpg").read_bytes() == (tmp_path / "b.jpg").read_bytes()
    with Image.open(tmp_path / "a.jpg") as img:
        assert img.format == "JPEG"


def test_write_preview_png_by_suffix(tmp_path, make_assets):
    paths = make_assets(2, (50, 50))
    out = write_preview(paths, tmp_path / "preview.png", bundle_preview_grid(2))
    with Image.open(out) as img:
        assert img.format == "PNG"
        assert img.size == (2 * 550 + 50, 550 + 50)


def test_write_preview_unreadable(tmp_path):
    bogus = tmp_path / "bogus.png"
    bogus.write_bytes(b"nope")
    with pytest.raises(AssemblyError) as exc:
        write_preview([bogus], tmp_path / "preview.jpg", book_preview_grid())
    assert exc.value.index == 0
