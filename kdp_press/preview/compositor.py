"""
Preview compositor

Tiles a sample of assets into one flattened marketing image. Placement is
row-major and fully determined by the grid, so the same inputs always give
the same bytes.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from PIL import Image

from kdp_press.errors import AssemblyError
from kdp_press.logging_config import get_logger
from kdp_press.utils.files import atomic_output

logger = get_logger(__name__)

JPEG_QUALITY = 90


@dataclass(frozen=True)
class PreviewGrid:
    rows: int
    cols: int
    cell_w: int
    cell_h: int
    padding: int = 20
    background: Tuple[int, int, int] = (245, 245, 245)

    @property
    def capacity(self) -> int:
        return self.rows * self.cols

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (
            self.cols * (self.cell_w + self.padding) + self.padding,
            self.rows * (self.cell_h + self.padding) + self.padding,
        )


def book_preview_grid() -> PreviewGrid:
    return PreviewGrid(rows=2, cols=3, cell_w=800, cell_h=1000, padding=20, background=(245, 245, 245))


def bundle_preview_grid(sample_count: int, max_cells: int = 16, cell: int = 500, padding: int = 50) -> PreviewGrid:
    n = max(1, min(sample_count, max_cells))
    cols = math.ceil(math.sqrt(n))
    rows = math.ceil(n / cols)
    return PreviewGrid(rows=rows, cols=cols, cell_w=cell, cell_h=cell, padding=padding, background=(255, 255, 255))


def cell_origin(grid: PreviewGrid, index: int) -> Tuple[int, int]:
    """Top-left pixel of cell ``index`` (row-major)."""
    row, col = divmod(index, grid.cols)
    return (
        grid.padding + col * (grid.cell_w + grid.padding),
        grid.padding + row * (grid.cell_h + grid.padding),
    )


def fit_inside(size: Tuple[int, int], box: Tuple[int, int]) -> Tuple[int, int]:
    w, h = size
    scale = min(box[0] / w, box[1] / h)
    return max(1, int(round(w * scale))), max(1, int(round(h * scale)))


def compose_preview(images: Sequence[Image.Image], grid: PreviewGrid) -> Image.Image:
    if not images:
        raise AssemblyError("Preview needs at least one asset")

    canvas = Image.new("RGB", grid.canvas_size, grid.background)
    for index, src in enumerate(images[:grid.capacity]):
        resized = src.convert("RGBA").resize(fit_inside(src.size, (grid.cell_w, grid.cell_h)), Image.LANCZOS)
        x, y = cell_origin(grid, index)
        x += (grid.cell_w - resized.width) // 2
        y += (grid.cell_h - resized.height) // 2
        canvas.paste(resized, (x, y), resized)
    return canvas


def write_preview(paths: Sequence[Union[str, Path]], out_path: Union[str, Path], grid: PreviewGrid) -> Path:
    images: List[Image.Image] = []
    for index, path in enumerate(paths[:grid.capacity]):
        try:
            with Image.open(path) as img:
                img.load()
                images.append(img.copy())
        except OSError as e:
            raise AssemblyError(f"Preview asset {index} is not readable ({path}): {e}", index=index) from e

    preview = compose_preview(images, grid)
    out_path = Path(out_path)
    fmt = "PNG" if out_path.suffix.lower() == ".png" else "JPEG"
    with atomic_output(out_path) as tmp:
        if fmt == "JPEG":
            preview.save(tmp, format=fmt, quality=JPEG_QUALITY)
        else:
            preview.save(tmp, format=fmt)

    logger.info(f"preview: {len(images)} sample(s) on a {grid.rows}x{grid.cols} grid -> {out_path}")
    return out_path
