import pytest
from PIL import Image

from kdp_press.config.settings import PipelineSettings
from kdp_press.config.sizes import PageSpec, TrimSize


@pytest.fixture
def tiny_spec():
    # 1in square trim at 20 DPI -> 25x25px rasters
    return PageSpec(trim=TrimSize("tiny", 1.0, 1.0), bleed_in=0.125, dpi=20)


@pytest.fixture
def make_assets(tmp_path):
    """Write n solid PNGs of the given size and return their paths."""
    def _make(n, size, color=(255, 255, 255), folder="assets"):
        out = tmp_path / folder
        out.mkdir(exist_ok=True)
        paths = []
        for i in range(n):
            path = out / f"page-{i + 1:03d}.png"
            Image.new("RGB", size, color).save(path)
            paths.append(path)
        return paths
    return _make


@pytest.fixture
def settings(tmp_path):
    return PipelineSettings(
        output_root=str(tmp_path / "outputs"),
        max_workers=2,
        allow_synthetic=True,
        base_delay_s=0.0,
    )


@pytest.fixture
def small_book():
    """Factory for a coloring book config cheap enough to run end to end."""
    def _make(**overrides):
        config = {
            "product": "coloring_book",
            "theme": "Ocean Animals",
            "style": "mandala",
            "page_count": 4,
            "trim": "5x8",
            "dpi": 10,
        }
        config.update(overrides)
        return config
    return _make
