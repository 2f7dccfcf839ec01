"""Color variations and thumbnails for clipart elements"""

from pathlib import Path
from typing import List, Tuple

from PIL import Image, ImageOps

from kdp_press.errors import ConfigError
from kdp_press.utils.files import atomic_output

MAX_VARIATIONS = 3
THUMBNAIL_SIZE = (500, 500)


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    raw = color.lstrip("#")
    if len(raw) != 6:
        raise ConfigError(f"Invalid hex color '{color}'")
    try:
        return tuple(int(raw[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError as e:
        raise ConfigError(f"Invalid hex color '{color}'") from e


def tint(img: Image.Image, color: Tuple[int, int, int]) -> Image.Image:
    """Map luminance onto black..color, keeping the alpha channel."""
    rgba = img.convert("RGBA")
    alpha = rgba.getchannel("A")
    tinted = ImageOps.colorize(rgba.convert("L"), black=(0, 0, 0), white=color).convert("RGBA")
    tinted.putalpha(alpha)
    return tinted


def write_variations(source: Path, color_scheme: List[str], out_dir: Path, index: int) -> List[Path]:
    """Write up to three tinted copies of ``source`` as clipart-NNN-varK.png."""
    img = Image.open(source)
    img.load()
    paths = []
    for k, color in enumerate(color_scheme[:MAX_VARIATIONS], start=1):
        out = out_dir / f"clipart-{index:03d}-var{k}.png"
        with atomic_output(out) as tmp:
            tint(img, hex_to_rgb(color)).save(tmp, format="PNG")
        paths.append(out)
    return paths


def write_thumbnail(source: Path, out_path: Path, size: Tuple[int, int] = THUMBNAIL_SIZE) -> Path:
    img = Image.open(source)
    img.load()
    thumb = img.copy()
    thumb.thumbnail(size, Image.LANCZOS)
    with atomic_output(out_path) as tmp:
        thumb.save(tmp, format="PNG")
    return out_path
