from pathlib import Path
from typing import Optional, Sequence, Union

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from kdp_press.assets.provider import GeneratedAsset
from kdp_press.config.sizes import PageSpec
from kdp_press.errors import AssemblyError
from kdp_press.logging_config import get_logger
from kdp_press.utils.files import atomic_output

logger = get_logger(__name__)

AssetLike = Union[GeneratedAsset, str, Path, None]


def _asset_path(asset: AssetLike) -> Optional[Path]:
    if asset is None:
        return None
    if isinstance(asset, GeneratedAsset):
        return Path(asset.path)
    return Path(asset)


def check_assets(assets: Sequence[AssetLike], spec: PageSpec) -> list:
    """
    Resolve every asset to a path and check its pixel size against the PageSpec.

    Raises AssemblyError naming the first failing index; nothing is drawn
    until every asset has passed.
    """
    expected = spec.pixel_size
    paths = []
    for index, asset in enumerate(assets):
        path = _asset_path(asset)
        if path is None or not path.is_file():
            raise AssemblyError(f"Asset {index} is missing ({path})", index=index)
        try:
            with Image.open(path) as img:
                size = img.size
        except (UnidentifiedImageError, OSError) as e:
            raise AssemblyError(f"Asset {index} is not a readable image ({path}): {e}", index=index) from e
        if size != expected:
            raise AssemblyError(
                f"Asset {index} is {size[0]}x{size[1]}px, page spec requires {expected[0]}x{expected[1]}px",
                index=index,
            )
        paths.append(path)
    return paths


def assemble_interior(
    assets: Sequence[AssetLike],
    spec: PageSpec,
    out_path: Union[str, Path],
    interleave_blanks: bool = False,
    title: str = "",
) -> int:
    """
    Build the interior PDF: one trim-sized page per asset, in order.

    Each raster covers the whole trim page; its bleed margin sits outside the
    page edge so the image keeps its aspect ratio. With interleave_blanks a
    blank page follows every content page.

    Returns:
        Number of pages written
    """
    paths = check_assets(assets, spec)

    width, height = spec.trim_size_pt
    full_w, full_h = spec.full_size_pt
    offset = -spec.bleed_pt
    pages = 0

    with atomic_output(out_path) as tmp:
        c = canvas.Canvas(str(tmp), pagesize=(width, height), invariant=1)
        if title:
            c.setTitle(title)
        c.setCreator("kdp_press")

        for index, path in enumerate(paths):
            c.drawImage(ImageReader(str(path)), offset, offset, width=full_w, height=full_h, mask="auto")
            c.showPage()
            pages += 1
            if interleave_blanks:
                c.showPage()
                pages += 1
            logger.debug(f"interior: placed asset {index + 1}/{len(paths)}")

        c.save()

    logger.info(f"interior: wrote {pages} page(s) to {out_path}")
    return pages
