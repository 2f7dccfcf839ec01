from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from reportlab.lib.colors import black
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase._fontdata import standardFonts
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas

from kdp_press.config.paper import PaperTable, get_paper_table
from kdp_press.config.sizes import INCH, PageSpec
from kdp_press.errors import ConfigError, FontError
from kdp_press.logging_config import get_logger
from kdp_press.utils.files import atomic_output

logger = get_logger(__name__)

# KDP only allows spine text from 79 pages up
SPINE_TEXT_MIN_PAGES = 79
SPINE_TEXT_MAX_CHARS = 40

TITLE_SIZE = 36.0
SUBTITLE_SIZE = 18.0
SPINE_SIZE = 10.0
LINE_HEIGHT = 1.2
SUBTITLE_GAP_PT = 28.0
TITLE_WIDTH_FRACTION = 0.2


@dataclass
class TextBlock:
    text: str
    x: float  # horizontal center
    y: float  # baseline
    font: str
    size: float
    gray: float = 0.0
    rotation: float = 0.0


@dataclass
class CoverLayout:
    front_panel_w: float
    back_panel_w: float
    spine_w: float
    total_w: float
    total_h: float
    bleed: float
    back_x: float
    spine_x: float
    front_x: float
    page_count: int
    paper: str
    paper_table_version: str
    reading_direction: str = "ltr"
    text_blocks: List[TextBlock] = field(default_factory=list)

    @property
    def spine_in(self) -> float:
        return self.spine_w / INCH


def spine_width_in(page_count: int, paper: str, table: Optional[PaperTable] = None) -> float:
    if page_count < 1:
        raise ConfigError(f"Spine needs at least one interior page, got {page_count}")
    table = table or get_paper_table()
    return page_count * table.thickness(paper)


def resolve_font(font: str) -> str:
    """
    Return a reportlab font name for a standard font or a TTF path.

    A TTF path is registered under its file stem. Anything that is neither a
    standard font nor an existing TTF is a FontError.
    """
    if font in standardFonts:
        return font
    path = Path(font)
    if path.suffix.lower() in (".ttf", ".otf"):
        if not path.is_file():
            raise FontError(f"Font file not found: {font}")
        name = path.stem
        if name not in pdfmetrics.getRegisteredFontNames():
            try:
                pdfmetrics.registerFont(TTFont(name, str(path)))
            except TTFError as e:
                raise FontError(f"Could not load font {font}: {e}") from e
        return name
    if font in pdfmetrics.getRegisteredFontNames():
        return font
    raise FontError(f"Unknown font '{font}'")


def check_encodable(text: str, font_name: str) -> None:
    font = pdfmetrics.getFont(font_name)
    if isinstance(font, TTFont):
        missing = sorted({ch for ch in text if not ch.isspace() and ord(ch) not in font.face.charToGlyph})
        if missing:
            raise FontError(f"Font {font_name} has no glyphs for {''.join(missing)!r}")
        return
    try:
        text.encode("cp1252")
    except UnicodeEncodeError as e:
        raise FontError(f"Text {text!r} cannot be encoded in standard font {font_name}") from e


def wrap_words(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedy word wrap. A word wider than max_width still gets a line of its own.
    """
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def compute_cover_layout(
    spec: PageSpec,
    page_count: int,
    paper: str,
    title: str = "",
    subtitle: str = "",
    paper_table: Optional[PaperTable] = None,
    reading_direction: str = "ltr",
    title_font: str = "Helvetica-Bold",
    subtitle_font: str = "Helvetica",
    title_size: float = TITLE_SIZE,
    subtitle_size: float = SUBTITLE_SIZE,
    title_width_fraction: float = TITLE_WIDTH_FRACTION,
) -> CoverLayout:
    if reading_direction not in ("ltr", "rtl"):
        raise ConfigError(f"reading_direction must be 'ltr' or 'rtl', got '{reading_direction}'")
    table = paper_table or get_paper_table()

    trim_w = spec.trim.width_pt
    trim_h = spec.trim.height_pt
    bleed = spec.bleed_pt
    spine = spine_width_in(page_count, paper, table) * INCH

    # (2*trim_w + spine + 2*bleed) and (trim_h + 2*bleed), all in points
    total_w = (2 * spec.trim.width_in + spine / INCH + 2 * spec.bleed_in) * INCH
    total_h = (spec.trim.height_in + 2 * spec.bleed_in) * INCH

    if reading_direction == "ltr":
        back_x = bleed
        spine_x = back_x + trim_w
        front_x = spine_x + spine
    else:
        front_x = bleed
        spine_x = front_x + trim_w
        back_x = spine_x + spine

    layout = CoverLayout(
        front_panel_w=trim_w,
        back_panel_w=trim_w,
        spine_w=spine,
        total_w=total_w,
        total_h=total_h,
        bleed=bleed,
        back_x=back_x,
        spine_x=spine_x,
        front_x=front_x,
        page_count=page_count,
        paper=paper,
        paper_table_version=table.version,
        reading_direction=reading_direction,
    )

    title_font = resolve_font(title_font)
    subtitle_font = resolve_font(subtitle_font)
    center_x = front_x + trim_w / 2.0
    center_y = total_h / 2.0

    lines: List[str] = []
    if title:
        check_encodable(title, title_font)
        lines = wrap_words(
            title,
            total_w * title_width_fraction,
            lambda s: pdfmetrics.stringWidth(s, title_font, title_size),
        )

    line_h = title_size * LINE_HEIGHT
    block_top = center_y + len(lines) * line_h / 2.0
    for i, line in enumerate(lines):
        layout.text_blocks.append(TextBlock(line, center_x, block_top - title_size - i * line_h, title_font, title_size))

    if subtitle:
        check_encodable(subtitle, subtitle_font)
        block_bottom = block_top - len(lines) * line_h
        layout.text_blocks.append(TextBlock(
            subtitle, center_x, block_bottom - SUBTITLE_GAP_PT, subtitle_font, subtitle_size, gray=0.3,
        ))

    if title and page_count >= SPINE_TEXT_MIN_PAGES:
        size = min(SPINE_SIZE, spine * 0.6)
        layout.text_blocks.append(TextBlock(
            title[:SPINE_TEXT_MAX_CHARS], spine_x + spine / 2.0, total_h / 2.0, title_font, size, rotation=-90,
        ))

    return layout


def generate_cover(
    layout: CoverLayout,
    out_path: Union[str, Path],
    bg_gray: float = 0.95,
    draw_guides: bool = False,
):
    with atomic_output(out_path) as tmp:
        c = canvas.Canvas(str(tmp), pagesize=(layout.total_w, layout.total_h), invariant=1)
        c.setCreator("kdp_press")

        # Background
        c.setFillGray(bg_gray)
        c.rect(0, 0, layout.total_w, layout.total_h, fill=1, stroke=0)

        if draw_guides:
            # Panel separators (non-printing in real covers)
            c.setStrokeColor(black)
            c.setLineWidth(0.5)
            c.line(layout.spine_x, 0, layout.spine_x, layout.total_h)
            c.line(layout.spine_x + layout.spine_w, 0, layout.spine_x + layout.spine_w, layout.total_h)

        for block in layout.text_blocks:
            c.saveState()
            c.setFillGray(block.gray)
            c.setFont(block.font, block.size)
            if block.rotation:
                # Vertical spine text, baseline centered on the spine
                c.translate(block.x, block.y)
                c.rotate(block.rotation)
                c.drawCentredString(0, -block.size / 3.0, block.text)
            else:
                c.drawCentredString(block.x, block.y, block.text)
            c.restoreState()

        c.showPage()
        c.save()

    logger.info(
        f"cover: {layout.total_w:.2f}x{layout.total_h:.2f} pt, spine {layout.spine_w:.2f} pt "
        f"({layout.page_count} pages, {layout.paper}, table {layout.paper_table_version})"
    )
