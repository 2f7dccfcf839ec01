"""
Cover checks

Two groups: the rendered PDF against its layout (page count, media box,
encryption) and the layout against KDP's cover rules (panel arithmetic,
spine text, live area).
"""

from dataclasses import dataclass, field
from typing import List

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from kdp_press.config.sizes import INCH
from kdp_press.cover.cover_renderer import SPINE_TEXT_MIN_PAGES, CoverLayout
from kdp_press.errors import AssemblyError

# Live text must stay this far inside the trim edge
LIVE_AREA_INSET_PT = 0.125 * INCH
MIN_SPINE_FOR_TEXT_PT = 0.0625 * INCH


@dataclass
class CoverIssue:
    level: str  # "error" | "warning"
    message: str


@dataclass
class CoverReport:
    width_pt: float
    height_pt: float
    expected_width_pt: float
    expected_height_pt: float
    expected_spine_pt: float
    issues: List[CoverIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(i.level == "error" for i in self.issues)


def _layout_issues(layout: CoverLayout) -> List[CoverIssue]:
    issues = []
    panels = layout.back_panel_w + layout.front_panel_w + layout.spine_w + 2 * layout.bleed
    if abs(panels - layout.total_w) > 0.01:
        issues.append(CoverIssue(
            "error", f"Panels add up to {panels:.2f} pt but the cover is {layout.total_w:.2f} pt wide.",
        ))

    spine_text = [b for b in layout.text_blocks if b.rotation]
    if spine_text and layout.page_count < SPINE_TEXT_MIN_PAGES:
        issues.append(CoverIssue(
            "error", f"Spine text needs at least {SPINE_TEXT_MIN_PAGES} pages, book has {layout.page_count}.",
        ))
    if spine_text and layout.spine_w < MIN_SPINE_FOR_TEXT_PT:
        issues.append(CoverIssue("warning", "Spine is thinner than 1/16 inch but carries text."))

    left = layout.front_x + LIVE_AREA_INSET_PT
    right = layout.front_x + layout.front_panel_w - LIVE_AREA_INSET_PT
    for block in layout.text_blocks:
        if not block.rotation and not left <= block.x <= right:
            issues.append(CoverIssue("warning", f"Text {block.text!r} is centered outside the front live area."))
    return issues


def validate_cover(pdf_path: str, layout: CoverLayout, tol: float = 0.5) -> CoverReport:
    try:
        reader = PdfReader(pdf_path)
    except (OSError, PdfReadError) as e:
        raise AssemblyError(f"Could not read cover PDF {pdf_path}: {e}") from e

    report = CoverReport(
        width_pt=0.0,
        height_pt=0.0,
        expected_width_pt=layout.total_w,
        expected_height_pt=layout.total_h,
        expected_spine_pt=layout.spine_w,
    )

    pages = len(reader.pages)
    if pages != 1:
        report.issues.append(CoverIssue("error", f"Cover must be one page, found {pages}."))
    if reader.is_encrypted:
        report.issues.append(CoverIssue("error", "Cover PDF is encrypted; KDP needs it unencrypted."))

    if pages:
        box = reader.pages[0].mediabox
        report.width_pt, report.height_pt = float(box.width), float(box.height)
        if abs(report.width_pt - layout.total_w) > tol or abs(report.height_pt - layout.total_h) > tol:
            report.issues.append(CoverIssue(
                "error",
                f"Cover is {report.width_pt:.2f}x{report.height_pt:.2f} pt, "
                f"layout needs {layout.total_w:.2f}x{layout.total_h:.2f} pt "
                f"(spine {layout.spine_w:.2f} pt).",
            ))

    report.issues.extend(_layout_issues(layout))
    return report
