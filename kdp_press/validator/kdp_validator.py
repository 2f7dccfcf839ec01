from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from kdp_press.config.sizes import INCH, PageSpec
from kdp_press.errors import AssemblyError

# KDP paperback interior page limits (broad range across paper/ink options)
MIN_PAGES = 24
MAX_PAGES = 828
MIN_PRINT_DPI = 300
SIZE_TOL_PT = 0.5


@dataclass
class ValidationIssue:
    level: str  # "error" | "warning"
    message: str


@dataclass
class ValidationReport:
    trim_key: str
    page_count: int = 0
    page_size_pt: Tuple[float, float] = (0.0, 0.0)
    lowest_image_dpi: Optional[float] = None
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(i.level == "error" for i in self.issues)

    def add(self, level: str, message: str) -> None:
        self.issues.append(ValidationIssue(level, message))


def _image_widths(page) -> List[int]:
    """Pixel widths of the image XObjects a page uses."""
    if "/Resources" not in page:
        return []
    resources = page["/Resources"].get_object()
    if "/XObject" not in resources:
        return []
    xobjects = resources["/XObject"].get_object()
    widths = []
    for obj in xobjects.values():
        obj = obj.get_object()
        if obj.get("/Subtype") == "/Image":
            widths.append(int(obj["/Width"]))
    return widths


def validate_interior(pdf_path: str, spec: PageSpec, expected_pages: Optional[int] = None) -> ValidationReport:
    """
    Check an interior PDF against its page spec.

    Errors: encryption, page count differing from expected_pages, any page
    not at trim size. Warnings: page count outside KDP limits, rotated
    pages, placed images under 300 DPI.
    """
    try:
        reader = PdfReader(pdf_path)
    except (OSError, PdfReadError) as e:
        raise AssemblyError(f"Could not read interior PDF {pdf_path}: {e}") from e

    report = ValidationReport(trim_key=spec.trim.key, page_count=len(reader.pages))
    target_w, target_h = spec.trim_size_pt
    # rasters span trim + bleed, so their DPI is measured over the full size
    full_w_in = spec.full_size_pt[0] / INCH

    if reader.is_encrypted:
        report.add("error", "PDF is encrypted. KDP requires unencrypted, printable PDFs.")

    n = report.page_count
    if expected_pages is not None and n != expected_pages:
        report.add("error", f"Expected {expected_pages} page(s), found {n}.")
    if not MIN_PAGES <= n <= MAX_PAGES:
        report.add("warning", f"Page count {n} is outside KDP's {MIN_PAGES}-{MAX_PAGES} range.")

    low_dpi_pages = []
    for i, page in enumerate(reader.pages, start=1):
        w, h = float(page.mediabox.width), float(page.mediabox.height)
        if i == 1:
            report.page_size_pt = (w, h)
        if abs(w - target_w) > SIZE_TOL_PT or abs(h - target_h) > SIZE_TOL_PT:
            report.add(
                "error",
                f"Page {i} size {w:.2f}x{h:.2f} pt does not match trim size ({target_w:.2f}x{target_h:.2f} pt).",
            )
        if page.get("/Rotate", 0):
            report.add("warning", f"Page {i} is rotated.")

        for px in _image_widths(page):
            dpi = px / full_w_in
            if report.lowest_image_dpi is None or dpi < report.lowest_image_dpi:
                report.lowest_image_dpi = dpi
            if dpi < MIN_PRINT_DPI:
                low_dpi_pages.append(i)

    if low_dpi_pages:
        report.add(
            "warning",
            f"{len(low_dpi_pages)} placed image(s) print below {MIN_PRINT_DPI} DPI "
            f"(lowest {report.lowest_image_dpi:.0f} DPI, first on page {low_dpi_pages[0]}).",
        )
    return report
