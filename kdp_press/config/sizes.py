# Print trim sizes in inches and the page geometry derived from them.
# 72 points = 1 inch. Raster assets are sized to trim + bleed on every side.

import math
from dataclasses import dataclass

from kdp_press.errors import ConfigError

INCH = 72.0

DEFAULT_BLEED_IN = 0.125
DEFAULT_DPI = 300


@dataclass(frozen=True)
class TrimSize:
    key: str
    width_in: float
    height_in: float

    @property
    def width_pt(self) -> float:
        return self.width_in * INCH

    @property
    def height_pt(self) -> float:
        return self.height_in * INCH


SIZES = {
    "5x8": TrimSize("5x8", 5.0, 8.0),
    "6x9": TrimSize("6x9", 6.0, 9.0),
    "8x10": TrimSize("8x10", 8.0, 10.0),
    "8.5x11": TrimSize("8.5x11", 8.5, 11.0),
    "A4": TrimSize("A4", 8.27, 11.69),
    "square-8.5": TrimSize("square-8.5", 8.5, 8.5),
}

# Trims priced in the "large" tier of the catalog price model
LARGE_TRIMS = frozenset({"8.5x11", "A4", "square-8.5"})


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def inches_to_points(inches: float) -> float:
    return inches * INCH


def points_to_inches(points: float) -> float:
    return points / INCH


def inches_to_pixels(inches: float, dpi: int = DEFAULT_DPI) -> int:
    return round_half_up(inches * dpi)


@dataclass(frozen=True)
class PageSpec:
    trim: TrimSize
    bleed_in: float = DEFAULT_BLEED_IN
    dpi: int = DEFAULT_DPI

    @property
    def pixel_width(self) -> int:
        return inches_to_pixels(self.trim.width_in + 2 * self.bleed_in, self.dpi)

    @property
    def pixel_height(self) -> int:
        return inches_to_pixels(self.trim.height_in + 2 * self.bleed_in, self.dpi)

    @property
    def pixel_size(self):
        return (self.pixel_width, self.pixel_height)

    @property
    def bleed_pt(self) -> float:
        return inches_to_points(self.bleed_in)

    @property
    def trim_size_pt(self):
        return (self.trim.width_pt, self.trim.height_pt)

    @property
    def full_size_pt(self):
        """Page size including bleed on all four sides"""
        return (
            self.trim.width_pt + 2 * self.bleed_pt,
            self.trim.height_pt + 2 * self.bleed_pt,
        )


def get_trim(trim_key: str) -> TrimSize:
    if trim_key not in SIZES:
        raise ConfigError(f"Unknown trim key '{trim_key}'. Available: {list(SIZES.keys())}")
    return SIZES[trim_key]


def resolve_page_spec(trim_key: str, bleed_in: float = DEFAULT_BLEED_IN, dpi: int = DEFAULT_DPI) -> PageSpec:
    trim = get_trim(trim_key)
    if bleed_in < 0:
        raise ConfigError(f"Bleed must be >= 0 inches, got {bleed_in}")
    if dpi <= 0:
        raise ConfigError(f"DPI must be positive, got {dpi}")
    return PageSpec(trim=trim, bleed_in=float(bleed_in), dpi=int(dpi))


def element_spec(pixels: int, dpi: int = DEFAULT_DPI) -> PageSpec:
    """Square, bleed-less spec for standalone elements such as clipart."""
    if pixels <= 0:
        raise ConfigError(f"Element size must be positive, got {pixels}px")
    if dpi <= 0:
        raise ConfigError(f"DPI must be positive, got {dpi}")
    side_in = pixels / dpi
    return PageSpec(trim=TrimSize(f"{pixels}px", side_in, side_in), bleed_in=0.0, dpi=int(dpi))
